import io
import json
import logging
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dagcol.utils.logging import configure_logging, get_logger, log_context  # noqa: E402

# created at import time, before any configure_logging call
EARLY_LOGGER = get_logger("dagcol.test.early")


@pytest.fixture
def log_stream():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    stream = io.StringIO()
    configure_logging(level="DEBUG", json_output=True, stream=stream)
    yield stream
    root.handlers[:] = handlers
    root.setLevel(level)


def records(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


@pytest.mark.unit
def test_json_lines_carry_service_fields(log_stream: io.StringIO) -> None:
    get_logger("dagcol.test").info("block_fetched", size=12)

    (event,) = records(log_stream)
    assert event["event"] == "block_fetched"
    assert event["size"] == 12
    assert event["level"] == "info"
    assert event["service_name"] == "dagcol"
    assert "timestamp" in event


@pytest.mark.unit
def test_log_context_binds_and_resets(log_stream: io.StringIO) -> None:
    logger = get_logger("dagcol.test")
    with log_context(cid="bafyrkmexample"):
        logger.info("inside")
    logger.info("outside")

    inside, outside = records(log_stream)
    assert inside["cid"] == "bafyrkmexample"
    assert "cid" not in outside


@pytest.mark.unit
def test_invalid_level_rejected() -> None:
    with pytest.raises(ValueError, match="Invalid log level"):
        configure_logging(level="LOUD")


@pytest.mark.unit
def test_module_level_logger_follows_later_configuration(log_stream: io.StringIO) -> None:
    EARLY_LOGGER.debug("early_event", n=1)

    (event,) = records(log_stream)
    assert event["event"] == "early_event"
    assert event["service_name"] == "dagcol"


@pytest.mark.unit
def test_level_filters_module_loggers() -> None:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    stream = io.StringIO()
    try:
        configure_logging(level="WARNING", json_output=True, stream=stream)
        EARLY_LOGGER.info("dropped")
        EARLY_LOGGER.warning("kept")
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)

    assert [json.loads(line)["event"] for line in stream.getvalue().splitlines()] == ["kept"]
