import json
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dagcol.store.memory import InMemoryStoreClient  # noqa: E402

# 1.0, 2.0 as little-endian f32, unpadded base64
FLOATS_1_2_B64 = "AACAPwAAAEA"


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast unit tests")
    config.addinivalue_line(
        "markers",
        "integration: tests that exercise several components together (store, CLI, cache)",
    )


@pytest.fixture
def redis_client():
    """
    Provide fake Redis client for testing.
    Uses fakeredis if available, otherwise skips tests requiring Redis.
    """
    try:
        import fakeredis

        return fakeredis.FakeRedis()
    except ImportError:
        pytest.skip("fakeredis not installed (pip install fakeredis)")


@pytest.fixture
def memory_store() -> InMemoryStoreClient:
    return InMemoryStoreClient()


@pytest.fixture
def column_doc_file(tmp_path: Path) -> Path:
    """DAG-JSON document whose fields/values holds the floats [1.0, 2.0]."""
    path = tmp_path / "column.json"
    doc = {
        "name": "temperature",
        "fields": {
            "type": "f32",
            "values": {"/": {"bytes": FLOATS_1_2_B64}},
        },
    }
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path


@pytest.fixture
def schema_file(tmp_path: Path) -> Path:
    path = tmp_path / "schema.json"
    schema = {
        "name": "uradmonitor",
        "fields": {
            "_timestamp": {"type": "u64"},
            "temperature": {"type": "f32"},
            "pressure": {"type": "u32"},
        },
    }
    path.write_text(json.dumps(schema), encoding="utf-8")
    return path
