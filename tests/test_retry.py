import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dagcol.utils.retry import retry  # noqa: E402


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list:
    waits: list = []
    monkeypatch.setattr("dagcol.utils.retry.time.sleep", waits.append)
    return waits


def flaky(failures: int, exc_type: type = ConnectionError):
    calls = {"n": 0}

    def func() -> str:
        calls["n"] += 1
        if calls["n"] <= failures:
            raise exc_type(f"failure {calls['n']}")
        return "ok"

    return func, calls


@pytest.mark.unit
def test_succeeds_after_failures(sleeps: list) -> None:
    func, calls = flaky(2)
    wrapped = retry(max_attempts=3, backoff_base=1.0, exceptions=(ConnectionError,), jitter=False)(func)

    assert wrapped() == "ok"
    assert calls["n"] == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.unit
def test_reraises_last_error(sleeps: list) -> None:
    func, calls = flaky(5)
    wrapped = retry(max_attempts=3, backoff_base=0.1, exceptions=(ConnectionError,), jitter=False)(func)

    with pytest.raises(ConnectionError, match="failure 3"):
        wrapped()
    assert calls["n"] == 3
    assert len(sleeps) == 2


@pytest.mark.unit
def test_other_exceptions_not_retried(sleeps: list) -> None:
    func, calls = flaky(1, exc_type=ValueError)
    wrapped = retry(max_attempts=3, exceptions=(ConnectionError,))(func)

    with pytest.raises(ValueError):
        wrapped()
    assert calls["n"] == 1
    assert sleeps == []


@pytest.mark.unit
def test_jitter_scales_wait(sleeps: list, monkeypatch: pytest.MonkeyPatch) -> None:
    factors = iter([0.5, 1.5])
    monkeypatch.setattr("dagcol.utils.retry.random.uniform", lambda a, b: next(factors))
    func, _ = flaky(2)
    wrapped = retry(max_attempts=3, backoff_base=2.0, exceptions=(ConnectionError,))(func)

    assert wrapped() == "ok"
    assert sleeps == [1.0, 6.0]


@pytest.mark.unit
def test_zero_attempts_still_calls_once(sleeps: list) -> None:
    func, calls = flaky(1)
    wrapped = retry(max_attempts=0, exceptions=(ConnectionError,))(func)

    with pytest.raises(ConnectionError):
        wrapped()
    assert calls["n"] == 1


@pytest.mark.unit
def test_preserves_function_metadata() -> None:
    def fetch_block() -> None:
        """Docstring."""

    wrapped = retry()(fetch_block)
    assert wrapped.__name__ == "fetch_block"
    assert wrapped.__doc__ == "Docstring."
