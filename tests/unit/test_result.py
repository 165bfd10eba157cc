from __future__ import annotations

import pytest

from services.bootstrap.errors import BootstrapError, InstallFailed
from shared.result import Result


def _fails() -> int:
    raise InstallFailed("boom")


def test_capture_wraps_expected_errors() -> None:
    result = Result.capture(_fails, errors=(BootstrapError,))

    assert result.is_err()
    assert isinstance(result.unwrap_err(), InstallFailed)
    with pytest.raises(RuntimeError, match="boom"):
        result.unwrap()


def test_capture_lets_unexpected_errors_propagate() -> None:
    with pytest.raises(ZeroDivisionError):
        Result.capture(lambda: 1 / 0, errors=(BootstrapError,))


def test_and_then_short_circuits_on_first_error() -> None:
    calls: list[int] = []

    def step(value: int) -> Result[int, BootstrapError]:
        calls.append(value)
        return Result.ok(value + 1)

    ok = Result.ok(1).and_then(step).and_then(step)
    failed = Result.err(InstallFailed("stop")).and_then(step)

    assert ok.unwrap() == 3
    assert calls == [1, 2]
    assert failed.is_err()
    assert calls == [1, 2]


def test_ok_result_with_none_value_is_still_ok() -> None:
    result = Result.ok(None)

    assert result.is_ok()
    with pytest.raises(RuntimeError):
        result.unwrap_err()
