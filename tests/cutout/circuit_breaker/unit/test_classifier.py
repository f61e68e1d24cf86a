from __future__ import annotations

import pytest

from cutout.circuit_breaker import is_success_status


@pytest.mark.parametrize(
    ("status_code", "allowed_status", "expected"),
    [
        (404, [200], False),
        (404, None, False),
        (201, None, True),
        (200, [200], True),
        (201, [200], False),
        (500, [500], True),
        (399, None, True),
        (400, None, False),
        (302, [], True),
    ],
)
def test_is_success_status(
    status_code: int,
    allowed_status: list[int] | None,
    expected: bool,
) -> None:
    assert is_success_status(status_code, allowed_status) is expected
