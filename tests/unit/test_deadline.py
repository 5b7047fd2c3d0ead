from __future__ import annotations

import time

import pytest

from device_history.services.deadline import Deadline
from device_history.services.errors import DeadlineExceeded


def test_unbounded_deadline_never_expires() -> None:
    deadline = Deadline.unbounded()

    assert deadline.remaining() is None
    assert deadline.expired is False
    deadline.check("anything")


def test_remaining_is_never_negative() -> None:
    deadline = Deadline(0.01)
    time.sleep(0.02)

    assert deadline.expired is True
    assert deadline.remaining() == 0.0


def test_check_raises_once_expired() -> None:
    deadline = Deadline(0.01)
    time.sleep(0.02)

    with pytest.raises(DeadlineExceeded, match="exceeded during grouping"):
        deadline.check("grouping")


def test_cancel_is_observed_by_check() -> None:
    deadline = Deadline(60)
    deadline.check()

    deadline.cancel()

    assert deadline.cancelled is True
    with pytest.raises(DeadlineExceeded, match="cancelled"):
        deadline.check()


@pytest.mark.parametrize("timeout", [0, -1])
def test_non_positive_timeout_is_rejected(timeout: float) -> None:
    with pytest.raises(ValueError):
        Deadline(timeout)
