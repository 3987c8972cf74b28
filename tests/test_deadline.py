"""Unit tests for the invocation deadline."""
import pytest

from transaction_import.deadline import Deadline
from transaction_import.errors import DeadlineExceeded


class Clock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeContext:
    def __init__(self, remaining_ms):
        self.remaining_ms = remaining_ms

    def get_remaining_time_in_millis(self):
        return self.remaining_ms


class TestDeadline:

    def test_unlimited(self):
        deadline = Deadline.unlimited()
        assert deadline.remaining() is None
        assert not deadline.expired
        deadline.check()
        assert deadline.cap_attempts(5, 20) == 20

    def test_from_context_subtracts_margin(self):
        clock = Clock()
        deadline = Deadline.from_context(FakeContext(12000), margin_ms=2000, clock=clock)
        assert deadline.remaining() == pytest.approx(10.0)
        clock.now += 10.0
        assert deadline.expired

    def test_from_context_without_lambda_context(self):
        assert Deadline.from_context(None).remaining() is None

    def test_margin_larger_than_remaining(self):
        deadline = Deadline.from_context(FakeContext(1000), margin_ms=2000, clock=Clock())
        assert deadline.expired

    def test_check_raises_with_context(self):
        deadline = Deadline(expires_at=1.0, clock=Clock(2.0))
        with pytest.raises(DeadlineExceeded, match="archive") as exc:
            deadline.check("archive", bucket="in-bucket", key="a.csv", phase="archive")
        assert exc.value.key == "a.csv"
        assert exc.value.phase == "archive"

    def test_cap_attempts(self):
        deadline = Deadline(expires_at=112.0, clock=Clock(100.0))
        assert deadline.cap_attempts(5, 20) == 2
        assert deadline.cap_attempts(1, 3) == 3
        # always poll at least once
        assert Deadline(expires_at=101.0, clock=Clock(100.0)).cap_attempts(5, 20) == 1
