"""
Unit tests for the inflight concurrency gate.
"""

import pytest

from app.services.inflight import InflightGate


class TestInflightGate:
    def test_enter_until_limit_then_refuse(self):
        gate = InflightGate("quote", limit=2)

        assert gate.try_enter() is True
        assert gate.try_enter() is True
        assert gate.try_enter() is False
        assert gate.inflight == 2

    def test_refused_entry_does_not_count(self):
        gate = InflightGate("quote", limit=1)
        gate.try_enter()
        gate.try_enter()
        gate.try_enter()

        gate.leave()

        assert gate.inflight == 0
        assert gate.try_enter() is True

    def test_leave_never_goes_negative(self):
        gate = InflightGate("callback", limit=3)
        gate.leave()
        assert gate.inflight == 0

    def test_slot_released_when_work_raises(self):
        """try/finally usage keeps the count net zero on an exception."""
        gate = InflightGate("assessment", limit=1)
        before = gate.inflight

        with pytest.raises(RuntimeError):
            assert gate.try_enter()
            try:
                raise RuntimeError("delivery blew up")
            finally:
                gate.leave()

        assert gate.inflight == before
        assert gate.try_enter() is True

    def test_repr_names_gate(self):
        assert "quote" in repr(InflightGate("quote", limit=10))
