"""
Tests for the payment lifecycle signals and their logging receivers.
"""

from unittest.mock import patch

from payments.signals import (
    log_transition_applied,
    log_transition_rejected,
    transition_applied,
    transition_rejected,
)


class TestTransitionSignals:
    def test_receivers_are_connected(self):
        applied = transition_applied.send(sender=None, **self.applied_kwargs())
        rejected = transition_rejected.send(sender=None, **self.rejected_kwargs())

        assert (log_transition_applied, None) in applied
        assert (log_transition_rejected, None) in rejected

    def test_applied_is_logged_at_info(self):
        with patch("payments.signals.logger") as mock_logger:
            log_transition_applied(sender=None, **self.applied_kwargs())

        message = mock_logger.info.call_args[0][0]
        assert "processing -> succeeded" in message
        assert mock_logger.info.call_args[1]["extra"]["processor_event_id"] == "evt_1"

    def test_rejected_is_logged_as_warning(self):
        with patch("payments.signals.logger") as mock_logger:
            log_transition_rejected(sender=None, **self.rejected_kwargs())

        mock_logger.warning.assert_called_once()
        extra = mock_logger.warning.call_args[1]["extra"]
        assert extra["trigger"] == "start_processing"
        assert extra["from_state"] == "succeeded"

    @staticmethod
    def applied_kwargs():
        return {
            "payment_id": "p-1",
            "processor_event_id": "evt_1",
            "trigger": "succeed",
            "from_state": "processing",
            "to_state": "succeeded",
        }

    @staticmethod
    def rejected_kwargs():
        return {
            "payment_id": "p-1",
            "processor_event_id": "evt_2",
            "trigger": "start_processing",
            "from_state": "succeeded",
            "detail": "'succeeded' is terminal",
        }
