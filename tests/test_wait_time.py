"""Tests for the wait-time estimator."""

import pytest

from clinic_booking.wait_time import WaitEstimate, estimate


class TestEstimate:
    """Tests for estimate()."""

    def test_first_in_queue_waits_nothing(self) -> None:
        """Queue number 1 has nobody ahead."""
        assert estimate(1) == WaitEstimate(people_ahead=0, estimated_wait_minutes=0)

    def test_default_consultation_length(self) -> None:
        """Each person ahead costs ten minutes by default."""
        assert estimate(4) == WaitEstimate(people_ahead=3, estimated_wait_minutes=30)

    @pytest.mark.parametrize(
        "queue_number, minutes, expected",
        [(2, 15, 15), (5, 20, 80), (1, 45, 0)],
    )
    def test_custom_consultation_length(self, queue_number, minutes, expected) -> None:
        """Average consultation length scales the wait linearly."""
        result = estimate(queue_number, avg_consultation_minutes=minutes)
        assert result.people_ahead == queue_number - 1
        assert result.estimated_wait_minutes == expected

    def test_estimate_is_immutable(self) -> None:
        """Estimates are frozen value objects."""
        result = estimate(3)
        with pytest.raises(AttributeError):
            result.people_ahead = 0
