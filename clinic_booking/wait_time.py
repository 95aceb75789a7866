from dataclasses import dataclass

from .config import AVG_CONSULTATION_MINUTES


@dataclass(frozen=True)
class WaitEstimate:
    people_ahead: int
    estimated_wait_minutes: int


def estimate(queue_number: int, avg_consultation_minutes: int = AVG_CONSULTATION_MINUTES) -> WaitEstimate:
    people_ahead = queue_number - 1
    return WaitEstimate(
        people_ahead=people_ahead,
        estimated_wait_minutes=people_ahead * avg_consultation_minutes,
    )
