"""Domain models for tutors."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TutorProfile:
    """Read-only view of a tutor used for matching."""

    id: str
    display_name: str
    subjects: tuple[str, ...]
    is_active: bool = True
    hourly_rate: int = 200
