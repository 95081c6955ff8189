"""Tutor directory backed by a repository and a short-lived cache."""

from dataclasses import dataclass
from typing import Protocol

from tutor_sessions.domain.tutors import TutorProfile
from tutor_sessions.services.cache import Cache

_ACTIVE_TUTORS_KEY = "tutors:active"


class TutorRepository(Protocol):
    """Persistence interface for tutor profiles."""

    def get_tutor(self, tutor_id: str) -> TutorProfile | None:
        """Return a tutor profile by id, if present."""

    def list_active_tutors(self) -> list[TutorProfile]:
        """Return every tutor currently accepting sessions."""


@dataclass
class TutorDirectory:
    """Read access to tutor profiles."""

    repository: TutorRepository
    cache: Cache
    ttl_seconds: int = 60

    def get_tutor(self, tutor_id: str) -> TutorProfile | None:
        """Return a tutor profile, bypassing the cache."""
        return self.repository.get_tutor(tutor_id)

    def active_tutors(self) -> list[TutorProfile]:
        """Return the active tutor pool, cached for ``ttl_seconds``."""
        cached = self.cache.get(_ACTIVE_TUTORS_KEY)
        if isinstance(cached, list):
            return cached
        tutors = self.repository.list_active_tutors()
        self.cache.set(_ACTIVE_TUTORS_KEY, tutors, ttl_seconds=self.ttl_seconds)
        return tutors

    def refresh(self) -> None:
        """Forget the cached pool so the next read hits the repository."""
        self.cache.invalidate(_ACTIVE_TUTORS_KEY)
