"""Subject matching between session requests and tutors."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from tutor_sessions.domain.sessions import Session
from tutor_sessions.domain.subjects import DEFAULT_TAG_INDEX, TagIndex, normalize_tag
from tutor_sessions.domain.tutors import TutorProfile
from tutor_sessions.services.tutors import TutorDirectory

_logger = logging.getLogger(__name__)


def find_compatible_tutors(
    request_tag: str,
    tutor_pool: Iterable[TutorProfile],
    index: TagIndex = DEFAULT_TAG_INDEX,
) -> list[TutorProfile]:
    """Return active tutors teaching a compatible subject.

    Tutors with an exact (case-insensitive) subject match come first, followed
    by tutors matching only through a shared group. Pool order is kept inside
    each tier.
    """
    request_key = normalize_tag(request_tag)
    exact: list[TutorProfile] = []
    grouped: list[TutorProfile] = []
    for tutor in tutor_pool:
        if not tutor.is_active:
            continue
        if any(normalize_tag(subject) == request_key for subject in tutor.subjects):
            exact.append(tutor)
        elif any(index.compatible(request_tag, subject) for subject in tutor.subjects):
            grouped.append(tutor)
    return exact + grouped


def session_matches_subjects(
    session: Session, subjects: Iterable[str], index: TagIndex = DEFAULT_TAG_INDEX
) -> bool:
    """Return true when any subject is compatible with the session topic."""
    return any(index.compatible(session.topic, subject) for subject in subjects)


def session_matches_tutor(
    session: Session, tutor: TutorProfile, index: TagIndex = DEFAULT_TAG_INDEX
) -> bool:
    """Return true when the tutor teaches something compatible with the topic."""
    return session_matches_subjects(session, tutor.subjects, index=index)


@dataclass
class MatchingService:
    """Finds tutors for a topic from the tutor directory."""

    directory: TutorDirectory
    index: TagIndex = DEFAULT_TAG_INDEX

    def find_tutors(self, topic: str) -> list[TutorProfile]:
        """Return compatible tutors for a requested topic."""
        matches = find_compatible_tutors(
            topic, self.directory.active_tutors(), index=self.index
        )
        _logger.debug("Matched topic=%s tutors=%s", topic, len(matches))
        return matches
