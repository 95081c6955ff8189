"""Supabase-backed tutor profile repository."""

from dataclasses import dataclass

from supabase import Client

from tutor_sessions.domain.tutors import TutorProfile
from tutor_sessions.services.tutors import TutorRepository

_COLUMNS = "id, display_name, subjects, is_active, hourly_rate"


@dataclass
class SupabaseTutorRepository(TutorRepository):
    """Supabase implementation for tutor lookups."""

    client: Client

    def get_tutor(self, tutor_id: str) -> TutorProfile | None:
        """Return a tutor profile by id, if present."""
        response = (
            self.client.table("tutor_profiles")
            .select(_COLUMNS)
            .eq("id", tutor_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _row_to_tutor(response.data[0])

    def list_active_tutors(self) -> list[TutorProfile]:
        """Return every tutor currently accepting sessions."""
        response = (
            self.client.table("tutor_profiles")
            .select(_COLUMNS)
            .eq("is_active", True)
            .execute()
        )
        return [_row_to_tutor(row) for row in response.data or []]


def _row_to_tutor(row: dict[str, object]) -> TutorProfile:
    return TutorProfile(
        id=str(row["id"]),
        display_name=row.get("display_name") or "",
        subjects=tuple(row.get("subjects") or ()),
        is_active=bool(row.get("is_active", True)),
        hourly_rate=int(row.get("hourly_rate") or 200),
    )
