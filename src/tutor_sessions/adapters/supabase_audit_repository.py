"""Supabase repository for session audit events."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from tutor_sessions.services.audit import AuditRepository


@dataclass
class SupabaseAuditRepository(AuditRepository):
    """Supabase-backed audit repository."""

    client: Client

    def create_event(  # noqa: PLR0913
        self,
        session_id: UUID,
        event_type: str,
        actor_id: str | None,
        before: dict[str, object] | None,
        after: dict[str, object] | None,
    ) -> None:
        """Create an audit event row."""
        self.client.table("session_events").insert(
            {
                "session_id": str(session_id),
                "event_type": event_type,
                "actor_id": actor_id,
                "before_json": before,
                "after_json": after,
            }
        ).execute()

    def list_events(self, session_id: UUID, limit: int) -> list[dict[str, object]]:
        """Return recent audit events for a session."""
        response = (
            self.client.table("session_events")
            .select("*")
            .eq("session_id", str(session_id))
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []
