"""
Supabase Workout Session Repository.

Part of STR-126: Variable set schemes

Sessions reference the user through ``user_program_states``; the owner is
read with an embedded select.
"""
from typing import List, Optional
import logging

from supabase import Client

from domain.models.session import LoggedSet, Prescription, WorkoutSession
from infrastructure.db.errors import translate_error

logger = logging.getLogger(__name__)


class SupabaseSessionRepository:
    """Supabase implementation of SessionRepository."""

    def __init__(self, client: Client):
        self._client = client

    def get_session(self, session_id: str) -> Optional[WorkoutSession]:
        try:
            result = self._client.table("workout_sessions") \
                .select("id, status, user_program_states(user_id)") \
                .eq("id", session_id) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to get session {session_id}: {e}")
            raise translate_error(e, "load workout session") from e

        if not result.data:
            return None
        row = result.data[0]
        owner = row.get("user_program_states") or {}
        return WorkoutSession(id=row["id"], user_id=owner.get("user_id", ""), status=row["status"])

    def get_prescription(self, prescription_id: str) -> Optional[Prescription]:
        try:
            result = self._client.table("prescriptions") \
                .select("id, lift_id, set_scheme") \
                .eq("id", prescription_id) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to get prescription {prescription_id}: {e}")
            raise translate_error(e, "load prescription") from e

        if not result.data:
            return None
        row = result.data[0]
        return Prescription(id=row["id"], lift_id=row["lift_id"], set_scheme=row.get("set_scheme") or {})

    def list_logged_sets(self, session_id: str, prescription_id: str) -> List[LoggedSet]:
        try:
            result = self._client.table("logged_sets") \
                .select("set_number, weight, reps_performed, is_work_set, rpe") \
                .eq("session_id", session_id) \
                .eq("prescription_id", prescription_id) \
                .order("set_number") \
                .execute()
        except Exception as e:
            logger.error(f"Failed to list logged sets for session {session_id}: {e}")
            raise translate_error(e, "list logged sets") from e

        return [
            LoggedSet(
                set_number=row["set_number"],
                weight=row["weight"],
                reps_completed=row["reps_performed"],
                is_work_set=row.get("is_work_set", True) is not False,
                rpe=row.get("rpe"),
            )
            for row in result.data or []
        ]
