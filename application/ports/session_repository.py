"""
Workout Session Repository Interface (Port).

Part of STR-126: Variable set schemes
"""
from typing import List, Optional, Protocol

from domain.models.session import LoggedSet, Prescription, WorkoutSession


class SessionRepository(Protocol):
    """Read access to sessions, prescriptions and logged sets."""

    def get_session(self, session_id: str) -> Optional[WorkoutSession]:
        ...

    def get_prescription(self, prescription_id: str) -> Optional[Prescription]:
        ...

    def list_logged_sets(self, session_id: str, prescription_id: str) -> List[LoggedSet]:
        """
        List the sets logged for a prescription in a session.

        Returns:
            Sets ordered by set_number ascending
        """
        ...
