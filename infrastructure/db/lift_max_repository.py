"""
Supabase Lift and Lift Max Repositories.

Part of STR-111: Lift maxes

``lift_maxes`` carries UNIQUE(user_id, lift_id, type, effective_date); a
violation is surfaced as DuplicateLiftMaxError.
"""
from datetime import datetime
from typing import List, Optional
import logging

from supabase import Client

from application.exceptions import DuplicateLiftMaxError
from domain.models.lift_max import Lift, LiftMax
from domain.models.progression import MaxType
from infrastructure.db.errors import translate_error

logger = logging.getLogger(__name__)

LIFT_MAX_COLUMNS = "id, user_id, lift_id, type, value, effective_date, created_at, updated_at"


class SupabaseLiftRepository:
    """Supabase implementation of LiftRepository."""

    def __init__(self, client: Client):
        self._client = client

    def get(self, lift_id: str) -> Optional[Lift]:
        try:
            result = self._client.table("lifts") \
                .select("id, name, slug") \
                .eq("id", lift_id) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to get lift {lift_id}: {e}")
            raise translate_error(e, "load lift") from e

        return Lift(**result.data[0]) if result.data else None


class SupabaseLiftMaxRepository:
    """Supabase implementation of LiftMaxRepository."""

    TABLE = "lift_maxes"

    def __init__(self, client: Client):
        """
        Initialize with Supabase client.

        Args:
            client: Supabase client instance (injected)
        """
        self._client = client

    def get(self, max_id: str) -> Optional[LiftMax]:
        try:
            result = self._client.table(self.TABLE) \
                .select(LIFT_MAX_COLUMNS) \
                .eq("id", max_id) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to get lift max {max_id}: {e}")
            raise translate_error(e, "load lift max") from e

        return LiftMax(**result.data[0]) if result.data else None

    def get_current(
        self,
        user_id: str,
        lift_id: str,
        max_type: MaxType,
        *,
        as_of: datetime,
    ) -> Optional[LiftMax]:
        try:
            result = self._client.table(self.TABLE) \
                .select(LIFT_MAX_COLUMNS) \
                .eq("user_id", user_id) \
                .eq("lift_id", lift_id) \
                .eq("type", max_type.value) \
                .lte("effective_date", as_of.isoformat()) \
                .order("effective_date", desc=True) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to get current {max_type.value} for user {user_id}, lift {lift_id}: {e}")
            raise translate_error(e, "load current lift max") from e

        return LiftMax(**result.data[0]) if result.data else None

    def exists(
        self,
        user_id: str,
        lift_id: str,
        max_type: MaxType,
        effective_date: datetime,
        *,
        exclude_id: Optional[str] = None,
    ) -> bool:
        try:
            query = self._client.table(self.TABLE) \
                .select("id") \
                .eq("user_id", user_id) \
                .eq("lift_id", lift_id) \
                .eq("type", max_type.value) \
                .eq("effective_date", effective_date.isoformat())
            if exclude_id:
                query = query.neq("id", exclude_id)
            result = query.limit(1).execute()
        except Exception as e:
            logger.error(f"Failed to check lift max uniqueness for user {user_id}: {e}")
            raise translate_error(e, "check lift max uniqueness") from e
        return bool(result.data)

    def create(self, lift_max: LiftMax) -> LiftMax:
        try:
            result = self._client.table(self.TABLE) \
                .insert(lift_max.model_dump(mode="json")) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to create lift max for user {lift_max.user_id}: {e}")
            raise translate_error(e, "create lift max", conflict=DuplicateLiftMaxError) from e

        return LiftMax(**result.data[0]) if result.data else lift_max

    def update(self, lift_max: LiftMax) -> LiftMax:
        payload = lift_max.model_dump(mode="json", include={"value", "effective_date", "updated_at"})
        try:
            result = self._client.table(self.TABLE) \
                .update(payload) \
                .eq("id", lift_max.id) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to update lift max {lift_max.id}: {e}")
            raise translate_error(e, "update lift max", conflict=DuplicateLiftMaxError) from e

        return LiftMax(**result.data[0]) if result.data else lift_max

    def list_for_user(
        self,
        user_id: str,
        *,
        lift_id: Optional[str] = None,
        max_type: Optional[MaxType] = None,
    ) -> List[LiftMax]:
        try:
            query = self._client.table(self.TABLE) \
                .select(LIFT_MAX_COLUMNS) \
                .eq("user_id", user_id)
            if lift_id:
                query = query.eq("lift_id", lift_id)
            if max_type:
                query = query.eq("type", max_type.value)
            result = query.order("effective_date", desc=True).execute()
        except Exception as e:
            logger.error(f"Failed to list lift maxes for user {user_id}: {e}")
            raise translate_error(e, "list lift maxes") from e

        return [LiftMax(**row) for row in result.data or []]
