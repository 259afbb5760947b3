"""
Supabase Progression Repository Implementations.

Part of STR-118: Progression rule engine

Tables:
- progressions: definitions (type tag + JSON parameters + lift_ids)
- program_progressions: per-program configs
- progression_logs: applied progressions with the position they were
  applied at

Uniqueness is enforced by the database. Postgres treats NULLs as distinct,
so program-wide configs (lift_id IS NULL) need their own partial index:

    CREATE UNIQUE INDEX program_progressions_lift_scope
        ON program_progressions (program_id, progression_id, lift_id)
        WHERE lift_id IS NOT NULL;
    CREATE UNIQUE INDEX program_progressions_program_scope
        ON program_progressions (program_id, progression_id)
        WHERE lift_id IS NULL;

    CREATE UNIQUE INDEX progression_logs_once_per_position
        ON progression_logs (user_id, progression_id, lift_id, position_key)
        WHERE NOT forced;

Violations surface as PostgREST code 23505 and are translated to
DuplicateProgressionConfigError and DuplicateProgressionLogError.
"""
from typing import Any, Dict, List, Optional
import logging

from supabase import Client

from application.exceptions import DuplicateProgressionConfigError, DuplicateProgressionLogError
from domain.models.progression import (
    ProgressionConfig,
    ProgressionDefinition,
    ProgressionLogEntry,
)
from infrastructure.db.errors import translate_error

logger = logging.getLogger(__name__)


class SupabaseProgressionRepository:
    """Supabase implementation of ProgressionRepository."""

    def __init__(self, client: Client):
        """
        Initialize with Supabase client.

        Args:
            client: Supabase client instance (injected)
        """
        self._client = client

    def get_definition(self, progression_id: str) -> Optional[ProgressionDefinition]:
        try:
            result = self._client.table("progressions") \
                .select("id, name, type, parameters, lift_ids") \
                .eq("id", progression_id) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to get progression {progression_id}: {e}")
            raise translate_error(e, "load progression") from e

        if not result.data:
            return None
        row = result.data[0]
        return ProgressionDefinition(
            id=row["id"],
            name=row["name"],
            type=row["type"],
            parameters=row.get("parameters") or {},
            lift_ids=row.get("lift_ids") or [],
        )


class SupabaseProgressionConfigRepository:
    """Supabase implementation of ProgressionConfigRepository."""

    TABLE = "program_progressions"

    def __init__(self, client: Client):
        self._client = client

    def list_for_program(self, program_id: str) -> List[ProgressionConfig]:
        try:
            result = self._client.table(self.TABLE) \
                .select("id, program_id, progression_id, lift_id, priority, enabled, override_increment") \
                .eq("program_id", program_id) \
                .order("priority") \
                .execute()
        except Exception as e:
            logger.error(f"Failed to list progressions for program {program_id}: {e}")
            raise translate_error(e, "list program progressions") from e

        return [ProgressionConfig(**row) for row in result.data or []]

    def create(self, config: ProgressionConfig) -> ProgressionConfig:
        try:
            result = self._client.table(self.TABLE) \
                .insert(config.model_dump()) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to create program progression: {e}")
            raise translate_error(
                e, "create program progression", conflict=DuplicateProgressionConfigError
            ) from e

        return ProgressionConfig(**result.data[0]) if result.data else config


def _row_to_log_entry(row: Dict[str, Any]) -> ProgressionLogEntry:
    return ProgressionLogEntry(**row)


class SupabaseProgressionLogRepository:
    """Supabase implementation of ProgressionLogRepository."""

    TABLE = "progression_logs"

    def __init__(self, client: Client):
        self._client = client

    def has_entry(
        self,
        user_id: str,
        progression_id: str,
        lift_id: str,
        position_key: str,
    ) -> bool:
        try:
            result = self._client.table(self.TABLE) \
                .select("id") \
                .eq("user_id", user_id) \
                .eq("progression_id", progression_id) \
                .eq("lift_id", lift_id) \
                .eq("position_key", position_key) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to check progression log for user {user_id}: {e}")
            raise translate_error(e, "check progression log") from e
        return bool(result.data)

    def record(self, entry: ProgressionLogEntry) -> ProgressionLogEntry:
        try:
            self._client.table(self.TABLE) \
                .insert(entry.model_dump(mode="json")) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to record progression log for user {entry.user_id}: {e}")
            raise translate_error(
                e, "record progression log", conflict=DuplicateProgressionLogError
            ) from e
        return entry

    def remove(self, entry_id: str) -> None:
        try:
            self._client.table(self.TABLE) \
                .delete() \
                .eq("id", entry_id) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to remove progression log entry {entry_id}: {e}")
            raise translate_error(e, "remove progression log entry") from e

    def list_for_user(
        self,
        user_id: str,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ProgressionLogEntry]:
        try:
            result = self._client.table(self.TABLE) \
                .select("*") \
                .eq("user_id", user_id) \
                .order("applied_at", desc=True) \
                .range(offset, offset + limit - 1) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to list progression history for user {user_id}: {e}")
            raise translate_error(e, "list progression history") from e

        return [_row_to_log_entry(row) for row in result.data or []]
