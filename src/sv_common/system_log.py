"""DB helper for system_logs — the persistent audit trail.

Written inside the caller's transaction, or in a fresh transaction by the
caller when the surrounding one has already been rolled back.
"""

import json
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_common.enums import LogLevel

logger = logging.getLogger(__name__)

_INSERT_SYSTEM_LOG_SQL = text("""
    INSERT INTO system_logs (level, service, message, error, metadata)
    VALUES (:level, :service, :message, :error, CAST(:metadata AS JSONB))
""")


class SystemLogRepository:
    async def write(
        self,
        db: AsyncSession,
        level: LogLevel,
        service: str,
        message: str,
        metadata: dict[str, object] | None = None,
        error: str | None = None,
    ) -> None:
        """Insert one audit row. Does not commit."""
        await db.execute(
            _INSERT_SYSTEM_LOG_SQL,
            {
                "level": level.value,
                "service": service,
                "message": message,
                "error": error,
                "metadata": json.dumps(metadata or {}, default=str),
            },
        )

    async def write_detached(
        self,
        db: AsyncSession,
        level: LogLevel,
        service: str,
        message: str,
        metadata: dict[str, object] | None = None,
        error: str | None = None,
    ) -> None:
        """Insert and commit one audit row on its own; never raises.

        Used on failure paths where the business transaction was rolled back
        and the audit entry must still land.
        """
        try:
            await self.write(db, level, service, message, metadata, error)
            await db.commit()
        except Exception:
            await db.rollback()
            logger.exception("Failed to persist system log: %s", message)
