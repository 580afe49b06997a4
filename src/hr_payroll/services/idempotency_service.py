"""Idempotency guard for side-effecting requests."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.database import dialect_insert
from hr_payroll.errors import ConflictingReplay
from hr_payroll.models import IdempotencyRecord

logger = logging.getLogger(__name__)

FINALIZE_ENDPOINT = "payroll.finalize"
IMPORT_ENDPOINT = "payroll.inputs.import"


def request_hash(discriminator: str | bytes) -> str:
    """Deterministic SHA-256 of a stable request discriminator."""
    if isinstance(discriminator, str):
        discriminator = discriminator.encode("utf-8")
    return hashlib.sha256(discriminator).hexdigest()


@dataclass(frozen=True)
class IdempotencyScope:
    """Uniqueness scope of a caller-supplied key."""

    tenant_id: UUID
    user_id: UUID
    key: str
    endpoint: str


class IdempotencyGuard:
    """Stores the first response per scope and replays it on retries.

    - same key, same request hash: cached response returned verbatim
    - same key, different hash: ConflictingReplay
    - expired records are discarded and the request runs again

    The guard only flushes; the caller owns the transaction so the stored
    response commits together with the work it describes.
    """

    def __init__(self, session: AsyncSession, ttl_hours: int = 24):
        self.session = session
        self.ttl = timedelta(hours=ttl_hours)

    async def lookup(self, scope: IdempotencyScope, req_hash: str) -> dict[str, Any] | None:
        """Return the cached response for a replay, or None for a new request."""
        record = await self._get(scope)
        if record is None:
            return None

        if self._is_expired(record):
            logger.info(
                "Discarding expired idempotency record key=%s endpoint=%s",
                scope.key, scope.endpoint,
            )
            await self.session.execute(
                delete(IdempotencyRecord).where(
                    IdempotencyRecord.record_id == record.record_id
                )
            )
            await self.session.flush()
            return None

        if record.request_hash != req_hash:
            raise ConflictingReplay(scope.key, scope.endpoint)

        logger.info("Replaying cached response key=%s endpoint=%s", scope.key, scope.endpoint)
        return dict(record.response)

    async def store(
        self,
        scope: IdempotencyScope,
        req_hash: str,
        response: dict[str, Any],
    ) -> dict[str, Any]:
        """Persist the response; if a concurrent request won, return its response."""
        stmt = (
            dialect_insert(self.session, IdempotencyRecord)
            .values(
                tenant_id=scope.tenant_id,
                user_id=scope.user_id,
                key=scope.key,
                endpoint=scope.endpoint,
                request_hash=req_hash,
                response=response,
                expires_at=datetime.now(timezone.utc) + self.ttl,
            )
            .on_conflict_do_nothing(
                index_elements=["tenant_id", "user_id", "key", "endpoint"]
            )
        )
        result = await self.session.execute(stmt)
        if result.rowcount:
            return response

        existing = await self._get(scope)
        if existing is None or existing.request_hash != req_hash:
            raise ConflictingReplay(scope.key, scope.endpoint)
        return dict(existing.response)

    async def _get(self, scope: IdempotencyScope) -> IdempotencyRecord | None:
        result = await self.session.execute(
            select(IdempotencyRecord).where(
                IdempotencyRecord.tenant_id == scope.tenant_id,
                IdempotencyRecord.user_id == scope.user_id,
                IdempotencyRecord.key == scope.key,
                IdempotencyRecord.endpoint == scope.endpoint,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _is_expired(record: IdempotencyRecord) -> bool:
        if record.expires_at is None:
            return False
        expires_at = record.expires_at
        if expires_at.tzinfo is None:
            # SQLite hands back naive datetimes
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= datetime.now(timezone.utc)
