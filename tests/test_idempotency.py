"""Tests for the idempotency guard."""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from hr_payroll.errors import ConflictingReplay
from hr_payroll.models import IdempotencyRecord
from hr_payroll.services.idempotency_service import (
    FINALIZE_ENDPOINT,
    IMPORT_ENDPOINT,
    IdempotencyGuard,
    IdempotencyScope,
    request_hash,
)


@pytest.fixture
def scope() -> IdempotencyScope:
    return IdempotencyScope(uuid4(), uuid4(), "key-1", FINALIZE_ENDPOINT)


class TestRequestHash:
    def test_stable(self):
        assert request_hash("abc") == request_hash(b"abc")
        assert len(request_hash("abc")) == 64

    def test_distinct(self):
        assert request_hash("a") != request_hash("b")


class TestIdempotencyGuard:
    async def test_unknown_key(self, session, scope):
        guard = IdempotencyGuard(session)
        assert await guard.lookup(scope, request_hash("x")) is None

    async def test_replay_returns_stored_response(self, session, scope):
        guard = IdempotencyGuard(session)
        await guard.store(scope, request_hash("x"), {"status": "finalized"})
        await session.commit()

        assert await guard.lookup(scope, request_hash("x")) == {"status": "finalized"}

    async def test_different_hash_conflicts(self, session, scope):
        guard = IdempotencyGuard(session)
        await guard.store(scope, request_hash("x"), {"status": "finalized"})

        with pytest.raises(ConflictingReplay) as exc_info:
            await guard.lookup(scope, request_hash("y"))
        assert exc_info.value.code == "idempotency_conflict"

    async def test_scope_includes_endpoint(self, session, scope):
        guard = IdempotencyGuard(session)
        await guard.store(scope, request_hash("x"), {"status": "finalized"})

        other = IdempotencyScope(scope.tenant_id, scope.user_id, scope.key, IMPORT_ENDPOINT)
        assert await guard.lookup(other, request_hash("y")) is None

    async def test_scope_includes_user(self, session, scope):
        guard = IdempotencyGuard(session)
        await guard.store(scope, request_hash("x"), {"status": "finalized"})

        other = IdempotencyScope(scope.tenant_id, uuid4(), scope.key, scope.endpoint)
        assert await guard.lookup(other, request_hash("y")) is None

    async def test_concurrent_store_keeps_first(self, session, scope):
        guard = IdempotencyGuard(session)
        first = await guard.store(scope, request_hash("x"), {"imported": 3})
        second = await guard.store(scope, request_hash("x"), {"imported": 5})

        assert first == second == {"imported": 3}

    async def test_concurrent_store_with_other_hash(self, session, scope):
        guard = IdempotencyGuard(session)
        await guard.store(scope, request_hash("x"), {"imported": 3})

        with pytest.raises(ConflictingReplay):
            await guard.store(scope, request_hash("y"), {"imported": 5})

    async def test_expired_record_discarded(self, session, scope):
        guard = IdempotencyGuard(session, ttl_hours=0)
        await guard.store(scope, request_hash("x"), {"status": "finalized"})
        await session.commit()

        assert await guard.lookup(scope, request_hash("y")) is None
        remaining = await session.scalar(select(func.count()).select_from(IdempotencyRecord))
        assert remaining == 0
