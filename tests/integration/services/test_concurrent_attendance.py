"""Concurrent attendance writes against a file-backed SQLite database."""

import asyncio
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.exceptions import ServiceUnavailableError
from domain.entities.reservation import Signup
from domain.services.reservation_service import ReservationService
from infrastructure.database.models import Base
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork

PLAYERS = ["player-a", "player-b", "player-c", "player-d"]


@pytest.fixture
async def service(tmp_path: Path) -> AsyncGenerator[ReservationService, None]:
    """Service on its own database file, one connection per session."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'courtside.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    yield ReservationService(lambda: SQLAlchemyUnitOfWork(session_factory))
    await engine.dispose()


class TestConcurrentAttendance:
    @pytest.mark.asyncio
    async def test_no_signup_is_lost(self, service: ReservationService):
        reservation = await service.create(
            actor_id="creator", start_date_time="2099-03-10T19:00:00"
        )

        results = await asyncio.gather(
            *(
                service.set_attendance(reservation.id, player, "confirmed")
                for player in PLAYERS
            ),
            return_exceptions=True,
        )

        succeeded = [r.actor_id for r in results if isinstance(r, Signup)]
        failures = [r for r in results if not isinstance(r, Signup)]
        assert succeeded
        assert all(isinstance(f, ServiceUnavailableError) for f in failures)

        stored = await service.get(reservation.id, "creator")
        stored_ids = [s.actor_id for s in stored.signups]
        assert sorted(stored_ids) == sorted(succeeded)
        assert len(stored_ids) == len(set(stored_ids))

    @pytest.mark.asyncio
    async def test_sequential_retry_after_contention(self, service: ReservationService):
        reservation = await service.create(
            actor_id="creator", start_date_time="2099-03-10T19:00:00"
        )

        await asyncio.gather(
            *(service.set_attendance(reservation.id, p, "maybe") for p in PLAYERS),
            return_exceptions=True,
        )
        for player in PLAYERS:
            await service.set_attendance(reservation.id, player, "confirmed")

        stored = await service.get(reservation.id, "creator")
        assert sorted(s.actor_id for s in stored.signups) == sorted(PLAYERS)
        assert {s.attendance_status.value for s in stored.signups} == {"confirmed"}
