"""Unit tests for run_in_transaction."""

import pytest

from core.exceptions import (
    GroupNotFoundError,
    ServiceUnavailableError,
    TransactionConflictError,
)
from domain.services.transaction import run_in_transaction
from tests.unit.conftest import FakeUnitOfWork


class ConflictingUnitOfWork(FakeUnitOfWork):
    """Raises a conflict on commit for the first ``failures`` attempts."""

    attempts = 0

    def __init__(self, failures: int) -> None:
        super().__init__()
        self._failures = failures

    async def commit(self) -> None:
        ConflictingUnitOfWork.attempts += 1
        if ConflictingUnitOfWork.attempts <= self._failures:
            raise TransactionConflictError("version mismatch")
        await super().commit()


@pytest.fixture(autouse=True)
def _reset_attempts():
    ConflictingUnitOfWork.attempts = 0
    yield


class TestRunInTransaction:
    @pytest.mark.asyncio
    async def test_commits_and_returns_result(self, uow: FakeUnitOfWork):
        async def work(u: FakeUnitOfWork) -> str:
            return "done"

        result = await run_in_transaction(lambda: uow, work, backoff_seconds=0)

        assert result == "done"
        assert uow.committed

    @pytest.mark.asyncio
    async def test_retries_conflicts_with_fresh_reads(self):
        reads: list[int] = []

        async def work(u: FakeUnitOfWork) -> int:
            reads.append(ConflictingUnitOfWork.attempts)
            return len(reads)

        result = await run_in_transaction(
            lambda: ConflictingUnitOfWork(failures=2),
            work,
            max_attempts=3,
            backoff_seconds=0,
        )

        assert result == 3
        assert reads == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_gives_up_as_unavailable(self):
        async def work(u: FakeUnitOfWork) -> None:
            return None

        with pytest.raises(ServiceUnavailableError) as exc_info:
            await run_in_transaction(
                lambda: ConflictingUnitOfWork(failures=5),
                work,
                max_attempts=3,
                backoff_seconds=0,
            )

        assert exc_info.value.status_code == 503
        assert ConflictingUnitOfWork.attempts == 3
        assert isinstance(exc_info.value.__cause__, TransactionConflictError)

    @pytest.mark.asyncio
    async def test_application_errors_are_not_retried(self, uow: FakeUnitOfWork):
        calls = 0

        async def work(u: FakeUnitOfWork) -> None:
            nonlocal calls
            calls += 1
            raise GroupNotFoundError("g1")

        with pytest.raises(GroupNotFoundError):
            await run_in_transaction(lambda: uow, work, backoff_seconds=0)

        assert calls == 1
        assert not uow.committed
