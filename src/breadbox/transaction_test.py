"""Tests for Transaction lifecycle."""

from unittest.mock import AsyncMock

import pytest

from breadbox.errors import TransactionClosedError
from breadbox.transaction import Transaction, TransactionState


@pytest.fixture
def backend():
    backend = AsyncMock()
    backend.begin.return_value = "session"
    return backend


class TestLifecycle:
    """Tests for Transaction start/end"""

    @pytest.mark.asyncio
    async def test_unstarted_to_active_to_ended(self, backend):
        tx = Transaction(backend)
        assert tx.state is TransactionState.UNSTARTED

        await tx.start()
        assert tx.state is TransactionState.ACTIVE
        assert tx.session == "session"

        await tx.end()
        assert tx.state is TransactionState.ENDED
        backend.commit.assert_awaited_once_with("session")
        backend.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_end_with_rollback(self, backend):
        tx = await Transaction(backend).start()

        await tx.end(rollback=True)

        backend.rollback.assert_awaited_once_with("session")
        backend.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_session_unavailable_before_start(self, backend):
        with pytest.raises(TransactionClosedError):
            Transaction(backend).session

    @pytest.mark.asyncio
    async def test_end_twice_raises(self, backend):
        tx = await Transaction(backend).start()
        await tx.commit()

        with pytest.raises(TransactionClosedError):
            await tx.rollback()
        backend.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_start_twice_raises(self, backend):
        tx = await Transaction(backend).start()

        with pytest.raises(TransactionClosedError):
            await tx.start()

    @pytest.mark.asyncio
    async def test_failed_commit_still_ends_handle(self, backend):
        backend.commit.side_effect = RuntimeError("connection lost")
        tx = await Transaction(backend).start()

        with pytest.raises(RuntimeError, match="connection lost"):
            await tx.end()

        assert tx.state is TransactionState.ENDED


class TestContextManager:
    """Tests for async with Transaction(...)"""

    @pytest.mark.asyncio
    async def test_commits_on_success(self, backend):
        async with Transaction(backend) as tx:
            assert tx.is_active

        backend.commit.assert_awaited_once_with("session")

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, backend):
        with pytest.raises(ValueError):
            async with Transaction(backend):
                raise ValueError("nope")

        backend.rollback.assert_awaited_once_with("session")

    @pytest.mark.asyncio
    async def test_already_ended_inside_block_is_left_alone(self, backend):
        async with Transaction(backend) as tx:
            await tx.rollback()

        backend.commit.assert_not_awaited()
