"""
Transaction handles shared across table accessors.

A handle reserves one backend session for its whole lifetime. Accessors
bound to it with ``TableBread.in_transaction()`` run every statement on
that session, so work across several tables commits or rolls back as one.

Usage:
    tx = await people.start_transaction()
    person = await people.in_transaction(tx).add({"name": "Ada"})
    await pets.in_transaction(tx).add({"owner_id": person["id"]})
    await tx.end()                # or tx.end(rollback=True)

Or as a context manager that commits on success and rolls back on error:
    async with await people.start_transaction() as tx:
        ...
"""

import logging
from enum import Enum
from typing import Any

from breadbox.backends.base import Backend
from breadbox.errors import TransactionClosedError

logger = logging.getLogger(__name__)


class TransactionState(Enum):
    UNSTARTED = "unstarted"
    ACTIVE = "active"
    ENDED = "ended"


class Transaction:
    def __init__(self, backend: Backend):
        self.backend = backend
        self.state = TransactionState.UNSTARTED
        self._session: Any = None

    def __repr__(self) -> str:
        return f"<Transaction {self.state.value}>"

    @property
    def is_active(self) -> bool:
        return self.state is TransactionState.ACTIVE

    @property
    def session(self) -> Any:
        """The reserved backend session. Only available while active."""
        if not self.is_active:
            raise TransactionClosedError(f"Transaction is {self.state.value}, not active")
        return self._session

    async def start(self) -> "Transaction":
        if self.state is not TransactionState.UNSTARTED:
            raise TransactionClosedError(f"Transaction is already {self.state.value}")
        self._session = await self.backend.begin()
        self.state = TransactionState.ACTIVE
        logger.debug("Transaction started")
        return self

    async def end(self, rollback: bool = False) -> None:
        """
        Commit, or roll back when ``rollback`` is true, and release the session.

        The handle is ended even if the backend fails to commit; the failure
        still propagates.
        """
        session = self.session
        self._session = None
        self.state = TransactionState.ENDED
        if rollback:
            await self.backend.rollback(session)
        else:
            await self.backend.commit(session)

    async def commit(self) -> None:
        await self.end()

    async def rollback(self) -> None:
        await self.end(rollback=True)

    async def __aenter__(self) -> "Transaction":
        if self.state is TransactionState.UNSTARTED:
            await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.is_active:
            await self.end(rollback=exc_type is not None)
