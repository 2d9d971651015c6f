"""Ambient transaction boundary — lets non-participant resources join a run.

A :class:`TransactionScope` makes a :class:`Transaction` *ambient* for the
current asyncio context. Transaction-aware resources that are not
coordinator participants look it up with :func:`get_current_transaction` and
enlist; they are committed when the outermost scope exits after
:meth:`TransactionScope.complete`, and rolled back on every other exit path.

Usage::

    async with TransactionScope() as scope:
        tx = get_current_transaction()
        tx.enlist(cache_writer)
        ...
        scope.complete()
"""

from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .primitives.exceptions import TransactionAbortedError, TransactionScopeError

if TYPE_CHECKING:
    from contextvars import Token

logger = logging.getLogger("cqrs_ddd.uow.scope")

#: ContextVar tracking the ambient transaction — ``None`` means no scope is
#: open in this context (the next scope creates a new transaction).
_current_transaction: ContextVar[Transaction | None] = ContextVar(
    "current_transaction", default=None
)


def get_current_transaction() -> Transaction | None:
    """Return the ambient transaction (or *None* outside any scope)."""
    return _current_transaction.get()


@runtime_checkable
class IEnlistment(Protocol):
    """A resource that joins the ambient transaction's outcome."""

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


class TransactionStatus(str, Enum):
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class Transaction:
    """The shared outcome of one outermost scope and every scope nested in it."""

    def __init__(self) -> None:
        self.transaction_id = str(uuid.uuid4())
        self.status = TransactionStatus.ACTIVE
        self._enlistments: list[IEnlistment] = []
        self._doomed = False

    @property
    def enlistments(self) -> tuple[IEnlistment, ...]:
        return tuple(self._enlistments)

    @property
    def is_doomed(self) -> bool:
        """True once a nested scope exited without completing."""
        return self._doomed

    def enlist(self, resource: IEnlistment) -> None:
        """Join *resource* to this transaction's outcome."""
        if self.status is not TransactionStatus.ACTIVE:
            raise TransactionScopeError(
                f"Cannot enlist in transaction {self.transaction_id}: "
                f"it is already {self.status.value}"
            )
        self._enlistments.append(resource)

    def doom(self) -> None:
        self._doomed = True

    async def commit(self) -> None:
        """Commit every enlistment in order.

        If one fails, every enlistment is rolled back and the commit error
        propagates.
        """
        for resource in self._enlistments:
            try:
                await resource.commit()
            except BaseException:
                logger.exception(
                    "Enlistment %s failed to commit in transaction %s",
                    type(resource).__name__,
                    self.transaction_id,
                )
                await self.rollback()
                raise
        self.status = TransactionStatus.COMMITTED

    async def rollback(self) -> None:
        """Roll back every enlistment, logging (not raising) failures."""
        for resource in self._enlistments:
            try:
                await resource.rollback()
            except Exception:
                logger.exception(
                    "Enlistment %s failed to roll back in transaction %s",
                    type(resource).__name__,
                    self.transaction_id,
                )
        self.status = TransactionStatus.ROLLED_BACK


class TransactionScope:
    """
    Async context manager that opens (or joins) the ambient transaction.

    * Outermost scope: creates the :class:`Transaction`, makes it ambient,
      and on exit commits it if :meth:`complete` was called and no exception
      escaped; otherwise rolls it back. Exceptions are never suppressed.
    * Nested scope: joins the ambient transaction. Exiting without
      :meth:`complete` (or with an exception) dooms it; the outermost scope
      then rolls back and raises :class:`TransactionAbortedError` even if it
      was completed itself.
    """

    def __init__(self) -> None:
        self._transaction: Transaction | None = None
        self._token: Token[Transaction | None] | None = None
        self._completed = False

    @property
    def transaction(self) -> Transaction:
        if self._transaction is None:
            raise TransactionScopeError("TransactionScope has not been entered")
        return self._transaction

    @property
    def is_root(self) -> bool:
        return self._token is not None

    @property
    def completed(self) -> bool:
        return self._completed

    def complete(self) -> None:
        """Vote to commit. Must be the last call inside the scope."""
        if self._transaction is None:
            raise TransactionScopeError("TransactionScope has not been entered")
        if self._completed:
            raise TransactionScopeError("TransactionScope already completed")
        self._completed = True

    async def __aenter__(self) -> TransactionScope:
        ambient = _current_transaction.get()
        if ambient is not None and ambient.status is TransactionStatus.ACTIVE:
            self._transaction = ambient
            logger.debug("Joined transaction %s", ambient.transaction_id)
        else:
            self._transaction = Transaction()
            self._token = _current_transaction.set(self._transaction)
            logger.debug("Opened transaction %s", self._transaction.transaction_id)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        transaction = self.transaction
        succeeded = exc_type is None and self._completed

        if self._token is None:
            if not succeeded:
                transaction.doom()
            return

        try:
            if not succeeded:
                logger.debug("Expiring transaction %s", transaction.transaction_id)
                await transaction.rollback()
            elif transaction.is_doomed:
                await transaction.rollback()
                raise TransactionAbortedError(
                    f"Transaction {transaction.transaction_id} was aborted by a "
                    "nested scope that did not complete"
                )
            else:
                await transaction.commit()
                logger.debug("Committed transaction %s", transaction.transaction_id)
        finally:
            _current_transaction.reset(self._token)
            self._token = None
