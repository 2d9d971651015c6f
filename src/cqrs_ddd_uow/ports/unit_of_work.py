"""UnitOfWork — the participant capability coordinated by UnitOfWorkCoordinator."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger("cqrs_ddd.uow")


class UnitOfWork(ABC):
    """
    Abstract base class for a transactional participant.

    A participant is one independently transactional resource: a repository,
    a message publisher, a database session. Extending this class is what
    makes an object eligible for registration with
    :class:`~cqrs_ddd_uow.coordinator.UnitOfWorkCoordinator`; objects that do
    not extend it are skipped.

    **Contract for implementations:**

    1. ``begin()`` starts the transaction. It is called exactly once per
       coordinated operation.
    2. ``commit()`` makes the work durable.
    3. ``rollback()`` discards the work. It **MUST** be safe to call when no
       transaction is outstanding, including after a successful ``commit()``
       and after a previous ``rollback()``; in that case it is a no-op.

    Post-commit callbacks registered with :meth:`on_commit` are executed only
    after the commit succeeded (for a coordinated operation: after *every*
    participant committed).

    Example:
        ```python
        from cqrs_ddd_uow.ports import UnitOfWork

        class RepositoryUnitOfWork(UnitOfWork):
            def __init__(self, connection):
                super().__init__()
                self._connection = connection
                self._tx = None

            async def begin(self):
                self._tx = await self._connection.transaction()

            async def commit(self):
                await self._tx.commit()
                self._tx = None

            async def rollback(self):
                if self._tx is not None:
                    await self._tx.rollback()
                    self._tx = None
        ```
    """

    def __init__(self) -> None:
        self._on_commit_hooks: deque[Callable[[], Awaitable[Any]]] = deque()

    def on_commit(self, callback: Callable[[], Awaitable[Any]]) -> None:
        """Register an async callback to be executed after a successful commit.

        Args:
            callback: An async function that takes no arguments.
        """
        self._on_commit_hooks.append(callback)

    def discard_commit_hooks(self) -> None:
        """Drop pending on_commit callbacks (the work was rolled back)."""
        self._on_commit_hooks.clear()

    async def trigger_commit_hooks(self) -> None:
        """Execute all registered on_commit hooks.

        Hook failures are logged and never propagate: the transaction is
        already committed at this point.
        """
        while self._on_commit_hooks:
            callback = self._on_commit_hooks.popleft()
            try:
                await callback()
            except Exception as exc:
                logger.error("Error in on_commit hook: %s", exc, exc_info=True)

    @abstractmethod
    async def begin(self) -> None:
        """Begin the transaction. Must be implemented by subclasses."""
        ...

    @abstractmethod
    async def commit(self) -> None:
        """Commit the transaction. Must be implemented by subclasses."""
        ...

    @abstractmethod
    async def rollback(self) -> None:
        """Rollback the transaction. Must be idempotent."""
        ...

    async def __aenter__(self) -> UnitOfWork:
        await self.begin()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """
        Standalone use, outside a coordinator.

        On success: commit() first, then trigger_commit_hooks().
        On exception: rollback() and discard the hooks.
        """
        if exc_type is None:
            await self.commit()
            await self.trigger_commit_hooks()
        else:
            await self.rollback()
            self.discard_commit_hooks()
