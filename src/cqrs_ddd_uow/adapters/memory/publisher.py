"""BufferedPublisherUnitOfWork — publishes messages only if the operation commits."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ...ports.unit_of_work import UnitOfWork
from ...primitives.exceptions import UnitOfWorkError

if TYPE_CHECKING:
    from ...ports.messaging import IMessagePublisher

logger = logging.getLogger("cqrs_ddd.uow.publisher")


@dataclass(frozen=True)
class PendingMessage:
    topic: str
    message: Any
    metadata: dict[str, Any] = field(default_factory=dict)


class BufferedPublisherUnitOfWork(UnitOfWork):
    """
    Message publisher that takes part in a coordinated operation.

    Between ``begin()`` and ``commit()`` calls to :meth:`publish` are
    buffered. ``commit()`` forwards them, in order, to the wrapped
    ``IMessagePublisher``; ``rollback()`` discards them.

    Usage::

        events = BufferedPublisherUnitOfWork(broker)
        async with UnitOfWorkCoordinator([repository, events]) as uow:
            await uow.run_async(lambda: handle(command, events))
    """

    def __init__(self, publisher: IMessagePublisher) -> None:
        super().__init__()
        self._publisher = publisher
        self._pending: list[PendingMessage] | None = None

    @property
    def pending(self) -> tuple[PendingMessage, ...]:
        return tuple(self._pending or ())

    @property
    def in_transaction(self) -> bool:
        return self._pending is not None

    async def publish(self, topic: str, message: Any, **kwargs: Any) -> None:
        """Buffer *message* for *topic* until commit."""
        if self._pending is None:
            raise UnitOfWorkError(
                "BufferedPublisherUnitOfWork.publish() called outside a transaction"
            )
        self._pending.append(PendingMessage(topic, message, kwargs))

    async def begin(self) -> None:
        self._pending = []

    async def commit(self) -> None:
        """Forward buffered messages; a publish failure leaves the rest buffered."""
        if self._pending is None:
            return
        while self._pending:
            pending = self._pending[0]
            await self._publisher.publish(
                pending.topic, pending.message, **pending.metadata
            )
            self._pending.pop(0)
        self._pending = None

    async def rollback(self) -> None:
        if self._pending is None:
            return
        if self._pending:
            logger.info("Discarding %d buffered message(s)", len(self._pending))
        self._pending = None
