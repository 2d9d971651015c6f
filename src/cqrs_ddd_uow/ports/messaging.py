from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class IMessagePublisher(Protocol):
    """
    Port for publishing messages to a transport (RabbitMQ, Kafka, SQS, …).

    :class:`~cqrs_ddd_uow.adapters.memory.BufferedPublisherUnitOfWork`
    forwards to an implementation of this port once the coordinated
    operation commits.
    """

    async def publish(self, topic: str, message: Any, **kwargs: Any) -> None:
        """
        Publish *message* to *topic*.

        Args:
            topic: Routing key, topic name, or exchange.
            message: Payload — may be a domain event, dict, or bytes.
            **kwargs: Transport-specific metadata (headers, correlation_id, …).
        """
        ...
