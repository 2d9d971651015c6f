from .publisher import BufferedPublisherUnitOfWork, PendingMessage
from .unit_of_work import InMemoryUnitOfWork

__all__ = [
    "BufferedPublisherUnitOfWork",
    "InMemoryUnitOfWork",
    "PendingMessage",
]
