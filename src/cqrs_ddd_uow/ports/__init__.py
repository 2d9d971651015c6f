from .messaging import IMessagePublisher
from .unit_of_work import UnitOfWork

__all__ = [
    "IMessagePublisher",
    "UnitOfWork",
]
