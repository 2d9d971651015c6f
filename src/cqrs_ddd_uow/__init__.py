"""cqrs-ddd-uow — all-or-nothing coordination of independent units of work.

Zero infrastructure dependencies. SQLAlchemy participants are an optional
extra (``cqrs_ddd_uow.adapters.sqlalchemy``).
"""

from __future__ import annotations

# ── Adapters ────────────────────────────────────────────────────
from .adapters.memory import (
    BufferedPublisherUnitOfWork,
    InMemoryUnitOfWork,
    PendingMessage,
)

# ── Coordinator ─────────────────────────────────────────────────
from .coordinator import UnitOfWorkCoordinator
from .diagnostics import log_caller

# ── Instrumentation ─────────────────────────────────────────────
from .instrumentation import (
    HookRegistration,
    HookRegistry,
    InstrumentationHook,
    get_hook_registry,
    set_hook_registry,
)

# ── Ports ───────────────────────────────────────────────────────
from .ports import IMessagePublisher, UnitOfWork

# ── Primitives ──────────────────────────────────────────────────
from .primitives import (
    CoordinatorStateError,
    ParticipantRollbackError,
    TransactionAbortedError,
    TransactionScopeError,
    UnitOfWorkError,
)
from .settings import CoordinatorSettings

# ── Transaction scope ───────────────────────────────────────────
from .transaction_scope import (
    IEnlistment,
    Transaction,
    TransactionScope,
    TransactionStatus,
    get_current_transaction,
)

__all__: list[str] = [
    # Coordinator
    "CoordinatorSettings",
    "UnitOfWorkCoordinator",
    "log_caller",
    # Ports
    "IMessagePublisher",
    "UnitOfWork",
    # Transaction scope
    "IEnlistment",
    "Transaction",
    "TransactionScope",
    "TransactionStatus",
    "get_current_transaction",
    # Instrumentation
    "HookRegistration",
    "HookRegistry",
    "InstrumentationHook",
    "get_hook_registry",
    "set_hook_registry",
    # Primitives
    "CoordinatorStateError",
    "ParticipantRollbackError",
    "TransactionAbortedError",
    "TransactionScopeError",
    "UnitOfWorkError",
    # Adapters
    "BufferedPublisherUnitOfWork",
    "InMemoryUnitOfWork",
    "PendingMessage",
]
