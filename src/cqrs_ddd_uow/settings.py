"""CoordinatorSettings — behaviour switches for UnitOfWorkCoordinator."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_LOGGER_NAME = "cqrs_ddd.uow"


class CoordinatorSettings(BaseModel):
    """
    Immutable configuration for a :class:`UnitOfWorkCoordinator`.

    Settings are usually built once at composition time and shared by every
    coordinator the application creates::

        settings = CoordinatorSettings(rollback_on_dispose=False)
        coordinator = UnitOfWorkCoordinator([repo, publisher], settings=settings)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    use_transaction_scope: bool = Field(
        default=True,
        description="Wrap run()/run_async() in an ambient TransactionScope.",
    )
    rollback_on_dispose: bool = Field(
        default=True,
        description="Roll back every participant on disposal if not finalized.",
    )
    trigger_commit_hooks: bool = Field(
        default=True,
        description="Fire participants' on_commit hooks after commit-all.",
    )
    logger_name: str = Field(
        default=DEFAULT_LOGGER_NAME,
        min_length=1,
        description="Logger used when no logger is passed to the coordinator.",
    )
