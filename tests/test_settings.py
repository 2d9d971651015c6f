import logging

import pytest
from pydantic import ValidationError

from cqrs_ddd_uow import CoordinatorSettings, InMemoryUnitOfWork, UnitOfWorkCoordinator


def test_defaults():
    settings = CoordinatorSettings()

    assert settings.use_transaction_scope is True
    assert settings.rollback_on_dispose is True
    assert settings.trigger_commit_hooks is True
    assert settings.logger_name == "cqrs_ddd.uow"


def test_settings_are_frozen():
    settings = CoordinatorSettings()

    with pytest.raises(ValidationError):
        settings.rollback_on_dispose = False


def test_unknown_fields_rejected():
    with pytest.raises(ValidationError):
        CoordinatorSettings(rollback_on_commit=True)


def test_empty_logger_name_rejected():
    with pytest.raises(ValidationError):
        CoordinatorSettings(logger_name="")


def test_logger_name_selects_default_logger(caplog):
    caplog.set_level(logging.INFO, logger="orders.uow")
    settings = CoordinatorSettings(logger_name="orders.uow")

    coordinator = UnitOfWorkCoordinator([InMemoryUnitOfWork()], settings=settings)

    assert coordinator.settings is settings
    assert [r.name for r in caplog.records] == ["orders.uow"]
    assert caplog.records[0].getMessage() == "Adding unit of work InMemoryUnitOfWork"
