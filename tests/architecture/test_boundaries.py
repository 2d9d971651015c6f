from pytest_archon import archrule


def test_primitives_isolation() -> None:
    """
    Primitives layer is the lowest level.
    It must not import from ports, adapters, or the coordinator.
    """
    (
        archrule("primitives_isolation")
        .match("cqrs_ddd_uow.primitives*")
        .should_not_import("cqrs_ddd_uow.ports*")
        .should_not_import("cqrs_ddd_uow.adapters*")
        .should_not_import("cqrs_ddd_uow.coordinator")
        .check("cqrs_ddd_uow")
    )


def test_ports_layering() -> None:
    """
    Ports (interfaces) should not depend on Adapters (implementations).
    """
    (
        archrule("ports_layering")
        .match("cqrs_ddd_uow.ports*")
        .should_not_import("cqrs_ddd_uow.adapters*")
        .should_not_import("cqrs_ddd_uow.coordinator")
        .check("cqrs_ddd_uow")
    )


def test_coordinator_independent_of_adapters() -> None:
    """
    The coordinator only knows the UnitOfWork port, never a concrete participant.
    """
    (
        archrule("coordinator_independence")
        .match("cqrs_ddd_uow.coordinator")
        .should_not_import("cqrs_ddd_uow.adapters*")
        .should_not_import("sqlalchemy*")
        .check("cqrs_ddd_uow")
    )


def test_sqlalchemy_confined_to_adapter() -> None:
    """
    SQLAlchemy is an optional extra; only its adapter may import it.
    """
    (
        archrule("sqlalchemy_confined")
        .match("cqrs_ddd_uow*")
        .exclude("cqrs_ddd_uow.adapters.sqlalchemy*")
        .should_not_import("sqlalchemy*")
        .check("cqrs_ddd_uow")
    )
