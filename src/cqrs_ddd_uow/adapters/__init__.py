"""Bundled participants. SQLAlchemy adapters live in ``adapters.sqlalchemy``."""
