"""Tests for session wiring and migration logging config."""

import logging
from logging.config import fileConfig
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from booking_webhooks.db.session import async_session_factory, engine, get_db
from booking_webhooks.webhooks.dependencies import get_session_factory

ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"


class TestSessionFactory:
    """One session factory serves requests, fan-out and the sweeper."""

    def test_dependency_returns_shared_factory(self):
        assert get_session_factory() is async_session_factory

    @pytest.mark.asyncio
    async def test_get_db_yields_session_on_engine(self):
        sessions = get_db()
        session = await anext(sessions)
        try:
            assert isinstance(session, AsyncSession)
            assert session.bind is engine
        finally:
            await sessions.aclose()


class TestAlembicLogging:
    """alembic.ini logging sections are loadable by env.py."""

    def test_file_config(self):
        root_level = logging.getLogger().level
        try:
            fileConfig(ALEMBIC_INI, disable_existing_loggers=False)

            assert logging.getLogger("alembic").level == logging.INFO
            assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        finally:
            logging.getLogger().setLevel(root_level)

    def test_env_applies_file_config(self):
        env_source = (ALEMBIC_INI.parent / "alembic" / "env.py").read_text()

        assert "fileConfig(config.config_file_name)" in env_source
