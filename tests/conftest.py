import asyncio

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from learning_service import models  # noqa: F401  (register tables)
from learning_service.database import init_db, make_sessionmaker


@pytest.fixture
def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    asyncio.run(init_db(engine))
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def session_factory(engine):
    return make_sessionmaker(engine)


@pytest.fixture
def run_db(session_factory):
    """Run ``scenario(db)`` inside a fresh session and return its result."""

    def _run(scenario):
        async def _wrapped():
            async with session_factory() as db:
                return await scenario(db)

        return asyncio.run(_wrapped())

    return _run
