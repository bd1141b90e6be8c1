import os
import sys

import pytest
import pytest_asyncio

# Add parent directory to path to allow importing the backend modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import build_engine, build_session_factory, init_db


@pytest_asyncio.fixture(name="engine", scope="function")
async def engine_fixture(tmp_path):
    # One throwaway SQLite file per test; NullPool gives every session its own connection
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture(name="session_factory")
def session_factory_fixture(engine):
    return build_session_factory(engine)
