"""
Copyright BOOSTRY Co., Ltd.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.

You may obtain a copy of the License at
http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing,
software distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.

See the License for the specific language governing permissions and
limitations under the License.

SPDX-License-Identifier: Apache-2.0
"""

from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pytest_asyncio import is_async_test
from sqlalchemy import text

from app.database import AsyncSessionLocal, async_engine, db_async_session
from app.main import app
from app.model.db import Base


def pytest_collection_modifyitems(items):
    pytest_asyncio_tests = (item for item in items if is_async_test(item))
    session_scope_marker = pytest.mark.asyncio(loop_scope="session")
    for async_test in pytest_asyncio_tests:
        async_test.add_marker(session_scope_marker, append=False)


#####################################################
# Test Client
#####################################################
@pytest_asyncio.fixture(scope="session")
async def async_client() -> AsyncGenerator[AsyncClient, Any]:
    async_client = AsyncClient(
        transport=ASGITransport(app=app), base_url="http://localhost"
    )
    async with async_client as s:
        yield s


#####################################################
# DB
#####################################################
@pytest_asyncio.fixture(scope="session")
async def async_db_engine():
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield async_engine

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function", loop_scope="session")
async def async_db(async_db_engine):
    # Create DB session
    _db = AsyncSessionLocal()

    def override_inject_db_session():
        return _db

    # Replace target API's dependency DB session.
    app.dependency_overrides[db_async_session] = override_inject_db_session

    async with _db as session:
        await session.begin()
        yield session
        await session.rollback()

        # Remove DB records
        await session.begin()
        if async_db_engine.dialect.name == "postgresql":
            for table in Base.metadata.sorted_tables:
                await session.execute(text(f'TRUNCATE TABLE "{table.name}";'))
        else:
            for table in reversed(Base.metadata.sorted_tables):
                await session.execute(text(f'DELETE FROM "{table.name}";'))
        await session.commit()

    app.dependency_overrides[db_async_session] = db_async_session
