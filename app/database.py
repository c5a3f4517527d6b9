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

from typing import Annotated

from fastapi import Depends
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from config import (
    ASYNC_DATABASE_URL,
    DATABASE_SCHEMA,
    DATABASE_URL,
    DB_ECHO,
    DB_POOL_MAX_OVERFLOW,
    DB_POOL_SIZE,
)


def engine_options(uri: str, pooled: bool = True, echo: bool = DB_ECHO) -> dict:
    """
    Keyword arguments for create_engine/create_async_engine.

    The API server shares a sized pool between requests. Batch processes run
    a single stream each and only need connections checked before use.
    SQLite (used by tests) gets no pool settings, only a busy timeout so that
    the API and batch engines can write to the same file.
    """
    if uri.startswith("sqlite"):
        return {"echo": echo, "connect_args": {"timeout": 30}}
    options = {"pool_pre_ping": True, "echo": echo}
    if pooled:
        options |= {
            "pool_recycle": 3600,
            "pool_size": DB_POOL_SIZE,
            "pool_timeout": 30,
            "max_overflow": DB_POOL_MAX_OVERFLOW,
        }
    return options


# Engines
# - engine: synchronous, used by migrations
# - async_engine: API server
# - batch_async_engine: indexer and processors
engine = create_engine(DATABASE_URL, **engine_options(DATABASE_URL))
async_engine = create_async_engine(
    ASYNC_DATABASE_URL, **engine_options(ASYNC_DATABASE_URL)
)
batch_async_engine = create_async_engine(
    ASYNC_DATABASE_URL, **engine_options(ASYNC_DATABASE_URL, pooled=False, echo=False)
)

# Session makers
AsyncSessionLocal = async_sessionmaker(
    autoflush=True,
    expire_on_commit=False,
    bind=async_engine,
    class_=AsyncSession,
)
BatchAsyncSessionLocal = async_sessionmaker(
    autoflush=True,
    expire_on_commit=False,
    bind=batch_async_engine,
    class_=AsyncSession,
)


async def db_async_session():
    db = AsyncSessionLocal()
    try:
        yield db
    finally:
        await db.close()


DBAsyncSession = Annotated[AsyncSession, Depends(db_async_session)]


def get_db_schema():
    """PostgreSQL schema holding the index tables (None: default schema)"""
    return DATABASE_SCHEMA
