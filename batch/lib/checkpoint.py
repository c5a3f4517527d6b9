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

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.model.db import (
    IndexerCheckpoint,
    IndexerState,
    IndexerStatus,
    IndexerStream,
)
from app.model.db.base import naive_utcnow
from config import INDEXER_START_BLOCK


class CheckpointStore:
    """Progress of each indexing stream

    - A checkpoint only moves forward through `advance`,
      and only moves backward through `rewind` (chain reorganization).
    - Deleting a checkpoint row forces the stream to start again
      from INDEXER_START_BLOCK.
    """

    @staticmethod
    async def get(
        db_session: AsyncSession, stream: IndexerStream
    ) -> IndexerCheckpoint | None:
        return (
            await db_session.scalars(
                select(IndexerCheckpoint)
                .where(IndexerCheckpoint.stream == stream.value)
                .limit(1)
            )
        ).first()

    @staticmethod
    async def get_next_block_number(
        db_session: AsyncSession, stream: IndexerStream
    ) -> int:
        checkpoint = await CheckpointStore.get(db_session, stream)
        if checkpoint is None:
            return INDEXER_START_BLOCK
        return checkpoint.last_processed_block + 1

    @staticmethod
    async def advance(
        db_session: AsyncSession,
        stream: IndexerStream,
        block_number: int,
        block_hash: str | None,
    ):
        checkpoint = IndexerCheckpoint()
        checkpoint.stream = stream.value
        checkpoint.last_processed_block = block_number
        checkpoint.last_processed_hash = block_hash
        await db_session.merge(checkpoint)

    @staticmethod
    async def rewind(
        db_session: AsyncSession,
        stream: IndexerStream,
        block_number: int,
        block_hash: str | None,
    ) -> bool:
        """Move the checkpoint back to block_number if it is ahead of it

        :return: True if the checkpoint was moved
        """
        checkpoint = await CheckpointStore.get(db_session, stream)
        if checkpoint is None or checkpoint.last_processed_block <= block_number:
            return False
        checkpoint.last_processed_block = block_number
        checkpoint.last_processed_hash = block_hash
        await db_session.merge(checkpoint)
        return True


class IndexerStateStore:
    """Operational state of each indexing stream"""

    @staticmethod
    async def get(db_session: AsyncSession, stream: IndexerStream) -> IndexerState:
        state = (
            await db_session.scalars(
                select(IndexerState).where(IndexerState.stream == stream.value).limit(1)
            )
        ).first()
        if state is None:
            state = IndexerState()
            state.stream = stream.value
            state.status = IndexerStatus.STOPPED.value
            state.is_paused = False
        return state

    @staticmethod
    async def is_paused(db_session: AsyncSession, stream: IndexerStream) -> bool:
        state = await IndexerStateStore.get(db_session, stream)
        return state.is_paused

    @staticmethod
    async def set_status(
        db_session: AsyncSession,
        stream: IndexerStream,
        status: IndexerStatus,
        last_error: str | None = None,
    ):
        state = await IndexerStateStore.get(db_session, stream)
        state.status = status.value
        if status == IndexerStatus.HALTED or last_error is not None:
            state.last_error = last_error
        state.heartbeat = naive_utcnow()
        await db_session.merge(state)
