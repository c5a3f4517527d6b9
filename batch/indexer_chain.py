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

import asyncio
import sys
from enum import StrEnum

import uvloop
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import BatchAsyncSessionLocal
from app.exceptions import (
    BlockNotFoundError,
    ChainIdMismatchError,
    IndexerFatalError,
    ServiceUnavailableError,
)
from app.model.blockchain import ChainClient
from app.model.db import IndexerStatus, IndexerStream
from app.utils.web3_utils import backoff_interval
from batch.lib.block_ingestor import BlockIngestor
from batch.lib.block_writer import BlockWriter
from batch.lib.checkpoint import CheckpointStore, IndexerStateStore
from batch.lib.reorg_resolver import ForkDetected, ReorgResolver
from batch.utils import batch_log
from batch.utils.signal_handler import setup_signal_handler, wait
from config import (
    CHAIN_ID,
    INDEXER_BLOCK_LOT_MAX_SIZE,
    INDEXER_ERROR_BACKOFF_MAX,
    INDEXER_STALL_TIMEOUT,
    INDEXER_SYNC_INTERVAL,
)

"""
[INDEXER-Chain]

Main indexing stream.
Blocks are ingested one by one in height order:
fetch -> continuity check (reorg resolution) -> write and aggregate -> commit -> advance checkpoint
"""

process_name = "INDEXER-Chain"
LOG = batch_log.get_logger(process_name=process_name)


class IngestStatus(StrEnum):
    INGESTED = "ingested"
    CAUGHT_UP = "caught_up"
    REORG_RESOLVED = "reorg_resolved"
    PAUSED = "paused"
    SHUTDOWN = "shutdown"


class IngestResult:
    status: IngestStatus
    block_number: int | None
    ancestor: int | None

    def __init__(
        self,
        status: IngestStatus,
        block_number: int | None = None,
        ancestor: int | None = None,
    ):
        self.status = status
        self.block_number = block_number
        self.ancestor = ancestor

    def __repr__(self):
        return f"IngestResult(status={self.status}, block_number={self.block_number}, ancestor={self.ancestor})"


class Processor:
    """Processor for indexing blocks, transactions, logs and token transfers"""

    def __init__(
        self, client: ChainClient | None = None, is_shutdown: asyncio.Event | None = None
    ):
        self.client = client if client is not None else ChainClient()
        self.ingestor = BlockIngestor(self.client)
        self.resolver = ReorgResolver(self.client, self.ingestor)
        self.is_shutdown = is_shutdown
        self.chain_id_verified = False

    @staticmethod
    def __get_db_session() -> AsyncSession:
        return BatchAsyncSessionLocal()

    async def verify_chain_id(self):
        """Refuse to index a chain other than CHAIN_ID"""
        chain_id = await self.client.get_chain_id()
        if chain_id != CHAIN_ID:
            raise ChainIdMismatchError(expected=CHAIN_ID, actual=chain_id)
        self.chain_id_verified = True

    async def process(self) -> IngestResult:
        """Ingest blocks until caught up (at most INDEXER_BLOCK_LOT_MAX_SIZE blocks)"""
        if not self.chain_id_verified:
            await self.verify_chain_id()

        result = IngestResult(IngestStatus.CAUGHT_UP)
        for _ in range(INDEXER_BLOCK_LOT_MAX_SIZE):
            if self.is_shutdown is not None and self.is_shutdown.is_set():
                return IngestResult(IngestStatus.SHUTDOWN)
            result = await self.ingest_next()
            if result.status in (IngestStatus.CAUGHT_UP, IngestStatus.PAUSED):
                break
        return result

    async def ingest_next(self) -> IngestResult:
        """Ingest the block next to the checkpoint"""
        local_session = self.__get_db_session()
        try:
            if await IndexerStateStore.is_paused(local_session, IndexerStream.MAIN):
                await IndexerStateStore.set_status(
                    local_session, IndexerStream.MAIN, IndexerStatus.PAUSED
                )
                await local_session.commit()
                LOG.info("Stream is paused")
                return IngestResult(IngestStatus.PAUSED)

            block_number = await CheckpointStore.get_next_block_number(
                local_session, IndexerStream.MAIN
            )
            latest_block = await self.client.get_block_number()
            if block_number > latest_block:
                return await self.__caught_up(local_session, block_number)

            try:
                staged = await self.ingestor.fetch(block_number)
            except BlockNotFoundError:
                return await self.__caught_up(local_session, block_number)

            # Reorg detection
            continuity = await self.resolver.check_continuity(
                local_session, staged.block
            )
            if isinstance(continuity, ForkDetected):
                LOG.warning(
                    f"Chain reorganization detected: block={block_number}, ancestor={continuity.ancestor}"
                )
                await IndexerStateStore.set_status(
                    local_session, IndexerStream.MAIN, IndexerStatus.RESOLVING_FORK
                )
                await local_session.commit()
                await self.resolver.resolve(local_session, continuity.ancestor)
                await IndexerStateStore.set_status(
                    local_session, IndexerStream.MAIN, IndexerStatus.RUNNING
                )
                await local_session.commit()
                LOG.info(
                    f"Chain reorganization has been resolved: ancestor={continuity.ancestor}"
                )
                return IngestResult(
                    IngestStatus.REORG_RESOLVED,
                    block_number=block_number,
                    ancestor=continuity.ancestor,
                )

            # Write block data and aggregates
            await BlockWriter.write_block(local_session, staged)
            await local_session.commit()

            # Advance checkpoint
            await CheckpointStore.advance(
                local_session, IndexerStream.MAIN, block_number, staged.block.hash
            )
            await IndexerStateStore.set_status(
                local_session, IndexerStream.MAIN, IndexerStatus.RUNNING
            )
            await local_session.commit()
            LOG.info(
                f"Block has been indexed: block={block_number}, txs={len(staged.transactions)}, transfers={len(staged.token_transfers)}"
            )
            return IngestResult(IngestStatus.INGESTED, block_number=block_number)
        except Exception:
            await local_session.rollback()
            raise
        finally:
            await local_session.close()

    @staticmethod
    async def __caught_up(local_session: AsyncSession, block_number: int):
        LOG.debug("skip process: from_block > latest_block")
        await IndexerStateStore.set_status(
            local_session, IndexerStream.MAIN, IndexerStatus.CAUGHT_UP
        )
        await local_session.commit()
        return IngestResult(IngestStatus.CAUGHT_UP, block_number=block_number)


async def halt(stream: IndexerStream, err: Exception):
    """Record a fatal error; the stream stays down until an operator restarts it"""
    local_session = BatchAsyncSessionLocal()
    try:
        await IndexerStateStore.set_status(
            local_session, stream, IndexerStatus.HALTED, last_error=str(err)
        )
        await local_session.commit()
    finally:
        await local_session.close()


async def run(processor: Processor, is_shutdown: asyncio.Event):
    """Stream loop

    - caught up / paused: poll every INDEXER_SYNC_INTERVAL seconds
    - transient error: retry with exponential backoff (max INDEXER_ERROR_BACKOFF_MAX)
    - stall: the iteration is cancelled after INDEXER_STALL_TIMEOUT seconds and restarted
    - fatal error: the stream is halted
    """
    error_count = 0
    while not is_shutdown.is_set():
        try:
            result = await asyncio.wait_for(
                processor.process(), timeout=INDEXER_STALL_TIMEOUT
            )
            error_count = 0
            if result.status in (IngestStatus.CAUGHT_UP, IngestStatus.PAUSED):
                interval = INDEXER_SYNC_INTERVAL
            else:
                interval = 0
        except IndexerFatalError as err:
            LOG.critical(f"Indexer has been halted: {err}")
            await halt(IndexerStream.MAIN, err)
            return
        except asyncio.TimeoutError:
            LOG.error(
                f"Block synchronization stalled for {INDEXER_STALL_TIMEOUT} seconds, restarting"
            )
            processor = Processor(
                client=processor.client, is_shutdown=processor.is_shutdown
            )
            interval = backoff_interval(error_count, 1, INDEXER_ERROR_BACKOFF_MAX)
            error_count += 1
        except ServiceUnavailableError:
            LOG.warning("An external service was unavailable")
            interval = backoff_interval(error_count, 1, INDEXER_ERROR_BACKOFF_MAX)
            error_count += 1
        except SQLAlchemyError as sa_err:
            LOG.error(f"A database error has occurred: code={sa_err.code}\n{sa_err}")
            interval = backoff_interval(error_count, 1, INDEXER_ERROR_BACKOFF_MAX)
            error_count += 1
        except Exception:
            LOG.exception("An exception occurred during block synchronization")
            interval = backoff_interval(error_count, 1, INDEXER_ERROR_BACKOFF_MAX)
            error_count += 1

        await wait(is_shutdown, interval)

    local_session = BatchAsyncSessionLocal()
    try:
        await IndexerStateStore.set_status(
            local_session, IndexerStream.MAIN, IndexerStatus.STOPPED
        )
        await local_session.commit()
    finally:
        await local_session.close()
    LOG.info("Service has been stopped")


async def main():
    LOG.info("Service started successfully")
    is_shutdown = asyncio.Event()
    setup_signal_handler(logger=LOG, is_shutdown=is_shutdown)
    await run(Processor(is_shutdown=is_shutdown), is_shutdown)


if __name__ == "__main__":
    try:
        uvloop.run(main())
    except KeyboardInterrupt:
        sys.exit(1)
