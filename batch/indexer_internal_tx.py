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

import uvloop
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import BatchAsyncSessionLocal
from app.exceptions import ServiceUnavailableError, TraceNotSupportedError
from app.model.blockchain import ChainClient
from app.model.blockchain.utils import normalize_address, to_hex, to_int
from app.model.db import (
    IDXBlock,
    IDXInternalTransaction,
    IDXTransaction,
    IndexerStatus,
    IndexerStream,
)
from app.utils.web3_utils import backoff_interval
from batch.lib.checkpoint import CheckpointStore, IndexerStateStore
from batch.utils import batch_log
from batch.utils.signal_handler import setup_signal_handler, wait
from config import (
    INDEXER_BLOCK_LOT_MAX_SIZE,
    INDEXER_ERROR_BACKOFF_MAX,
    INDEXER_STALL_TIMEOUT,
    INDEXER_SYNC_INTERVAL,
    INTERNAL_TX_INDEXER_ENABLED,
    INTERNAL_TX_TRACE_METHOD,
)

"""
[INDEXER-Internal-Tx]

Backfill of internal transactions (value transfers and contract creations
inside a transaction) from call traces.
Heights are processed only up to the checkpoint of the main stream.
"""

process_name = "INDEXER-Internal-Tx"
LOG = batch_log.get_logger(process_name=process_name)

CREATE_TYPES = ("CREATE", "CREATE2")


class Processor:
    """Processor for indexing internal transactions"""

    def __init__(
        self,
        client: ChainClient | None = None,
        trace_method: str = INTERNAL_TX_TRACE_METHOD,
        is_shutdown: asyncio.Event | None = None,
    ):
        self.client = client if client is not None else ChainClient()
        self.is_shutdown = is_shutdown
        self.trace_method = trace_method
        self.tracing_supported = True

    @staticmethod
    def __get_db_session() -> AsyncSession:
        return BatchAsyncSessionLocal()

    async def process(self):
        local_session = self.__get_db_session()
        try:
            if await IndexerStateStore.is_paused(
                local_session, IndexerStream.INTERNAL_TX
            ):
                LOG.info("Stream is paused")
                return

            main_checkpoint = await CheckpointStore.get(
                local_session, IndexerStream.MAIN
            )
            if main_checkpoint is None:
                LOG.debug("skip process: main stream has not indexed any block")
                return
            from_block = await CheckpointStore.get_next_block_number(
                local_session, IndexerStream.INTERNAL_TX
            )
            to_block = min(
                main_checkpoint.last_processed_block,
                from_block + INDEXER_BLOCK_LOT_MAX_SIZE - 1,
            )
            if from_block > to_block:
                LOG.debug("skip process: from_block > latest_block")
                return

            LOG.info(f"syncing from={from_block}, to={to_block}")
            for block_number in range(from_block, to_block + 1):
                if self.is_shutdown is not None and self.is_shutdown.is_set():
                    break
                if not await self.__sync_block(local_session, block_number):
                    break
        except TraceNotSupportedError as err:
            await local_session.rollback()
            self.tracing_supported = False
            LOG.warning(
                f"Tracing is not supported by the JSON-RPC endpoint, internal transaction indexing is disabled: {err}"
            )
            await IndexerStateStore.set_status(
                local_session,
                IndexerStream.INTERNAL_TX,
                IndexerStatus.STOPPED,
                last_error=str(err),
            )
            await local_session.commit()
        except Exception:
            await local_session.rollback()
            raise
        finally:
            await local_session.close()

    async def __sync_block(self, local_session: AsyncSession, block_number: int) -> bool:
        """Index internal transactions of a block

        :return: False if the block was replaced by a chain reorganization
        """
        block: IDXBlock | None = await local_session.get(IDXBlock, block_number)
        if block is None:
            LOG.info(f"Block is no longer indexed: block={block_number}")
            return False
        block_hash = block.hash
        tx_hashes = (
            await local_session.scalars(
                select(IDXTransaction.hash)
                .where(IDXTransaction.block_number == block_number)
                .order_by(IDXTransaction.transaction_index)
            )
        ).all()
        await local_session.rollback()

        internal_txs = await self.get_internal_transactions(block_number, tx_hashes)

        # Verify the block was not replaced while traces were fetched
        locked_block: IDXBlock | None = (
            await local_session.scalars(
                select(IDXBlock)
                .where(IDXBlock.number == block_number)
                .limit(1)
                .with_for_update()
            )
        ).first()
        if locked_block is None or locked_block.hash != block_hash:
            LOG.info(f"Block was replaced during tracing: block={block_number}")
            await local_session.rollback()
            return False

        for internal_tx in internal_txs:
            await local_session.merge(internal_tx)
        await CheckpointStore.advance(
            local_session, IndexerStream.INTERNAL_TX, block_number, block_hash
        )
        await IndexerStateStore.set_status(
            local_session, IndexerStream.INTERNAL_TX, IndexerStatus.RUNNING
        )
        await local_session.commit()
        LOG.debug(
            f"Internal transactions have been indexed: block={block_number}, count={len(internal_txs)}"
        )
        return True

    async def get_internal_transactions(
        self, block_number: int, tx_hashes: list[str]
    ) -> list[IDXInternalTransaction]:
        if self.trace_method == "trace_block":
            if len(tx_hashes) == 0:
                return []
            traces = await self.client.trace_block(block_number)
            return self.from_flat_traces(block_number, traces or [])

        internal_txs = []
        for tx_hash in tx_hashes:
            frame = await self.client.trace_transaction(tx_hash)
            if frame is None:
                LOG.warning(f"Skip transaction that could not be traced: tx={tx_hash}")
                continue
            internal_txs.extend(
                self.from_call_frames(
                    block_number, tx_hash, frame.get("calls") or [], []
                )
            )
        return internal_txs

    @classmethod
    def from_call_frames(
        cls,
        block_number: int,
        tx_hash: str,
        calls: list[dict],
        parent_trace_address: list[str],
    ) -> list[IDXInternalTransaction]:
        """Internal transactions from nested callTracer frames

        Only calls that transfer value and contract creations are recorded.
        """
        internal_txs = []
        for i, call in enumerate(calls):
            trace_address = parent_trace_address + [str(i)]
            call_type = (call.get("type") or "CALL").upper()
            value = to_int(call.get("value")) or 0
            if call_type == "DELEGATECALL":
                # Carries the caller's value without moving it
                value = 0
            if value > 0 or call_type in CREATE_TYPES:
                internal_tx = IDXInternalTransaction()
                internal_tx.transaction_hash = tx_hash
                internal_tx.trace_address = "_".join(trace_address)
                internal_tx.block_number = block_number
                internal_tx.type = call_type
                internal_tx.call_type = call_type.lower()
                internal_tx.from_address = normalize_address(call.get("from"))
                internal_tx.to_address = normalize_address(call.get("to"))
                internal_tx.value = value
                internal_tx.gas = to_int(call.get("gas"))
                internal_tx.gas_used = to_int(call.get("gasUsed"))
                internal_tx.input = call.get("input")
                internal_tx.output = call.get("output")
                internal_tx.error = call.get("error")
                internal_txs.append(internal_tx)
            if call.get("calls"):
                internal_txs.extend(
                    cls.from_call_frames(
                        block_number, tx_hash, call["calls"], trace_address
                    )
                )
        return internal_txs

    @staticmethod
    def from_flat_traces(
        block_number: int, traces: list[dict]
    ) -> list[IDXInternalTransaction]:
        """Internal transactions from trace_block results

        Top level calls (empty traceAddress) and rewards are skipped.
        """
        internal_txs = []
        for trace in traces:
            trace_type = trace.get("type")
            trace_address = trace.get("traceAddress") or []
            if trace_type == "reward" or len(trace_address) == 0:
                continue
            action = trace.get("action") or {}
            result = trace.get("result") or {}
            value = to_int(action.get("value")) or 0
            if action.get("callType") == "delegatecall":
                value = 0
            if value == 0 and trace_type != "create":
                continue

            internal_tx = IDXInternalTransaction()
            internal_tx.transaction_hash = to_hex(trace.get("transactionHash"))
            internal_tx.trace_address = "_".join(str(i) for i in trace_address)
            internal_tx.block_number = block_number
            internal_tx.type = trace_type.upper()
            internal_tx.call_type = action.get("callType")
            internal_tx.from_address = normalize_address(action.get("from"))
            internal_tx.to_address = normalize_address(
                action.get("to") or result.get("address")
            )
            internal_tx.value = value
            internal_tx.gas = to_int(action.get("gas"))
            internal_tx.gas_used = to_int(result.get("gasUsed"))
            internal_tx.input = action.get("input") or action.get("init")
            internal_tx.output = result.get("output") or result.get("code")
            internal_tx.error = trace.get("error")
            internal_txs.append(internal_tx)
        return internal_txs


async def run(processor: Processor, is_shutdown: asyncio.Event):
    """Stream loop

    - idle: poll every INDEXER_SYNC_INTERVAL seconds
    - transient error or stall: retry with exponential backoff (max INDEXER_ERROR_BACKOFF_MAX)
    - tracing not supported: the loop ends
    """
    error_count = 0
    while not is_shutdown.is_set() and processor.tracing_supported:
        try:
            await asyncio.wait_for(processor.process(), timeout=INDEXER_STALL_TIMEOUT)
            error_count = 0
            interval = INDEXER_SYNC_INTERVAL
        except asyncio.TimeoutError:
            LOG.error(
                f"Internal transaction synchronization stalled for {INDEXER_STALL_TIMEOUT} seconds, restarting"
            )
            processor = Processor(
                client=processor.client,
                trace_method=processor.trace_method,
                is_shutdown=is_shutdown,
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
            LOG.exception(
                "An exception occurred during internal transaction synchronization"
            )
            interval = backoff_interval(error_count, 1, INDEXER_ERROR_BACKOFF_MAX)
            error_count += 1

        await wait(is_shutdown, interval)

    LOG.info("Service has been stopped")


async def main():
    if not INTERNAL_TX_INDEXER_ENABLED:
        LOG.info("Internal transaction indexing is disabled")
        return

    LOG.info("Service started successfully")
    is_shutdown = asyncio.Event()
    setup_signal_handler(logger=LOG, is_shutdown=is_shutdown)
    await run(Processor(is_shutdown=is_shutdown), is_shutdown)


if __name__ == "__main__":
    try:
        uvloop.run(main())
    except KeyboardInterrupt:
        sys.exit(1)
