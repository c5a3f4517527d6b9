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
import logging
from unittest import mock

import pytest
from sqlalchemy import select, update

from app.model.db import (
    IDXBlock,
    IDXInternalTransaction,
    IndexerState,
    IndexerStatus,
    IndexerStream,
)
from batch import indexer_internal_tx
from batch.indexer_internal_tx import LOG
from batch.lib.block_ingestor import BlockIngestor
from batch.lib.block_writer import BlockWriter
from batch.lib.checkpoint import CheckpointStore
from config import INDEXER_SYNC_INTERVAL
from tests.chain_utils import FakeChainClient, FakeTx, make_address

ADDRESS_X = make_address(1)
ADDRESS_Y = make_address(2)
ADDRESS_Z = make_address(3)
CONTRACT = make_address(0x200)
NEW_CONTRACT = make_address(0x201)


@pytest.fixture(scope="function")
def chain():
    return FakeChainClient()


@pytest.fixture(scope="function")
def processor(async_db, chain, caplog: pytest.LogCaptureFixture):
    _log = logging.getLogger("background")
    default_log_level = _log.level
    default_child_level = LOG.level
    _log.setLevel(logging.DEBUG)
    LOG.setLevel(logging.DEBUG)
    _log.propagate = True
    yield indexer_internal_tx.Processor(
        client=chain, trace_method="debug_traceTransaction"
    )
    _log.propagate = False
    _log.setLevel(default_log_level)
    LOG.setLevel(default_child_level)


async def index_chain(db, chain: FakeChainClient, main_checkpoint: int | None):
    """Store every mined block and advance the main stream's checkpoint"""
    ingestor = BlockIngestor(chain, fetch_balances=False)
    for number in range(len(chain.blocks)):
        await BlockWriter.write_block(db, await ingestor.fetch(number))
    if main_checkpoint is not None:
        await CheckpointStore.advance(
            db,
            IndexerStream.MAIN,
            main_checkpoint,
            chain.block_hash(main_checkpoint),
        )
    await db.commit()


async def get_internal_transactions(db) -> list[IDXInternalTransaction]:
    return (
        await db.scalars(
            select(IDXInternalTransaction).order_by(
                IDXInternalTransaction.block_number,
                IDXInternalTransaction.trace_address,
            )
        )
    ).all()


def call_frame() -> dict:
    return {
        "type": "CALL",
        "from": ADDRESS_X,
        "to": CONTRACT,
        "value": "0x0",
        "calls": [
            {
                "type": "CALL",
                "from": CONTRACT,
                "to": ADDRESS_Y,
                "value": "0x5",
                "gas": "0x100",
                "gasUsed": "0x10",
                "input": "0x",
            },
            {
                "type": "STATICCALL",
                "from": CONTRACT,
                "to": ADDRESS_Z,
                "gas": "0x200",
                "gasUsed": "0x20",
                "input": "0x70a08231",
                "calls": [
                    {
                        "type": "CREATE",
                        "from": ADDRESS_Z,
                        "to": NEW_CONTRACT,
                        "value": "0x0",
                        "gas": "0x300",
                        "gasUsed": "0x30",
                        "input": "0x6080",
                        "output": "0x6080",
                    },
                ],
            },
        ],
    }


class TestProcessor:
    ###########################################################################
    # Normal Case
    ###########################################################################

    # <Normal_1>
    # callTracer frames: value transfers and contract creations are recorded
    @pytest.mark.asyncio
    async def test_normal_1(self, processor, async_db, chain):
        chain.mine()
        chain.mine([FakeTx(from_address=ADDRESS_X, to_address=CONTRACT)])
        await index_chain(async_db, chain, main_checkpoint=1)
        chain.traces[chain.tx_hash(1)] = call_frame()

        # Execute
        await processor.process()

        # Assertion
        async_db.expire_all()
        internal_txs = await get_internal_transactions(async_db)
        assert len(internal_txs) == 2

        assert internal_txs[0].transaction_hash == chain.tx_hash(1)
        assert internal_txs[0].trace_address == "0"
        assert internal_txs[0].block_number == 1
        assert internal_txs[0].type == "CALL"
        assert internal_txs[0].call_type == "call"
        assert internal_txs[0].from_address == CONTRACT
        assert internal_txs[0].to_address == ADDRESS_Y
        assert internal_txs[0].value == 5
        assert internal_txs[0].gas == 256
        assert internal_txs[0].gas_used == 16

        assert internal_txs[1].trace_address == "1_0"
        assert internal_txs[1].type == "CREATE"
        assert internal_txs[1].from_address == ADDRESS_Z
        assert internal_txs[1].to_address == NEW_CONTRACT
        assert internal_txs[1].value == 0
        assert internal_txs[1].output == "0x6080"

        checkpoint = await CheckpointStore.get(async_db, IndexerStream.INTERNAL_TX)
        assert checkpoint.last_processed_block == 1
        assert checkpoint.last_processed_hash == chain.block_hash(1)

        state = (
            await async_db.scalars(
                select(IndexerState)
                .where(IndexerState.stream == IndexerStream.INTERNAL_TX.value)
                .limit(1)
            )
        ).first()
        assert state.status == IndexerStatus.RUNNING.value

    # <Normal_2>
    # trace_block: top level calls, zero value calls and rewards are skipped
    @pytest.mark.asyncio
    async def test_normal_2(self, processor, async_db, chain):
        chain.mine([FakeTx(from_address=ADDRESS_X, to_address=CONTRACT)])
        await index_chain(async_db, chain, main_checkpoint=0)
        tx_hash = chain.tx_hash(0)
        chain.block_traces[0] = [
            {
                "type": "call",
                "transactionHash": tx_hash,
                "traceAddress": [],
                "action": {
                    "callType": "call",
                    "from": ADDRESS_X,
                    "to": CONTRACT,
                    "value": "0x1",
                },
                "result": {"gasUsed": "0x5208", "output": "0x"},
            },
            {
                "type": "call",
                "transactionHash": tx_hash,
                "traceAddress": [0],
                "action": {
                    "callType": "call",
                    "from": CONTRACT,
                    "to": ADDRESS_Y,
                    "value": "0xa",
                    "gas": "0x100",
                    "input": "0x",
                },
                "result": {"gasUsed": "0x0", "output": "0x"},
            },
            {
                "type": "call",
                "transactionHash": tx_hash,
                "traceAddress": [1],
                "action": {
                    "callType": "staticcall",
                    "from": CONTRACT,
                    "to": ADDRESS_Z,
                    "value": "0x0",
                },
                "result": {"gasUsed": "0x10", "output": "0x01"},
            },
            {
                "type": "create",
                "transactionHash": tx_hash,
                "traceAddress": [2],
                "action": {
                    "from": CONTRACT,
                    "value": "0x0",
                    "gas": "0x300",
                    "init": "0x6080",
                },
                "result": {
                    "address": NEW_CONTRACT,
                    "code": "0x60aa",
                    "gasUsed": "0x30",
                },
            },
            {
                "type": "reward",
                "traceAddress": [],
                "action": {
                    "author": ADDRESS_Z,
                    "value": "0x100",
                    "rewardType": "block",
                },
            },
        ]
        processor.trace_method = "trace_block"

        # Execute
        await processor.process()

        # Assertion
        async_db.expire_all()
        internal_txs = await get_internal_transactions(async_db)
        assert len(internal_txs) == 2

        assert internal_txs[0].trace_address == "0"
        assert internal_txs[0].type == "CALL"
        assert internal_txs[0].call_type == "call"
        assert internal_txs[0].to_address == ADDRESS_Y
        assert internal_txs[0].value == 10

        assert internal_txs[1].trace_address == "2"
        assert internal_txs[1].type == "CREATE"
        assert internal_txs[1].to_address == NEW_CONTRACT
        assert internal_txs[1].input == "0x6080"
        assert internal_txs[1].output == "0x60aa"
        assert internal_txs[1].gas_used == 48

    # <Normal_3>
    # The main stream has not indexed any block
    @pytest.mark.asyncio
    async def test_normal_3(self, processor, async_db, chain, caplog):
        chain.mine([FakeTx(from_address=ADDRESS_X, to_address=CONTRACT)])
        await index_chain(async_db, chain, main_checkpoint=None)
        chain.traces[chain.tx_hash(0)] = call_frame()

        # Execute
        await processor.process()

        # Assertion
        async_db.expire_all()
        assert await get_internal_transactions(async_db) == []
        assert (
            await CheckpointStore.get(async_db, IndexerStream.INTERNAL_TX) is None
        )
        assert caplog.record_tuples.count(
            (
                LOG.name,
                logging.DEBUG,
                "skip process: main stream has not indexed any block",
            )
        ) == 1

    # <Normal_4>
    # Blocks above the main stream's checkpoint are not traced
    @pytest.mark.asyncio
    async def test_normal_4(self, processor, async_db, chain):
        chain.mine([FakeTx(from_address=ADDRESS_X, to_address=CONTRACT)])
        chain.mine([FakeTx(from_address=ADDRESS_X, to_address=CONTRACT)])
        chain.mine([FakeTx(from_address=ADDRESS_X, to_address=CONTRACT)])
        await index_chain(async_db, chain, main_checkpoint=1)
        for number in range(3):
            chain.traces[chain.tx_hash(number)] = call_frame()

        # Execute
        await processor.process()
        await processor.process()

        # Assertion
        async_db.expire_all()
        internal_txs = await get_internal_transactions(async_db)
        assert sorted({tx.block_number for tx in internal_txs}) == [0, 1]
        checkpoint = await CheckpointStore.get(async_db, IndexerStream.INTERNAL_TX)
        assert checkpoint.last_processed_block == 1

    # <Normal_5>
    # Stream is paused
    @pytest.mark.asyncio
    async def test_normal_5(self, processor, async_db, chain, caplog):
        chain.mine([FakeTx(from_address=ADDRESS_X, to_address=CONTRACT)])
        await index_chain(async_db, chain, main_checkpoint=0)
        chain.traces[chain.tx_hash(0)] = call_frame()
        state = IndexerState()
        state.stream = IndexerStream.INTERNAL_TX.value
        state.status = IndexerStatus.RUNNING.value
        state.is_paused = True
        async_db.add(state)
        await async_db.commit()

        # Execute
        await processor.process()

        # Assertion
        async_db.expire_all()
        assert await get_internal_transactions(async_db) == []
        assert (
            await CheckpointStore.get(async_db, IndexerStream.INTERNAL_TX) is None
        )
        assert caplog.record_tuples.count(
            (LOG.name, logging.INFO, "Stream is paused")
        ) == 1

    # <Normal_6>
    # A transaction that could not be traced is skipped
    @pytest.mark.asyncio
    async def test_normal_6(self, processor, async_db, chain, caplog):
        chain.mine([FakeTx(from_address=ADDRESS_X, to_address=CONTRACT)])
        await index_chain(async_db, chain, main_checkpoint=0)

        # Execute
        await processor.process()

        # Assertion
        async_db.expire_all()
        assert await get_internal_transactions(async_db) == []
        checkpoint = await CheckpointStore.get(async_db, IndexerStream.INTERNAL_TX)
        assert checkpoint.last_processed_block == 0
        assert caplog.record_tuples.count(
            (
                LOG.name,
                logging.WARNING,
                f"Skip transaction that could not be traced: tx={chain.tx_hash(0)}",
            )
        ) == 1

    # <Normal_7>
    # callTracer frames: a DELEGATECALL carrying the caller's value is not recorded
    @pytest.mark.asyncio
    async def test_normal_7(self, processor, async_db, chain):
        chain.mine([FakeTx(from_address=ADDRESS_X, to_address=CONTRACT, value=10**18)])
        await index_chain(async_db, chain, main_checkpoint=0)
        chain.traces[chain.tx_hash(0)] = {
            "type": "CALL",
            "from": ADDRESS_X,
            "to": CONTRACT,
            "value": "0xde0b6b3a7640000",
            "calls": [
                {
                    "type": "DELEGATECALL",
                    "from": CONTRACT,
                    "to": ADDRESS_Z,
                    "value": "0xde0b6b3a7640000",
                    "gas": "0x100",
                    "gasUsed": "0x10",
                    "input": "0xd0e30db0",
                    "calls": [
                        {
                            "type": "CALL",
                            "from": CONTRACT,
                            "to": ADDRESS_Y,
                            "value": "0x3",
                            "gas": "0x80",
                            "gasUsed": "0x8",
                            "input": "0x",
                        },
                    ],
                },
            ],
        }

        # Execute
        await processor.process()

        # Assertion
        async_db.expire_all()
        internal_txs = await get_internal_transactions(async_db)
        assert len(internal_txs) == 1
        assert internal_txs[0].trace_address == "0_0"
        assert internal_txs[0].type == "CALL"
        assert internal_txs[0].to_address == ADDRESS_Y
        assert internal_txs[0].value == 3

    # <Normal_8>
    # trace_block: delegatecall traces are not recorded and
    # transaction hashes are stored in lower case
    @pytest.mark.asyncio
    async def test_normal_8(self, processor, async_db, chain):
        chain.mine([FakeTx(from_address=ADDRESS_X, to_address=CONTRACT, value=10**18)])
        await index_chain(async_db, chain, main_checkpoint=0)
        tx_hash = chain.tx_hash(0)
        chain.block_traces[0] = [
            {
                "type": "call",
                "transactionHash": "0x" + tx_hash[2:].upper(),
                "traceAddress": [0],
                "action": {
                    "callType": "delegatecall",
                    "from": CONTRACT,
                    "to": ADDRESS_Z,
                    "value": "0xde0b6b3a7640000",
                    "gas": "0x100",
                    "input": "0xd0e30db0",
                },
                "result": {"gasUsed": "0x10", "output": "0x"},
            },
            {
                "type": "call",
                "transactionHash": "0x" + tx_hash[2:].upper(),
                "traceAddress": [0, 0],
                "action": {
                    "callType": "call",
                    "from": CONTRACT,
                    "to": ADDRESS_Y,
                    "value": "0x3",
                    "gas": "0x80",
                    "input": "0x",
                },
                "result": {"gasUsed": "0x8", "output": "0x"},
            },
        ]
        processor.trace_method = "trace_block"

        # Execute
        await processor.process()

        # Assertion
        async_db.expire_all()
        internal_txs = await get_internal_transactions(async_db)
        assert len(internal_txs) == 1
        assert internal_txs[0].transaction_hash == tx_hash
        assert internal_txs[0].trace_address == "0_0"
        assert internal_txs[0].call_type == "call"
        assert internal_txs[0].value == 3

    ###########################################################################
    # Error Case
    ###########################################################################

    # <Error_1>
    # Tracing is not supported by the endpoint
    @pytest.mark.asyncio
    async def test_error_1(self, processor, async_db, chain, caplog):
        chain.mine([FakeTx(from_address=ADDRESS_X, to_address=CONTRACT)])
        await index_chain(async_db, chain, main_checkpoint=0)
        chain.trace_supported = False

        # Execute
        await processor.process()

        # Assertion
        async_db.expire_all()
        assert processor.tracing_supported is False
        assert await get_internal_transactions(async_db) == []
        assert (
            await CheckpointStore.get(async_db, IndexerStream.INTERNAL_TX) is None
        )
        state = (
            await async_db.scalars(
                select(IndexerState)
                .where(IndexerState.stream == IndexerStream.INTERNAL_TX.value)
                .limit(1)
            )
        ).first()
        assert state.status == IndexerStatus.STOPPED.value
        assert state.last_error == "debug_traceTransaction is not supported"
        assert caplog.record_tuples.count(
            (
                LOG.name,
                logging.WARNING,
                "Tracing is not supported by the JSON-RPC endpoint, internal transaction indexing is disabled: debug_traceTransaction is not supported",
            )
        ) == 1

    # <Error_2>
    # The block is replaced while its transactions are traced
    @pytest.mark.asyncio
    async def test_error_2(self, processor, async_db, chain, caplog):
        chain.mine([FakeTx(from_address=ADDRESS_X, to_address=CONTRACT)])
        await index_chain(async_db, chain, main_checkpoint=0)
        frame = call_frame()

        async def replace_block(tx_hash: str):
            await async_db.execute(
                update(IDXBlock)
                .where(IDXBlock.number == 0)
                .values(hash="0x" + "ff" * 32)
            )
            await async_db.commit()
            return frame

        # Execute
        with mock.patch.object(
            chain, "trace_transaction", side_effect=replace_block
        ):
            await processor.process()

        # Assertion
        async_db.expire_all()
        assert await get_internal_transactions(async_db) == []
        assert (
            await CheckpointStore.get(async_db, IndexerStream.INTERNAL_TX) is None
        )
        assert caplog.record_tuples.count(
            (LOG.name, logging.INFO, "Block was replaced during tracing: block=0")
        ) == 1

    # <Error_3>
    # Transient errors are retried with backoff, reset after a success
    @pytest.mark.asyncio
    async def test_error_3(self, processor, async_db, chain, caplog):
        chain.mine([FakeTx(from_address=ADDRESS_X, to_address=CONTRACT)])
        await index_chain(async_db, chain, main_checkpoint=0)
        chain.traces[chain.tx_hash(0)] = call_frame()
        chain.available = False
        is_shutdown = asyncio.Event()
        intervals = []

        async def fake_wait(_is_shutdown, seconds):
            intervals.append(seconds)
            if len(intervals) == 2:
                chain.available = True
            if len(intervals) == 3:
                _is_shutdown.set()

        # Execute
        with mock.patch("batch.indexer_internal_tx.wait", fake_wait):
            await indexer_internal_tx.run(processor, is_shutdown)

        # Assertion
        assert intervals == [1, 2, INDEXER_SYNC_INTERVAL]
        async_db.expire_all()
        assert len(await get_internal_transactions(async_db)) == 2
        assert 2 == caplog.record_tuples.count(
            (LOG.name, logging.WARNING, "An external service was unavailable")
        )
        assert 1 == caplog.record_tuples.count(
            (LOG.name, logging.INFO, "Service has been stopped")
        )
