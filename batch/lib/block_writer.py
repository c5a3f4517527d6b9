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

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.model.db import (
    IDXBlock,
    IDXInternalTransaction,
    IDXTokenTransfer,
    IDXTransaction,
    IDXTransactionLog,
)
from batch.lib.aggregator import Aggregator
from batch.lib.block_ingestor import StagedBlock
from batch.utils import batch_log

LOG = batch_log.get_logger(process_name="INDEXER-Chain")


class BlockWriter:
    """Write the data of a block and its aggregates in the caller's transaction"""

    @staticmethod
    async def write_block(db_session: AsyncSession, staged: StagedBlock) -> bool:
        """Write block

        Writing the same block (number and hash) again has no effect,
        because its aggregates were committed together with it.

        :return: True if the block was written
        """
        block = staged.block
        stored: IDXBlock | None = await db_session.get(IDXBlock, block.number)
        if stored is not None and stored.hash == block.hash:
            LOG.debug(f"Block is already indexed: block={block.number}")
            return False

        await db_session.merge(block)
        for tx in staged.transactions:
            await db_session.merge(tx)
        for log in staged.logs:
            await db_session.merge(log)
        for transfer in staged.token_transfers:
            await db_session.merge(transfer)

        await Aggregator(db_session).apply_block(
            block=block,
            transactions=staged.transactions,
            token_transfers=staged.token_transfers,
            balances=staged.balances,
            contract_flags=staged.contract_flags,
        )
        return True

    @staticmethod
    async def delete_blocks_above(db_session: AsyncSession, block_number: int):
        """Delete blocks higher than block_number and everything derived from them"""
        for model in (
            IDXInternalTransaction,
            IDXTokenTransfer,
            IDXTransactionLog,
            IDXTransaction,
        ):
            await db_session.execute(
                delete(model).where(model.block_number > block_number)
            )
        await db_session.execute(delete(IDXBlock).where(IDXBlock.number > block_number))
