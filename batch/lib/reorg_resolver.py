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

from app.exceptions import ReorgTooDeepError
from app.model.blockchain import ChainClient
from app.model.blockchain.utils import to_hex
from app.model.db import (
    IDXBlock,
    IDXTokenTransfer,
    IDXTransaction,
    IndexerStream,
)
from batch.lib.aggregator import Aggregator
from batch.lib.block_ingestor import BlockIngestor
from batch.lib.block_writer import BlockWriter
from batch.lib.checkpoint import CheckpointStore
from batch.utils import batch_log
from config import INDEXER_REORG_MAX_DEPTH

LOG = batch_log.get_logger(process_name="INDEXER-Chain")


class Continuous:
    """The candidate block extends the stored chain"""

    def __eq__(self, other):
        return isinstance(other, Continuous)

    def __repr__(self):
        return "Continuous()"


class ForkDetected:
    """The stored chain diverged from the canonical chain above `ancestor`"""

    def __init__(self, ancestor: int):
        self.ancestor = ancestor

    def __eq__(self, other):
        return isinstance(other, ForkDetected) and other.ancestor == self.ancestor

    def __repr__(self):
        return f"ForkDetected(ancestor={self.ancestor})"


class ReorgResolver:
    """Detect chain reorganizations and roll the index back to the common ancestor"""

    def __init__(
        self,
        client: ChainClient,
        ingestor: BlockIngestor,
        max_depth: int = INDEXER_REORG_MAX_DEPTH,
    ):
        self.client = client
        self.ingestor = ingestor
        self.max_depth = max_depth

    async def check_continuity(
        self, db_session: AsyncSession, candidate: IDXBlock
    ) -> Continuous | ForkDetected:
        """Check that the candidate block extends the stored chain

        :param db_session: database session
        :param candidate: block fetched from the chain
        :return: Continuous or ForkDetected(ancestor)
        :raises ReorgTooDeepError: no common ancestor within max_depth blocks
        """
        stored_self = await self.__get_stored_block(db_session, candidate.number)
        if stored_self is not None and stored_self.hash == candidate.hash:
            # Already indexed (e.g. the checkpoint was not advanced before a restart)
            return Continuous()

        parent = await self.__get_stored_block(db_session, candidate.number - 1)
        if parent is None or parent.hash == candidate.parent_hash:
            if stored_self is None:
                return Continuous()
            # A different block is stored at the same height
            return ForkDetected(ancestor=candidate.number - 1)

        # Walk back until the stored hash equals the canonical hash
        height = candidate.number - 1
        depth = 0
        while True:
            depth += 1
            if depth > self.max_depth:
                raise ReorgTooDeepError(candidate.number, self.max_depth)
            height -= 1
            stored = await self.__get_stored_block(db_session, height)
            if stored is None:
                return ForkDetected(ancestor=height)
            canonical = await self.client.get_block(height, full_transactions=False)
            if to_hex(canonical.get("hash")) == stored.hash:
                return ForkDetected(ancestor=height)

    async def resolve(self, db_session: AsyncSession, ancestor: int):
        """Roll back every stored block above the ancestor

        All changes are made in the caller's transaction:
        aggregates are reverted (newest block first), blocks and everything
        derived from them are deleted, and checkpoints are rewound.
        Nothing is committed here.

        :param db_session: database session
        :param ancestor: height of the common ancestor
        """
        blocks: list[IDXBlock] = (
            await db_session.scalars(
                select(IDXBlock)
                .where(IDXBlock.number > ancestor)
                .order_by(IDXBlock.number.desc())
                .with_for_update()
            )
        ).all()
        LOG.info(
            f"Resolving chain reorganization: ancestor={ancestor}, blocks={len(blocks)}"
        )

        # Native balances are restored to the values at the ancestor
        balances = {}
        if self.ingestor.fetch_balances and ancestor >= 0:
            touched = await self.__get_touched_addresses(db_session, ancestor)
            balances = await self.ingestor.get_balances(touched, ancestor)

        aggregator = Aggregator(db_session)
        for block in blocks:
            transactions = (
                await db_session.scalars(
                    select(IDXTransaction).where(
                        IDXTransaction.block_number == block.number
                    )
                )
            ).all()
            token_transfers = (
                await db_session.scalars(
                    select(IDXTokenTransfer).where(
                        IDXTokenTransfer.block_number == block.number
                    )
                )
            ).all()
            await aggregator.revert_block(
                block=block,
                transactions=list(transactions),
                token_transfers=list(token_transfers),
                balances=balances,
            )
            LOG.info(f"Reverted block: block={block.number}, hash={block.hash}")

        await BlockWriter.delete_blocks_above(db_session, ancestor)

        ancestor_block = await self.__get_stored_block(db_session, ancestor)
        ancestor_hash = ancestor_block.hash if ancestor_block is not None else None
        for stream in (IndexerStream.MAIN, IndexerStream.INTERNAL_TX):
            await CheckpointStore.rewind(db_session, stream, ancestor, ancestor_hash)

    @staticmethod
    async def __get_stored_block(
        db_session: AsyncSession, block_number: int
    ) -> IDXBlock | None:
        if block_number < 0:
            return None
        return (
            await db_session.scalars(
                select(IDXBlock).where(IDXBlock.number == block_number).limit(1)
            )
        ).first()

    @staticmethod
    async def __get_touched_addresses(
        db_session: AsyncSession, ancestor: int
    ) -> set[str]:
        rows = (
            await db_session.execute(
                select(
                    IDXTransaction.from_address,
                    IDXTransaction.to_address,
                    IDXTransaction.contract_address,
                ).where(IDXTransaction.block_number > ancestor)
            )
        ).all()
        addresses = set()
        for row in rows:
            addresses.update(address for address in row if address is not None)
        return addresses
