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

from datetime import UTC, datetime

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.model.db import (
    IDXAddress,
    IDXBlock,
    IDXDailyStats,
    IDXNetworkStats,
    IDXToken,
    IDXTokenHolder,
    IDXTokenTransfer,
    IDXTransaction,
)
from batch.utils import batch_log
from config import ZERO_ADDRESS

LOG = batch_log.get_logger(process_name="INDEXER-Chain")


def holder_token_id(token_id: int | None) -> str:
    """Token id key of IDXTokenHolder ("" for ERC20)"""
    return "" if token_id is None else str(token_id)


class Aggregator:
    """Incremental aggregates derived from blocks

    Deltas of a block are accumulated in books first, and then
    applied to the stored aggregates in the caller's transaction.
    `revert_block` is the exact inverse of `apply_block`.
    """

    class AddressBook:
        class Page:
            def __init__(self):
                self.sent_count = 0
                self.received_count = 0
                self.created_contract = False

            @property
            def transaction_count(self):
                return self.sent_count + self.received_count

        pages: dict[str, Page]

        def __init__(self):
            self.pages = {}

        def store(self, address: str, sent: int = 0, received: int = 0):
            if address not in self.pages:
                self.pages[address] = self.Page()
            self.pages[address].sent_count += sent
            self.pages[address].received_count += received

        def store_transaction(self, tx: IDXTransaction):
            recipient = tx.to_address or tx.contract_address
            self.store(tx.from_address, sent=1)
            if recipient is not None and recipient != tx.from_address:
                # Self-transfer is counted once, as sent
                self.store(recipient, received=1)
            if tx.contract_address is not None:
                self.store(tx.contract_address)
                self.pages[tx.contract_address].created_contract = True

    class BalanceBook:
        pages: dict[tuple[str, str, str], int]
        token_types: dict[str, str]
        transfer_counts: dict[str, int]

        def __init__(self):
            self.pages = {}
            self.token_types = {}
            self.transfer_counts = {}

        def store(self, token_address: str, holder: str, token_id: str, amount: int):
            key = (token_address, holder, token_id)
            self.pages[key] = self.pages.get(key, 0) + amount

        def store_transfer(self, transfer: IDXTokenTransfer):
            token_id = holder_token_id(transfer.token_id)
            self.token_types.setdefault(transfer.token_address, transfer.token_type)
            self.transfer_counts[transfer.token_address] = (
                self.transfer_counts.get(transfer.token_address, 0) + 1
            )
            # Mint and burn do not change the balance of the zero address
            if transfer.from_address != ZERO_ADDRESS:
                self.store(
                    transfer.token_address,
                    transfer.from_address,
                    token_id,
                    -transfer.value,
                )
            if transfer.to_address != ZERO_ADDRESS:
                self.store(
                    transfer.token_address,
                    transfer.to_address,
                    token_id,
                    +transfer.value,
                )

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def apply_block(
        self,
        block: IDXBlock,
        transactions: list[IDXTransaction],
        token_transfers: list[IDXTokenTransfer],
        balances: dict[str, int] | None = None,
        contract_flags: dict[str, bool] | None = None,
    ):
        """Add the contribution of a block to the aggregates

        :param block: block
        :param transactions: transactions in the block
        :param token_transfers: token transfers in the block
        :param balances: native balances at this block
        :param contract_flags: whether each recipient holds code at this block
        """
        await self.__aggregate(
            +1, block, transactions, token_transfers, balances, contract_flags
        )

    async def revert_block(
        self,
        block: IDXBlock,
        transactions: list[IDXTransaction],
        token_transfers: list[IDXTokenTransfer],
        balances: dict[str, int] | None = None,
    ):
        """Remove the contribution of a stored block from the aggregates

        The block and its children must still be stored when this is called.

        :param block: block
        :param transactions: transactions in the block
        :param token_transfers: token transfers in the block
        :param balances: native balances at the block the chain is rewound to
        """
        await self.__aggregate(-1, block, transactions, token_transfers, balances)

    async def __aggregate(
        self,
        sign: int,
        block: IDXBlock,
        transactions: list[IDXTransaction],
        token_transfers: list[IDXTokenTransfer],
        balances: dict[str, int] | None,
        contract_flags: dict[str, bool] | None = None,
    ):
        address_book = self.AddressBook()
        for tx in transactions:
            address_book.store_transaction(tx)
        balance_book = self.BalanceBook()
        for transfer in token_transfers:
            balance_book.store_transfer(transfer)

        address_delta = await self.__update_addresses(
            sign, block, address_book, balances or {}, contract_flags or {}
        )
        await self.__update_tokens(sign, block, balance_book)
        await self.__update_daily_stats(sign, block, transactions, token_transfers)
        await self.__update_network_stats(
            sign, block, transactions, token_transfers, address_delta
        )
        await self.db_session.flush()

    async def __update_addresses(
        self,
        sign: int,
        block: IDXBlock,
        address_book: AddressBook,
        balances: dict[str, int],
        contract_flags: dict[str, bool],
    ) -> int:
        """Update address activity

        :return: change in the number of stored addresses
        """
        address_delta = 0
        for address, page in address_book.pages.items():
            _address: IDXAddress | None = await self.db_session.get(
                IDXAddress, address
            )
            if sign > 0:
                if _address is None:
                    _address = IDXAddress()
                    _address.address = address
                    _address.balance = 0
                    _address.transaction_count = 0
                    _address.sent_count = 0
                    _address.received_count = 0
                    _address.is_contract = False
                    _address.first_seen = block.timestamp
                    self.db_session.add(_address)
                    address_delta += 1
                _address.transaction_count += page.transaction_count
                _address.sent_count += page.sent_count
                _address.received_count += page.received_count
                _address.last_seen = max(_address.last_seen or 0, block.timestamp)
                if page.created_contract or contract_flags.get(address, False):
                    _address.is_contract = True
                if address in balances:
                    _address.balance = balances[address]
            else:
                if _address is None:
                    LOG.warning(f"Address to revert is not stored: address={address}")
                    continue
                _address.transaction_count -= page.transaction_count
                _address.sent_count -= page.sent_count
                _address.received_count -= page.received_count
                if page.created_contract:
                    _address.is_contract = False
                if _address.transaction_count <= 0:
                    await self.db_session.delete(_address)
                    address_delta -= 1
                    continue
                _address.last_seen = await self.__get_last_seen(address, block.number)
                if address in balances:
                    _address.balance = balances[address]
        return address_delta

    async def __get_last_seen(self, address: str, before_block: int) -> int | None:
        return await self.db_session.scalar(
            select(func.max(IDXTransaction.timestamp)).where(
                and_(
                    IDXTransaction.block_number < before_block,
                    or_(
                        IDXTransaction.from_address == address,
                        IDXTransaction.to_address == address,
                        IDXTransaction.contract_address == address,
                    ),
                )
            )
        )

    async def __update_tokens(
        self, sign: int, block: IDXBlock, balance_book: BalanceBook
    ):
        # Token rows
        tokens: dict[str, IDXToken] = {}
        for token_address, transfer_count in balance_book.transfer_counts.items():
            _token: IDXToken | None = await self.db_session.get(
                IDXToken, token_address
            )
            if _token is None:
                if sign < 0:
                    LOG.warning(f"Token to revert is not stored: token={token_address}")
                    continue
                _token = IDXToken()
                _token.address = token_address
                _token.token_type = balance_book.token_types[token_address]
                _token.holder_count = 0
                _token.transfer_count = 0
                _token.first_seen_block = block.number
                _token.metadata_fetched = False
                self.db_session.add(_token)
            _token.transfer_count += sign * transfer_count
            tokens[token_address] = _token

        # Holder balances
        holder_count_changed: set[str] = set()
        for (token_address, holder, token_id), amount in balance_book.pages.items():
            if amount == 0:
                continue
            _holder: IDXTokenHolder | None = await self.db_session.get(
                IDXTokenHolder, (token_address, holder, token_id)
            )
            before = _holder.balance if _holder is not None else 0
            after = before + sign * amount
            if after < 0:
                LOG.warning(
                    f"Negative token balance: token={token_address}, holder={holder}, token_id={token_id}, balance={after}"
                )
                after = await self.__replay_balance(
                    token_address,
                    holder,
                    token_id,
                    block.number if sign > 0 else block.number - 1,
                )
                if after < 0:
                    LOG.error(
                        f"Token balance is still negative after replaying transfers: token={token_address}, holder={holder}, token_id={token_id}, balance={after}"
                    )

            if after == 0:
                if _holder is not None:
                    await self.db_session.delete(_holder)
            else:
                if _holder is None:
                    _holder = IDXTokenHolder()
                    _holder.token_address = token_address
                    _holder.holder_address = holder
                    _holder.token_id = token_id
                    _holder.token_type = balance_book.token_types[token_address]
                    self.db_session.add(_holder)
                _holder.balance = after
                if sign > 0:
                    _holder.last_updated_block = block.number
                else:
                    _holder.last_updated_block = await self.__get_last_transfer_block(
                        token_address, holder, token_id, block.number
                    )

            if (before > 0) != (after > 0):
                holder_count_changed.add(token_address)

        await self.db_session.flush()
        for token_address in holder_count_changed:
            _token = tokens.get(token_address)
            if _token is None:
                continue
            _token.holder_count = await self.db_session.scalar(
                select(
                    func.count(func.distinct(IDXTokenHolder.holder_address))
                ).where(
                    and_(
                        IDXTokenHolder.token_address == token_address,
                        IDXTokenHolder.balance > 0,
                    )
                )
            )

        # Tokens without transfers are removed
        if sign < 0:
            for token_address, _token in tokens.items():
                if _token.transfer_count <= 0:
                    await self.db_session.execute(
                        delete(IDXTokenHolder).where(
                            IDXTokenHolder.token_address == token_address
                        )
                    )
                    await self.db_session.delete(_token)

    async def __replay_balance(
        self, token_address: str, holder: str, token_id: str, to_block: int
    ) -> int:
        """Recompute a balance from stored transfers up to to_block"""
        token_id_cond = (
            IDXTokenTransfer.token_id.is_(None)
            if token_id == ""
            else IDXTokenTransfer.token_id == int(token_id)
        )
        received = await self.db_session.scalar(
            select(func.coalesce(func.sum(IDXTokenTransfer.value), 0)).where(
                and_(
                    IDXTokenTransfer.token_address == token_address,
                    IDXTokenTransfer.to_address == holder,
                    IDXTokenTransfer.block_number <= to_block,
                    token_id_cond,
                )
            )
        )
        sent = await self.db_session.scalar(
            select(func.coalesce(func.sum(IDXTokenTransfer.value), 0)).where(
                and_(
                    IDXTokenTransfer.token_address == token_address,
                    IDXTokenTransfer.from_address == holder,
                    IDXTokenTransfer.block_number <= to_block,
                    token_id_cond,
                )
            )
        )
        return int(received) - int(sent)

    async def __get_last_transfer_block(
        self, token_address: str, holder: str, token_id: str, before_block: int
    ) -> int | None:
        token_id_cond = (
            IDXTokenTransfer.token_id.is_(None)
            if token_id == ""
            else IDXTokenTransfer.token_id == int(token_id)
        )
        return await self.db_session.scalar(
            select(func.max(IDXTokenTransfer.block_number)).where(
                and_(
                    IDXTokenTransfer.token_address == token_address,
                    or_(
                        IDXTokenTransfer.from_address == holder,
                        IDXTokenTransfer.to_address == holder,
                    ),
                    IDXTokenTransfer.block_number < before_block,
                    token_id_cond,
                )
            )
        )

    async def __update_daily_stats(
        self,
        sign: int,
        block: IDXBlock,
        transactions: list[IDXTransaction],
        token_transfers: list[IDXTokenTransfer],
    ):
        stats_date = datetime.fromtimestamp(block.timestamp, UTC).date()
        _stats: IDXDailyStats | None = await self.db_session.get(
            IDXDailyStats, stats_date
        )
        if _stats is None:
            if sign < 0:
                LOG.warning(f"Daily stats to revert is not stored: date={stats_date}")
                return
            _stats = IDXDailyStats()
            _stats.date = stats_date
            _stats.block_count = 0
            _stats.transaction_count = 0
            _stats.token_transfer_count = 0
            _stats.gas_used = 0
            _stats.total_value = 0
            self.db_session.add(_stats)

        _stats.block_count += sign
        _stats.transaction_count += sign * len(transactions)
        _stats.token_transfer_count += sign * len(token_transfers)
        _stats.gas_used += sign * (block.gas_used or 0)
        _stats.total_value += sign * sum(tx.value for tx in transactions)

        if _stats.block_count <= 0:
            await self.db_session.delete(_stats)

    async def __update_network_stats(
        self,
        sign: int,
        block: IDXBlock,
        transactions: list[IDXTransaction],
        token_transfers: list[IDXTokenTransfer],
        address_delta: int,
    ):
        _stats: IDXNetworkStats | None = await self.db_session.get(
            IDXNetworkStats, IDXNetworkStats.SINGLETON_ID
        )
        if _stats is None:
            _stats = IDXNetworkStats()
            _stats.id = IDXNetworkStats.SINGLETON_ID
            _stats.total_blocks = 0
            _stats.total_transactions = 0
            _stats.total_addresses = 0
            _stats.total_token_transfers = 0
            self.db_session.add(_stats)

        _stats.total_blocks += sign
        _stats.total_transactions += sign * len(transactions)
        _stats.total_token_transfers += sign * len(token_transfers)
        _stats.total_addresses += address_delta

        if sign > 0:
            _stats.latest_block = block.number
            _stats.latest_block_hash = block.hash
            _stats.latest_block_timestamp = block.timestamp
        else:
            parent: IDXBlock | None = await self.db_session.get(
                IDXBlock, block.number - 1
            )
            if parent is not None:
                _stats.latest_block = parent.number
                _stats.latest_block_hash = parent.hash
                _stats.latest_block_timestamp = parent.timestamp
            else:
                _stats.latest_block = None
                _stats.latest_block_hash = None
                _stats.latest_block_timestamp = None
