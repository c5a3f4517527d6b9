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

from datetime import date
from typing import Sequence

from sqlalchemy import Select, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from web3 import Web3

from app.exceptions import InvalidParameterError, ResponseLimitExceededError
from app.model.db import (
    IDXAddress,
    IDXBlock,
    IDXDailyStats,
    IDXInternalTransaction,
    IDXNetworkStats,
    IDXToken,
    IDXTokenHolder,
    IDXTokenTransfer,
    IDXTransaction,
    IDXTransactionLog,
    IndexerCheckpoint,
    IndexerState,
    IndexerStatus,
    IndexerStream,
)
from config import EXPLORER_RESPONSE_LIMIT

# Read-only queries over the indexed chain data.
# Addresses and hashes are stored in lower case, so every identifier given by
# a client is lower-cased before searching.

# Upper bound of BIGINT columns (block numbers)
BIGINT_MAX = 2**63 - 1


class PaginatedResult:
    """Rows of one page and the number of rows matching the search"""

    count: int
    rows: Sequence

    def __init__(self, count: int, rows: Sequence):
        self.count = count
        self.rows = rows


def validate_address(address: str) -> str:
    """Lower-cased address

    :raises InvalidParameterError: not an address
    """
    if not Web3.is_address(address):
        raise InvalidParameterError("invalid ethereum address")
    return address.lower()


def validate_hash(value: str) -> str:
    """Lower-cased 32-byte hash

    :raises InvalidParameterError: not a 0x-prefixed 32-byte hex string
    """
    if len(value) != 66 or not value.startswith("0x"):
        raise InvalidParameterError("invalid hash")
    try:
        int(value[2:], 16)
    except ValueError:
        raise InvalidParameterError("invalid hash")
    return value.lower()


async def paginate(
    db: AsyncSession, stmt: Select, offset: int | None, limit: int | None
) -> PaginatedResult:
    count = await db.scalar(select(func.count()).select_from(stmt.subquery()))

    if limit is not None:
        stmt = stmt.limit(limit)
    if offset is not None:
        stmt = stmt.offset(offset)

    res_count = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    if res_count > EXPLORER_RESPONSE_LIMIT:
        raise ResponseLimitExceededError("Search results exceed the limit")

    rows = (await db.scalars(stmt)).all()
    return PaginatedResult(count=count, rows=rows)


########################################
# Block
########################################
async def get_block_by_number(db: AsyncSession, block_number: int) -> IDXBlock | None:
    if block_number > BIGINT_MAX:
        return None
    return (
        await db.scalars(
            select(IDXBlock).where(IDXBlock.number == block_number).limit(1)
        )
    ).first()


async def get_block_by_hash(db: AsyncSession, block_hash: str) -> IDXBlock | None:
    return (
        await db.scalars(
            select(IDXBlock).where(IDXBlock.hash == block_hash.lower()).limit(1)
        )
    ).first()


async def list_blocks(
    db: AsyncSession,
    offset: int | None = None,
    limit: int | None = None,
    from_block_number: int | None = None,
    to_block_number: int | None = None,
    descending: bool = True,
) -> PaginatedResult:
    stmt = select(IDXBlock)
    if from_block_number is not None:
        stmt = stmt.where(IDXBlock.number >= from_block_number)
    if to_block_number is not None:
        stmt = stmt.where(IDXBlock.number <= to_block_number)

    if descending:
        stmt = stmt.order_by(desc(IDXBlock.number))
    else:
        stmt = stmt.order_by(IDXBlock.number)
    return await paginate(db, stmt, offset, limit)


########################################
# Transaction
########################################
async def get_transaction_by_hash(
    db: AsyncSession, tx_hash: str
) -> IDXTransaction | None:
    return (
        await db.scalars(
            select(IDXTransaction)
            .where(IDXTransaction.hash == tx_hash.lower())
            .limit(1)
        )
    ).first()


async def list_transactions(
    db: AsyncSession,
    offset: int | None = None,
    limit: int | None = None,
) -> PaginatedResult:
    """Latest transactions, newest block first"""
    stmt = select(IDXTransaction).order_by(
        desc(IDXTransaction.block_number), desc(IDXTransaction.transaction_index)
    )
    return await paginate(db, stmt, offset, limit)


async def list_logs_by_transaction(
    db: AsyncSession, tx_hash: str
) -> Sequence[IDXTransactionLog]:
    return (
        await db.scalars(
            select(IDXTransactionLog)
            .where(IDXTransactionLog.transaction_hash == tx_hash.lower())
            .order_by(IDXTransactionLog.log_index)
        )
    ).all()


async def list_token_transfers_by_transaction(
    db: AsyncSession, tx_hash: str
) -> Sequence[IDXTokenTransfer]:
    return (
        await db.scalars(
            select(IDXTokenTransfer)
            .where(IDXTokenTransfer.transaction_hash == tx_hash.lower())
            .order_by(IDXTokenTransfer.log_index, IDXTokenTransfer.batch_index)
        )
    ).all()


async def list_internal_transactions_by_transaction(
    db: AsyncSession, tx_hash: str
) -> Sequence[IDXInternalTransaction]:
    return (
        await db.scalars(
            select(IDXInternalTransaction)
            .where(IDXInternalTransaction.transaction_hash == tx_hash.lower())
            .order_by(IDXInternalTransaction.trace_address)
        )
    ).all()


########################################
# Address
########################################
async def get_address(db: AsyncSession, address: str) -> IDXAddress | None:
    return (
        await db.scalars(
            select(IDXAddress).where(IDXAddress.address == address.lower()).limit(1)
        )
    ).first()


async def list_transactions_by_address(
    db: AsyncSession,
    address: str,
    offset: int | None = None,
    limit: int | None = None,
) -> PaginatedResult:
    """Transactions sent, received or creating a contract, newest block first"""
    address = address.lower()
    stmt = (
        select(IDXTransaction)
        .where(
            (IDXTransaction.from_address == address)
            | (IDXTransaction.to_address == address)
            | (IDXTransaction.contract_address == address)
        )
        .order_by(
            desc(IDXTransaction.block_number), desc(IDXTransaction.transaction_index)
        )
    )
    return await paginate(db, stmt, offset, limit)


async def list_internal_transactions_by_address(
    db: AsyncSession,
    address: str,
    offset: int | None = None,
    limit: int | None = None,
) -> PaginatedResult:
    """Internal transactions sent or received by the address, newest block first"""
    address = address.lower()
    stmt = (
        select(IDXInternalTransaction)
        .where(
            (IDXInternalTransaction.from_address == address)
            | (IDXInternalTransaction.to_address == address)
        )
        .order_by(
            desc(IDXInternalTransaction.block_number),
            IDXInternalTransaction.transaction_hash,
            IDXInternalTransaction.trace_address,
        )
    )
    return await paginate(db, stmt, offset, limit)


async def list_token_holdings_by_address(
    db: AsyncSession,
    address: str,
    offset: int | None = None,
    limit: int | None = None,
) -> PaginatedResult:
    """Tokens held by the address with positive balance, largest balance first"""
    stmt = (
        select(IDXTokenHolder)
        .where(
            IDXTokenHolder.holder_address == address.lower(),
            IDXTokenHolder.balance > 0,
        )
        .order_by(
            desc(IDXTokenHolder.balance),
            IDXTokenHolder.token_address,
            IDXTokenHolder.token_id,
        )
    )
    return await paginate(db, stmt, offset, limit)


########################################
# Token
########################################
async def get_token(db: AsyncSession, token_address: str) -> IDXToken | None:
    return (
        await db.scalars(
            select(IDXToken).where(IDXToken.address == token_address.lower()).limit(1)
        )
    ).first()


async def count_tokens(db: AsyncSession) -> int:
    return await db.scalar(select(func.count()).select_from(IDXToken))


async def list_tokens(
    db: AsyncSession,
    offset: int | None = None,
    limit: int | None = None,
    token_type: str | None = None,
) -> PaginatedResult:
    """Tokens, most transferred first"""
    stmt = select(IDXToken)
    if token_type is not None:
        stmt = stmt.where(IDXToken.token_type == token_type)
    stmt = stmt.order_by(desc(IDXToken.transfer_count), IDXToken.address)
    return await paginate(db, stmt, offset, limit)


async def list_token_transfers_by_token(
    db: AsyncSession,
    token_address: str,
    offset: int | None = None,
    limit: int | None = None,
) -> PaginatedResult:
    stmt = (
        select(IDXTokenTransfer)
        .where(IDXTokenTransfer.token_address == token_address.lower())
        .order_by(
            desc(IDXTokenTransfer.block_number),
            desc(IDXTokenTransfer.log_index),
            desc(IDXTokenTransfer.batch_index),
        )
    )
    return await paginate(db, stmt, offset, limit)


async def list_token_holders_by_token(
    db: AsyncSession,
    token_address: str,
    offset: int | None = None,
    limit: int | None = None,
) -> PaginatedResult:
    """Holders with positive balance, largest balance first"""
    stmt = (
        select(IDXTokenHolder)
        .where(
            IDXTokenHolder.token_address == token_address.lower(),
            IDXTokenHolder.balance > 0,
        )
        .order_by(
            desc(IDXTokenHolder.balance),
            IDXTokenHolder.holder_address,
            IDXTokenHolder.token_id,
        )
    )
    return await paginate(db, stmt, offset, limit)


########################################
# Search
########################################
async def search(db: AsyncSession, query: str) -> tuple[str, object] | None:
    """Find a block, transaction or address by a free-text query

    - decimal number: block number
    - 32-byte hash: block hash, then transaction hash
    - address: stored address, or None as the row when nothing is indexed yet

    :return: (result type, row), None if nothing matches
    """
    query = query.strip()
    if query.isdecimal():
        block = await get_block_by_number(db, int(query))
        if block is not None:
            return "block", block
        return None

    if len(query) == 66 and query.startswith("0x"):
        try:
            value = validate_hash(query)
        except InvalidParameterError:
            return None
        block = await get_block_by_hash(db, value)
        if block is not None:
            return "block", block
        tx = await get_transaction_by_hash(db, value)
        if tx is not None:
            return "transaction", tx
        return None

    if query.startswith("0x") and Web3.is_address(query):
        return "address", await get_address(db, query)
    return None


########################################
# Stats
########################################
async def list_daily_stats(
    db: AsyncSession, from_date: date | None = None, to_date: date | None = None
) -> Sequence[IDXDailyStats]:
    stmt = select(IDXDailyStats)
    if from_date is not None:
        stmt = stmt.where(IDXDailyStats.date >= from_date)
    if to_date is not None:
        stmt = stmt.where(IDXDailyStats.date <= to_date)
    stmt = stmt.order_by(IDXDailyStats.date)

    res_count = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    if res_count > EXPLORER_RESPONSE_LIMIT:
        raise ResponseLimitExceededError("Search results exceed the limit")
    return (await db.scalars(stmt)).all()


async def get_network_stats(db: AsyncSession) -> IDXNetworkStats | None:
    return (
        await db.scalars(
            select(IDXNetworkStats)
            .where(IDXNetworkStats.id == IDXNetworkStats.SINGLETON_ID)
            .limit(1)
        )
    ).first()


########################################
# Indexer
########################################
async def get_indexer_status(db: AsyncSession) -> dict:
    """Checkpoint and state of every stream

    Clients compare `latest_block` with the chain head to detect staleness.
    """
    checkpoints: dict[str, IndexerCheckpoint] = {
        checkpoint.stream: checkpoint
        for checkpoint in (await db.scalars(select(IndexerCheckpoint))).all()
    }
    states: dict[str, IndexerState] = {
        state.stream: state for state in (await db.scalars(select(IndexerState))).all()
    }
    network_stats = await get_network_stats(db)
    latest_block = network_stats.latest_block if network_stats is not None else None

    streams = []
    for stream in IndexerStream:
        checkpoint = checkpoints.get(stream.value)
        state = states.get(stream.value)
        last_processed_block = (
            checkpoint.last_processed_block if checkpoint is not None else None
        )
        lag = None
        if latest_block is not None and last_processed_block is not None:
            lag = max(latest_block - last_processed_block, 0)
        streams.append(
            {
                "stream": stream.value,
                "last_processed_block": last_processed_block,
                "last_processed_hash": (
                    checkpoint.last_processed_hash if checkpoint is not None else None
                ),
                "status": (
                    state.status if state is not None else IndexerStatus.STOPPED.value
                ),
                "is_paused": state.is_paused if state is not None else False,
                "last_error": state.last_error if state is not None else None,
                "heartbeat": (
                    state.heartbeat.strftime("%Y-%m-%d %H:%M:%S")
                    if state is not None and state.heartbeat is not None
                    else None
                ),
                "lag": lag,
            }
        )
    return {"latest_block": latest_block, "streams": streams}
