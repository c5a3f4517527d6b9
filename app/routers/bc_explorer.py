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

from fastapi import APIRouter, Depends, Path

from app import log
from app.database import DBAsyncSession
from app.exceptions import (
    InvalidParameterError,
    NotFoundError,
    ResponseLimitExceededError,
)
from app.model.db import (
    IDXAddress,
    IDXBlock,
    IDXInternalTransaction,
    IDXNetworkStats,
    IDXToken,
    IDXTokenTransfer,
    IDXTransaction,
    IDXTransactionLog,
)
from app.model.schema import (
    AddressInternalTransactionListResponse,
    AddressResponse,
    BlockListResponse,
    BlockResponse,
    DailyStatsListResponse,
    IndexerStatusResponse,
    ListAddressInternalTransactionsQuery,
    ListAddressTransactionsQuery,
    ListBlocksQuery,
    ListDailyStatsQuery,
    ListTokenHoldersQuery,
    ListTokenHoldingsQuery,
    ListTokensQuery,
    ListTokenTransfersQuery,
    ListTransactionsQuery,
    NetworkStatsResponse,
    SearchQuery,
    SearchResponse,
    SearchResultType,
    SortOrder,
    TokenHolderListResponse,
    TokenHoldingListResponse,
    TokenListResponse,
    TokenResponse,
    TokenTransferListResponse,
    TransactionListResponse,
    TransactionResponse,
)
from app.utils import explorer_utils
from app.utils.docs_utils import get_routers_responses
from app.utils.fastapi_utils import json_response

LOG = log.get_logger()

router = APIRouter(prefix="/blockchain_explorer", tags=["blockchain_explorer"])


def _str(value: int | None) -> str | None:
    return str(value) if value is not None else None


def _block(block: IDXBlock) -> dict:
    return {
        "number": block.number,
        "hash": block.hash,
        "parent_hash": block.parent_hash,
        "timestamp": block.timestamp,
        "miner": block.miner,
        "gas_used": block.gas_used,
        "gas_limit": block.gas_limit,
        "base_fee_per_gas": _str(block.base_fee_per_gas),
        "transaction_count": block.transaction_count,
        "size": block.size,
    }


def _transaction(tx: IDXTransaction) -> dict:
    return {
        "hash": tx.hash,
        "block_number": tx.block_number,
        "block_hash": tx.block_hash,
        "transaction_index": tx.transaction_index,
        "from_address": tx.from_address,
        "to_address": tx.to_address,
        "contract_address": tx.contract_address,
        "value": str(tx.value),
        "gas": tx.gas,
        "gas_price": _str(tx.gas_price),
        "gas_used": tx.gas_used,
        "effective_gas_price": _str(tx.effective_gas_price),
        "nonce": tx.nonce,
        "status": tx.status,
        "timestamp": tx.timestamp,
        "method_id": tx.method_id,
        "method_name": tx.method_name,
    }


def _log(log_data: IDXTransactionLog) -> dict:
    return {
        "log_index": log_data.log_index,
        "address": log_data.address,
        "topics": log_data.topics,
        "data": log_data.data,
    }


def _token_transfer(transfer: IDXTokenTransfer) -> dict:
    return {
        "transaction_hash": transfer.transaction_hash,
        "log_index": transfer.log_index,
        "batch_index": transfer.batch_index,
        "block_number": transfer.block_number,
        "timestamp": transfer.timestamp,
        "token_address": transfer.token_address,
        "token_type": transfer.token_type,
        "from_address": transfer.from_address,
        "to_address": transfer.to_address,
        "value": str(transfer.value),
        "token_id": _str(transfer.token_id),
    }


def _internal_transaction(internal_tx: IDXInternalTransaction) -> dict:
    return {
        "trace_address": internal_tx.trace_address,
        "type": internal_tx.type,
        "call_type": internal_tx.call_type,
        "from_address": internal_tx.from_address,
        "to_address": internal_tx.to_address,
        "value": str(internal_tx.value),
        "gas_used": internal_tx.gas_used,
        "error": internal_tx.error,
    }


def _address(address: IDXAddress) -> dict:
    return {
        "address": address.address,
        "balance": str(address.balance),
        "transaction_count": address.transaction_count,
        "sent_count": address.sent_count,
        "received_count": address.received_count,
        "is_contract": address.is_contract,
        "first_seen": address.first_seen,
        "last_seen": address.last_seen,
    }


def _token(token: IDXToken) -> dict:
    return {
        "address": token.address,
        "token_type": token.token_type,
        "name": token.name,
        "symbol": token.symbol,
        "decimals": token.decimals,
        "total_supply": _str(token.total_supply),
        "holder_count": token.holder_count,
        "transfer_count": token.transfer_count,
        "first_seen_block": token.first_seen_block,
    }


def _result_set(count: int, offset: int | None, limit: int | None, total: int):
    return {"count": count, "offset": offset, "limit": limit, "total": total}


# ------------------------------
# [BC-Explorer] List blocks
# ------------------------------
@router.get(
    "/blocks",
    summary="List blocks",
    operation_id="ListBlocks",
    response_model=BlockListResponse,
    responses=get_routers_responses(ResponseLimitExceededError),
)
async def list_blocks(
    db: DBAsyncSession,
    request_query: ListBlocksQuery = Depends(),
):
    """
    Returns indexed blocks, newest first by default.
    """
    network_stats = await explorer_utils.get_network_stats(db)
    total = network_stats.total_blocks if network_stats is not None else 0

    result = await explorer_utils.list_blocks(
        db,
        offset=request_query.offset,
        limit=request_query.limit,
        from_block_number=request_query.from_block_number,
        to_block_number=request_query.to_block_number,
        descending=request_query.sort_order != SortOrder.ASC,
    )
    return json_response(
        {
            "result_set": _result_set(
                result.count, request_query.offset, request_query.limit, total
            ),
            "blocks": [_block(block) for block in result.rows],
        }
    )


# ------------------------------
# [BC-Explorer] Retrieve block
# ------------------------------
@router.get(
    "/blocks/{block_id}",
    summary="Retrieve block by number or hash",
    operation_id="GetBlock",
    response_model=BlockResponse,
    responses=get_routers_responses(NotFoundError, InvalidParameterError),
)
async def get_block(
    db: DBAsyncSession,
    block_id: str = Path(description="Block number or block hash"),
):
    """
    Returns the block with the given number or hash.
    """
    if block_id.startswith("0x"):
        block = await explorer_utils.get_block_by_hash(
            db, explorer_utils.validate_hash(block_id)
        )
    elif block_id.isdecimal():
        block = await explorer_utils.get_block_by_number(db, int(block_id))
    else:
        raise InvalidParameterError("block_id must be a block number or block hash")

    if block is None:
        raise NotFoundError("block not found")
    return json_response(_block(block))


# ------------------------------
# [BC-Explorer] List transactions
# ------------------------------
@router.get(
    "/transactions",
    summary="List transactions",
    operation_id="ListTransactions",
    response_model=TransactionListResponse,
    responses=get_routers_responses(ResponseLimitExceededError),
)
async def list_transactions(
    db: DBAsyncSession,
    request_query: ListTransactionsQuery = Depends(),
):
    """
    Returns the latest transactions, newest block first.
    """
    network_stats = await explorer_utils.get_network_stats(db)
    total = network_stats.total_transactions if network_stats is not None else 0

    result = await explorer_utils.list_transactions(
        db, offset=request_query.offset, limit=request_query.limit
    )
    return json_response(
        {
            "result_set": _result_set(
                result.count, request_query.offset, request_query.limit, total
            ),
            "transactions": [_transaction(tx) for tx in result.rows],
        }
    )


# ------------------------------
# [BC-Explorer] Retrieve transaction
# ------------------------------
@router.get(
    "/transactions/{transaction_hash}",
    summary="Retrieve transaction",
    operation_id="GetTransaction",
    response_model=TransactionResponse,
    responses=get_routers_responses(NotFoundError, InvalidParameterError),
)
async def get_transaction(
    db: DBAsyncSession,
    transaction_hash: str = Path(description="Transaction hash"),
):
    """
    Returns the transaction with its logs, token transfers and internal transactions.
    """
    tx_hash = explorer_utils.validate_hash(transaction_hash)
    tx = await explorer_utils.get_transaction_by_hash(db, tx_hash)
    if tx is None:
        raise NotFoundError("transaction not found")

    logs = await explorer_utils.list_logs_by_transaction(db, tx_hash)
    token_transfers = await explorer_utils.list_token_transfers_by_transaction(
        db, tx_hash
    )
    internal_txs = await explorer_utils.list_internal_transactions_by_transaction(
        db, tx_hash
    )
    return json_response(
        {
            **_transaction(tx),
            "input": tx.input,
            "logs": [_log(log_data) for log_data in logs],
            "token_transfers": [_token_transfer(t) for t in token_transfers],
            "internal_transactions": [
                _internal_transaction(t) for t in internal_txs
            ],
        }
    )


# ------------------------------
# [BC-Explorer] Retrieve address
# ------------------------------
@router.get(
    "/addresses/{address}",
    summary="Retrieve address activity",
    operation_id="GetAddress",
    response_model=AddressResponse,
    responses=get_routers_responses(NotFoundError, InvalidParameterError),
)
async def get_address(
    db: DBAsyncSession,
    address: str = Path(description="Account or contract address"),
):
    """
    Returns balance and transaction counts of the address.
    """
    address_row: IDXAddress | None = await explorer_utils.get_address(
        db, explorer_utils.validate_address(address)
    )
    if address_row is None:
        raise NotFoundError("address not found")

    return json_response(_address(address_row))


# ------------------------------
# [BC-Explorer] List transactions of address
# ------------------------------
@router.get(
    "/addresses/{address}/transactions",
    summary="List transactions of address",
    operation_id="ListAddressTransactions",
    response_model=TransactionListResponse,
    responses=get_routers_responses(InvalidParameterError, ResponseLimitExceededError),
)
async def list_address_transactions(
    db: DBAsyncSession,
    address: str = Path(description="Account or contract address"),
    request_query: ListAddressTransactionsQuery = Depends(),
):
    """
    Returns transactions sent or received by the address, newest block first.
    """
    address = explorer_utils.validate_address(address)
    address_row = await explorer_utils.get_address(db, address)
    total = address_row.transaction_count if address_row is not None else 0

    result = await explorer_utils.list_transactions_by_address(
        db, address, offset=request_query.offset, limit=request_query.limit
    )
    return json_response(
        {
            "result_set": _result_set(
                result.count, request_query.offset, request_query.limit, total
            ),
            "transactions": [_transaction(tx) for tx in result.rows],
        }
    )


# ------------------------------
# [BC-Explorer] List internal transactions of address
# ------------------------------
@router.get(
    "/addresses/{address}/internal_transactions",
    summary="List internal transactions of address",
    operation_id="ListAddressInternalTransactions",
    response_model=AddressInternalTransactionListResponse,
    responses=get_routers_responses(InvalidParameterError, ResponseLimitExceededError),
)
async def list_address_internal_transactions(
    db: DBAsyncSession,
    address: str = Path(description="Account or contract address"),
    request_query: ListAddressInternalTransactionsQuery = Depends(),
):
    """
    Returns internal transactions sent or received by the address, newest block first.
    """
    address = explorer_utils.validate_address(address)
    result = await explorer_utils.list_internal_transactions_by_address(
        db, address, offset=request_query.offset, limit=request_query.limit
    )
    return json_response(
        {
            "result_set": _result_set(
                result.count, request_query.offset, request_query.limit, result.count
            ),
            "internal_transactions": [
                {
                    "transaction_hash": internal_tx.transaction_hash,
                    "block_number": internal_tx.block_number,
                    **_internal_transaction(internal_tx),
                }
                for internal_tx in result.rows
            ],
        }
    )


# ------------------------------
# [BC-Explorer] List token holdings of address
# ------------------------------
@router.get(
    "/addresses/{address}/token_holdings",
    summary="List token holdings of address",
    operation_id="ListAddressTokenHoldings",
    response_model=TokenHoldingListResponse,
    responses=get_routers_responses(InvalidParameterError, ResponseLimitExceededError),
)
async def list_address_token_holdings(
    db: DBAsyncSession,
    address: str = Path(description="Account or contract address"),
    request_query: ListTokenHoldingsQuery = Depends(),
):
    """
    Returns tokens held by the address, largest balance first.
    """
    address = explorer_utils.validate_address(address)
    result = await explorer_utils.list_token_holdings_by_address(
        db, address, offset=request_query.offset, limit=request_query.limit
    )

    token_holdings = []
    for holding in result.rows:
        token_holdings.append(
            {
                "token_address": holding.token_address,
                "token_type": holding.token_type,
                "token_id": holding.token_id if holding.token_id != "" else None,
                "balance": str(holding.balance),
                "last_updated_block": holding.last_updated_block,
            }
        )
    return json_response(
        {
            "result_set": _result_set(
                result.count, request_query.offset, request_query.limit, result.count
            ),
            "token_holdings": token_holdings,
        }
    )


# ------------------------------
# [BC-Explorer] List tokens
# ------------------------------
@router.get(
    "/tokens",
    summary="List tokens",
    operation_id="ListTokens",
    response_model=TokenListResponse,
    responses=get_routers_responses(ResponseLimitExceededError),
)
async def list_tokens(
    db: DBAsyncSession,
    request_query: ListTokensQuery = Depends(),
):
    """
    Returns tokens, most transferred first.
    """
    total = await explorer_utils.count_tokens(db)
    result = await explorer_utils.list_tokens(
        db,
        offset=request_query.offset,
        limit=request_query.limit,
        token_type=request_query.token_type,
    )
    return json_response(
        {
            "result_set": _result_set(
                result.count, request_query.offset, request_query.limit, total
            ),
            "tokens": [_token(token) for token in result.rows],
        }
    )


# ------------------------------
# [BC-Explorer] Retrieve token
# ------------------------------
@router.get(
    "/tokens/{token_address}",
    summary="Retrieve token",
    operation_id="GetToken",
    response_model=TokenResponse,
    responses=get_routers_responses(NotFoundError, InvalidParameterError),
)
async def get_token(
    db: DBAsyncSession,
    token_address: str = Path(description="Token address"),
):
    """
    Returns the token standard, metadata and holder count of the token.
    """
    token: IDXToken | None = await explorer_utils.get_token(
        db, explorer_utils.validate_address(token_address)
    )
    if token is None:
        raise NotFoundError("token not found")

    return json_response(_token(token))


# ------------------------------
# [BC-Explorer] List token transfers
# ------------------------------
@router.get(
    "/tokens/{token_address}/transfers",
    summary="List token transfers",
    operation_id="ListTokenTransfers",
    response_model=TokenTransferListResponse,
    responses=get_routers_responses(InvalidParameterError, ResponseLimitExceededError),
)
async def list_token_transfers(
    db: DBAsyncSession,
    token_address: str = Path(description="Token address"),
    request_query: ListTokenTransfersQuery = Depends(),
):
    """
    Returns transfers of the token, newest first.
    """
    token_address = explorer_utils.validate_address(token_address)
    token = await explorer_utils.get_token(db, token_address)
    total = token.transfer_count if token is not None else 0

    result = await explorer_utils.list_token_transfers_by_token(
        db, token_address, offset=request_query.offset, limit=request_query.limit
    )
    return json_response(
        {
            "result_set": _result_set(
                result.count, request_query.offset, request_query.limit, total
            ),
            "token_transfers": [_token_transfer(t) for t in result.rows],
        }
    )


# ------------------------------
# [BC-Explorer] List token holders
# ------------------------------
@router.get(
    "/tokens/{token_address}/holders",
    summary="List token holders",
    operation_id="ListTokenHolders",
    response_model=TokenHolderListResponse,
    responses=get_routers_responses(InvalidParameterError, ResponseLimitExceededError),
)
async def list_token_holders(
    db: DBAsyncSession,
    token_address: str = Path(description="Token address"),
    request_query: ListTokenHoldersQuery = Depends(),
):
    """
    Returns holders of the token, largest balance first.
    """
    token_address = explorer_utils.validate_address(token_address)
    result = await explorer_utils.list_token_holders_by_token(
        db, token_address, offset=request_query.offset, limit=request_query.limit
    )

    token_holders = []
    for holder in result.rows:
        token_holders.append(
            {
                "holder_address": holder.holder_address,
                "token_id": holder.token_id if holder.token_id != "" else None,
                "balance": str(holder.balance),
            }
        )
    return json_response(
        {
            "result_set": _result_set(
                result.count, request_query.offset, request_query.limit, result.count
            ),
            "token_holders": token_holders,
        }
    )


# ------------------------------
# [BC-Explorer] Search
# ------------------------------
@router.get(
    "/search",
    summary="Search block, transaction or address",
    operation_id="Search",
    response_model=SearchResponse,
    responses=get_routers_responses(NotFoundError),
)
async def search(
    db: DBAsyncSession,
    request_query: SearchQuery = Depends(),
):
    """
    Returns the block, transaction or address matching the query.

    - decimal number: block number
    - 32-byte hash: block hash, then transaction hash
    - address: addresses not indexed yet are returned with zero activity
    """
    found = await explorer_utils.search(db, request_query.q)
    if found is None:
        raise NotFoundError("no results found")

    result_type, row = found
    if result_type == SearchResultType.BLOCK:
        return json_response({"type": result_type, "block": _block(row)})
    if result_type == SearchResultType.TRANSACTION:
        return json_response({"type": result_type, "transaction": _transaction(row)})
    if row is None:
        return json_response(
            {
                "type": result_type,
                "address": {
                    "address": request_query.q.strip().lower(),
                    "balance": "0",
                    "transaction_count": 0,
                    "sent_count": 0,
                    "received_count": 0,
                    "is_contract": False,
                    "first_seen": None,
                    "last_seen": None,
                },
            }
        )
    return json_response({"type": result_type, "address": _address(row)})


# ------------------------------
# [BC-Explorer] List daily stats
# ------------------------------
@router.get(
    "/stats/daily",
    summary="List daily stats",
    operation_id="ListDailyStats",
    response_model=DailyStatsListResponse,
    responses=get_routers_responses(ResponseLimitExceededError),
)
async def list_daily_stats(
    db: DBAsyncSession,
    request_query: ListDailyStatsQuery = Depends(),
):
    """
    Returns stats per UTC date in the range, oldest first.
    """
    if (
        request_query.from_date is not None
        and request_query.to_date is not None
        and request_query.from_date > request_query.to_date
    ):
        raise InvalidParameterError("from_date must be before to_date")

    daily_stats = await explorer_utils.list_daily_stats(
        db, from_date=request_query.from_date, to_date=request_query.to_date
    )
    response = []
    for stats in daily_stats:
        response.append(
            {
                "date": stats.date.isoformat(),
                "block_count": stats.block_count,
                "transaction_count": stats.transaction_count,
                "token_transfer_count": stats.token_transfer_count,
                "gas_used": str(stats.gas_used),
                "total_value": str(stats.total_value),
            }
        )
    return json_response({"daily_stats": response})


# ------------------------------
# [BC-Explorer] Retrieve network stats
# ------------------------------
@router.get(
    "/stats/network",
    summary="Retrieve network stats",
    operation_id="GetNetworkStats",
    response_model=NetworkStatsResponse,
)
async def get_network_stats(db: DBAsyncSession):
    """
    Returns totals over every indexed block.
    """
    stats: IDXNetworkStats | None = await explorer_utils.get_network_stats(db)
    if stats is None:
        return json_response(
            {
                "latest_block": None,
                "latest_block_hash": None,
                "latest_block_timestamp": None,
                "total_blocks": 0,
                "total_transactions": 0,
                "total_addresses": 0,
                "total_token_transfers": 0,
            }
        )
    return json_response(
        {
            "latest_block": stats.latest_block,
            "latest_block_hash": stats.latest_block_hash,
            "latest_block_timestamp": stats.latest_block_timestamp,
            "total_blocks": stats.total_blocks,
            "total_transactions": stats.total_transactions,
            "total_addresses": stats.total_addresses,
            "total_token_transfers": stats.total_token_transfers,
        }
    )


# ------------------------------
# [BC-Explorer] Retrieve indexer status
# ------------------------------
@router.get(
    "/indexer/status",
    summary="Retrieve indexer status",
    operation_id="GetIndexerStatus",
    response_model=IndexerStatusResponse,
)
async def get_indexer_status(db: DBAsyncSession):
    """
    Returns the checkpoint and state of each indexing stream.
    """
    return json_response(await explorer_utils.get_indexer_status(db))
