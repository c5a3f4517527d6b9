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

from datetime import date as datetime_date
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field, NonNegativeInt, RootModel

from app.model.db import TokenType

from .base import BasePaginationQuery, HexStr, ResultSet, SortOrder, Uint256Str


############################
# COMMON
############################
class Block(BaseModel):
    number: NonNegativeInt = Field(description="Block number")
    hash: HexStr = Field(description="Block hash")
    parent_hash: HexStr
    timestamp: int = Field(description="Unix timestamp")
    miner: Optional[str] = Field(...)
    gas_used: int
    gas_limit: int
    base_fee_per_gas: Optional[Uint256Str] = Field(...)
    transaction_count: NonNegativeInt
    size: Optional[int] = Field(...)


class Transaction(BaseModel):
    hash: HexStr = Field(description="Transaction hash")
    block_number: NonNegativeInt
    block_hash: HexStr
    transaction_index: NonNegativeInt
    from_address: str
    to_address: Optional[str] = Field(...)
    contract_address: Optional[str] = Field(
        ..., description="Created contract (contract creation only)"
    )
    value: Uint256Str
    gas: Optional[int] = Field(...)
    gas_price: Optional[Uint256Str] = Field(...)
    gas_used: Optional[int] = Field(...)
    effective_gas_price: Optional[Uint256Str] = Field(...)
    nonce: Optional[int] = Field(...)
    status: int = Field(description="1: success, 0: failure, -1: unknown")
    timestamp: int
    method_id: Optional[str] = Field(...)
    method_name: Optional[str] = Field(...)


class TransactionLog(BaseModel):
    log_index: NonNegativeInt
    address: str = Field(description="Emitting contract")
    topics: list[str]
    data: Optional[HexStr] = Field(...)


class TokenTransfer(BaseModel):
    transaction_hash: str
    log_index: NonNegativeInt
    batch_index: NonNegativeInt
    block_number: NonNegativeInt
    timestamp: int
    token_address: str
    token_type: str
    from_address: str
    to_address: str
    value: Uint256Str
    token_id: Optional[Uint256Str] = Field(...)


class InternalTransaction(BaseModel):
    trace_address: str
    type: str
    call_type: Optional[str] = Field(...)
    from_address: str
    to_address: Optional[str] = Field(...)
    value: Uint256Str
    gas_used: Optional[int] = Field(...)
    error: Optional[str] = Field(...)


class AddressInternalTransaction(InternalTransaction):
    transaction_hash: str
    block_number: NonNegativeInt


class TransactionDetail(Transaction):
    input: Optional[HexStr] = Field(...)
    logs: list[TransactionLog]
    token_transfers: list[TokenTransfer]
    internal_transactions: list[InternalTransaction]


class Address(BaseModel):
    address: str
    balance: Uint256Str
    transaction_count: NonNegativeInt
    sent_count: NonNegativeInt
    received_count: NonNegativeInt
    is_contract: bool
    first_seen: Optional[int] = Field(...)
    last_seen: Optional[int] = Field(...)


class Token(BaseModel):
    address: str
    token_type: str
    name: Optional[str] = Field(...)
    symbol: Optional[str] = Field(...)
    decimals: Optional[int] = Field(...)
    total_supply: Optional[Uint256Str] = Field(...)
    holder_count: NonNegativeInt
    transfer_count: NonNegativeInt
    first_seen_block: Optional[int] = Field(...)


class TokenHolder(BaseModel):
    holder_address: str
    token_id: Optional[Uint256Str] = Field(..., description="null for ERC20")
    balance: Uint256Str


class TokenHolding(BaseModel):
    token_address: str
    token_type: str
    token_id: Optional[Uint256Str] = Field(..., description="null for ERC20")
    balance: Uint256Str
    last_updated_block: Optional[int] = Field(
        ..., description="Block of the last balance change"
    )


class DailyStats(BaseModel):
    date: datetime_date
    block_count: NonNegativeInt
    transaction_count: NonNegativeInt
    token_transfer_count: NonNegativeInt
    gas_used: Uint256Str
    total_value: Uint256Str


class NetworkStats(BaseModel):
    latest_block: Optional[int] = Field(...)
    latest_block_hash: Optional[str] = Field(...)
    latest_block_timestamp: Optional[int] = Field(...)
    total_blocks: NonNegativeInt
    total_transactions: NonNegativeInt
    total_addresses: NonNegativeInt
    total_token_transfers: NonNegativeInt


class IndexerStreamStatus(BaseModel):
    stream: str
    last_processed_block: Optional[int] = Field(...)
    last_processed_hash: Optional[str] = Field(...)
    status: str
    is_paused: bool
    last_error: Optional[str] = Field(...)
    heartbeat: Optional[str] = Field(..., description="Last heartbeat (UTC)")
    lag: Optional[int] = Field(
        ..., description="Blocks behind the latest indexed block"
    )


############################
# REQUEST
############################
class ListBlocksQuery(BasePaginationQuery):
    from_block_number: Optional[NonNegativeInt] = Field(None)
    to_block_number: Optional[NonNegativeInt] = Field(None)
    sort_order: Optional[SortOrder] = Field(
        SortOrder.DESC, description=SortOrder.__doc__
    )


class ListTransactionsQuery(BasePaginationQuery):
    pass


class ListAddressTransactionsQuery(BasePaginationQuery):
    pass


class ListAddressInternalTransactionsQuery(BasePaginationQuery):
    pass


class ListTokenHoldingsQuery(BasePaginationQuery):
    pass


class ListTokensQuery(BasePaginationQuery):
    token_type: Optional[TokenType] = Field(None, description="Token standard")


class ListTokenTransfersQuery(BasePaginationQuery):
    pass


class ListTokenHoldersQuery(BasePaginationQuery):
    pass


class SearchQuery(BaseModel):
    q: str = Field(
        ...,
        min_length=1,
        description="Block number, block hash, transaction hash or address",
    )


class ListDailyStatsQuery(BaseModel):
    from_date: Optional[datetime_date] = Field(
        None, description="UTC date (YYYY-MM-DD)"
    )
    to_date: Optional[datetime_date] = Field(
        None, description="UTC date (YYYY-MM-DD)"
    )


############################
# RESPONSE
############################
class BlockResponse(RootModel[Block]):
    pass


class BlockListResponse(BaseModel):
    result_set: ResultSet
    blocks: list[Block]


class TransactionResponse(RootModel[TransactionDetail]):
    pass


class TransactionListResponse(BaseModel):
    result_set: ResultSet
    transactions: list[Transaction]


class AddressResponse(RootModel[Address]):
    pass


class AddressInternalTransactionListResponse(BaseModel):
    result_set: ResultSet
    internal_transactions: list[AddressInternalTransaction]


class TokenHoldingListResponse(BaseModel):
    result_set: ResultSet
    token_holdings: list[TokenHolding]


class TokenResponse(RootModel[Token]):
    pass


class TokenListResponse(BaseModel):
    result_set: ResultSet
    tokens: list[Token]


class TokenTransferListResponse(BaseModel):
    result_set: ResultSet
    token_transfers: list[TokenTransfer]


class TokenHolderListResponse(BaseModel):
    result_set: ResultSet
    token_holders: list[TokenHolder]


class DailyStatsListResponse(BaseModel):
    daily_stats: list[DailyStats]


class NetworkStatsResponse(RootModel[NetworkStats]):
    pass


class SearchResultType(StrEnum):
    BLOCK = "block"
    TRANSACTION = "transaction"
    ADDRESS = "address"


class SearchResponse(BaseModel):
    type: SearchResultType
    block: Optional[Block] = Field(None)
    transaction: Optional[Transaction] = Field(None)
    address: Optional[Address] = Field(None)


class IndexerStatusResponse(BaseModel):
    latest_block: Optional[int] = Field(
        ..., description="Latest indexed block of the main stream"
    )
    streams: list[IndexerStreamStatus]
