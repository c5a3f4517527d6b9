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

from enum import IntEnum

from sqlalchemy import JSON, BigInteger, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, Uint256


class TransactionStatus(IntEnum):
    """Receipt status"""

    FAILURE = 0
    SUCCESS = 1
    UNKNOWN = -1  # Pre-Byzantium receipt without status


class IDXTransaction(Base):
    """Transaction (INDEX)"""

    __tablename__ = "idx_transaction"

    hash: Mapped[str] = mapped_column(String(66), primary_key=True)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    block_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    transaction_index: Mapped[int] = mapped_column(Integer, nullable=False)
    from_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    # None for contract creation
    to_address: Mapped[str | None] = mapped_column(String(42), index=True)
    # Created contract (contract creation only)
    contract_address: Mapped[str | None] = mapped_column(String(42), index=True)
    value: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)
    gas: Mapped[int | None] = mapped_column(BigInteger)
    gas_price: Mapped[int | None] = mapped_column(Uint256)
    max_fee_per_gas: Mapped[int | None] = mapped_column(Uint256)
    max_priority_fee_per_gas: Mapped[int | None] = mapped_column(Uint256)
    input: Mapped[str | None] = mapped_column(Text)
    nonce: Mapped[int | None] = mapped_column(BigInteger)
    type: Mapped[int | None] = mapped_column(Integer)
    # TransactionStatus
    status: Mapped[int] = mapped_column(Integer, nullable=False)
    gas_used: Mapped[int | None] = mapped_column(BigInteger)
    cumulative_gas_used: Mapped[int | None] = mapped_column(BigInteger)
    effective_gas_price: Mapped[int | None] = mapped_column(Uint256)
    # Block timestamp
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # First 4 bytes of input data (e.g. 0xa9059cbb)
    method_id: Mapped[str | None] = mapped_column(String(10))
    # Function name resolved from the method id (e.g. transfer)
    method_name: Mapped[str | None] = mapped_column(String(100))


class IDXTransactionLog(Base):
    """Transaction log (INDEX)"""

    __tablename__ = "idx_transaction_log"

    transaction_hash: Mapped[str] = mapped_column(String(66), primary_key=True)
    log_index: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=False
    )
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    block_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    # Emitting contract
    address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    # topic0 (event signature hash)
    topic0: Mapped[str | None] = mapped_column(String(66), index=True)
    topics: Mapped[list] = mapped_column(JSON, nullable=False)
    data: Mapped[str | None] = mapped_column(Text)
