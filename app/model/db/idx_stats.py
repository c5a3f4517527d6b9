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

from sqlalchemy import BigInteger, Date, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, Uint256


class IDXDailyStats(Base):
    """Daily chain statistics (UTC date)"""

    __tablename__ = "idx_daily_stats"

    date: Mapped[datetime_date] = mapped_column(Date, primary_key=True)
    block_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    transaction_count: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )
    token_transfer_count: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )
    gas_used: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)
    # Sum of native value transferred by transactions
    total_value: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)


class IDXNetworkStats(Base):
    """Network wide statistics (singleton)"""

    __tablename__ = "idx_network_stats"

    SINGLETON_ID = "main"

    id: Mapped[str] = mapped_column(String(10), primary_key=True)
    latest_block: Mapped[int | None] = mapped_column(BigInteger)
    latest_block_hash: Mapped[str | None] = mapped_column(String(66))
    latest_block_timestamp: Mapped[int | None] = mapped_column(BigInteger)
    total_blocks: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_transactions: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )
    total_addresses: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_token_transfers: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )
