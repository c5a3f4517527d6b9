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

from sqlalchemy import BigInteger, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, Uint256


class IDXBlock(Base):
    """Block (INDEX)"""

    __tablename__ = "idx_block"

    # Header data
    number: Mapped[int] = mapped_column(
        BigInteger, primary_key=True, autoincrement=False
    )
    hash: Mapped[str] = mapped_column(String(66), nullable=False, unique=True)
    parent_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    # Unix timestamp
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    miner: Mapped[str | None] = mapped_column(String(42), index=True)
    gas_used: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    gas_limit: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    base_fee_per_gas: Mapped[int | None] = mapped_column(Uint256)
    difficulty: Mapped[int | None] = mapped_column(Uint256)
    nonce: Mapped[str | None] = mapped_column(String(18))
    extra_data: Mapped[str | None] = mapped_column(Text)
    size: Mapped[int | None] = mapped_column(Integer)

    # Other data
    transaction_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
