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

from sqlalchemy import BigInteger, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, Uint256


class IDXToken(Base):
    """Token contract seen in transfer events (INDEX)"""

    __tablename__ = "idx_token"

    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    # TokenType
    token_type: Mapped[str] = mapped_column(String(10), nullable=False)
    # Number of addresses with positive balance
    holder_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    transfer_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    # Block of the first indexed transfer
    first_seen_block: Mapped[int | None] = mapped_column(BigInteger)

    # Metadata (filled by the token metadata processor)
    name: Mapped[str | None] = mapped_column(String(200))
    symbol: Mapped[str | None] = mapped_column(String(100))
    decimals: Mapped[int | None] = mapped_column(Integer)
    total_supply: Mapped[int | None] = mapped_column(Uint256)
    metadata_fetched: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )


class IDXTokenHolder(Base):
    """Token balance per holder (INDEX)

    - Rows with zero balance are not stored
    """

    __tablename__ = "idx_token_holder"

    token_address: Mapped[str] = mapped_column(String(42), primary_key=True)
    holder_address: Mapped[str] = mapped_column(
        String(42), primary_key=True, index=True
    )
    # Token id as decimal string (ERC721, ERC1155), empty string for ERC20
    token_id: Mapped[str] = mapped_column(String(80), primary_key=True, default="")
    # TokenType
    token_type: Mapped[str] = mapped_column(String(10), nullable=False)
    balance: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)
    # Block that last changed the balance
    last_updated_block: Mapped[int | None] = mapped_column(BigInteger)
