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

from enum import StrEnum

from sqlalchemy import BigInteger, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, Uint256


class TokenType(StrEnum):
    """Token standard"""

    ERC20 = "ERC20"
    ERC721 = "ERC721"
    ERC1155 = "ERC1155"


class IDXTokenTransfer(Base):
    """Token transfer decoded from a log (INDEX)"""

    __tablename__ = "idx_token_transfer"

    transaction_hash: Mapped[str] = mapped_column(String(66), primary_key=True)
    log_index: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=False
    )
    # Position in an ERC1155 TransferBatch log, 0 otherwise
    batch_index: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=False, default=0
    )
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    # Block timestamp
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    token_address: Mapped[str] = mapped_column(
        String(42), nullable=False, index=True
    )
    # TokenType
    token_type: Mapped[str] = mapped_column(String(10), nullable=False)
    from_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    to_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    # Amount (ERC20, ERC1155) / 1 (ERC721)
    value: Mapped[int] = mapped_column(Uint256, nullable=False)
    # Token id (ERC721, ERC1155)
    token_id: Mapped[int | None] = mapped_column(Uint256)
