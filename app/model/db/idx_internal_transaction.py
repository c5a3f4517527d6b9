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

from sqlalchemy import BigInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, Uint256


class IDXInternalTransaction(Base):
    """Internal call extracted from a transaction trace (INDEX)"""

    __tablename__ = "idx_internal_transaction"

    transaction_hash: Mapped[str] = mapped_column(String(66), primary_key=True)
    # Position in the call tree (e.g. "0_1_0")
    trace_address: Mapped[str] = mapped_column(String(200), primary_key=True)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    # CALL, CREATE, ...
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    call_type: Mapped[str | None] = mapped_column(String(20))
    from_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    to_address: Mapped[str | None] = mapped_column(String(42), index=True)
    value: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)
    gas: Mapped[int | None] = mapped_column(BigInteger)
    gas_used: Mapped[int | None] = mapped_column(BigInteger)
    input: Mapped[str | None] = mapped_column(Text)
    output: Mapped[str | None] = mapped_column(Text)
    error: Mapped[str | None] = mapped_column(Text)
