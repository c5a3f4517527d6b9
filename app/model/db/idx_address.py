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

from sqlalchemy import BigInteger, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, Uint256


class IDXAddress(Base):
    """Address activity (INDEX)

    - transaction_count == sent_count + received_count
    - A self-transfer is counted once, as sent
    """

    __tablename__ = "idx_address"

    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    # Native coin balance at the latest indexed block that touched the address
    balance: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)
    transaction_count: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )
    sent_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    received_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    is_contract: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Unix timestamp
    first_seen: Mapped[int | None] = mapped_column(BigInteger)
    # Unix timestamp
    last_seen: Mapped[int | None] = mapped_column(BigInteger)
