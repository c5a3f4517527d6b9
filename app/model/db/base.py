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

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, String, TypeDecorator
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.database import get_db_schema


def aware_utcnow():
    return datetime.now(UTC)


def naive_utcnow():
    return aware_utcnow().replace(tzinfo=None)


class Uint256(TypeDecorator):
    """EVM word (wei amount, token balance, token id) stored as NUMERIC(78, 0)

    SQLite has no exact numeric type of this size, so values are stored
    there as zero-padded decimal strings that sort in numeric order.
    """

    impl = Numeric(78, 0)
    cache_ok = True

    DIGITS = 78

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(self.DIGITS + 1))
        return dialect.type_descriptor(Numeric(self.DIGITS, 0))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "sqlite":
            value = int(value)
            sign = "-" if value < 0 else ""
            return sign + str(abs(value)).zfill(self.DIGITS)
        return Decimal(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


class Base(DeclarativeBase):
    # created datetime(UTC)
    created: Mapped[datetime | None] = mapped_column(DateTime, default=naive_utcnow)
    # modified datetime(UTC)
    modified: Mapped[datetime | None] = mapped_column(
        DateTime, default=naive_utcnow, onupdate=naive_utcnow
    )


schema = get_db_schema()
if schema is not None:
    setattr(Base, "__table_args__", {"schema": schema})
