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

from datetime import datetime
from enum import StrEnum

from sqlalchemy import BigInteger, Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class IndexerStream(StrEnum):
    """Independent indexing streams"""

    MAIN = "main"
    INTERNAL_TX = "internal_tx"


class IndexerStatus(StrEnum):
    RUNNING = "running"
    CAUGHT_UP = "caught_up"
    RESOLVING_FORK = "resolving_fork"
    PAUSED = "paused"
    HALTED = "halted"
    STOPPED = "stopped"


class IndexerCheckpoint(Base):
    """Last block whose write-set is committed, per stream"""

    __tablename__ = "indexer_checkpoint"

    # IndexerStream
    stream: Mapped[str] = mapped_column(String(20), primary_key=True)
    last_processed_block: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_processed_hash: Mapped[str | None] = mapped_column(String(66))


class IndexerState(Base):
    """Operational state of a stream"""

    __tablename__ = "indexer_state"

    # IndexerStream
    stream: Mapped[str] = mapped_column(String(20), primary_key=True)
    # IndexerStatus
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    # Set by an operator to pause the stream
    is_paused: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_error: Mapped[str | None] = mapped_column(Text)
    # Last time the stream loop was alive (UTC)
    heartbeat: Mapped[datetime | None] = mapped_column(DateTime)
