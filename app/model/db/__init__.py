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

from .base import Base, Uint256
from .idx_address import IDXAddress
from .idx_block import IDXBlock
from .idx_internal_transaction import IDXInternalTransaction
from .idx_stats import IDXDailyStats, IDXNetworkStats
from .idx_token import IDXToken, IDXTokenHolder
from .idx_token_transfer import IDXTokenTransfer, TokenType
from .idx_transaction import IDXTransaction, IDXTransactionLog, TransactionStatus
from .indexer_checkpoint import (
    IndexerCheckpoint,
    IndexerState,
    IndexerStatus,
    IndexerStream,
)
