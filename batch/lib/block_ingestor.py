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

from typing import Sequence

from web3.types import BlockData, LogReceipt, TxData, TxReceipt

from app.exceptions import LogDecodeError, RpcUnavailableError
from app.model.blockchain import ChainClient, LogDecoder
from app.model.blockchain.signatures import get_method_id, get_method_name
from app.model.blockchain.utils import normalize_address, to_hex, to_int
from app.model.db import (
    IDXBlock,
    IDXTokenTransfer,
    IDXTransaction,
    IDXTransactionLog,
    TransactionStatus,
)
from app.utils.asyncio_utils import SemaphoreTaskGroup
from batch.utils import batch_log
from config import (
    INDEXER_DETECT_CONTRACTS,
    INDEXER_FETCH_BALANCES,
    INDEXER_RPC_CONCURRENCY,
)

LOG = batch_log.get_logger(process_name="INDEXER-Chain")


class StagedBlock:
    """Normalized data of one block, ready to be written"""

    block: IDXBlock
    transactions: list[IDXTransaction]
    logs: list[IDXTransactionLog]
    token_transfers: list[IDXTokenTransfer]
    balances: dict[str, int]
    contract_flags: dict[str, bool]

    def __init__(self, block: IDXBlock):
        self.block = block
        self.transactions = []
        self.logs = []
        self.token_transfers = []
        self.balances = {}
        self.contract_flags = {}

    @property
    def touched_addresses(self) -> set[str]:
        """Addresses that sent, received or created a contract in this block"""
        addresses = set()
        for tx in self.transactions:
            addresses.add(tx.from_address)
            if tx.to_address is not None:
                addresses.add(tx.to_address)
            if tx.contract_address is not None:
                addresses.add(tx.contract_address)
        return addresses

    @property
    def recipient_addresses(self) -> set[str]:
        return {
            tx.to_address for tx in self.transactions if tx.to_address is not None
        }


class BlockIngestor:
    """Fetch a block and everything derived from it from the JSON-RPC endpoint

    Fetching never writes to the database.
    """

    def __init__(
        self,
        client: ChainClient,
        fetch_balances: bool = INDEXER_FETCH_BALANCES,
        max_concurrency: int = INDEXER_RPC_CONCURRENCY,
        detect_contracts: bool = INDEXER_DETECT_CONTRACTS,
    ):
        self.client = client
        self.fetch_balances = fetch_balances
        self.detect_contracts = detect_contracts
        self.max_concurrency = max_concurrency

    async def fetch(self, block_number: int) -> StagedBlock:
        """Fetch block

        :param block_number: block number
        :return: StagedBlock
        :raises BlockNotFoundError: block is not yet available
        :raises RpcUnavailableError: endpoint is unavailable or returned inconsistent data
        """
        block_data: BlockData = await self.client.get_block(
            block_number, full_transactions=True
        )
        staged = StagedBlock(self.to_block_model(block_data))
        block_hash = staged.block.hash
        timestamp = staged.block.timestamp

        # Transactions and receipts
        transactions: Sequence[TxData] = block_data.get("transactions", [])
        receipts = await self.__get_receipts(
            [to_hex(tx.get("hash")) for tx in transactions]
        )
        for tx, receipt in zip(transactions, receipts):
            if to_hex(receipt.get("blockHash")) != block_hash:
                # The block was replaced while its receipts were fetched
                raise RpcUnavailableError(
                    f"Receipt does not belong to the fetched block: block={block_number}, tx={to_hex(tx.get('hash'))}"
                )
            staged.transactions.append(
                self.to_transaction_model(tx, receipt, block_hash, timestamp)
            )

        # Logs and token transfers
        logs: list[LogReceipt] = await self.client.get_logs(block_hash=block_hash)
        for log in logs:
            if to_hex(log.get("blockHash")) != block_hash:
                raise RpcUnavailableError(
                    f"Log does not belong to the fetched block: block={block_number}"
                )
            if log.get("removed", False):
                continue
            staged.logs.append(self.to_log_model(log, block_hash))
            try:
                staged.token_transfers.extend(LogDecoder.decode(log, timestamp))
            except LogDecodeError as err:
                # Data anomaly: the raw log is kept, the transfer is skipped
                LOG.warning(f"Skip malformed log: {err}")

        # Native balances at this block
        if self.fetch_balances:
            staged.balances = await self.get_balances(
                staged.touched_addresses, block_number
            )

        # Contract detection of recipients at this block
        if self.detect_contracts:
            staged.contract_flags = await self.get_contract_flags(
                staged.recipient_addresses, block_number
            )

        return staged

    async def get_balances(
        self, addresses: set[str], block_number: int
    ) -> dict[str, int]:
        addresses = sorted(addresses)
        if len(addresses) == 0:
            return {}
        try:
            balances = await SemaphoreTaskGroup.gather(
                *[
                    self.client.get_balance(address, block_number)
                    for address in addresses
                ],
                max_concurrency=self.max_concurrency,
            )
        except ExceptionGroup:
            LOG.warning(f"Failed to get balances: block={block_number}")
            raise RpcUnavailableError("Failed to get balances") from None
        return dict(zip(addresses, balances))

    async def get_contract_flags(
        self, addresses: set[str], block_number: int
    ) -> dict[str, bool]:
        """Whether each address holds code at block_number"""
        addresses = sorted(addresses)
        if len(addresses) == 0:
            return {}
        try:
            codes = await SemaphoreTaskGroup.gather(
                *[
                    self.client.get_code(address, block_number)
                    for address in addresses
                ],
                max_concurrency=self.max_concurrency,
            )
        except ExceptionGroup:
            LOG.warning(f"Failed to get contract codes: block={block_number}")
            raise RpcUnavailableError("Failed to get contract codes") from None
        return {
            address: code not in (None, "", "0x")
            for address, code in zip(addresses, codes)
        }

    async def __get_receipts(self, tx_hashes: list[str]) -> list[TxReceipt]:
        if len(tx_hashes) == 0:
            return []
        try:
            receipts = await SemaphoreTaskGroup.gather(
                *[self.client.get_transaction_receipt(h) for h in tx_hashes],
                max_concurrency=self.max_concurrency,
            )
        except ExceptionGroup:
            LOG.warning("Failed to get transaction receipts")
            raise RpcUnavailableError("Failed to get transaction receipts") from None
        return receipts

    @staticmethod
    def to_block_model(block_data: BlockData) -> IDXBlock:
        block = IDXBlock()
        block.number = block_data.get("number")
        block.hash = to_hex(block_data.get("hash"))
        block.parent_hash = to_hex(block_data.get("parentHash"))
        block.timestamp = block_data.get("timestamp")
        block.miner = normalize_address(block_data.get("miner"))
        block.gas_used = block_data.get("gasUsed", 0)
        block.gas_limit = block_data.get("gasLimit", 0)
        block.base_fee_per_gas = block_data.get("baseFeePerGas")
        block.difficulty = block_data.get("difficulty")
        block.nonce = to_hex(block_data.get("nonce"))
        # NOTE: ExtraDataToPOAMiddleware renames extraData to proofOfAuthorityData
        block.extra_data = to_hex(
            block_data.get("extraData", block_data.get("proofOfAuthorityData"))
        )
        block.size = block_data.get("size")
        block.transaction_count = len(block_data.get("transactions", []))
        return block

    @staticmethod
    def to_transaction_model(
        tx: TxData, receipt: TxReceipt, block_hash: str, timestamp: int
    ) -> IDXTransaction:
        input_data = to_hex(tx.get("input"))
        status = receipt.get("status")

        tx_model = IDXTransaction()
        tx_model.hash = to_hex(tx.get("hash"))
        tx_model.block_number = tx.get("blockNumber")
        tx_model.block_hash = block_hash
        tx_model.transaction_index = tx.get("transactionIndex")
        tx_model.from_address = normalize_address(tx.get("from"))
        tx_model.to_address = normalize_address(tx.get("to"))
        tx_model.contract_address = normalize_address(receipt.get("contractAddress"))
        tx_model.value = to_int(tx.get("value", 0))
        tx_model.gas = tx.get("gas")
        tx_model.gas_price = tx.get("gasPrice")
        tx_model.max_fee_per_gas = tx.get("maxFeePerGas")
        tx_model.max_priority_fee_per_gas = tx.get("maxPriorityFeePerGas")
        tx_model.input = input_data
        tx_model.nonce = tx.get("nonce")
        tx_model.type = to_int(tx.get("type"))
        tx_model.status = (
            TransactionStatus.UNKNOWN.value if status is None else int(status)
        )
        tx_model.gas_used = receipt.get("gasUsed")
        tx_model.cumulative_gas_used = receipt.get("cumulativeGasUsed")
        tx_model.effective_gas_price = receipt.get("effectiveGasPrice")
        tx_model.timestamp = timestamp
        tx_model.method_id = get_method_id(input_data)
        tx_model.method_name = get_method_name(tx_model.method_id)
        return tx_model

    @staticmethod
    def to_log_model(log: LogReceipt, block_hash: str) -> IDXTransactionLog:
        topics = [to_hex(topic) for topic in log.get("topics", [])]

        log_model = IDXTransactionLog()
        log_model.transaction_hash = to_hex(log.get("transactionHash"))
        log_model.log_index = log.get("logIndex")
        log_model.block_number = log.get("blockNumber")
        log_model.block_hash = block_hash
        log_model.address = normalize_address(log.get("address"))
        log_model.topic0 = topics[0] if len(topics) > 0 else None
        log_model.topics = topics
        log_model.data = to_hex(log.get("data"))
        return log_model
