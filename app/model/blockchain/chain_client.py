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

from typing import Any

from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address
from web3.exceptions import BlockNotFound, TransactionNotFound, Web3Exception
from web3.types import BlockData, LogReceipt, RPCEndpoint, TxReceipt

from app import log
from app.exceptions import (
    BlockNotFoundError,
    RpcUnavailableError,
    TraceNotSupportedError,
)
from app.utils.web3_utils import AsyncWeb3Wrapper

from .signatures import TOKEN_METADATA_ABI

LOG = log.get_logger()

# Messages returned by nodes that do not expose a tracing namespace
TRACE_NOT_SUPPORTED_MESSAGES = (
    "method not found",
    "not supported",
    "unknown method",
    "does not exist",
    "not available",
)


class ChainClient:
    """Read-only JSON-RPC client used by the indexer"""

    def __init__(self, web3: AsyncWeb3Wrapper | None = None):
        self.web3 = web3 if web3 is not None else AsyncWeb3Wrapper()

    async def get_chain_id(self) -> int:
        return await self.web3.eth.chain_id

    async def get_block_number(self) -> int:
        return await self.web3.eth.block_number

    async def get_block(
        self, block_identifier: int | str, full_transactions: bool = True
    ) -> BlockData:
        """Get block

        :param block_identifier: block number or block hash
        :param full_transactions: include transaction objects
        :return: block
        :raises BlockNotFoundError: block does not exist on the node
        """
        try:
            return await self.web3.eth.get_block(
                block_identifier, full_transactions=full_transactions
            )
        except BlockNotFound:
            raise BlockNotFoundError(block_identifier)

    async def get_transaction_receipt(self, transaction_hash: str) -> TxReceipt:
        try:
            return await self.web3.eth.get_transaction_receipt(transaction_hash)
        except TransactionNotFound as err:
            # The transaction was returned in a block but the node has no receipt:
            # the node is still syncing or the block was just replaced.
            raise RpcUnavailableError(
                f"Transaction receipt is not available: {transaction_hash}"
            ) from err

    async def get_logs(
        self,
        block_hash: str | None = None,
        from_block: int | None = None,
        to_block: int | None = None,
    ) -> list[LogReceipt]:
        """Get logs of a single block (block_hash) or of a block range"""
        if block_hash is not None:
            filter_params = {"blockHash": block_hash}
        else:
            filter_params = {"fromBlock": from_block, "toBlock": to_block}
        return list(await self.web3.eth.get_logs(filter_params))

    async def get_balance(self, address: str, block_identifier: int | str) -> int:
        return await self.web3.eth.get_balance(
            to_checksum_address(address), block_identifier
        )

    async def get_code(self, address: str, block_identifier: int | str) -> str:
        code = await self.web3.eth.get_code(
            to_checksum_address(address), block_identifier
        )
        return code.to_0x_hex()

    async def call_token_function(self, token_address: str, function_name: str) -> Any:
        """Call a metadata getter (name, symbol, decimals, totalSupply) of a token

        :return: return value, None if the contract does not implement the function
        """
        contract = self.web3.eth.contract(
            address=to_checksum_address(token_address), abi=TOKEN_METADATA_ABI
        )
        try:
            return await getattr(contract.functions, function_name)().call()
        except (Web3Exception, DecodingError, OverflowError):
            return None

    async def trace_transaction(self, transaction_hash: str) -> dict | None:
        """Call tree of a transaction (debug_traceTransaction with callTracer)

        :return: root call frame, None if the node could not trace the transaction
        :raises TraceNotSupportedError: node does not expose debug_traceTransaction
        """
        return await self.__make_trace_request(
            "debug_traceTransaction",
            [
                transaction_hash,
                {"tracer": "callTracer", "tracerConfig": {"onlyTopCall": False}},
            ],
        )

    async def trace_block(self, block_number: int) -> list[dict] | None:
        """Flat traces of a block (trace_block)

        :raises TraceNotSupportedError: node does not expose trace_block
        """
        return await self.__make_trace_request("trace_block", [hex(block_number)])

    async def __make_trace_request(self, method: str, params: list) -> Any:
        response = await self.web3.provider.make_request(RPCEndpoint(method), params)
        error = response.get("error")
        if error is None:
            return response.get("result")

        message = str(error.get("message", "")).lower()
        if error.get("code") == -32601 or any(
            msg in message for msg in TRACE_NOT_SUPPORTED_MESSAGES
        ):
            raise TraceNotSupportedError(f"{method} is not supported: {message}")
        LOG.warning(f"Trace request failed: method={method}, error={message}")
        return None
