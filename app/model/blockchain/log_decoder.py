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

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from hexbytes import HexBytes
from web3.types import LogReceipt

from app.exceptions import LogDecodeError
from app.model.db import IDXTokenTransfer, TokenType

from .signatures import EVENT_SIGNATURES
from .utils import normalize_address, to_hex, topic_to_address


class LogDecoder:
    """Decoder for token transfer events

    - Transfer(address indexed from, address indexed to, uint256 value): ERC20
    - Transfer(address indexed from, address indexed to, uint256 indexed tokenId): ERC721
    - TransferSingle(operator, from, to, id, value): ERC1155
    - TransferBatch(operator, from, to, ids, values): ERC1155

    An empty list is returned for logs that are not transfer events.
    LogDecodeError is raised when a known event has a malformed payload.
    """

    @classmethod
    def decode(cls, log: LogReceipt, block_timestamp: int) -> list[IDXTokenTransfer]:
        topics = [to_hex(topic) for topic in log.get("topics", [])]
        if len(topics) == 0:
            return []

        event_name = EVENT_SIGNATURES.get(topics[0])
        if event_name is None:
            return []

        data = HexBytes(log.get("data") or b"")
        try:
            match event_name:
                case "Transfer":
                    return cls.__decode_transfer(log, topics, data, block_timestamp)
                case "TransferSingle":
                    return cls.__decode_transfer_single(
                        log, topics, data, block_timestamp
                    )
                case "TransferBatch":
                    return cls.__decode_transfer_batch(
                        log, topics, data, block_timestamp
                    )
        except (DecodingError, ValueError) as err:
            raise LogDecodeError(
                f"Malformed {event_name} log: tx={to_hex(log.get('transactionHash'))}, log_index={log.get('logIndex')}"
            ) from err
        return []

    @classmethod
    def __decode_transfer(
        cls, log: LogReceipt, topics: list[str], data: bytes, block_timestamp: int
    ) -> list[IDXTokenTransfer]:
        if len(topics) == 3:
            (value,) = abi_decode(["uint256"], data)
            return [
                cls.__new_transfer(
                    log=log,
                    block_timestamp=block_timestamp,
                    token_type=TokenType.ERC20,
                    from_address=topic_to_address(topics[1]),
                    to_address=topic_to_address(topics[2]),
                    value=value,
                    token_id=None,
                )
            ]
        elif len(topics) == 4:
            return [
                cls.__new_transfer(
                    log=log,
                    block_timestamp=block_timestamp,
                    token_type=TokenType.ERC721,
                    from_address=topic_to_address(topics[1]),
                    to_address=topic_to_address(topics[2]),
                    value=1,
                    token_id=int(topics[3], 16),
                )
            ]
        # Transfer event with non-indexed addresses is not a token standard event
        return []

    @classmethod
    def __decode_transfer_single(
        cls, log: LogReceipt, topics: list[str], data: bytes, block_timestamp: int
    ) -> list[IDXTokenTransfer]:
        if len(topics) != 4:
            raise ValueError(f"TransferSingle must have 4 topics: {len(topics)}")
        token_id, value = abi_decode(["uint256", "uint256"], data)
        return [
            cls.__new_transfer(
                log=log,
                block_timestamp=block_timestamp,
                token_type=TokenType.ERC1155,
                from_address=topic_to_address(topics[2]),
                to_address=topic_to_address(topics[3]),
                value=value,
                token_id=token_id,
            )
        ]

    @classmethod
    def __decode_transfer_batch(
        cls, log: LogReceipt, topics: list[str], data: bytes, block_timestamp: int
    ) -> list[IDXTokenTransfer]:
        if len(topics) != 4:
            raise ValueError(f"TransferBatch must have 4 topics: {len(topics)}")
        token_ids, values = abi_decode(["uint256[]", "uint256[]"], data)
        if len(token_ids) != len(values):
            raise ValueError(
                f"TransferBatch ids and values differ in length: {len(token_ids)} != {len(values)}"
            )
        return [
            cls.__new_transfer(
                log=log,
                block_timestamp=block_timestamp,
                token_type=TokenType.ERC1155,
                from_address=topic_to_address(topics[2]),
                to_address=topic_to_address(topics[3]),
                value=value,
                token_id=token_id,
                batch_index=i,
            )
            for i, (token_id, value) in enumerate(zip(token_ids, values))
        ]

    @staticmethod
    def __new_transfer(
        log: LogReceipt,
        block_timestamp: int,
        token_type: TokenType,
        from_address: str,
        to_address: str,
        value: int,
        token_id: int | None,
        batch_index: int = 0,
    ) -> IDXTokenTransfer:
        transfer = IDXTokenTransfer()
        transfer.transaction_hash = to_hex(log.get("transactionHash"))
        transfer.log_index = log.get("logIndex")
        transfer.batch_index = batch_index
        transfer.block_number = log.get("blockNumber")
        transfer.timestamp = block_timestamp
        transfer.token_address = normalize_address(log.get("address"))
        transfer.token_type = token_type.value
        transfer.from_address = from_address
        transfer.to_address = to_address
        transfer.value = value
        transfer.token_id = token_id
        return transfer
