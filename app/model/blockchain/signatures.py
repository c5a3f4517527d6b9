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

from eth_utils import keccak


def event_topic(signature: str) -> str:
    return "0x" + keccak(text=signature).hex()


# Event topics
TRANSFER_TOPIC = event_topic("Transfer(address,address,uint256)")
TRANSFER_SINGLE_TOPIC = event_topic(
    "TransferSingle(address,address,address,uint256,uint256)"
)
TRANSFER_BATCH_TOPIC = event_topic(
    "TransferBatch(address,address,address,uint256[],uint256[])"
)

# topic0 -> event name
# NOTE:
#  ERC20 and ERC721 share the Transfer topic.
#  They are told apart by the number of indexed topics.
EVENT_SIGNATURES: dict[str, str] = {
    TRANSFER_TOPIC: "Transfer",
    TRANSFER_SINGLE_TOPIC: "TransferSingle",
    TRANSFER_BATCH_TOPIC: "TransferBatch",
}

# Function selector -> function name
METHOD_SIGNATURES: dict[str, str] = {
    "0xa9059cbb": "transfer",
    "0x23b872dd": "transferFrom",
    "0x095ea7b3": "approve",
    "0x40c10f19": "mint",
    "0x42966c68": "burn",
    "0xa0712d68": "mint",
    "0x42842e0e": "safeTransferFrom",
    "0xf242432a": "safeTransferFrom",
    "0x2eb2c2d6": "safeBatchTransferFrom",
    "0xa22cb465": "setApprovalForAll",
    "0x38ed1739": "swapExactTokensForTokens",
    "0x7ff36ab5": "swapExactETHForTokens",
    "0x18cbafe5": "swapExactTokensForETH",
    "0x8803dbee": "swapTokensForExactTokens",
    "0xfb3bdb41": "swapETHForExactTokens",
    "0x4a25d94a": "swapTokensForExactETH",
    "0xe8e33700": "addLiquidity",
    "0xf305d719": "addLiquidityETH",
    "0xbaa2abde": "removeLiquidity",
    "0x02751cec": "removeLiquidityETH",
    "0xd0e30db0": "deposit",
    "0x2e1a7d4d": "withdraw",
    "0x3593564c": "execute",
    "0x5ae401dc": "multicall",
}


def get_method_id(input_data: str | None) -> str | None:
    """First 4 bytes of transaction input, None for plain value transfers"""
    if input_data is None or len(input_data) < 10:
        return None
    return input_data[:10].lower()


def get_method_name(method_id: str | None) -> str | None:
    if method_id is None:
        return None
    return METHOD_SIGNATURES.get(method_id)


def _view_function(name: str, output_type: str) -> dict:
    return {
        "constant": True,
        "inputs": [],
        "name": name,
        "outputs": [{"name": "", "type": output_type}],
        "payable": False,
        "stateMutability": "view",
        "type": "function",
    }


# name/symbol/decimals/totalSupply (ERC20, ERC721 metadata extension)
TOKEN_METADATA_ABI: list[dict] = [
    _view_function("name", "string"),
    _view_function("symbol", "string"),
    _view_function("decimals", "uint8"),
    _view_function("totalSupply", "uint256"),
]
