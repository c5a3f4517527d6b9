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

import pytest

from app.model.db import TokenType
from tests.app.explorer_data import (
    block_hash,
    insert_block,
    insert_internal_transaction,
    insert_log,
    insert_token_transfer,
    insert_transaction,
    tx_hash,
)
from tests.chain_utils import BLOCK_TIME, GENESIS_TIMESTAMP, make_address

ADDRESS_X = make_address(1)
ADDRESS_Y = make_address(2)
TOKEN = make_address(0x100)


class TestGetTransaction:
    # target API endpoint
    base_url = "/blockchain_explorer/transactions/{}"

    ###########################################################################
    # Normal Case
    ###########################################################################

    # <Normal_1>
    # Transaction without logs
    @pytest.mark.asyncio
    async def test_normal_1(self, async_client, async_db):
        insert_block(async_db, 1, transaction_count=1)
        insert_transaction(async_db, 1, 0, ADDRESS_X, ADDRESS_Y, value=10**18)
        await async_db.commit()

        # request target api
        resp = await async_client.get(self.base_url.format(tx_hash(1)))

        # assertion
        assert resp.status_code == 200
        assert resp.json() == {
            "hash": tx_hash(1),
            "block_number": 1,
            "block_hash": block_hash(1),
            "transaction_index": 0,
            "from_address": ADDRESS_X,
            "to_address": ADDRESS_Y,
            "contract_address": None,
            "value": "1000000000000000000",
            "gas": 21000,
            "gas_price": "1000000000",
            "gas_used": 21000,
            "effective_gas_price": "1000000000",
            "nonce": 0,
            "status": 1,
            "timestamp": GENESIS_TIMESTAMP + BLOCK_TIME,
            "method_id": None,
            "method_name": None,
            "input": "0x",
            "logs": [],
            "token_transfers": [],
            "internal_transactions": [],
        }

    # <Normal_2>
    # Transaction with logs, token transfers and internal transactions
    @pytest.mark.asyncio
    async def test_normal_2(self, async_client, async_db):
        insert_block(async_db, 1, transaction_count=1)
        insert_transaction(
            async_db,
            1,
            0,
            ADDRESS_X,
            TOKEN,
            input_data="0xa9059cbb" + "00" * 64,
            method_id="0xa9059cbb",
            method_name="transfer",
        )
        insert_log(async_db, 1, 0, 1, TOKEN)
        insert_log(async_db, 1, 0, 0, TOKEN)
        insert_token_transfer(
            async_db,
            1,
            0,
            1,
            TOKEN,
            ADDRESS_X,
            ADDRESS_Y,
            1,
            token_type=TokenType.ERC1155,
            token_id=2**200,
            batch_index=1,
        )
        insert_token_transfer(
            async_db,
            1,
            0,
            1,
            TOKEN,
            ADDRESS_X,
            ADDRESS_Y,
            5,
            token_type=TokenType.ERC1155,
            token_id=7,
            batch_index=0,
        )
        insert_internal_transaction(async_db, 1, 0, "1", TOKEN, ADDRESS_Y, 3)
        insert_internal_transaction(async_db, 1, 0, "0", TOKEN, ADDRESS_X, 2)
        await async_db.commit()

        # request target api
        resp = await async_client.get(
            self.base_url.format("0x" + tx_hash(1)[2:].upper())
        )

        # assertion
        assert resp.status_code == 200
        data = resp.json()
        assert data["method_id"] == "0xa9059cbb"
        assert data["method_name"] == "transfer"
        assert [log["log_index"] for log in data["logs"]] == [0, 1]
        assert data["logs"][0]["address"] == TOKEN
        assert data["token_transfers"] == [
            {
                "transaction_hash": tx_hash(1),
                "log_index": 1,
                "batch_index": 0,
                "block_number": 1,
                "timestamp": GENESIS_TIMESTAMP + BLOCK_TIME,
                "token_address": TOKEN,
                "token_type": "ERC1155",
                "from_address": ADDRESS_X,
                "to_address": ADDRESS_Y,
                "value": "5",
                "token_id": "7",
            },
            {
                "transaction_hash": tx_hash(1),
                "log_index": 1,
                "batch_index": 1,
                "block_number": 1,
                "timestamp": GENESIS_TIMESTAMP + BLOCK_TIME,
                "token_address": TOKEN,
                "token_type": "ERC1155",
                "from_address": ADDRESS_X,
                "to_address": ADDRESS_Y,
                "value": "1",
                "token_id": str(2**200),
            },
        ]
        assert data["internal_transactions"] == [
            {
                "trace_address": "0",
                "type": "CALL",
                "call_type": "call",
                "from_address": TOKEN,
                "to_address": ADDRESS_X,
                "value": "2",
                "gas_used": 0,
                "error": None,
            },
            {
                "trace_address": "1",
                "type": "CALL",
                "call_type": "call",
                "from_address": TOKEN,
                "to_address": ADDRESS_Y,
                "value": "3",
                "gas_used": 0,
                "error": None,
            },
        ]

    ###########################################################################
    # Error Case
    ###########################################################################

    # <Error_1>
    # Invalid hash
    @pytest.mark.asyncio
    async def test_error_1(self, async_client, async_db):
        # request target api
        resp = await async_client.get(self.base_url.format("0x" + "zz" * 32))

        # assertion
        assert resp.status_code == 400
        assert resp.json() == {
            "meta": {"code": 1, "title": "InvalidParameterError"},
            "detail": "invalid hash",
        }

    # <Error_2>
    # Transaction not found
    @pytest.mark.asyncio
    async def test_error_2(self, async_client, async_db):
        # request target api
        resp = await async_client.get(self.base_url.format(tx_hash(1)))

        # assertion
        assert resp.status_code == 404
        assert resp.json() == {
            "meta": {"code": 1, "title": "NotFound"},
            "detail": "transaction not found",
        }
