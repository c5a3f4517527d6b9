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

from tests.app.explorer_data import (
    insert_block,
    insert_internal_transaction,
    insert_transaction,
    tx_hash,
)
from tests.chain_utils import make_address

ADDRESS_X = make_address(1)
ADDRESS_Y = make_address(2)
CONTRACT = make_address(0x200)


class TestListAddressInternalTransactions:
    # target API endpoint
    base_url = "/blockchain_explorer/addresses/{}/internal_transactions"

    @staticmethod
    async def insert_chain(db):
        insert_block(db, 1, transaction_count=1)
        insert_transaction(db, 1, 0, ADDRESS_X, CONTRACT)
        insert_internal_transaction(db, 1, 0, "0", CONTRACT, ADDRESS_Y, 5)
        insert_internal_transaction(db, 1, 0, "1", CONTRACT, ADDRESS_X, 2**80)
        insert_block(db, 2, transaction_count=1)
        insert_transaction(db, 2, 0, ADDRESS_Y, CONTRACT)
        insert_internal_transaction(db, 2, 0, "0", CONTRACT, ADDRESS_Y, 7)
        insert_internal_transaction(db, 2, 0, "0_0", ADDRESS_Y, ADDRESS_X, 1)
        await db.commit()

    ###########################################################################
    # Normal Case
    ###########################################################################

    # <Normal_1>
    # Sent and received, newest block first
    @pytest.mark.asyncio
    async def test_normal_1(self, async_client, async_db):
        await self.insert_chain(async_db)

        # request target api
        resp = await async_client.get(self.base_url.format(ADDRESS_Y))

        # assertion
        assert resp.status_code == 200
        assert resp.json() == {
            "result_set": {"count": 3, "offset": None, "limit": None, "total": 3},
            "internal_transactions": [
                {
                    "transaction_hash": tx_hash(2, 0),
                    "block_number": 2,
                    "trace_address": "0",
                    "type": "CALL",
                    "call_type": "call",
                    "from_address": CONTRACT,
                    "to_address": ADDRESS_Y,
                    "value": "7",
                    "gas_used": 0,
                    "error": None,
                },
                {
                    "transaction_hash": tx_hash(2, 0),
                    "block_number": 2,
                    "trace_address": "0_0",
                    "type": "CALL",
                    "call_type": "call",
                    "from_address": ADDRESS_Y,
                    "to_address": ADDRESS_X,
                    "value": "1",
                    "gas_used": 0,
                    "error": None,
                },
                {
                    "transaction_hash": tx_hash(1, 0),
                    "block_number": 1,
                    "trace_address": "0",
                    "type": "CALL",
                    "call_type": "call",
                    "from_address": CONTRACT,
                    "to_address": ADDRESS_Y,
                    "value": "5",
                    "gas_used": 0,
                    "error": None,
                },
            ],
        }

    # <Normal_2>
    # Values beyond 64 bits and pagination
    @pytest.mark.asyncio
    async def test_normal_2(self, async_client, async_db):
        await self.insert_chain(async_db)

        # request target api
        resp = await async_client.get(
            self.base_url.format(ADDRESS_X), params={"offset": 1, "limit": 1}
        )

        # assertion
        assert resp.status_code == 200
        assert resp.json()["result_set"] == {
            "count": 2,
            "offset": 1,
            "limit": 1,
            "total": 2,
        }
        assert len(resp.json()["internal_transactions"]) == 1
        assert resp.json()["internal_transactions"][0]["block_number"] == 1
        assert resp.json()["internal_transactions"][0]["value"] == str(2**80)

    # <Normal_3>
    # No internal transactions
    @pytest.mark.asyncio
    async def test_normal_3(self, async_client, async_db):
        # request target api
        resp = await async_client.get(self.base_url.format(ADDRESS_X))

        # assertion
        assert resp.status_code == 200
        assert resp.json() == {
            "result_set": {"count": 0, "offset": None, "limit": None, "total": 0},
            "internal_transactions": [],
        }

    ###########################################################################
    # Error Case
    ###########################################################################

    # <Error_1>
    # Invalid address
    @pytest.mark.asyncio
    async def test_error_1(self, async_client, async_db):
        # request target api
        resp = await async_client.get(self.base_url.format("not-an-address"))

        # assertion
        assert resp.status_code == 400
        assert resp.json() == {
            "meta": {"code": 1, "title": "InvalidParameterError"},
            "detail": "invalid ethereum address",
        }
