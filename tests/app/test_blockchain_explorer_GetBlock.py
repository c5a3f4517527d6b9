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

from tests.app.explorer_data import MINER, block_hash, insert_block


class TestGetBlock:
    # target API endpoint
    base_url = "/blockchain_explorer/blocks/{}"

    ###########################################################################
    # Normal Case
    ###########################################################################

    # <Normal_1>
    # Block number
    @pytest.mark.asyncio
    async def test_normal_1(self, async_client, async_db):
        insert_block(async_db, 0)
        insert_block(async_db, 1, transaction_count=2)
        await async_db.commit()

        # request target api
        resp = await async_client.get(self.base_url.format(1))

        # assertion
        assert resp.status_code == 200
        assert resp.json()["number"] == 1
        assert resp.json()["hash"] == block_hash(1)
        assert resp.json()["parent_hash"] == block_hash(0)
        assert resp.json()["miner"] == MINER
        assert resp.json()["gas_used"] == 42000
        assert resp.json()["base_fee_per_gas"] == "1000000000"
        assert resp.json()["transaction_count"] == 2

    # <Normal_2>
    # Block hash (upper case)
    @pytest.mark.asyncio
    async def test_normal_2(self, async_client, async_db):
        insert_block(async_db, 0)
        insert_block(async_db, 1)
        await async_db.commit()

        # request target api
        resp = await async_client.get(
            self.base_url.format("0x" + block_hash(1)[2:].upper())
        )

        # assertion
        assert resp.status_code == 200
        assert resp.json()["number"] == 1
        assert resp.json()["hash"] == block_hash(1)

    ###########################################################################
    # Error Case
    ###########################################################################

    # <Error_1>
    # Neither a block number nor a block hash
    @pytest.mark.asyncio
    async def test_error_1(self, async_client, async_db):
        # request target api
        resp = await async_client.get(self.base_url.format("latest"))

        # assertion
        assert resp.status_code == 400
        assert resp.json() == {
            "meta": {"code": 1, "title": "InvalidParameterError"},
            "detail": "block_id must be a block number or block hash",
        }

    # <Error_2>
    # Invalid hash
    @pytest.mark.asyncio
    async def test_error_2(self, async_client, async_db):
        # request target api
        resp = await async_client.get(self.base_url.format("0x1234"))

        # assertion
        assert resp.status_code == 400
        assert resp.json() == {
            "meta": {"code": 1, "title": "InvalidParameterError"},
            "detail": "invalid hash",
        }

    # <Error_3>
    # Block not found
    @pytest.mark.asyncio
    async def test_error_3(self, async_client, async_db):
        insert_block(async_db, 0)
        await async_db.commit()

        # request target api
        resp = await async_client.get(self.base_url.format(1))

        # assertion
        assert resp.status_code == 404
        assert resp.json() == {
            "meta": {"code": 1, "title": "NotFound"},
            "detail": "block not found",
        }

    # <Error_4>
    # Block not found (hash)
    @pytest.mark.asyncio
    async def test_error_4(self, async_client, async_db):
        # request target api
        resp = await async_client.get(self.base_url.format(block_hash(5)))

        # assertion
        assert resp.status_code == 404
        assert resp.json() == {
            "meta": {"code": 1, "title": "NotFound"},
            "detail": "block not found",
        }
