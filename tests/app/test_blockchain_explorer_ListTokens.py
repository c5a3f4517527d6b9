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

from unittest import mock

import pytest

from app.model.db import TokenType
from tests.app.explorer_data import insert_token
from tests.chain_utils import make_address

TOKEN_A = make_address(0x100)
TOKEN_B = make_address(0x101)
NFT = make_address(0x102)


class TestListTokens:
    # target API endpoint
    apiurl = "/blockchain_explorer/tokens"

    @staticmethod
    async def insert_tokens(db):
        insert_token(db, TOKEN_A, TokenType.ERC20, holder_count=2, transfer_count=5)
        insert_token(db, TOKEN_B, TokenType.ERC20, holder_count=1, transfer_count=9)
        insert_token(db, NFT, TokenType.ERC721, holder_count=3, transfer_count=5)
        await db.commit()

    ###########################################################################
    # Normal Case
    ###########################################################################

    # <Normal_1>
    # No tokens are indexed
    @pytest.mark.asyncio
    async def test_normal_1(self, async_client, async_db):
        # request target api
        resp = await async_client.get(self.apiurl)

        # assertion
        assert resp.status_code == 200
        assert resp.json() == {
            "result_set": {"count": 0, "offset": None, "limit": None, "total": 0},
            "tokens": [],
        }

    # <Normal_2>
    # Most transferred first, ties ordered by address
    @pytest.mark.asyncio
    async def test_normal_2(self, async_client, async_db):
        await self.insert_tokens(async_db)

        # request target api
        resp = await async_client.get(self.apiurl)

        # assertion
        assert resp.status_code == 200
        assert resp.json()["result_set"] == {
            "count": 3,
            "offset": None,
            "limit": None,
            "total": 3,
        }
        assert [token["address"] for token in resp.json()["tokens"]] == [
            TOKEN_B,
            TOKEN_A,
            NFT,
        ]
        assert resp.json()["tokens"][0] == {
            "address": TOKEN_B,
            "token_type": "ERC20",
            "name": "Test Token",
            "symbol": "TEST",
            "decimals": 18,
            "total_supply": str(10**27),
            "holder_count": 1,
            "transfer_count": 9,
            "first_seen_block": 1,
        }

    # <Normal_3>
    # Filter by token standard and pagination
    @pytest.mark.asyncio
    async def test_normal_3(self, async_client, async_db):
        await self.insert_tokens(async_db)

        # request target api
        resp = await async_client.get(
            self.apiurl, params={"token_type": "ERC20", "offset": 1, "limit": 1}
        )

        # assertion
        assert resp.status_code == 200
        assert resp.json()["result_set"] == {
            "count": 2,
            "offset": 1,
            "limit": 1,
            "total": 3,
        }
        assert [token["address"] for token in resp.json()["tokens"]] == [TOKEN_A]

    ###########################################################################
    # Error Case
    ###########################################################################

    # <Error_1>
    # RequestValidationError: unknown token standard
    @pytest.mark.asyncio
    async def test_error_1(self, async_client, async_db):
        # request target api
        resp = await async_client.get(self.apiurl, params={"token_type": "ERC777"})

        # assertion
        assert resp.status_code == 422
        assert resp.json()["meta"] == {"code": 1, "title": "RequestValidationError"}
        assert resp.json()["detail"][0]["loc"] == ["query", "token_type"]

    # <Error_2>
    # ResponseLimitExceededError
    @mock.patch("app.utils.explorer_utils.EXPLORER_RESPONSE_LIMIT", 2)
    @pytest.mark.asyncio
    async def test_error_2(self, async_client, async_db):
        await self.insert_tokens(async_db)

        # request target api
        resp = await async_client.get(self.apiurl)

        # assertion
        assert resp.status_code == 400
        assert resp.json() == {
            "meta": {"code": 4, "title": "ResponseLimitExceededError"},
            "detail": "Search results exceed the limit",
        }
