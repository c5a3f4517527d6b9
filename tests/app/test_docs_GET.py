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


class TestOpenAPI:
    # target API endpoint
    apiurl = "/openapi.json"

    ###########################################################################
    # Normal Case
    ###########################################################################

    # <Normal_1>
    # Error responses are documented with the application error models
    @pytest.mark.asyncio
    async def test_normal_1(self, async_client):
        # request target api
        resp = await async_client.get(self.apiurl)

        # assertion
        assert resp.status_code == 200
        schema = resp.json()
        assert schema["openapi"] == "3.1.0"
        assert schema["info"]["title"] == "Chain Explorer"

        get_block = schema["paths"]["/blockchain_explorer/blocks/{block_id}"]["get"]
        assert get_block["responses"]["404"]["content"]["application/json"][
            "schema"
        ] == {"$ref": "#/components/schemas/NotFoundErrorResponse"}
        assert get_block["responses"]["422"]["content"]["application/json"][
            "schema"
        ] == {"$ref": "#/components/schemas/ValidationErrorResponse"}

        list_transfers = schema["paths"][
            "/blockchain_explorer/tokens/{token_address}/transfers"
        ]["get"]
        assert list_transfers["responses"]["400"]["content"]["application/json"][
            "schema"
        ]["anyOf"] == [
            {"$ref": "#/components/schemas/InvalidParameterErrorResponse"},
            {"$ref": "#/components/schemas/ResponseLimitExceededErrorResponse"},
        ]

        components = schema["components"]["schemas"]
        assert components["NotFoundErrorMeta"]["properties"]["title"]["examples"] == [
            "NotFound"
        ]
        assert "ValidationErrorDetail" in components
