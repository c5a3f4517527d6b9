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
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from config import SERVER_NAME


class TestRoot:
    # target API endpoint
    apiurl = "/"

    ###########################################################################
    # Normal Case
    ###########################################################################

    # <Normal_1>
    @pytest.mark.asyncio
    async def test_normal_1(self, async_client, async_db):
        # request target api
        resp = await async_client.get(self.apiurl)

        # assertion
        assert resp.status_code == 200
        assert resp.json() == {"server": SERVER_NAME}

    ###########################################################################
    # Error Case
    ###########################################################################

    # <Error_1>
    # Database is unavailable
    @pytest.mark.asyncio
    async def test_error_1(self, async_client, async_db):
        with mock.patch.object(
            async_db,
            "connection",
            AsyncMock(side_effect=OperationalError("SELECT 1", {}, Exception("down"))),
        ):
            # request target api
            resp = await async_client.get(self.apiurl)

        # assertion
        assert resp.status_code == 503
        assert resp.json() == {
            "meta": {"code": 1, "title": "ServiceUnavailableError"},
            "detail": "database is unavailable",
        }

    # <Error_2>
    # Method not allowed
    @pytest.mark.asyncio
    async def test_error_2(self, async_client, async_db):
        # request target api
        resp = await async_client.post(self.apiurl)

        # assertion
        assert resp.status_code == 405
        assert resp.json() == {"meta": {"code": 1, "title": "MethodNotAllowed"}}

    # <Error_3>
    # Unknown path
    @pytest.mark.asyncio
    async def test_error_3(self, async_client, async_db):
        # request target api
        resp = await async_client.get("/unknown")

        # assertion
        assert resp.status_code == 404
        assert resp.json() == {
            "meta": {"code": 1, "title": "NotFound"},
            "detail": "Not Found",
        }
