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
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import ClientConnectionError, ClientResponseError
from web3 import AsyncHTTPProvider

from app.exceptions import RpcUnavailableError, ServiceUnavailableError
from app.utils.web3_utils import AsyncFailOverHTTPProvider, backoff_interval

ENDPOINT_1 = "http://node-1:8545"
ENDPOINT_2 = "http://node-2:8545"

RESPONSE = {"jsonrpc": "2.0", "id": 1, "result": "0x10"}


def new_provider(retry_count: int = 2) -> AsyncFailOverHTTPProvider:
    return AsyncFailOverHTTPProvider(
        endpoints=[ENDPOINT_1, ENDPOINT_2],
        retry_count=retry_count,
        backoff_base=0,
        backoff_max=0,
    )


class TestBackoffInterval:
    # Normal_1
    def test_normal_1(self):
        assert backoff_interval(0, 0.5, 8) == 0.5
        assert backoff_interval(1, 0.5, 8) == 1
        assert backoff_interval(3, 0.5, 8) == 4
        assert backoff_interval(10, 0.5, 8) == 8


@pytest.mark.asyncio
class TestAsyncFailOverHTTPProvider:
    ########################################################
    # Normal
    ########################################################

    # Normal_1
    # - Request succeeds on the primary endpoint
    async def test_normal_1(self):
        provider = new_provider()

        with mock.patch.object(
            AsyncHTTPProvider,
            "make_request",
            new_callable=AsyncMock,
            return_value=RESPONSE,
        ) as make_request:
            response = await provider.make_request("eth_blockNumber", [])

        assert response == RESPONSE
        assert make_request.await_count == 1
        assert provider.endpoint_uri == ENDPOINT_1

    # Normal_2
    # - Connection errors are retried on the next endpoint
    async def test_normal_2(self):
        provider = new_provider()
        called_endpoints = []

        async def fake_request(method, params):
            called_endpoints.append(provider.endpoint_uri)
            if len(called_endpoints) == 1:
                raise ClientConnectionError("connection refused")
            if len(called_endpoints) == 2:
                # HTTP 429 Too Many Requests
                raise ClientResponseError(MagicMock(), (), status=429)
            return RESPONSE

        with mock.patch.object(
            AsyncHTTPProvider,
            "make_request",
            new_callable=AsyncMock,
            side_effect=fake_request,
        ):
            response = await provider.make_request("eth_blockNumber", [])

        assert response == RESPONSE
        assert called_endpoints == [ENDPOINT_1, ENDPOINT_2, ENDPOINT_1]

    ########################################################
    # Error
    ########################################################

    # Error_1
    # - All retries fail
    async def test_error_1(self):
        provider = new_provider(retry_count=3)

        with mock.patch.object(
            AsyncHTTPProvider,
            "make_request",
            new_callable=AsyncMock,
            side_effect=ClientConnectionError("connection refused"),
        ) as make_request:
            with pytest.raises(
                RpcUnavailableError,
                match="JSON-RPC endpoint is unavailable: method=eth_getBlockByNumber",
            ) as exc_info:
                await provider.make_request("eth_getBlockByNumber", ["0x1", True])

        assert make_request.await_count == 4
        assert isinstance(exc_info.value, ServiceUnavailableError)
