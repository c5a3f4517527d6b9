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

import asyncio
import threading
from json.decoder import JSONDecodeError
from typing import Any

from aiohttp import ClientError, ClientTimeout
from eth_typing import URI
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.eth import AsyncEth
from web3.middleware import ExtraDataToPOAMiddleware
from web3.net import AsyncNet
from web3.types import RPCEndpoint, RPCResponse

from app import log
from app.exceptions import RpcUnavailableError
from config import (
    WEB3_HTTP_PROVIDER,
    WEB3_HTTP_PROVIDER_STANDBY,
    WEB3_REQUEST_BACKOFF_BASE,
    WEB3_REQUEST_BACKOFF_MAX,
    WEB3_REQUEST_RETRY_COUNT,
    WEB3_REQUEST_TIMEOUT,
)

thread_local = threading.local()
LOG = log.get_logger()


def backoff_interval(attempt: int, base: float, maximum: float) -> float:
    """Exponential backoff: base * 2^attempt, capped at maximum"""
    return min(base * (2**attempt), maximum)


class AsyncWeb3Wrapper:
    DEFAULT_TIMEOUT = WEB3_REQUEST_TIMEOUT

    def __init__(self, request_timeout: int | None = DEFAULT_TIMEOUT):
        self.request_timeout = request_timeout

    @property
    def eth(self) -> AsyncEth:
        web3 = self._get_web3(self.request_timeout)
        return web3.eth

    @property
    def net(self) -> AsyncNet:
        web3 = self._get_web3(self.request_timeout)
        return web3.net

    @property
    def provider(self) -> "AsyncFailOverHTTPProvider":
        web3 = self._get_web3(self.request_timeout)
        return web3.provider

    @staticmethod
    def _get_web3(request_timeout: int) -> AsyncWeb3:
        # Get web3 for each thread because make to AsyncFailOverHTTPProvider thread-safe
        try:
            async_web3 = thread_local.async_web3
        except AttributeError:
            async_web3 = AsyncWeb3(
                AsyncFailOverHTTPProvider(
                    endpoints=[WEB3_HTTP_PROVIDER] + WEB3_HTTP_PROVIDER_STANDBY,
                    request_kwargs={"timeout": ClientTimeout(total=request_timeout)},
                )
            )
            async_web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
            thread_local.async_web3 = async_web3

        return async_web3


class AsyncFailOverHTTPProvider(AsyncHTTPProvider):
    """HTTP provider with retry and fail-over

    - Connection errors, timeouts and HTTP errors (e.g. 429, 5xx) are retried
      up to WEB3_REQUEST_RETRY_COUNT times with exponential backoff.
    - Each retry switches to the next endpoint (primary -> standby -> ...).
    - RpcUnavailableError is raised when all retries fail.
    """

    def __init__(
        self,
        endpoints: list[str],
        retry_count: int = WEB3_REQUEST_RETRY_COUNT,
        backoff_base: float = WEB3_REQUEST_BACKOFF_BASE,
        backoff_max: float = WEB3_REQUEST_BACKOFF_MAX,
        *args,
        **kwargs,
    ):
        # Retries are handled in make_request
        kwargs.setdefault("exception_retry_configuration", None)
        super().__init__(endpoints[0], *args, **kwargs)
        self.endpoints = endpoints
        self.endpoint_index = 0
        self.retry_count = retry_count
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max

    def switch_endpoint(self):
        self.endpoint_index = (self.endpoint_index + 1) % len(self.endpoints)
        self.endpoint_uri = URI(self.endpoints[self.endpoint_index])

    async def make_request(self, method: RPCEndpoint, params: Any) -> RPCResponse:
        counter = 0
        while True:
            self.endpoint_uri = URI(self.endpoints[self.endpoint_index])
            try:
                return await super().make_request(method, params)
            except (ClientError, JSONDecodeError, asyncio.TimeoutError) as err:
                # NOTE:
                #  ClientResponseError (subclass of ClientError) is raised
                #  for HTTP 429 and 5xx responses.
                if counter >= self.retry_count:
                    raise RpcUnavailableError(
                        f"JSON-RPC endpoint is unavailable: method={method}"
                    ) from err
                wait_time = backoff_interval(
                    counter, self.backoff_base, self.backoff_max
                )
                LOG.info(
                    f"Retry web3 request due to connection fail: method={method}, endpoint={self.endpoint_uri}, wait={wait_time}"
                )
                counter += 1
                self.switch_endpoint()
                await asyncio.sleep(wait_time)
