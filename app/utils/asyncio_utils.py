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

from asyncio import Semaphore, TaskGroup
from typing import Any, Coroutine, TypeVar

T = TypeVar("T")


class SemaphoreTaskGroup(TaskGroup):
    """TaskGroup that caps the number of coroutines running at once

    Used to fan out JSON-RPC requests (receipts, balances) without
    overloading the endpoint.
    """

    def __init__(self, *, max_concurrency: int = 0):
        super().__init__()
        if max_concurrency:
            self._semaphore = Semaphore(value=max_concurrency)
        else:
            self._semaphore = None

    @classmethod
    async def gather(
        cls, *args: Coroutine[Any, Any, T], max_concurrency: int
    ) -> list[T]:
        """Run coroutines and return their results in argument order

        If any coroutine fails, the remaining ones are cancelled and
        an ExceptionGroup is raised.
        """
        async with cls(max_concurrency=max_concurrency) as tg:
            dispatched = [tg.create_task(coro) for coro in args]
        return [task.result() for task in dispatched]

    def create_task(self, coro, *args, **kwargs):
        if self._semaphore:

            async def _wrapped_coro(sem, coro):
                async with sem:
                    return await coro

            coro = _wrapped_coro(self._semaphore, coro)

        return super().create_task(coro, *args, **kwargs)
