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

import pytest

from app.utils.asyncio_utils import SemaphoreTaskGroup


@pytest.mark.asyncio
class TestSemaphoreTaskGroup:
    # Normal_1
    # Results are returned in argument order
    async def test_normal_1(self):
        async def delayed(value: int, delay: float):
            await asyncio.sleep(delay)
            return value

        result = await SemaphoreTaskGroup.gather(
            delayed(1, 0.03), delayed(2, 0.01), delayed(3, 0), max_concurrency=3
        )
        assert result == [1, 2, 3]

    # Normal_2
    # No more than max_concurrency coroutines run at once
    async def test_normal_2(self):
        running = 0
        peak = 0

        async def task():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        await SemaphoreTaskGroup.gather(*[task() for _ in range(6)], max_concurrency=2)
        assert peak == 2

    # Error_1
    # A failure cancels the group and is raised in an ExceptionGroup
    async def test_error_1(self):
        async def fail():
            raise ValueError("rpc failed")

        async def slow():
            await asyncio.sleep(1)

        with pytest.raises(ExceptionGroup) as exc_info:
            await SemaphoreTaskGroup.gather(slow(), fail(), max_concurrency=2)

        assert exc_info.group_contains(ValueError, match="rpc failed")
