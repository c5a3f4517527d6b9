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

from fastapi import status


class AppError(Exception):
    """Errors rendered as {"meta": {"code", "title"}, "detail"} responses"""

    status_code: int
    code: int
    # Defaults to the class name
    title: str | None = None
    # Sample "detail" values for the API document
    examples: tuple[str, ...] = ()


################################################
# 400_BAD_REQUEST
################################################
class BadRequestError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidParameterError(BadRequestError):
    code = 1
    examples = ("invalid ethereum address", "invalid hash")


class ResponseLimitExceededError(BadRequestError):
    code = 4
    examples = ("Search results exceed the limit",)


################################################
# 404_NOT_FOUND
################################################
class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 1
    title = "NotFound"
    examples = ("block not found", "transaction not found")


################################################
# 503_SERVICE_UNAVAILABLE
################################################
class ServiceUnavailableError(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = 1
    examples = ("database is unavailable",)


class RpcUnavailableError(ServiceUnavailableError):
    """
    JSON-RPC endpoint could not be reached after all retries,
    or returned data that is inconsistent with the requested block
    """

    code = 2


################################################
# Indexer
################################################
class BlockNotFoundError(Exception):
    """The requested block does not exist on the node (yet)"""

    def __init__(self, block_identifier: int | str):
        self.block_identifier = block_identifier
        super().__init__(f"Block not found: {block_identifier}")


class TraceNotSupportedError(Exception):
    """The node does not expose the configured tracing method"""


class LogDecodeError(Exception):
    """A log matched a known event signature but its payload is malformed"""


class IndexerFatalError(Exception):
    """Errors that stop a stream until an operator intervenes"""


class ReorgTooDeepError(IndexerFatalError):
    def __init__(self, block_number: int, max_depth: int):
        self.block_number = block_number
        self.max_depth = max_depth
        super().__init__(
            f"No common ancestor found within {max_depth} blocks below block {block_number}"
        )


class ChainIdMismatchError(IndexerFatalError):
    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Chain ID mismatch: expected={expected}, actual={actual}")
