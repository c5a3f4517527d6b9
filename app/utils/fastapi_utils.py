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

from decimal import Decimal
from typing import Any

import orjson
from fastapi.responses import ORJSONResponse
from hexbytes import HexBytes

from config import RESPONSE_VALIDATION_MODE

INT64_MAX = 2**63 - 1
INT64_MIN = -(2**63)


def orjson_default(obj):
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, HexBytes):
        return obj.to_0x_hex()
    if isinstance(obj, (bytes, bytearray)):
        return "0x" + obj.hex()
    raise TypeError


def stringify_large_ints(content: Any) -> Any:
    """Replace integers outside the signed 64-bit range with decimal strings"""
    if isinstance(content, bool):
        return content
    if isinstance(content, int):
        if INT64_MIN <= content <= INT64_MAX:
            return content
        return str(content)
    if isinstance(content, dict):
        return {k: stringify_large_ints(v) for k, v in content.items()}
    if isinstance(content, (list, tuple)):
        return [stringify_large_ints(v) for v in content]
    return content


class ExplorerJSONResponse(ORJSONResponse):
    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        options = orjson.OPT_NON_STR_KEYS
        try:
            return orjson.dumps(content, option=options, default=orjson_default)
        except TypeError as e:
            # orjson does not call default for int; uint256 values reach here
            if e.args and e.args[0] == "Integer exceeds 64-bit range":
                return orjson.dumps(
                    stringify_large_ints(content),
                    option=options,
                    default=orjson_default,
                )
            raise


def json_response(content: dict | list):
    if RESPONSE_VALIDATION_MODE:
        # Let FastAPI validate the content against the response_model
        return content
    return ExplorerJSONResponse(content=content)
