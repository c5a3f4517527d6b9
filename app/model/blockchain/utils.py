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

from hexbytes import HexBytes


def to_hex(value: bytes | str | None) -> str | None:
    """Normalize HexBytes / bytes / hex string to a lower-case 0x-prefixed string"""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return HexBytes(value).to_0x_hex()
    value = value.lower()
    if not value.startswith("0x"):
        value = "0x" + value
    return value


def normalize_address(value: str | None) -> str | None:
    """Lower-case address; None stays None"""
    if value is None:
        return None
    return value.lower()


def topic_to_address(topic: bytes | str) -> str:
    """Address stored in the low 20 bytes of a 32-byte topic word"""
    raw = HexBytes(topic)
    if len(raw) != 32:
        raise ValueError(f"topic must be 32 bytes: length={len(raw)}")
    return "0x" + raw[12:].hex()


def to_int(value: bytes | str | int | None) -> int | None:
    """Quantity given as int, hex string or bytes"""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray)):
        return int.from_bytes(value, "big")
    if value in ("0x", ""):
        return 0
    return int(value, 16)
