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

from enum import IntEnum
from typing import Annotated, Optional

from pydantic import BaseModel, Field, NonNegativeInt, StringConstraints

############################
# TYPES
############################
# 256-bit unsigned values (wei, token amounts, token ids) do not fit JSON numbers
Uint256Str = Annotated[
    str,
    StringConstraints(pattern=r"^[0-9]+$"),
    Field(description="Decimal string of a 256-bit unsigned integer"),
]
HexStr = Annotated[str, StringConstraints(pattern=r"^0x[0-9a-fA-F]*$")]


############################
# REQUEST
############################
class SortOrder(IntEnum):
    """Sort order (0: ASC, 1: DESC)"""

    ASC = 0
    DESC = 1


class BasePaginationQuery(BaseModel):
    offset: Optional[NonNegativeInt] = Field(None, description="Number of rows to skip")
    limit: Optional[NonNegativeInt] = Field(
        None, description="Maximum number of rows to return"
    )


############################
# RESPONSE
############################
class ResultSet(BaseModel):
    """Pagination of a list response"""

    count: Optional[int] = Field(..., description="Rows matching the filters")
    offset: Optional[int] = Field(...)
    limit: Optional[int] = Field(...)
    total: Optional[int] = Field(..., description="Rows before filtering")
