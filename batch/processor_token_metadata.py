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
import sys
from typing import Sequence

import uvloop
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import BatchAsyncSessionLocal
from app.exceptions import ServiceUnavailableError
from app.model.blockchain import ChainClient
from app.model.db import IDXToken, TokenType
from batch.utils import batch_log
from batch.utils.signal_handler import setup_signal_handler
from config import TOKEN_METADATA_INTERVAL, TOKEN_METADATA_LOT_SIZE

"""
[PROCESSOR-Token-Metadata]

Fill name, symbol, decimals and total supply of tokens
found by the chain indexer
"""

process_name = "PROCESSOR-Token-Metadata"
LOG = batch_log.get_logger(process_name=process_name)


class Processor:
    def __init__(self, client: ChainClient | None = None):
        self.client = client if client is not None else ChainClient()

    @staticmethod
    def __get_db_session() -> AsyncSession:
        return BatchAsyncSessionLocal()

    async def process(self):
        local_session = self.__get_db_session()
        try:
            tokens: Sequence[IDXToken] = (
                await local_session.scalars(
                    select(IDXToken)
                    .where(IDXToken.metadata_fetched == False)
                    .order_by(IDXToken.first_seen_block, IDXToken.address)
                    .limit(TOKEN_METADATA_LOT_SIZE)
                )
            ).all()
            if len(tokens) == 0:
                return

            for token in tokens:
                await self.__fetch_metadata(token)
            await local_session.commit()
            LOG.info(f"Token metadata has been updated: count={len(tokens)}")
        except Exception:
            await local_session.rollback()
            raise
        finally:
            await local_session.close()

    async def __fetch_metadata(self, token: IDXToken):
        name = await self.client.call_token_function(token.address, "name")
        symbol = await self.client.call_token_function(token.address, "symbol")
        total_supply = await self.client.call_token_function(
            token.address, "totalSupply"
        )
        # ERC721 and ERC1155 tokens are indivisible
        decimals = None
        if token.token_type == TokenType.ERC20:
            decimals = await self.client.call_token_function(token.address, "decimals")

        token.name = name[:200] if isinstance(name, str) else None
        token.symbol = symbol[:100] if isinstance(symbol, str) else None
        token.decimals = decimals if isinstance(decimals, int) else None
        token.total_supply = total_supply if isinstance(total_supply, int) else None
        token.metadata_fetched = True
        LOG.debug(
            f"Token metadata: token={token.address}, name={token.name}, symbol={token.symbol}"
        )


async def main():
    LOG.info("Service started successfully")

    is_shutdown = asyncio.Event()
    setup_signal_handler(logger=LOG, is_shutdown=is_shutdown)

    processor = Processor()

    try:
        while not is_shutdown.is_set():
            try:
                await processor.process()
            except ServiceUnavailableError:
                LOG.warning("An external service was unavailable")
            except SQLAlchemyError as sa_err:
                LOG.error(
                    f"A database error has occurred: code={sa_err.code}\n{sa_err}"
                )
            except Exception as ex:
                LOG.error(ex)

            await asyncio.sleep(TOKEN_METADATA_INTERVAL)
    finally:
        LOG.info("Service is shutdown")


if __name__ == "__main__":
    try:
        uvloop.run(main())
    except KeyboardInterrupt:
        sys.exit(1)
