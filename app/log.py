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

import logging
import sys
import urllib
from datetime import UTC, datetime

from fastapi import Request, Response

from config import ACCESS_LOGFILE, APP_ENV, LOG_LEVEL

logging.basicConfig(level=LOG_LEVEL)
LOG = logging.getLogger("explorer_api")
LOG.propagate = False
ACCESS_LOG = logging.getLogger("explorer_api_access")
ACCESS_LOG.propagate = False

logging.getLogger("web3.manager.RequestManager").propagate = False
logging.getLogger("web3.manager.RequestManager").addHandler(logging.NullHandler())

INFO_FORMAT = "[%(asctime)s] {}[%(process)d] [%(levelname)s] %(message)s"
DEBUG_FORMAT = "[%(asctime)s] {}[%(process)d] [%(levelname)s] %(message)s [in %(pathname)s:%(lineno)d]"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %z"
# NOTE:
# If 'X-Forwarded-For' is set for headers, that will be set prioritized to client ip.
# [client ip] message
ACCESS_FORMAT = '[%s] "%s %s HTTP/%s" %d (%.6fsec)'


def _add_stream_handler(logger: logging.Logger, stream, log_format: str):
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(log_format, TIMESTAMP_FORMAT))
    logger.addHandler(handler)


if APP_ENV in ("live", "dev", "local"):
    # Source locations are printed outside the live environment
    app_format = INFO_FORMAT if APP_ENV == "live" else DEBUG_FORMAT
    _add_stream_handler(LOG, sys.stdout, app_format.format(""))
    _add_stream_handler(
        ACCESS_LOG, open(ACCESS_LOGFILE, "a"), INFO_FORMAT.format("[ACCESS-LOG] ")
    )


def get_logger():
    return LOG


def output_access_log(req: Request, res: Response, request_start_time: datetime):
    url = __get_url(req)
    if url != "/":
        method = req.scope.get("method", "")
        http_version = req.scope.get("http_version", "")
        status_code = res.status_code
        response_time = (
            datetime.now(UTC).replace(tzinfo=None) - request_start_time
        ).total_seconds()
        ACCESS_LOG.info(
            ACCESS_FORMAT
            % (
                __get_client_host(req),
                method,
                url,
                http_version,
                status_code,
                response_time,
            )
        )


def __get_client_host(req: Request):
    for key_bytes, value_bytes in req.scope.get("headers", []):
        if key_bytes.decode().lower() == "x-forwarded-for":
            return value_bytes.decode().split(",")[0].strip()
    if req.client is None:
        return ""
    return req.client.host


def __get_url(req: Request):
    scope = req.scope
    url = urllib.parse.quote(scope.get("root_path", "") + scope.get("path", ""))
    if scope.get("query_string", None):
        url = "{}?{}".format(url, scope["query_string"].decode("ascii"))
    return url
