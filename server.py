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
import os

from gunicorn.glogging import Logger
from uvicorn.workers import UvicornWorker

# uvicorn parameters
WORKER_CONNECTIONS = int(os.environ.get("WORKER_CONNECTIONS") or 100)
KEEPALIVE_TIMEOUT = int(os.environ.get("KEEPALIVE_TIMEOUT") or 5)


class ExplorerUvicornWorker(UvicornWorker):
    """Worker class loaded by gunicorn to serve the explorer API"""

    CONFIG_KWARGS = {
        "loop": "uvloop",
        "http": "h11",
        # NOTE: gunicorn doesn't pass '--worker-connections' to uvicorn
        "limit_concurrency": WORKER_CONNECTIONS,
        "timeout_keep_alive": KEEPALIVE_TIMEOUT,
    }


class SuppressSigtermFilter(logging.Filter):
    """Drop the error record gunicorn writes for each worker stopped by SIGTERM"""

    def filter(self, record):
        return not (
            record.levelno == logging.ERROR and "was sent SIGTERM" in str(record.msg)
        )


class ExplorerGunicornLogger(Logger):
    def setup(self, cfg):
        super().setup(cfg)
        self.error_log.addFilter(SuppressSigtermFilter())
