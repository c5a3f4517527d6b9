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

from config import APP_ENV, LOG_LEVEL

logging.basicConfig(level=LOG_LEVEL)

# Parent of every batch process logger.
# Tests turn on propagation of this logger to capture batch logs.
LOG = logging.getLogger("background")
LOG.propagate = False

logging.getLogger("web3.manager.RequestManager").propagate = False
logging.getLogger("web3.manager.RequestManager").addHandler(logging.NullHandler())

INFO_FORMAT = "[%(asctime)s] [{}] [%(process)d] [%(levelname)s] %(message)s"
DEBUG_FORMAT = "[%(asctime)s] [{}] [%(process)d] [%(levelname)s] %(message)s [in %(pathname)s:%(lineno)d]"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %z"


def get_logger(process_name: str = None):
    """Get the logger of a batch process

    :param process_name: process name printed on each record
    :return: logger named "background.{process_name}"
    """
    if process_name is None:
        return LOG

    logger = LOG.getChild(process_name)
    if logger.handlers:
        return logger

    if APP_ENV == "live":
        log_format = INFO_FORMAT.format(process_name)
    else:
        log_format = DEBUG_FORMAT.format(process_name)
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter(log_format, TIMESTAMP_FORMAT))
    logger.addHandler(stream_handler)
    logger.setLevel(LOG_LEVEL)
    return logger
