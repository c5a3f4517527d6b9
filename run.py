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

import os
import sys

from gunicorn.app.wsgiapp import run

DEFAULT_ARGS = [
    "--worker-class",
    "server.ExplorerUvicornWorker",
    "--bind",
    f"0.0.0.0:{os.environ.get('PORT') or 5000}",
    "--workers",
    os.environ.get("WORKERS") or "2",
]

if __name__ == "__main__":
    # Fall back to serving the explorer app when no app module is given
    if len(sys.argv) == 1:
        sys.argv.extend(DEFAULT_ARGS + ["app.main:app"])
    if "--logger-class" not in sys.argv:
        sys.argv[1:1] = ["--logger-class", "server.ExplorerGunicornLogger"]

    run(prog="gunicorn")
