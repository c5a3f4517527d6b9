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

from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pydantic_core import ArgsKwargs, ErrorDetails
from sqlalchemy.exc import SQLAlchemyError
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.database import DBAsyncSession
from app.exceptions import AppError, ServiceUnavailableError
from app.log import LOG, output_access_log
from app.routers import bc_explorer
from app.utils.docs_utils import custom_openapi
from config import SERVER_NAME

tags_metadata = [
    {"name": "root", "description": "Health check"},
    {
        "name": "blockchain_explorer",
        "description": "Blocks, transactions, addresses, tokens and statistics "
        "read from the index",
    },
]

app = FastAPI(
    title="Chain Explorer",
    description="Read-only API over an indexed EVM chain",
    version="1.0",
    license_info={
        "name": "Apache 2.0",
        "url": "http://www.apache.org/licenses/LICENSE-2.0.html",
    },
    openapi_tags=tags_metadata,
)


@app.middleware("http")
async def access_log_middleware(request: Request, call_next):
    request_start_time = datetime.now(UTC).replace(tzinfo=None)
    response = await call_next(request)
    output_access_log(request, response, request_start_time)
    return response


app.openapi = custom_openapi(app)


###############################################################
# ROUTER
###############################################################


@app.get("/", tags=["root"])
async def root(db: DBAsyncSession):
    """Returns the server name if the index database is reachable"""
    try:
        await db.connection()
    except SQLAlchemyError as err:
        LOG.exception("Database connection check failed")
        raise ServiceUnavailableError("database is unavailable") from err
    return {"server": SERVER_NAME}


app.include_router(bc_explorer.router)


###############################################################
# EXCEPTION
###############################################################


def error_body(code: int, title: str, detail=None) -> dict:
    body = {"meta": {"code": code, "title": title}}
    if detail is not None:
        body["detail"] = detail
    return jsonable_encoder(body)


def convert_errors(e: ValidationError | RequestValidationError) -> list[ErrorDetails]:
    errors: list[ErrorDetails] = []
    for error in e.errors():
        # Pydantic's documentation link is not part of the API response
        error.pop("url", None)
        # Query models validated with model_validator report their input as ArgsKwargs
        if isinstance(error.get("input"), ArgsKwargs):
            error["input"] = error["input"].kwargs
        errors.append(error)
    return errors


# 400, 404, 503: errors raised by the application
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    detail = exc.args[0] if exc.args else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.title or exc.__class__.__name__, detail),
    )


# 422: invalid path/query parameters, or query models built directly in routers
@app.exception_handler(RequestValidationError)
@app.exception_handler(ValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError | ValidationError
):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body(1, "RequestValidationError", convert_errors(exc)),
    )


# 404: unknown path
@app.exception_handler(404)
async def not_found_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=error_body(1, "NotFound", exc.detail),
    )


# 405: the API is read-only
@app.exception_handler(405)
async def method_not_allowed_error_handler(
    request: Request, exc: StarletteHTTPException
):
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content=error_body(1, "MethodNotAllowed"),
    )


# 500
@app.exception_handler(500)
async def internal_server_error_handler(request: Request, exc: Exception):
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(1, "InternalServerError"),
    )
