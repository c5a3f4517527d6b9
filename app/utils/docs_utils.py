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

from enum import Enum
from functools import lru_cache
from typing import Type, Union

from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field, create_model

from app.exceptions import AppError

STATUS_DESCRIPTIONS = {
    400: "Invalid Parameter Error / Response Limit Exceeded Error",
    404: "Not Found Error",
    503: "Service Unavailable Error",
}


class ValidationErrorMeta(BaseModel):
    code: int = Field(..., examples=[1])
    title: str = Field(..., examples=["RequestValidationError"])


class ValidationErrorDetail(BaseModel):
    loc: list[str | int] = Field(..., examples=[["query", "limit"]])
    msg: str = Field(..., examples=["Input should be greater than or equal to 0"])
    type: str = Field(..., examples=["greater_than_equal"])


class ValidationErrorResponse(BaseModel):
    meta: ValidationErrorMeta
    detail: list[ValidationErrorDetail]


@lru_cache(None)
def create_error_model(app_error: Type[AppError]) -> type[BaseModel]:
    """
    Build the response model documenting one AppError subclass.
    Cached because create_model() returns a new class on every call.
    """
    name = app_error.__name__
    code_enum = Enum(f"{name}Code", {str(app_error.code): app_error.code})
    meta_model = create_model(
        f"{name}Meta",
        code=(code_enum, Field(..., examples=[app_error.code])),
        title=(str, Field(..., examples=[app_error.title or name])),
    )
    error_model = create_model(
        f"{name}Response",
        meta=(meta_model, Field(...)),
        detail=(str, Field(..., examples=list(app_error.examples))),
    )
    error_model.__doc__ = app_error.__doc__
    return error_model


def get_routers_responses(*errors: Type[AppError]) -> dict[int, dict]:
    """
    Responses mapping for a router decorator. Errors sharing a status code
    are documented as a union of their models.
    """
    models: dict[int, set] = {}
    for error in errors:
        models.setdefault(error.status_code, set()).add(create_error_model(error))

    return {
        status_code: {
            "model": Union[tuple(sorted(group, key=lambda m: m.__name__))],
            "description": STATUS_DESCRIPTIONS.get(status_code, ""),
        }
        for status_code, group in sorted(models.items())
    }


def custom_openapi(app):
    def openapi():
        if app.openapi_schema is not None:
            return app.openapi_schema

        schema = get_openapi(
            title=app.title,
            version=app.version,
            openapi_version=app.openapi_version,
            description=app.description,
            routes=app.routes,
            tags=app.openapi_tags,
        )
        components = schema.setdefault("components", {}).setdefault("schemas", {})
        components["ValidationErrorResponse"] = ValidationErrorResponse.model_json_schema(
            ref_template="#/components/schemas/{model}"
        )
        for name, definition in components["ValidationErrorResponse"].pop(
            "$defs", {}
        ).items():
            components.setdefault(name, definition)

        for path_item in schema.get("paths", {}).values():
            for operation in path_item.values():
                responses = operation.get("responses", {})
                # FastAPI's HTTPValidationError has no "meta"; document ours instead
                if "422" in responses:
                    responses["422"]["content"] = {
                        "application/json": {
                            "schema": {
                                "$ref": "#/components/schemas/ValidationErrorResponse"
                            }
                        }
                    }
                for response in responses.values():
                    media = response.get("content", {}).get("application/json")
                    if media is None:
                        continue
                    if media.get("schema") == {}:
                        response.pop("content")
                    elif "anyOf" in media["schema"]:
                        media["schema"]["anyOf"].sort(key=lambda x: x["$ref"])

        app.openapi_schema = schema
        return schema

    return openapi
