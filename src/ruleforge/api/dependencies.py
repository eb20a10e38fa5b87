"""FastAPI integration for HTTP request validation.

Usage:
    schema = http().for_methods("POST").body("email", email()).build()

    app = FastAPI()
    install_validation_handler(app)

    @app.post("/users", dependencies=[Depends(validate_request(schema))])
    async def create_user(payload: dict): ...

Failing requests are answered with a 422 `{"valid": false, "errors": [...]}`.
"""

import json
import logging
from typing import Any, Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ruleforge.targets.base import TargetSchema
from ruleforge.targets.http import HttpValidator
from ruleforge.validation.types import (
    ValidationContext,
    ValidationError,
    ValidationResult,
)

logger = logging.getLogger(__name__)


class ValidationErrorModel(BaseModel):
    message: str | None = None
    path: list[str] = []
    target: str | None = None
    messageIds: list[str] | None = None
    expected: list[Any] | None = None
    received: list[Any] | None = None


class ValidationFailureResponse(BaseModel):
    valid: bool = False
    errors: list[ValidationErrorModel]


class RequestValidationFailed(Exception):
    """Raised by `validate_request` when the request does not pass its schema."""

    def __init__(self, result: ValidationResult):
        super().__init__(f"Request validation failed with {len(result.errors)} error(s)")
        self.result = result


async def collect_request_targets(request: Request) -> dict[str, Any]:
    """Build the body/headers/params/query/cookies bags for a request.

    The body bag is the decoded JSON document for JSON requests and None
    otherwise. Repeated query parameters are collected into lists.

    Raises:
        RequestValidationFailed: If a JSON body cannot be decoded
    """
    body: Any = None
    content_type = request.headers.get("content-type", "")
    if "json" in content_type:
        raw = await request.body()
        if raw:
            try:
                body = json.loads(raw)
            except ValueError:
                raise RequestValidationFailed(
                    ValidationResult.fail(
                        ValidationError(
                            message="Request body is not valid JSON",
                            message_ids=("validation.error.body.json",),
                            path=("body",),
                            target="body",
                        )
                    )
                ) from None

    query: dict[str, Any] = {}
    for key, value in request.query_params.multi_items():
        if key not in query:
            query[key] = value
        elif isinstance(query[key], list):
            query[key].append(value)
        else:
            query[key] = [query[key], value]

    return {
        "body": body,
        "headers": request.headers,
        "params": dict(request.path_params),
        "query": query,
        "cookies": dict(request.cookies),
    }


def validate_request(
    schema: TargetSchema,
    validator: HttpValidator | None = None,
    context_factory: Callable[[Request], ValidationContext] | None = None,
) -> Callable[[Request], Any]:
    """Create a dependency that validates the request against `schema`.

    Args:
        schema: HTTP validation schema
        validator: Validator to use (a default HttpValidator if omitted)
        context_factory: Builds the validation context (named conditions,
            data) from the request

    Returns:
        A FastAPI dependency returning the passing ValidationResult

    Raises:
        RequestValidationFailed: From the dependency, if validation fails
    """
    validator = validator or HttpValidator()

    async def dependency(request: Request) -> ValidationResult:
        if not schema.applies(request.method):
            return ValidationResult.ok()

        bags = await collect_request_targets(request)
        context = context_factory(request) if context_factory else None
        result = await validator.validate(
            schema, method=request.method, context=context, **bags
        )
        if not result.valid:
            logger.debug(
                "%s %s failed validation: %d error(s)",
                request.method,
                request.url.path,
                len(result.errors),
            )
            raise RequestValidationFailed(result)
        return result

    return dependency


async def _validation_failed_handler(
    request: Request, exc: RequestValidationFailed
) -> JSONResponse:
    payload = ValidationFailureResponse(
        errors=[ValidationErrorModel(**e.to_dict()) for e in exc.result.errors],
    )
    return JSONResponse(
        status_code=422,
        content=payload.model_dump(mode="json", exclude_none=True),
    )


def install_validation_handler(app: FastAPI) -> None:
    """Answer RequestValidationFailed with a 422 JSON response."""
    app.add_exception_handler(RequestValidationFailed, _validation_failed_handler)
