"""Response envelopes and error handlers for the mock store"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Error rendered as `{status, message, data}`"""

    def __init__(self, status: int, message: str, data: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.data = data


class InsufficientStockError(StoreError):
    def __init__(self, product_name: str, available: int, requested: int):
        super().__init__(
            400,
            f"Insufficient stock for product '{product_name}'. "
            f"Available: {available}, Requested: {requested}",
            data={"field": "quantity", "availableQuantity": available},
        )


def success_response(data: Any = None, message: Optional[str] = None) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True)
    return {"success": True, "data": data, "message": message}


def error_response(status: int, message: str, data: Optional[dict] = None) -> JSONResponse:
    content: dict[str, Any] = {"status": status, "message": message}
    if data:
        content["data"] = jsonable_encoder(data)
    return JSONResponse(status_code=status, content=content)


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} -> {exc.status}: {exc.message}")
    return error_response(exc.status, exc.message, exc.data)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    field = str(errors[0]["loc"][-1]) if errors and errors[0].get("loc") else None
    return error_response(422, "Invalid request", {"field": field, "errors": errors})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
