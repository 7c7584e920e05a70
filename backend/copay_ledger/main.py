import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from copay_ledger.core.config import settings
from copay_ledger.core.exceptions import ApiError, ErrorCode
from copay_ledger.routers import patients, payments, webhooks
from copay_ledger.schemas.error import ErrorResponse

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {"name": "Patients", "description": "Copays, payments, credit and summaries per patient."},
    {"name": "Payments", "description": "Look up submitted payments and their allocations."},
    {"name": "Webhooks", "description": "Charge outcome callbacks from the payment processor."},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Copay payment allocation and settlement API. "
        "Submit payments against visit copays, track their settlement through "
        "processor callbacks, and review patient credit."
    ),
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(
    request: Request,
    error_code: ErrorCode,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        timestamp=datetime.now(UTC),
        path=request.url.path,
        error_code=error_code.value,
        message=message,
        retryable=error_code.retryable,
        details=details or {},
    )
    return JSONResponse(status_code=error_code.http_status, content=body.model_dump(mode="json"))


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("Internal error on %s: %s", request.url.path, exc)
    else:
        logger.info("Request to %s rejected: %s", request.url.path, exc)
    return _error_response(request, exc.error_code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return _error_response(
        request, ErrorCode.VALIDATION_ERROR, "Request validation failed", {"errors": errors}
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 405:
        return _error_response(request, ErrorCode.METHOD_NOT_ALLOWED, "Method not allowed")
    if exc.status_code == 404:
        return _error_response(request, ErrorCode.RESOURCE_NOT_FOUND, str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        request, ErrorCode.INTERNAL_SERVER_ERROR, "An unexpected error occurred"
    )


app.include_router(patients.router, prefix="/v1/patients", tags=["Patients"])
app.include_router(payments.router, prefix="/v1/payments", tags=["Payments"])
app.include_router(webhooks.router, prefix="/v1/webhooks", tags=["Webhooks"])


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "domain": settings.APP_DOMAIN,
        "status": "running",
    }
