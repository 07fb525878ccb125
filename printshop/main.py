"""
main.py — FastAPI application for the print-shop quote engine

Wires routers, session middleware, request-id middleware and the error
handlers that turn engine errors into ErrorResponse bodies.

Business Rules:
- Every response carries an 8-character X-Request-ID, bound to the log context
- QuoteEngineError codes map to fixed HTTP statuses; the body carries a
  localized message (English or Hebrew, by Accept-Language) and no stack detail
- Startup creates tables and seeds default scoring weights (skipped in tests)

Called by: uvicorn (printshop.main:app)
Depends on: routers/*, logging_config, startup, exceptions
"""

import os
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException
from starlette.middleware.sessions import SessionMiddleware

from .config import APP_VERSION, settings
from .exceptions import QuoteEngineError
from .logging_config import setup_logging
from .routers import pricing, quotes, recommendations, suppliers
from .routers import settings as settings_router
from .schemas.errors import ErrorResponse


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if not os.environ.get("TESTING"):
        from .startup import run_startup

        run_startup()
    logger.info("Quote engine {} started", APP_VERSION)
    yield


app = FastAPI(title="Print-Shop Quote Engine", version=APP_VERSION, lifespan=lifespan)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.secret_key,
    https_only=settings.app_url.startswith("https"),
)


# ── Request ID middleware ────────────────────────────────────────────


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = uuid.uuid4().hex[:8]
    request.state.request_id = request_id
    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Error handling ───────────────────────────────────────────────────

ERROR_STATUS = {
    "invalid_configuration": 422,
    "invalid_transition": 409,
    "already_assigned": 409,
    "no_eligible_supplier": 404,
    "not_found": 404,
    "not_authorized": 403,
    "manual_override_conflict": 500,
}

ERROR_MESSAGES = {
    "invalid_configuration": {
        "en": "The scoring configuration is invalid.",
        "he": "הגדרות הניקוד אינן תקינות.",
    },
    "invalid_transition": {
        "en": "This action is not allowed for the quote's current status.",
        "he": "הפעולה אינה מותרת בסטטוס הנוכחי של ההצעה.",
    },
    "already_assigned": {
        "en": "Another supplier was assigned to this item. Refresh and try again.",
        "he": "ספק אחר שובץ לפריט זה. יש לרענן ולנסות שוב.",
    },
    "no_eligible_supplier": {
        "en": "No single supplier can fulfil every item of this quote.",
        "he": "אין ספק יחיד שיכול לספק את כל הפריטים בהצעה.",
    },
    "not_found": {
        "en": "The requested record was not found.",
        "he": "הרשומה המבוקשת לא נמצאה.",
    },
    "not_authorized": {
        "en": "You are not allowed to perform this action.",
        "he": "אין לך הרשאה לבצע פעולה זו.",
    },
    "manual_override_conflict": {
        "en": "Internal pricing error.",
        "he": "שגיאת תמחור פנימית.",
    },
}


def _language(request: Request) -> str:
    accept = request.headers.get("accept-language", "").lower()
    return "he" if accept.startswith(("he", "iw")) else "en"


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "")


def localized_message(code: str, lang: str) -> str:
    messages = ERROR_MESSAGES.get(code)
    if not messages:
        return code
    return messages.get(lang, messages["en"])


@app.exception_handler(QuoteEngineError)
async def quote_engine_error_handler(request: Request, exc: QuoteEngineError):
    status = ERROR_STATUS.get(exc.code, 500)
    if status >= 500:
        logger.error("{} {}: {}", request.method, request.url.path, exc.message)
    else:
        logger.warning("{} {} -> {}: {}", request.method, request.url.path, exc.code, exc.message)
    body = ErrorResponse(
        error=localized_message(exc.code, _language(request)),
        code=exc.code,
        status_code=status,
        request_id=_request_id(request),
        detail=None if status >= 500 else {"message": exc.message},
    )
    return JSONResponse(status_code=status, content=body.model_dump())


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    body = ErrorResponse(
        error=str(exc.detail),
        status_code=exc.status_code,
        request_id=_request_id(request),
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    body = ErrorResponse(
        error="Validation error",
        code="validation_error",
        status_code=422,
        request_id=_request_id(request),
        detail=[
            {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")}
            for e in exc.errors()
        ],
    )
    return JSONResponse(status_code=422, content=body.model_dump())


# ── Routes ───────────────────────────────────────────────────────────

app.include_router(quotes.router)
app.include_router(pricing.router)
app.include_router(recommendations.router)
app.include_router(suppliers.router)
app.include_router(settings_router.router)


@app.get("/health")
def health():
    return {"status": "ok", "version": APP_VERSION}
