import logging
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.config import settings
from backend.routers import panel
from backend.routers.panel import FormLinkUnavailable
from backend.services.panel_session import get_panel_session
from backend.services.sheets import LoadError

app = FastAPI(title="Professional Panel API", version="0.1.0")
logger = logging.getLogger(__name__)

allowed_origins = [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    if not settings.reload_on_startup:
        return
    try:
        await get_panel_session().reload()
    except LoadError as exc:
        logger.error("Initial load failed, starting with an empty panel: %s", exc)


@app.get("/")
def root():
    return {"statusCode": 200, "message": "Success", "data": {"status": "ok", "service": "professional-panel"}}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "service": "professional-panel",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _error_name(status_code: int) -> str:
    if status_code == 404:
        return "NotFound"
    if status_code >= 500:
        return "InternalServerError"
    return "HTTPError"


@app.exception_handler(HTTPException)
async def http_exception_handler(_: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "statusCode": exc.status_code,
            "message": str(exc.detail) if exc.detail else "Request failed",
            "error": _error_name(exc.status_code),
        },
    )


@app.exception_handler(LoadError)
async def load_error_handler(_: Request, exc: LoadError):
    return JSONResponse(
        status_code=502,
        content={
            "statusCode": 502,
            "message": str(exc),
            "error": "LoadFailure",
            "details": {"record_set": exc.record_set},
        },
    )


@app.exception_handler(FormLinkUnavailable)
async def form_link_unavailable_handler(_: Request, exc: FormLinkUnavailable):
    return JSONResponse(
        status_code=409,
        content={
            "statusCode": 409,
            "message": exc.gap.message,
            "error": "ConfigurationGap",
            "details": exc.gap.model_dump(),
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "statusCode": 422,
            "message": "Invalid request payload",
            "error": "ValidationError",
            "details": {"errors": exc.errors()},
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(_: Request, exc: Exception):
    logger.exception("Unhandled server error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={
            "statusCode": 500,
            "message": str(exc) or "An unexpected error occurred",
            "error": "InternalServerError",
        },
    )


app.include_router(panel.router)
