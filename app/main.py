"""Keystone Admin API application: logging, routers and the last-resort error handler."""

import logging

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1 import router as v1_router
from app.core.config import settings
from app.core.security import signing_key
from app.schemas.common import ApiResponse, ErrorCode

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

# A missing or weak signing key stops the process here, before any route is served.
signing_key(settings)

app = FastAPI(
    title="Keystone Admin API",
    version="0.1.0",
    description="Accounts, JWT/refresh-token authentication and role-based permissions.",
    docs_url="/docs" if settings.APP_ENV == "dev" else None,
    redoc_url="/redoc" if settings.APP_ENV == "dev" else None,
)

# Refresh tokens travel in a cookie, so credentials must be allowed cross-origin in dev.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "dev" else [],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    """Anything escaping a route is logged and rendered as the generic failure envelope."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    body = ApiResponse.fail("An unexpected error occurred", ErrorCode.UNEXPECTED)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(mode="json"),
    )


@app.get("/")
def root() -> dict[str, str]:
    return {"service": "keystone-admin", "docs": "/docs"}
