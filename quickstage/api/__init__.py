"""QuickStage Hosting API."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from quickstage.api.domains import app_domains
from quickstage.api.info import app_info
from quickstage.api.projects import app_projects
from quickstage.api.sites import app_sites
from quickstage.config import get_settings
from quickstage.connections import close_quickstage_connections, start_quickstage_connections
from quickstage.errors import ConflictError, NotFoundError, UpstreamError, ValidationError

logger = logging.getLogger("quickstage.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.info("Starting object storage connection...")
    await start_quickstage_connections()

    yield
    await close_quickstage_connections()


app = FastAPI(
    title="QuickStage",
    description=__doc__ if __doc__ else "",
    openapi_tags=[
        dict(name="projects", description="Endpoints to create projects and upload their sites"),
        dict(name="domains", description="Endpoints to check custom domain DNS records"),
        dict(name="informational", description="Health and configuration"),
    ],
    lifespan=lifespan,
)
app.include_router(app_info)
app.include_router(app_projects)
app.include_router(app_domains)
# the site router catches all remaining paths, so it goes last
app.include_router(app_sites)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().allowed_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


def error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message}, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), headers=exc.headers)


@app.exception_handler(ValidationError)
async def validation_error_exception_handler(request: Request, exc: ValidationError):
    return error_response(exc.status_code, str(exc))


@app.exception_handler(NotFoundError)
async def not_found_exception_handler(request: Request, exc: NotFoundError):
    return error_response(404, "Not found")


@app.exception_handler(ConflictError)
async def conflict_exception_handler(request: Request, exc: ConflictError):
    return error_response(409, str(exc))


@app.exception_handler(UpstreamError)
async def upstream_exception_handler(request: Request, exc: UpstreamError):
    logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    return error_response(500, "Server error")


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "ok": False,
            "error": "There was an issue with the data you sent.",
            "fields_invalid": jsonable_encoder(exc.errors()),
        },
    )
