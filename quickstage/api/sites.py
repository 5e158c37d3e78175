"""
Serve hosted sites on <project>.<base_domain>.

This router catches every GET/HEAD that no other endpoint handled, so it must be included last.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, Response

from quickstage.api.common import get_store
from quickstage.api.info import info_text
from quickstage.config import Settings, get_settings
from quickstage.errors import UpstreamError
from quickstage.objectstorage.store import ObjectStore
from quickstage.sites.mapper import normalize_host, resolve_path, resolve_project
from quickstage.sites.resolver import resolve

logger = logging.getLogger("quickstage.sites")

app_sites = APIRouter(tags=["sites"])


def site_project(request: Request, settings: Settings = Depends(get_settings)) -> str | None:
    host = normalize_host(request.headers.get("host"))
    return resolve_project(host, settings.main_host_list, settings.base_domain)


@app_sites.api_route("/{path:path}", methods=["GET", "HEAD"], include_in_schema=False)
async def serve_site(
    request: Request,
    project: str | None = Depends(site_project),
    settings: Settings = Depends(get_settings),
    store: ObjectStore = Depends(get_store),
) -> Response:
    if project is None:
        if request.url.path == "/":
            return PlainTextResponse(info_text(settings.base_domain))
        return PlainTextResponse("Not Found", status_code=404)

    relative_path = resolve_path(request.url.path)
    try:
        content = await resolve(store, project, relative_path, spa_fallback=settings.spa_fallback, timeout=settings.s3_timeout)
    except UpstreamError:
        logger.exception(f"serve.error project={project} path={relative_path}")
        return PlainTextResponse("Server error", status_code=500)

    if content is None:
        return PlainTextResponse("Not Found", status_code=404)

    headers = {"Content-Type": content.content_type}
    if content.cache_control:
        headers["Cache-Control"] = content.cache_control
    return Response(content=content.body, status_code=200, headers=headers)
