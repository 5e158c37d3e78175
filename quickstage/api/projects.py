"""API Endpoints for creating projects and deploying their sites."""

import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile, status

from quickstage.api.auth import authenticated_user
from quickstage.api.common import MB, enforce_max_upload_size, get_store, not_found
from quickstage.config import Settings, get_settings
from quickstage.errors import NotFoundError, ValidationError
from quickstage.models import CreateProjectBody, ProjectResponse, UploadResponse, User
from quickstage.objectstorage.store import ObjectStore
from quickstage.projects import create_project, get_project, project_exists
from quickstage.sites.ingest import ArchiveIngestor
from quickstage.sites.keys import slugify

logger = logging.getLogger("quickstage.api")

app_projects = APIRouter(prefix="/api/projects", tags=["projects"])


def valid_slug(slug: str) -> str:
    result = slugify(slug)
    if not result:
        raise ValidationError("Invalid project slug")
    return result


@app_projects.post("", response_model=ProjectResponse)
@app_projects.post("/", response_model=ProjectResponse, include_in_schema=False)
async def create(
    body: CreateProjectBody,
    user: User = Depends(authenticated_user),
    settings: Settings = Depends(get_settings),
    store: ObjectStore = Depends(get_store),
):
    """
    Create a new project. The slug is derived from desiredSlug (or the name), and gets a numeric
    suffix if it is already taken.
    """
    meta = await create_project(
        store, name=body.name, owner=user.owner, base_domain=settings.base_domain, desired_slug=body.desiredSlug
    )
    return ProjectResponse(project=meta)


@app_projects.get("/{slug}", response_model=ProjectResponse)
async def read_project(
    slug: str,
    _user: User = Depends(authenticated_user),
    store: ObjectStore = Depends(get_store),
):
    """Get the metadata of a project."""
    try:
        return ProjectResponse(project=await get_project(store, valid_slug(slug)))
    except NotFoundError:
        raise not_found("Project not found")


@app_projects.post("/{slug}/upload", response_model=UploadResponse, status_code=status.HTTP_200_OK)
async def upload(
    slug: str,
    request: Request,
    file: UploadFile | None = File(None, description="Zip archive with the site files"),
    _user: User = Depends(authenticated_user),
    settings: Settings = Depends(get_settings),
    store: ObjectStore = Depends(get_store),
):
    """
    Deploy a site by uploading a zip archive (multipart field 'file').

    Every file in the archive is written to the project's site, overwriting files with the same path.
    Directories and entries with '..' in their path are skipped.
    """
    slug = valid_slug(slug)
    if not await project_exists(store, slug):
        raise not_found("Project not found. Create it first.")
    if file is None:
        raise ValidationError("Missing file (multipart field name must be 'file')")
    enforce_max_upload_size(request, file, settings.max_upload_mb)

    ingestor = ArchiveIngestor(store, max_unpacked_bytes=settings.max_unpacked_mb * MB, timeout=settings.s3_timeout)
    result = await ingestor.ingest(slug, file.file)
    return UploadResponse(uploaded=result.uploaded, skipped=result.skipped, url=settings.site_url(slug))
