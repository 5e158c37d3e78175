"""
Project metadata.

Projects are stored as small JSON documents in the same bucket as the sites, under __meta/projects/<slug>.json.
"""

import json
import logging
from datetime import UTC, datetime

from pydantic import ValidationError as PydanticValidationError

from quickstage.errors import ConflictError, NotFoundError, UpstreamError, ValidationError
from quickstage.models import ProjectMeta
from quickstage.objectstorage.store import ObjectNotFound, ObjectStore
from quickstage.sites.keys import MAX_SLUG_LENGTH, project_meta_key, random_suffix, slugify

logger = logging.getLogger("quickstage.projects")

MAX_SLUG_ATTEMPTS = 20
META_CONTENT_TYPE = "application/json; charset=utf-8"
META_CACHE_CONTROL = "no-store"


async def project_exists(store: ObjectStore, slug: str) -> bool:
    return await store.head(project_meta_key(slug))


async def get_project(store: ObjectStore, slug: str) -> ProjectMeta:
    try:
        obj = await store.get(project_meta_key(slug))
    except ObjectNotFound as e:
        raise NotFoundError(f"Project {slug} not found") from e
    try:
        return ProjectMeta.model_validate(json.loads(obj.body))
    except (ValueError, PydanticValidationError) as e:
        raise UpstreamError(f"Invalid metadata stored for project {slug}") from e


async def available_slug(store: ObjectStore, slug: str) -> str:
    """Return slug if it is free, otherwise slug-<3 digits>, trying a limited number of suffixes"""
    if not await project_exists(store, slug):
        return slug
    for _ in range(MAX_SLUG_ATTEMPTS):
        suffix = random_suffix(3)
        candidate = f"{slug[: MAX_SLUG_LENGTH - len(suffix) - 1].rstrip('-')}-{suffix}"
        if not await project_exists(store, candidate):
            return candidate
    raise ConflictError("Could not find an available slug. Try another name.")


async def create_project(
    store: ObjectStore,
    name: str,
    owner: str,
    base_domain: str,
    desired_slug: str | None = None,
) -> ProjectMeta:
    slug = slugify(desired_slug or name)
    if not slug:
        raise ValidationError("Invalid name/slug")
    slug = await available_slug(store, slug)

    meta = ProjectMeta(
        slug=slug,
        name=name,
        createdAt=datetime.now(UTC).isoformat(),
        owner=owner,
        hostingUrl=f"https://{slug}.{base_domain}",
    )
    body = json.dumps(meta.model_dump(), indent=2).encode("utf-8")
    await store.put(project_meta_key(slug), body, content_type=META_CONTENT_TYPE, cache_control=META_CACHE_CONTROL)
    logger.info(f"project.created project={slug} owner={owner}")
    return meta
