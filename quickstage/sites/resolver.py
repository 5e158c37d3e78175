"""
Resolve a request for a project's site to an object in storage.

For every request we build a fresh, ordered list of candidate keys:

1. exact:  sites/<slug>/<path>
2. html:   sites/<slug>/<path>.html  (only if path has no '.' and does not end in '/')
3. spa:    sites/<slug>/index.html   (only if SPA fallback is enabled)

Each candidate is tried in turn and gives a Hit, a Miss or a Failure. A Hit is returned, a Miss moves on
to the next candidate, and a Failure (storage not reachable, timeout, ...) stops the chain and is raised,
so that a storage outage never turns into a 404 or a silently served index.html.
"""

import logging
from dataclasses import dataclass
from typing import Literal

from quickstage.errors import UpstreamError
from quickstage.objectstorage.store import ObjectNotFound, ObjectStore
from quickstage.sites.content_types import HTML_CONTENT_TYPE, content_type_or_default
from quickstage.sites.keys import is_root_path, site_key

logger = logging.getLogger("quickstage.sites")

Step = Literal["exact", "html", "spa"]


@dataclass(frozen=True)
class Candidate:
    step: Step
    key: str
    default_content_type: str


@dataclass(frozen=True)
class ResolvedContent:
    body: bytes
    content_type: str
    cache_control: str | None
    key: str
    step: Step


@dataclass(frozen=True)
class Hit:
    content: ResolvedContent


@dataclass(frozen=True)
class Miss:
    key: str


@dataclass(frozen=True)
class Failure:
    key: str
    error: UpstreamError


StepResult = Hit | Miss | Failure


def wants_implicit_html(relative_path: str) -> bool:
    return "." not in relative_path and not relative_path.endswith("/")


def candidates(slug: str, relative_path: str, spa_fallback: bool = True) -> list[Candidate]:
    """The ordered candidate keys to try for this request"""
    if is_root_path(relative_path):
        relative_path = "index.html"
    result = [Candidate("exact", site_key(slug, relative_path), content_type_or_default(relative_path))]
    if wants_implicit_html(relative_path):
        result.append(Candidate("html", site_key(slug, f"{relative_path}.html"), HTML_CONTENT_TYPE))
    if spa_fallback:
        result.append(Candidate("spa", site_key(slug, "index.html"), HTML_CONTENT_TYPE))
    return result


async def try_candidate(store: ObjectStore, candidate: Candidate, timeout: float | None = None) -> StepResult:
    try:
        obj = await store.get(candidate.key, timeout=timeout)
    except ObjectNotFound:
        return Miss(candidate.key)
    except UpstreamError as e:
        return Failure(candidate.key, e)
    return Hit(
        ResolvedContent(
            body=obj.body,
            content_type=obj.content_type or candidate.default_content_type,
            cache_control=obj.cache_control,
            key=candidate.key,
            step=candidate.step,
        )
    )


async def resolve(
    store: ObjectStore,
    slug: str,
    relative_path: str,
    spa_fallback: bool = True,
    timeout: float | None = None,
) -> ResolvedContent | None:
    """
    Return the content to serve for relative_path in project slug, or None if nothing matches.
    Raises UpstreamError if object storage fails while trying a candidate.
    """
    for candidate in candidates(slug, relative_path, spa_fallback):
        result = await try_candidate(store, candidate, timeout)
        if isinstance(result, Hit):
            if candidate.step != "exact":
                logger.debug(f"serve.{candidate.step} project={slug} path={relative_path} key={candidate.key}")
            return result.content
        if isinstance(result, Failure):
            logger.error(f"serve.error project={slug} key={result.key}")
            raise result.error
    return None
