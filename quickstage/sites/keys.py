"""
Project slugs and object storage keys.

All site objects live under sites/<slug>/ and project metadata under __meta/projects/<slug>.json.
Keys are built with safe_join, so whatever a request path or archive entry contains,
the resulting key stays inside its namespace.
"""

import random
import re
import string

SITES_PREFIX = "sites"
META_PREFIX = "__meta/projects"

MAX_SLUG_LENGTH = 63

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9-]+")
_HYPHEN_RUNS = re.compile(r"-+")


def slugify(value: str | None) -> str:
    """
    Normalize a name into a project slug: lowercase [a-z0-9-], no repeated,
    leading or trailing hyphens, at most 63 characters. Returns "" if nothing usable remains.
    """
    if not value:
        return ""
    slug = _NON_SLUG_CHARS.sub("-", str(value).strip().lower())
    slug = _HYPHEN_RUNS.sub("-", slug).strip("-")
    return slug[:MAX_SLUG_LENGTH].rstrip("-")


def random_suffix(length: int = 3) -> str:
    return "".join(random.choices(string.digits, k=length))


def safe_join(prefix: str, relative_path: str) -> str:
    """
    Join prefix and relative_path into a POSIX style key.
    Empty, '.' and '..' segments are dropped (from both parts), so the result never escapes prefix.
    """
    segments = f"{prefix}/{relative_path}".split("/")
    return "/".join(s for s in segments if s not in ("", ".", ".."))


def is_root_path(relative_path: str) -> bool:
    """True if relative_path names no file or directory below the root (e.g. "", "/", "./.", "..")"""
    return all(s in ("", ".", "..") for s in relative_path.split("/"))


def site_prefix(slug: str) -> str:
    return f"{SITES_PREFIX}/{slug}"


def site_key(slug: str, relative_path: str) -> str:
    if is_root_path(relative_path):
        raise ValueError(f"Cannot build a site key for {relative_path!r}")
    return safe_join(site_prefix(slug), relative_path)


def project_meta_key(slug: str) -> str:
    return f"{META_PREFIX}/{slug}.json"
