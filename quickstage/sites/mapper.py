"""Map an inbound host and request path to a project slug and a path relative to the site root."""

from typing import Iterable

from quickstage.sites.keys import is_root_path, slugify


def normalize_host(host_header: str | None) -> str:
    """Lowercase the Host header value and strip any port suffix"""
    if not host_header:
        return ""
    return host_header.strip().split(":")[0].lower()


def resolve_project(host: str, main_hosts: Iterable[str], base_domain: str) -> str | None:
    """
    Return the project slug for this (normalized) host, or None if the host does not serve a site.

    The main hosts and the base domain itself belong to the API. For <label>[.<more>].<base_domain>,
    the first label is normalized into the slug.
    """
    base = base_domain.lower()
    if not host or host in main_hosts or host == base:
        return None
    suffix = "." + base
    if not host.endswith(suffix):
        return None
    label = host[: -len(suffix)].split(".")[0]
    return slugify(label) or None


def resolve_path(request_path: str) -> str:
    """Turn a request path into a path relative to the site root. No decoding is done here."""
    if is_root_path(request_path):
        return "index.html"
    return request_path.lstrip("/")
