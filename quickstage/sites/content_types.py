"""
Content-Type lookup by file extension.

We use our own MimeTypes table (python's built-in defaults plus a few web types) rather than the
module level one, so results do not depend on the mime.types files of the host system.
"""

import mimetypes

DEFAULT_CONTENT_TYPE = "application/octet-stream"
HTML_CONTENT_TYPE = "text/html; charset=utf-8"

UTF8_TYPES = {"text/html", "text/css", "application/javascript", "text/plain", "application/json"}

_types = mimetypes.MimeTypes(filenames=())
for _type, _ext in [
    ("application/javascript", ".js"),
    ("application/javascript", ".mjs"),
    ("application/json", ".map"),
    ("application/manifest+json", ".webmanifest"),
    ("application/wasm", ".wasm"),
    ("font/woff", ".woff"),
    ("font/woff2", ".woff2"),
    ("image/svg+xml", ".svg"),
    ("image/webp", ".webp"),
    ("image/avif", ".avif"),
]:
    _types.add_type(_type, _ext)


def lookup_content_type(path: str) -> str | None:
    """Guess the content type from the extension of path, adding a utf-8 charset for text types"""
    content_type, _encoding = _types.guess_type(path.lower(), strict=False)
    if content_type is None:
        return None
    if content_type in UTF8_TYPES:
        return f"{content_type}; charset=utf-8"
    return content_type


def content_type_or_default(path: str) -> str:
    return lookup_content_type(path) or DEFAULT_CONTENT_TYPE
