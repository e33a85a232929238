"""Static file serving for the browser client."""
from __future__ import annotations

import errno
import logging
from pathlib import Path

from fastapi.responses import Response

logger = logging.getLogger(__name__)

MIME_TYPES = {
    ".html": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".json": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
}
DEFAULT_MIME_TYPE = "application/octet-stream"
INDEX_FILE = "index.html"
NOT_FOUND_FILE = "404.html"


def content_type_for(path: Path) -> str:
    return MIME_TYPES.get(path.suffix.lower(), DEFAULT_MIME_TYPE)


def _not_found(root: Path) -> Response:
    try:
        content = (root / NOT_FOUND_FILE).read_bytes()
    except OSError:
        content = b"File not found"
    return Response(content=content, status_code=404, media_type="text/html")


def serve_static(static_dir: Path, url_path: str) -> Response:
    """Return the file at ``url_path`` below ``static_dir``.

    ``/`` maps to ``index.html``. Missing files (and paths resolving outside
    ``static_dir``) answer 404 with ``404.html``; other filesystem errors
    answer 500.
    """

    root = static_dir.resolve()
    relative = url_path.lstrip("/") or INDEX_FILE
    try:
        target = (root / relative).resolve()
    except (OSError, ValueError):
        return _not_found(root)
    if target != root and root not in target.parents:
        logger.warning("Rejected static path outside the static directory", extra={"path": url_path})
        return _not_found(root)

    try:
        content = target.read_bytes()
    except (FileNotFoundError, ValueError):
        return _not_found(root)
    except OSError as exc:
        code = errno.errorcode.get(exc.errno or 0, type(exc).__name__)
        logger.error("Failed to read static file %s: %s", target, code)
        return Response(content=f"Server Error: {code}", status_code=500, media_type="text/plain")

    return Response(content=content, status_code=200, media_type=content_type_for(target))
