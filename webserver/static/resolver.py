"""
Static File Resolver

Decides which file a request path maps to and whether a pre-compressed
.gz variant is served in its place.

Traversal defense is a plain substring check for "..". Paths are
concatenated onto the web root verbatim; ".", double slashes and symlinks
are not normalized. Callers needing canonical containment must add it
upstream.
"""

import os
from dataclasses import dataclass
from typing import Callable, Optional

from webserver.configs.constants import GZIP_SUFFIX
from webserver.configs.logging import get_logger
from webserver.configs.server_config import ServerConfig

logger = get_logger("static")


@dataclass(frozen=True)
class RequestDecision:
    """Outcome of resolving one request path."""

    status: int
    path: Optional[str] = None
    candidate: Optional[str] = None
    gzipped: bool = False
    headers: tuple[tuple[str, str], ...] = ()

    @property
    def rejected(self) -> bool:
        return self.path is None


def accepts_gzip(accept_encoding: Optional[str]) -> bool:
    """True if the accept-encoding header mentions gzip anywhere."""
    return accept_encoding is not None and "gzip" in accept_encoding


def resolve(
    config: ServerConfig,
    request_path: str,
    accept_encoding: Optional[str] = None,
    exists: Callable[[str], bool] = os.path.exists,
) -> RequestDecision:
    """
    Resolve a request path to the file that should be sent.

    Args:
        config: Server configuration
        request_path: Path component of the request URL
        accept_encoding: Value of the accept-encoding header, if any
        exists: Filesystem existence probe, called at most once

    Returns:
        RequestDecision with status 404 for traversal attempts, else 200
        and the file to send
    """
    if request_path == "/":
        # Index page is always sent uncompressed
        return RequestDecision(status=200, path=config.index_path, candidate=config.index_path)

    if ".." in request_path:
        logger.debug(f"Rejected traversal attempt: {request_path}")
        return RequestDecision(status=404)

    candidate = config.web_root_prefix + request_path

    if config.gzip_files and accepts_gzip(accept_encoding):
        gz_path = candidate + GZIP_SUFFIX
        if exists(gz_path):
            return RequestDecision(
                status=200,
                path=gz_path,
                candidate=candidate,
                gzipped=True,
                headers=(("content-encoding", "gzip"),),
            )

    return RequestDecision(status=200, path=candidate, candidate=candidate)
