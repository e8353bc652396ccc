"""
Static File Endpoint

Catch-all route that resolves the request path and streams the selected
file. Reads the shared ServerConfig from app state and keeps no state of
its own.
"""

import mimetypes
import os
import stat

from fastapi import APIRouter, Request, Response
from fastapi.responses import FileResponse

from webserver.configs.logging import get_logger
from webserver.exceptions import StaticFileIOError, StaticFileNotFoundError
from webserver.static.resolver import RequestDecision, resolve

logger = get_logger("http.static")

router = APIRouter()


def send_file(decision: RequestDecision) -> FileResponse:
    """
    Build the response streaming the decided file.

    Raises:
        StaticFileNotFoundError: File missing or not a regular file
        StaticFileIOError: Any other filesystem error
    """
    try:
        stat_result = os.stat(decision.path)
    except (FileNotFoundError, NotADirectoryError) as e:
        raise StaticFileNotFoundError("File not found", decision.path) from e
    except OSError as e:
        raise StaticFileIOError(f"Cannot stat file: {e.strerror}", decision.path) from e

    if not stat.S_ISREG(stat_result.st_mode):
        raise StaticFileNotFoundError("Not a regular file", decision.path)

    # Content type follows the uncompressed name, not the .gz
    media_type, _ = mimetypes.guess_type(decision.candidate or decision.path)
    return FileResponse(
        decision.path,
        media_type=media_type or "application/octet-stream",
        headers=dict(decision.headers),
        stat_result=stat_result,
    )


@router.api_route("/{full_path:path}", methods=["GET", "HEAD"], include_in_schema=False)
def serve_static(request: Request) -> Response:
    """Serve the file a request path resolves to."""
    # Decoded path as received; request.url.path would re-split on "?" and "#"
    request_path = request.scope["path"]
    decision = resolve(
        request.app.state.server_config,
        request_path,
        request.headers.get("accept-encoding"),
    )
    if decision.rejected:
        return Response(status_code=decision.status)

    logger.debug(f"{request_path} -> {decision.path} (gzip={decision.gzipped})")
    return send_file(decision)
