"""Stored upload serving and the health check."""

from __future__ import annotations

import mimetypes
import re
from pathlib import Path

from django.conf import settings
from django.http import FileResponse, Http404, HttpResponse, StreamingHttpResponse
from django.views.decorators.http import require_GET

from ..http.headers import apply_download_safety

# Only these upload folders are web-visible; profile pictures have their own route.
_PUBLIC_PREFIXES = ("resources/", "logos/")


def healthz(request):
    # Used by the reverse proxy and uptime checks to confirm the app is alive.
    return HttpResponse("ok", content_type="text/plain")


def _range_not_satisfiable(file_size: int) -> HttpResponse:
    response = HttpResponse(status=416)
    response["Content-Range"] = f"bytes */{file_size}"
    return response


def _stream_file_with_range(request, file_path: Path, content_type: str):
    # Byte ranges keep lesson audio/video seekable in the browser.
    file_size = file_path.stat().st_size
    range_header = request.headers.get("Range") or ""
    if not range_header:
        response = FileResponse(open(file_path, "rb"), content_type=content_type)
        response["Content-Length"] = str(file_size)
        response["Accept-Ranges"] = "bytes"
        return response

    m = re.match(r"bytes=(\d*)-(\d*)", range_header)
    if not m or not (m.group(1) or m.group(2)):
        return _range_not_satisfiable(file_size)
    start_raw, end_raw = m.group(1), m.group(2)
    if start_raw:
        start = int(start_raw)
        end = int(end_raw) if end_raw else file_size - 1
    else:
        suffix_len = int(end_raw)
        if suffix_len <= 0:
            return _range_not_satisfiable(file_size)
        start = max(file_size - suffix_len, 0)
        end = file_size - 1
    if start >= file_size or end < start:
        return _range_not_satisfiable(file_size)

    end = min(end, file_size - 1)
    length = (end - start) + 1

    def _iter_file(handle, offset: int, remaining: int, chunk_size: int = 64 * 1024):
        try:
            handle.seek(offset)
            left = remaining
            while left > 0:
                chunk = handle.read(min(chunk_size, left))
                if not chunk:
                    break
                left -= len(chunk)
                yield chunk
        finally:
            handle.close()

    response = StreamingHttpResponse(
        _iter_file(open(file_path, "rb"), start, length),
        status=206,
        content_type=content_type,
    )
    response["Content-Length"] = str(length)
    response["Content-Range"] = f"bytes {start}-{end}/{file_size}"
    response["Accept-Ranges"] = "bytes"
    return response


@require_GET
def serve_upload(request, path: str):
    """Serve a stored resource file or organization logo from MEDIA_ROOT."""
    if not path.startswith(_PUBLIC_PREFIXES) or ".." in Path(path).parts:
        raise Http404("File not found")
    root = Path(settings.MEDIA_ROOT).resolve()
    file_path = (root / path).resolve()
    if root not in file_path.parents or not file_path.is_file():
        raise Http404("File not found")
    content_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
    return apply_download_safety(_stream_file_with_range(request, file_path, content_type))


__all__ = ["healthz", "serve_upload"]
