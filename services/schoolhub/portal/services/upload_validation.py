"""Lightweight checks for uploaded resources, logos and profile pictures."""

from __future__ import annotations

from ..models import Resource


class UploadRejected(ValueError):
    """An upload refused before it is stored. `status` is the HTTP status."""

    def __init__(self, message: str, *, status: int = 400):
        super().__init__(message)
        self.status = status


RESOURCE_MIME_TYPES = frozenset(
    {
        "audio/mpeg",
        "audio/wav",
        "audio/ogg",
        "audio/mp4",
        "audio/aac",
        "video/mp4",
        "video/webm",
        "video/ogg",
        "video/avi",
        "video/mov",
        "video/quicktime",
        "application/pdf",
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/svg+xml",
    }
)
PROFILE_PICTURE_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})
LOGO_MIME_TYPES = PROFILE_PICTURE_MIME_TYPES | {"image/svg+xml"}

_ISO_MEDIA = (b"ftyp",)
_QUICKTIME_ATOMS = (b"ftyp", b"moov", b"mdat", b"wide", b"free", b"skip")

# (offset, signature) pairs; any match accepts the upload.
_MAGIC_BY_MIME: dict[str, tuple[tuple[int, bytes], ...]] = {
    "image/png": ((0, b"\x89PNG\r\n\x1a\n"),),
    "image/jpeg": ((0, b"\xff\xd8\xff"),),
    "image/gif": ((0, b"GIF87a"), (0, b"GIF89a")),
    "image/webp": ((8, b"WEBP"),),
    "application/pdf": ((0, b"%PDF-"),),
    "audio/mpeg": ((0, b"ID3"), (0, b"\xff\xfb"), (0, b"\xff\xf3"), (0, b"\xff\xf2")),
    "audio/wav": ((8, b"WAVE"),),
    "audio/ogg": ((0, b"OggS"),),
    "video/ogg": ((0, b"OggS"),),
    "audio/aac": ((0, b"\xff\xf1"), (0, b"\xff\xf9"), (0, b"ADIF")),
    "video/webm": ((0, b"\x1a\x45\xdf\xa3"),),
    "video/avi": ((8, b"AVI "),),
    "audio/mp4": tuple((4, sig) for sig in _ISO_MEDIA),
    "video/mp4": tuple((4, sig) for sig in _ISO_MEDIA),
    "video/mov": tuple((4, sig) for sig in _QUICKTIME_ATOMS),
    "video/quicktime": tuple((4, sig) for sig in _QUICKTIME_ATOMS),
}


def resource_type_for_mime(mime_type: str) -> str:
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("audio/"):
        return Resource.TYPE_AUDIO
    if mime_type.startswith("video/"):
        return Resource.TYPE_VIDEO
    if mime_type == "application/pdf":
        return Resource.TYPE_PDF
    if mime_type.startswith("image/"):
        return Resource.TYPE_IMAGE
    return Resource.TYPE_OTHER


def _file_obj(upload):
    return getattr(upload, "file", upload)


def _read_head(upload, size: int = 32) -> bytes:
    fh = _file_obj(upload)
    start = fh.tell()
    try:
        fh.seek(0)
        return fh.read(size) or b""
    finally:
        fh.seek(start)


def _looks_like_svg(upload) -> bool:
    head = _read_head(upload, size=1024).lstrip(b"\xef\xbb\xbf").lower()
    return b"<svg" in head


def content_matches_mime(upload, mime_type: str) -> bool:
    """False when the leading bytes obviously contradict the declared type."""
    if mime_type == "image/svg+xml":
        return _looks_like_svg(upload)
    signatures = _MAGIC_BY_MIME.get(mime_type)
    if not signatures:
        return True
    head = _read_head(upload)
    return any(head[offset : offset + len(sig)] == sig for offset, sig in signatures)


def validate_upload(upload, *, allowed_mime_types, max_bytes: int) -> str:
    """Return the normalized MIME type of an acceptable upload.

    Raises UploadRejected (413 for size, 400 otherwise).
    """
    if upload is None:
        raise UploadRejected("No file uploaded")
    size = int(getattr(upload, "size", 0) or 0)
    if max_bytes and size > max_bytes:
        raise UploadRejected(f"File exceeds the {max_bytes // (1024 * 1024)} MB limit", status=413)
    mime_type = (getattr(upload, "content_type", "") or "").split(";")[0].strip().lower()
    if mime_type not in allowed_mime_types:
        raise UploadRejected("Invalid file type")
    if not content_matches_mime(upload, mime_type):
        raise UploadRejected(f"File content does not match {mime_type}.")
    return mime_type
