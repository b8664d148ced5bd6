"""Centralized response hardening helpers for cache/download behavior."""

from __future__ import annotations

from django.http import HttpResponse


def apply_no_store(response: HttpResponse, *, private: bool = True, pragma: bool = True) -> HttpResponse:
    """Mark a response as non-cacheable for browser/shared cache safety."""
    response["Cache-Control"] = "private, no-store" if private else "no-store"
    if pragma:
        response["Pragma"] = "no-cache"
    return response


def apply_download_safety(response: HttpResponse) -> HttpResponse:
    """Apply strict browser handling for served user uploads."""
    response["X-Content-Type-Options"] = "nosniff"
    response["Content-Security-Policy"] = "default-src 'none'; sandbox"
    response["Referrer-Policy"] = "no-referrer"
    return response
