"""`/api/organizations/...`: public list plus superuser management."""

from __future__ import annotations

import uuid
from pathlib import Path

from django.conf import settings
from django.views.decorators.http import require_http_methods, require_POST

from ..forms import OrganizationForm
from ..models import Organization
from ..services.org_access import org_or_none
from ..services.payloads import media_url, organization_payload
from ..services.upload_validation import LOGO_MIME_TYPES, UploadRejected, validate_upload
from .shared import (
    _audit,
    _bad_json,
    _bad_request,
    _form_error_response,
    _json_error,
    _json_no_store_response,
    _not_found,
    _parse_bool,
    _read_json_body,
    api_superuser_required,
)


def _list_organizations(request):
    orgs = Organization.objects.filter(is_active=True).order_by("name", "id")
    return _json_no_store_response(
        {
            "organizations": [
                {
                    "id": org.id,
                    "name": org.name,
                    "code": org.code,
                    "domain": org.domain or None,
                    "primaryColor": org.primary_color or None,
                    "secondaryColor": org.secondary_color or None,
                    "logo": media_url(org.logo),
                }
                for org in orgs
            ]
        },
        private=False,
    )


@api_superuser_required
def _create_organization(request):
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()
    form = OrganizationForm(data=payload)
    if not form.is_valid():
        return _form_error_response(form)
    data = form.cleaned_data
    name, code = data["name"].strip(), data["code"].strip()
    if Organization.objects.filter(name=name).exists() or Organization.objects.filter(code=code).exists():
        return _bad_request("Organization with same name or code already exists")
    org = Organization.objects.create(
        name=name,
        code=code,
        domain=data["domain"] or "",
        primary_color=data["primaryColor"] or "",
        secondary_color=data["secondaryColor"] or "",
        is_active=True,
    )
    _audit(
        request,
        action="organization.create",
        target_type="Organization",
        target_id=org.id,
        summary=f"Created organization {org.code}",
    )
    return _json_no_store_response({"organization": organization_payload(org)}, status=201)


@require_http_methods(["GET", "POST"])
def api_organizations(request):
    """GET (public) lists active organizations; POST creates one (superuser)."""
    if request.method == "GET":
        return _list_organizations(request)
    return _create_organization(request)


_TEXT_FIELDS = {
    "domain": "domain",
    "primaryColor": "primary_color",
    "secondaryColor": "secondary_color",
}


@require_http_methods(["PATCH"])
@api_superuser_required
def api_organization_detail(request, org_id: int):
    org = org_or_none(org_id)
    if org is None:
        return _not_found("Organization not found")
    payload = _read_json_body(request)
    if payload is None:
        return _bad_json()

    name = payload.get("name")
    code = payload.get("code")
    if name is not None:
        name = str(name).strip()
        if not name:
            return _bad_request("name cannot be empty")
        if Organization.objects.filter(name=name).exclude(id=org.id).exists():
            return _bad_request("Organization name already exists")
        org.name = name[:200]
    if code is not None:
        code = str(code).strip()
        if not code:
            return _bad_request("code cannot be empty")
        if Organization.objects.filter(code=code).exclude(id=org.id).exists():
            return _bad_request("Organization code already exists")
        org.code = code[:32]
    for key, attr in _TEXT_FIELDS.items():
        if key in payload:
            setattr(org, attr, str(payload.get(key) or "").strip())
    if "isActive" in payload:
        org.is_active = _parse_bool(payload.get("isActive"))
    org.save()
    _audit(
        request,
        action="organization.update",
        target_type="Organization",
        target_id=org.id,
        summary=f"Updated organization {org.code}",
        metadata={"fields": sorted(payload.keys())},
    )
    return _json_no_store_response({"organization": organization_payload(org)})


@require_POST
@api_superuser_required
def api_organization_logo(request, org_id: int):
    upload = request.FILES.get("logo")
    if upload is None:
        return _bad_request("No logo file uploaded")
    org = org_or_none(org_id)
    if org is None:
        return _not_found("Organization not found")
    max_bytes = int(getattr(settings, "SCHOOLHUB_IMAGE_MAX_UPLOAD_MB", 5)) * 1024 * 1024
    try:
        validate_upload(upload, allowed_mime_types=LOGO_MIME_TYPES, max_bytes=max_bytes)
    except UploadRejected as exc:
        return _json_error("upload_rejected", status=exc.status, message=str(exc))

    ext = Path(upload.name or "").suffix.lower()[:10]
    org.logo.save(f"logo-{uuid.uuid4().hex}{ext}", upload, save=True)
    _audit(
        request,
        action="organization.logo",
        target_type="Organization",
        target_id=org.id,
        summary=f"Uploaded logo for {org.code}",
    )
    return _json_no_store_response(
        {"message": "Logo uploaded successfully", "organization": organization_payload(org)}
    )


__all__ = ["api_organization_detail", "api_organization_logo", "api_organizations"]
