"""Tests for /healthz, the URL map and stored upload serving under /uploads/."""

from ._shared import *  # noqa: F401,F403

from django.urls import URLPattern, resolve

from config import urls

from ..views import api_auth


class HealthzTests(SimpleTestCase):
    def test_healthz_is_plain_ok(self):
        resp = self.client.get("/healthz")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.content, b"ok")


class ServeUploadTests(SimpleTestCase):
    def setUp(self):
        self._media = tempfile.TemporaryDirectory()
        self.addCleanup(self._media.cleanup)
        override = override_settings(MEDIA_ROOT=self._media.name)
        override.enable()
        self.addCleanup(override.disable)
        root = Path(self._media.name)
        for rel, content in {
            "resources/2024/05/track.mp3": b"ID3" + bytes(range(97)),
            "logos/pbs.png": _PNG_BYTES,
            "profile-pictures/ada.png": _PNG_BYTES,
        }.items():
            target = root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

    def test_serves_resource_with_safety_headers(self):
        resp = self.client.get("/uploads/resources/2024/05/track.mp3")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp["Accept-Ranges"], "bytes")
        self.assertEqual(resp["X-Content-Type-Options"], "nosniff")
        self.assertEqual(resp["Content-Security-Policy"], "default-src 'none'; sandbox")
        self.assertEqual(b"".join(resp.streaming_content)[:3], b"ID3")

    def test_range_request(self):
        resp = self.client.get("/uploads/resources/2024/05/track.mp3", HTTP_RANGE="bytes=0-9")
        self.assertEqual(resp.status_code, 206)
        self.assertEqual(resp["Content-Range"], "bytes 0-9/100")
        self.assertEqual(len(b"".join(resp.streaming_content)), 10)

    def test_suffix_range(self):
        resp = self.client.get("/uploads/resources/2024/05/track.mp3", HTTP_RANGE="bytes=-5")
        self.assertEqual(resp.status_code, 206)
        self.assertEqual(resp["Content-Range"], "bytes 95-99/100")

    def test_unsatisfiable_range(self):
        resp = self.client.get("/uploads/resources/2024/05/track.mp3", HTTP_RANGE="bytes=500-")
        self.assertEqual(resp.status_code, 416)
        self.assertEqual(resp["Content-Range"], "bytes */100")

    def test_logos_are_public(self):
        self.assertEqual(self.client.get("/uploads/logos/pbs.png").status_code, 200)

    def test_profile_pictures_are_not_served_here(self):
        self.assertEqual(self.client.get("/uploads/profile-pictures/ada.png").status_code, 404)

    def test_traversal_and_missing_files_are_404(self):
        self.assertEqual(self.client.get("/uploads/resources/../profile-pictures/ada.png").status_code, 404)
        self.assertEqual(self.client.get("/uploads/resources/missing.pdf").status_code, 404)


class UrlMapTests(SimpleTestCase):
    def test_every_route_points_at_a_view_function(self):
        for pattern in urls.urlpatterns:
            if isinstance(pattern, URLPattern):
                self.assertTrue(callable(pattern.callback), str(pattern.pattern))

    def test_auth_classrooms_resolves_to_auth_view(self):
        self.assertIs(resolve("/api/auth/classrooms").func, api_auth.api_auth_classrooms)
        self.assertEqual(resolve("/api/classrooms").func.__name__, "api_classroom_list")
