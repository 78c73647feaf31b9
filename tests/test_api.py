import tempfile
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient
from stubs import PAYLOAD, VIDEO_URL, FakeStream, make_fake_extractor, make_settings

from video_gateway.api.routes import create_app
from video_gateway.extractor.errors import (
    AuthRequiredError,
    ExtractorError,
    ExtractorLaunchError,
    ExtractorOutputError,
    ExtractorTimeoutError,
)

BOT_CHECK = "ERROR: [youtube] dQw4w9WgXcQ: Sign in to confirm you're not a bot"


class APITestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.temp_dir = Path(self._tmp.name) / "temp"
        self.settings = make_settings(self.temp_dir)
        self.extractor = make_fake_extractor()
        self.client = TestClient(create_app(self.settings, self.extractor))

    def tearDown(self):
        self._tmp.cleanup()


class TestVideoInfo(APITestCase):
    def test_success(self):
        response = self.client.post("/api/video-info", json={"url": VIDEO_URL})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["title"], PAYLOAD["title"])
        self.assertEqual(data["uploader"], "Rick Astley")
        self.assertEqual(data["view_count"], 1500000000)
        self.assertEqual(data["duration"], 212)
        self.assertEqual(data["thumbnail"], PAYLOAD["thumbnail"])
        self.assertEqual(
            data["formats"][0],
            {"format_id": "140", "ext": "m4a", "resolution": "audio only", "filesize": 3437753},
        )
        self.extractor.fetch_info.assert_awaited_once_with(VIDEO_URL)

    def test_invalid_url(self):
        for body in [{"url": "not-a-url"}, {"url": 123}, {}, {"url": "javascript:alert(1)"}]:
            with self.subTest(body=body):
                response = self.client.post("/api/video-info", json=body)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()["error"], "Invalid YouTube URL provided")
        self.extractor.fetch_info.assert_not_called()

    def test_malformed_body(self):
        response = self.client.post(
            "/api/video-info",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)

    def test_error_mapping(self):
        cases = [
            (AuthRequiredError(BOT_CHECK, 1), 400, "Authentication required"),
            (ExtractorError("ERROR: Video unavailable", 1), 400, "Failed to fetch video information"),
            (ExtractorOutputError("Invalid JSON"), 500, "Failed to parse video information"),
            (ExtractorLaunchError("No such file"), 500, "Video processor unavailable"),
            (ExtractorTimeoutError(30), 504, "Video processor timed out"),
        ]
        for error, status, message in cases:
            with self.subTest(error=type(error).__name__):
                self.extractor.fetch_info.side_effect = error
                response = self.client.post("/api/video-info", json={"url": VIDEO_URL})
                self.assertEqual(response.status_code, status)
                self.assertEqual(response.json()["error"], message)

    def test_auth_error_is_distinguishable(self):
        self.extractor.fetch_info.side_effect = AuthRequiredError(BOT_CHECK, 1)
        data = self.client.post("/api/video-info", json={"url": VIDEO_URL}).json()
        self.assertEqual(data["kind"], "auth_required")
        self.assertIn("Sign in to confirm", data["details"])


class TestDownload(APITestCase):
    def test_streams_attachment(self):
        response = self.client.get("/api/download", params={"url": VIDEO_URL, "quality": "720p"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"abcdef")
        self.assertEqual(response.headers["content-type"], "video/mp4")
        self.assertEqual(
            response.headers["content-disposition"],
            'attachment; filename="Never_Gonna_Give_You_Up.mp4"',
        )
        self.extractor.open_stream.assert_awaited_once_with(VIDEO_URL, "720p")
        self.assertTrue(self.extractor.open_stream.return_value.closed)

    def test_default_quality(self):
        self.client.get("/api/download", params={"url": VIDEO_URL})
        self.extractor.open_stream.assert_awaited_once_with(VIDEO_URL, "best")

    def test_invalid_url(self):
        for params in [{"url": "ftp://example.com/x"}, {}]:
            with self.subTest(params=params):
                response = self.client.get("/api/download", params=params)
                self.assertEqual(response.status_code, 400)
        self.extractor.open_stream.assert_not_called()
        self.extractor.fetch_title.assert_not_called()

    def test_title_failure_falls_back(self):
        self.extractor.fetch_title.side_effect = ExtractorError("ERROR: nope", 1)
        response = self.client.get("/api/download", params={"url": VIDEO_URL})
        self.assertEqual(response.status_code, 200)
        self.assertIn('filename="video.mp4"', response.headers["content-disposition"])

    def test_failure_before_stream(self):
        self.extractor.open_stream.side_effect = ExtractorError("ERROR: Requested format is not available", 1)
        response = self.client.get("/api/download", params={"url": VIDEO_URL})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Failed to download video")

    def test_launch_failure(self):
        self.extractor.open_stream.side_effect = ExtractorLaunchError("yt-dlp not found")
        response = self.client.get("/api/download", params={"url": VIDEO_URL})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Video processor unavailable")


class TestFormatsAndHealth(APITestCase):
    def test_formats(self):
        response = self.client.post("/api/formats", json={"url": VIDEO_URL})
        self.assertEqual(response.status_code, 200)
        self.assertIn("640x360", response.json()["formats"])

    def test_formats_invalid_url(self):
        response = self.client.post("/api/formats", json={"url": "nope"})
        self.assertEqual(response.status_code, 400)
        self.extractor.list_formats.assert_not_called()

    def test_health(self):
        data = self.client.get("/api/health").json()
        self.assertEqual(data["status"], "OK")
        self.assertTrue(data["timestamp"].endswith("Z"))

    def test_api_root_and_page(self):
        self.assertIn("/api/video-info", self.client.get("/api/").json()["endpoints"])
        page = self.client.get("/")
        self.assertEqual(page.status_code, 200)
        self.assertIn("text/html", page.headers["content-type"])
        self.assertIn("/video-info", page.text)


class TestAppLifecycle(unittest.TestCase):
    def test_lifespan_creates_scratch_dir_and_stops_janitor(self):
        with tempfile.TemporaryDirectory() as tmp:
            temp_dir = Path(tmp) / "scratch"
            app = create_app(make_settings(temp_dir), make_fake_extractor())
            with TestClient(app) as client:
                self.assertTrue(temp_dir.is_dir())
                self.assertEqual(client.get("/api/health").status_code, 200)

    def test_rate_limit_from_settings(self):
        with tempfile.TemporaryDirectory() as tmp:
            settings = make_settings(Path(tmp), rate_limit_requests=2)
            client = TestClient(create_app(settings, make_fake_extractor()))
            statuses = [
                client.post("/api/video-info", json={"url": VIDEO_URL}).status_code
                for _ in range(3)
            ]
            self.assertEqual(statuses, [200, 200, 429])

    def test_invalid_url_spawns_nothing(self):
        with tempfile.TemporaryDirectory() as tmp:
            client = TestClient(create_app(make_settings(Path(tmp))))
            with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock) as spawn:
                response = client.post("/api/video-info", json={"url": "not-a-url"})
                self.assertEqual(response.status_code, 400)
                response = client.get("/api/download", params={"url": "not-a-url"})
                self.assertEqual(response.status_code, 400)
            spawn.assert_not_called()
