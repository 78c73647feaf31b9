import unittest

from video_gateway.extractor.urls import extract_video_id, is_valid_video_url


class TestURLValidation(unittest.TestCase):
    def test_accepts_supported_shapes(self):
        valid = [
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "http://youtube.com/watch?v=dQw4w9WgXcQ",
            "youtube.com/watch?v=dQw4w9WgXcQ",
            "https://m.youtube.com/watch?v=dQw4w9WgXcQ&t=42s",
            "https://www.youtube.com/watch?feature=share&v=dQw4w9WgXcQ",
            "https://youtu.be/dQw4w9WgXcQ",
            "https://youtu.be/dQw4w9WgXcQ?si=abc123",
            "https://www.youtube.com/embed/dQw4w9WgXcQ",
            "https://www.youtube-nocookie.com/embed/dQw4w9WgXcQ?start=10",
            "https://www.youtube.com/shorts/abcDEF_-123",
        ]
        for url in valid:
            with self.subTest(url=url):
                self.assertTrue(is_valid_video_url(url))

    def test_rejects_everything_else(self):
        invalid = [
            "",
            "not-a-url",
            "ftp://example.com/x",
            "javascript:alert(1)",
            "https://example.com/watch?v=dQw4w9WgXcQ",
            "https://www.youtube.com/watch?v=",
            "https://youtu.be/",
            "https://www.youtube.com/shorts/",
            "https://www.youtube.com/playlist?list=PL123",
            "https://youtu.be/dQw4w9WgXcQ\n",
            "https://youtu.be/dQw4w9WgXcQ --exec rm",
            "https://youtu.be/dQw4w9WgXcQ;rm -rf /",
            "--exec=touch /tmp/pwned",
            "https://evil.com/?u=https://youtu.be/dQw4w9WgXcQ",
            "https://youtu.be/" + "a" * 3000,
        ]
        for url in invalid:
            with self.subTest(url=url):
                self.assertFalse(is_valid_video_url(url))

    def test_rejects_non_strings(self):
        for value in [None, 42, ["https://youtu.be/dQw4w9WgXcQ"], {"url": "x"}, b"https://youtu.be/x"]:
            with self.subTest(value=value):
                self.assertFalse(is_valid_video_url(value))

    def test_extract_video_id(self):
        self.assertEqual(extract_video_id("https://youtu.be/dQw4w9WgXcQ"), "dQw4w9WgXcQ")
        self.assertEqual(
            extract_video_id("https://www.youtube.com/watch?list=PL1&v=dQw4w9WgXcQ&t=1"),
            "dQw4w9WgXcQ",
        )
        self.assertEqual(extract_video_id("https://youtube.com/shorts/abc"), "abc")
        self.assertIsNone(extract_video_id("https://example.com"))
