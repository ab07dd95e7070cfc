import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import gallery_downloader
from fake_gallery import FakeSessionFactory

GALLERY_URL = "https://www.zsgrosslingova.sk/gallery-1"


class TestGalleryDownloaderCli(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.photos_dir = self.root / "photos"
        self.log_dir = self.root / "logs"

    def tearDown(self):
        self._tmp.cleanup()

    def run_main(self, factory, *extra_args, url=GALLERY_URL):
        argv = [
            "--output-dir", str(self.photos_dir),
            "--log-dir", str(self.log_dir),
            "--download-timeout-sec", "0.3",
            "--poll-interval-sec", "0.02",
            "--settle-delay-sec", "0",
            *extra_args,
        ]
        if url is not None:
            argv.insert(0, url)
        out = io.StringIO()
        with mock.patch.object(gallery_downloader, "open_browser_session", factory):
            with contextlib.redirect_stdout(out):
                code = gallery_downloader.main(argv)
        return code, out.getvalue()

    def read_run_log(self):
        logs = sorted(self.log_dir.glob("gallery-downloader-*.json"))
        self.assertEqual(len(logs), 1)
        return json.loads(logs[0].read_text(encoding="utf-8"))

    def test_three_photo_gallery_downloads_everything(self):
        factory = FakeSessionFactory(["1.jpg", "2.jpg", "3.jpg"])
        code, output = self.run_main(factory)

        self.assertEqual(code, 0)
        self.assertEqual(sorted(p.name for p in self.photos_dir.iterdir()), ["1.jpg", "2.jpg", "3.jpg"])
        self.assertTrue(factory.sessions[0].closed)
        self.assertEqual(factory.sessions[0].visited, [GALLERY_URL])
        self.assertIn("Finished! Downloaded 3 photos", output)

        run_log = self.read_run_log()
        self.assertEqual(run_log["photo_count"], 3)
        self.assertEqual(run_log["advances"], 2)
        self.assertEqual(run_log["outcome"], "done")
        self.assertEqual(run_log["final_state"], "done")
        self.assertEqual(run_log["saved_downloads"], ["1.jpg", "2.jpg", "3.jpg"])
        self.assertEqual(run_log["download_errors"], [])

    def test_stalled_download_exits_non_zero_and_releases_browser(self):
        factory = FakeSessionFactory(["1.jpg"], stalled=True)
        code, output = self.run_main(factory)

        self.assertEqual(code, 1)
        self.assertTrue(factory.sessions[0].closed)
        names = [p.name for p in self.photos_dir.iterdir()]
        self.assertEqual([n for n in names if not n.endswith(".crdownload")], [])
        self.assertIn("Download did not complete", output)
        run_log = self.read_run_log()
        self.assertEqual(run_log["outcome"], "download_timeout")
        self.assertEqual(run_log["saved_downloads"], [])

    def test_missing_image_link_is_critical(self):
        factory = FakeSessionFactory(["1.jpg"], image_link_missing=True)
        code, output = self.run_main(factory)

        self.assertEqual(code, 1)
        self.assertTrue(factory.sessions[0].closed)
        self.assertIn("Critical error", output)
        self.assertEqual(self.read_run_log()["outcome"], "critical_error")

    def test_non_empty_directory_is_rejected_untouched(self):
        self.photos_dir.mkdir()
        (self.photos_dir / "leftover.jpg").write_bytes(b"old")
        factory = FakeSessionFactory(["1.jpg"])
        code, output = self.run_main(factory)

        self.assertEqual(code, 1)
        self.assertEqual(factory.sessions, [])
        self.assertEqual([p.name for p in self.photos_dir.iterdir()], ["leftover.jpg"])
        self.assertEqual((self.photos_dir / "leftover.jpg").read_bytes(), b"old")
        self.assertIn("must be empty", output)

    def test_second_run_into_same_directory_is_rejected(self):
        first = FakeSessionFactory(["1.jpg", "2.jpg"])
        self.assertEqual(self.run_main(first)[0], 0)

        second = FakeSessionFactory(["1.jpg", "2.jpg"])
        code, _ = self.run_main(second)
        self.assertEqual(code, 1)
        self.assertEqual(second.sessions, [])
        self.assertEqual(sorted(p.name for p in self.photos_dir.iterdir()), ["1.jpg", "2.jpg"])

    def test_missing_url_argument(self):
        factory = FakeSessionFactory(["1.jpg"])
        code, output = self.run_main(factory, url=None)
        self.assertEqual(code, 1)
        self.assertIn("Missing required gallery URL", output)
        self.assertFalse(self.photos_dir.exists())
        self.assertEqual(factory.sessions, [])

    def test_invalid_url_argument(self):
        factory = FakeSessionFactory(["1.jpg"])
        code, output = self.run_main(factory, url="not a url")
        self.assertEqual(code, 1)
        self.assertIn("Invalid URL format", output)
        self.assertFalse(self.photos_dir.exists())

    def test_interrupt_still_releases_browser(self):
        factory = FakeSessionFactory(["1.jpg", "2.jpg"], next_wait_error=KeyboardInterrupt())
        code, _ = self.run_main(factory)
        self.assertEqual(code, 130)
        self.assertTrue(factory.sessions[0].closed)
        self.assertEqual(self.read_run_log()["photo_count"], 1)


if __name__ == '__main__':
    unittest.main()
