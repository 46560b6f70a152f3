import os
import tempfile
import unittest
from pathlib import Path

from pydantic import ValidationError

from abz_submit.config import Settings, find_config


class TestSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = Settings()
        self.assertEqual(settings.submit.base_url, "https://acousticbrainz.org")
        self.assertEqual(settings.submit.connect_timeout_seconds, 5.0)
        self.assertEqual(settings.submit.read_timeout_seconds, 10.0)
        self.assertFalse(settings.submit.gzip_payload)
        self.assertIsNone(settings.extractor.binary)
        self.assertEqual(settings.library.roots, [])

    def test_load_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            path = tmp / "config.yaml"
            path.write_text(
                "\n".join(
                    [
                        "library:",
                        f"  roots: [{tmp / 'music'}]",
                        "extractor:",
                        f"  binary: {tmp / 'bin' / 'streaming_extractor_music'}",
                        "submit:",
                        "  base_url: http://localhost:8080/",
                        "  gzip_payload: true",
                        "daemon:",
                        "  worker_concurrency: 4",
                    ]
                ),
                encoding="utf-8",
            )
            settings = Settings.load(path)

        self.assertEqual(settings.library.roots, [(tmp / "music").resolve()])
        self.assertEqual(settings.extractor.binary.name, "streaming_extractor_music")
        self.assertEqual(settings.submit.base_url, "http://localhost:8080")
        self.assertTrue(settings.submit.gzip_payload)
        self.assertEqual(settings.daemon.worker_concurrency, 4)

    def test_empty_file_gives_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.yaml"
            path.write_text("", encoding="utf-8")
            self.assertEqual(Settings.load(path), Settings())

    def test_invalid_values_are_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            Settings.model_validate({"submit": {"connect_timeout_seconds": "soon"}})


class TestFindConfig(unittest.TestCase):
    def test_explicit_missing_path_raises(self) -> None:
        with self.assertRaises(FileNotFoundError):
            find_config(Path("/definitely/not/here.yaml"))

    def test_cwd_config_is_found(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            previous = os.getcwd()
            os.chdir(tmp)
            try:
                self.assertIsNone(find_config(None))
                (tmp / "config.yml").write_text("{}", encoding="utf-8")
                self.assertEqual(find_config(None).name, "config.yml")
            finally:
                os.chdir(previous)


if __name__ == "__main__":
    unittest.main()
