import tempfile
import unittest
from pathlib import Path

from abz_submit.config import LibrarySettings
from abz_submit.scanner import LibraryScanner


class TestLibraryScanner(unittest.TestCase):
    def test_iter_paths_filters_extensions_and_patterns(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            for name in ("B/02.flac", "A/01.MP3", "A/cover.jpg", "tmp/03.mp3", "A/04.m4a"):
                path = root / name
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(b"x")
            settings = LibrarySettings(roots=[root, root / "missing"], exclude_patterns=["*/tmp/*"])
            scanner = LibraryScanner(settings)

            rel = [p.relative_to(root.resolve()).as_posix() for p in scanner.iter_paths()]

        self.assertEqual(rel, ["A/01.MP3", "A/04.m4a", "B/02.flac"])


if __name__ == "__main__":
    unittest.main()
