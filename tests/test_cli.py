import io
import logging
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

from abz_submit.cli import ShortPathFormatter, build_parser, main


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        root = logging.getLogger()
        saved = (list(root.handlers), root.level)

        def restore() -> None:
            for handler in root.handlers:
                if handler not in saved[0]:
                    handler.close()
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])

        self.addCleanup(restore)
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.tmp = Path(self._tmp.name)
        previous = os.getcwd()
        os.chdir(self.tmp)
        self.addCleanup(os.chdir, previous)

    def test_parser_requires_files_for_submit(self) -> None:
        parser = build_parser()
        args = parser.parse_args(["submit", "a.mp3", "b.flac"])
        self.assertEqual(args.files, [Path("a.mp3"), Path("b.flac")])
        with self.assertRaises(SystemExit):
            with redirect_stderr(io.StringIO()):
                parser.parse_args(["submit"])

    def test_doctor_exits_non_zero_without_extractor(self) -> None:
        config = self.tmp / "config.yaml"
        config.write_text(f"extractor:\n  binary: {self.tmp / 'missing'}\n", encoding="utf-8")
        out = io.StringIO()
        with redirect_stdout(out):
            with self.assertRaises(SystemExit) as ctx:
                main(["--config", str(config), "doctor"])
        self.assertEqual(ctx.exception.code, 1)
        self.assertIn("Extractor: ERROR", out.getvalue())

    def test_missing_explicit_config_exits(self) -> None:
        with self.assertRaises(SystemExit) as ctx:
            main(["--config", str(self.tmp / "nope.yaml"), "doctor"])
        self.assertIn("does not exist", str(ctx.exception.code))

    def test_short_path_formatter_strips_roots(self) -> None:
        formatter = ShortPathFormatter("%(message)s", [Path("/music")])
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "Submitted /music/A/01.mp3", None, None)
        self.assertEqual(formatter.format(record), "Submitted A/01.mp3")


if __name__ == "__main__":
    unittest.main()
