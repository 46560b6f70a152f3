import tempfile
import unittest
from pathlib import Path

from abz_submit.fs_utils import WorkingArtifacts
from abz_submit.models import ProcessingError, TagWriteError, Track
from abz_submit.pipeline import ScratchCopyManager
from abz_submit.tagging import TagReader, TagWriter


class _Reader:
    def __init__(self, embedded=None) -> None:
        self.embedded = embedded or []

    def read_mbids(self, path):
        return list(self.embedded)


class _Writer:
    def __init__(self) -> None:
        self.calls = []

    def embed_mbid(self, path, mbid):
        self.calls.append((path, mbid))


class TestScratchCopyManager(unittest.TestCase):
    def test_file_with_embedded_id_is_used_in_place(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            source = Path(tmpdir) / "song.flac"
            source.write_bytes(b"audio")
            writer = _Writer()
            manager = ScratchCopyManager(reader=_Reader(["abc123"]), writer=writer)
            artifacts = WorkingArtifacts()

            prepared = manager.prepare_input(Track(path=source), "abc123", artifacts)

            self.assertEqual(prepared.path, source.absolute())
            self.assertFalse(prepared.is_temporary)
            self.assertEqual(len(artifacts), 0)
            self.assertEqual(writer.calls, [])

    def test_missing_id_is_embedded_into_a_registered_copy(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            scratch = tmp / "scratch"
            scratch.mkdir()
            source = tmp / "song.flac"
            source.write_bytes(b"audio")
            writer = _Writer()
            manager = ScratchCopyManager(reader=_Reader(), writer=writer, scratch_dir=scratch)
            artifacts = WorkingArtifacts()

            prepared = manager.prepare_input(Track(path=source), "abc123", artifacts)

            self.assertTrue(prepared.is_temporary)
            self.assertEqual(prepared.path.parent, scratch.absolute())
            self.assertEqual(prepared.path.suffix, ".flac")
            self.assertIn(prepared.path, artifacts)
            self.assertEqual(prepared.path.read_bytes(), b"audio")
            self.assertEqual(writer.calls, [(prepared.path, "abc123")])

            artifacts.cleanup()
            self.assertFalse(prepared.path.exists())
            self.assertTrue(source.exists())

    def test_embed_failure_still_leaves_copy_for_cleanup(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            source = tmp / "song.wav"
            source.write_bytes(b"audio")
            manager = ScratchCopyManager(reader=_Reader(), scratch_dir=tmp)
            artifacts = WorkingArtifacts()

            with self.assertRaises(TagWriteError):
                manager.prepare_input(Track(path=source), "abc123", artifacts)

            self.assertEqual(len(artifacts), 1)
            artifacts.cleanup()
            self.assertEqual(sorted(p.name for p in tmp.iterdir()), ["song.wav"])

    def test_track_without_file_is_rejected(self) -> None:
        manager = ScratchCopyManager(reader=_Reader(), writer=_Writer())
        with self.assertRaises(ProcessingError):
            manager.prepare_input(Track(path=None), "abc123", WorkingArtifacts())

    def test_real_mp3_copy_carries_the_ufid_frame(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            source = tmp / "song.mp3"
            source.write_bytes(b"\x00" * 256)
            manager = ScratchCopyManager(scratch_dir=tmp)
            artifacts = WorkingArtifacts()

            prepared = manager.prepare_input(Track(path=source), "ABC123", artifacts)

            reader = TagReader()
            self.assertTrue(prepared.is_temporary)
            self.assertEqual(reader.read_mbids(prepared.path), ["abc123"])
            self.assertEqual(reader.read_mbids(source), [])
            self.assertEqual(source.read_bytes(), b"\x00" * 256)
            artifacts.cleanup()


class TestTagWriter(unittest.TestCase):
    def test_embedding_twice_keeps_one_frame(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "song.mp3"
            path.write_bytes(b"\x00" * 128)
            writer = TagWriter()
            writer.embed_mbid(path, "abc123")
            writer.embed_mbid(path, "def456")
            self.assertEqual(TagReader().read_mbids(path), ["def456"])

    def test_unsupported_format_raises(self) -> None:
        with self.assertRaises(TagWriteError):
            TagWriter().embed_mbid(Path("/tmp/song.wav"), "abc123")


if __name__ == "__main__":
    unittest.main()
