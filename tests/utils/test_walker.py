import os
import tempfile
import unittest
from pathlib import Path

from dirdup.utils.walker import (
    FileContext,
    FileEntry,
    WalkPolicy,
    iter_regular_files,
    walk_with_policy,
)


class FileContextTest(unittest.TestCase):
    """Test FileContext class functionality."""

    def test_relative_path(self):
        root = FileContext(None, None)
        child = FileContext(root, "a")
        grandchild = FileContext(child, "b.txt")

        self.assertIsNone(root.relative_path)
        self.assertEqual(Path("a"), child.relative_path)
        self.assertEqual(Path("a/b.txt"), grandchild.relative_path)

    def test_stat_without_path_raises(self):
        with self.assertRaises(LookupError):
            _ = FileContext(None, "x").stat

    def test_stat_does_not_follow_symlinks(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            target = Path(tmpdir) / "target"
            target.mkdir()
            link = Path(tmpdir) / "link"
            link.symlink_to(target)

            context = FileContext(None, "link", link)

            self.assertFalse(context.is_dir())
            self.assertFalse(context.is_file())


class WalkWithPolicyTest(unittest.TestCase):
    def test_excluded_paths_are_pruned(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "keep").mkdir()
            (root / "keep" / "file.txt").write_text("keep")
            (root / "skip").mkdir()
            (root / "skip" / "file.txt").write_text("skip")

            seen = [context.relative_path for _, context in
                    walk_with_policy(root, WalkPolicy(frozenset({Path("skip")})))]

            self.assertIn(Path("keep/file.txt"), seen)
            self.assertNotIn(Path("skip"), seen)
            self.assertNotIn(Path("skip/file.txt"), seen)


class IterRegularFilesTest(unittest.TestCase):
    def test_yields_regular_files_with_sizes(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a").mkdir()
            (root / "a" / "one.bin").write_bytes(b"1" * 10)
            (root / "a" / "b").mkdir()
            (root / "a" / "b" / "two.bin").write_bytes(b"2" * 20)
            (root / "top.bin").write_bytes(b"")

            entries = set(iter_regular_files(root))

            self.assertEqual({
                FileEntry(root / "a" / "one.bin", 10),
                FileEntry(root / "a" / "b" / "two.bin", 20),
                FileEntry(root / "top.bin", 0),
            }, entries)

    def test_symlinks_are_not_followed(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir) / "root"
            root.mkdir()
            outside = Path(tmpdir) / "outside"
            outside.mkdir()
            (outside / "file.bin").write_bytes(b"data")
            (root / "real.bin").write_bytes(b"real")
            (root / "dir_link").symlink_to(outside)
            (root / "file_link").symlink_to(root / "real.bin")

            entries = list(iter_regular_files(root))

            self.assertEqual([FileEntry(root / "real.bin", 4)], entries)

    def test_relative_root_is_made_absolute(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "file.bin").write_bytes(b"abc")
            cwd = os.getcwd()
            os.chdir(root)
            try:
                entries = list(iter_regular_files(Path(".")))
            finally:
                os.chdir(cwd)

            self.assertEqual(1, len(entries))
            self.assertTrue(entries[0].path.is_absolute())
            self.assertEqual("file.bin", entries[0].path.name)

    def test_exclusions(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "cache").mkdir()
            (root / "cache" / "x.bin").write_bytes(b"x")
            (root / "y.bin").write_bytes(b"y")

            entries = list(iter_regular_files(root, frozenset({Path("cache")})))

            self.assertEqual([FileEntry(root / "y.bin", 1)], entries)


if __name__ == '__main__':
    unittest.main()
