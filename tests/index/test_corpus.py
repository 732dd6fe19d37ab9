import random
import tempfile
import unittest
from pathlib import Path

from dirdup.fingerprint import compute_fingerprint
from dirdup.index.corpus import CorpusIndex, CorpusIndexBuilder, ScanError
from dirdup.utils.walker import FileEntry


def write_file(path: Path, data: bytes) -> FileEntry:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return FileEntry(path, len(data))


def assert_consistent(test: unittest.TestCase, index: CorpusIndex):
    """Every (fingerprint, directory) link must exist in both mappings."""
    for fingerprint, directories in index.fingerprint_directories.items():
        test.assertTrue(directories)
        for directory in directories:
            test.assertIn(fingerprint, index.fingerprints_for(directory))
    for directory, fingerprints in index.directory_fingerprints.items():
        test.assertTrue(fingerprints)
        for fingerprint in fingerprints:
            test.assertIn(directory, index.directories_for(fingerprint))


class CorpusIndexBuilderTest(unittest.TestCase):
    """Tests for building the corpus index from file entries."""

    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmpdir.name)

    def tearDown(self):
        self._tmpdir.cleanup()

    def test_single_file(self):
        entry = write_file(self.tmp / 'a' / 'file.bin', b'payload' * 300)

        builder = CorpusIndexBuilder(1, 1024)
        builder.add_file(entry)
        index = builder.build()

        fingerprint = compute_fingerprint(entry.path, entry.size, 1024)
        self.assertEqual(frozenset({self.tmp / 'a'}), index.directories_for(fingerprint))
        self.assertEqual(frozenset({fingerprint}), index.fingerprints_for(self.tmp / 'a'))
        self.assertEqual(1, builder.files_indexed)
        assert_consistent(self, index)

    def test_same_content_in_one_directory_counts_once(self):
        data = b'same' * 500
        builder = CorpusIndexBuilder(1, 1024)
        builder.add_files([
            write_file(self.tmp / 'a' / 'one.bin', data),
            write_file(self.tmp / 'a' / 'two.bin', data),
        ])
        index = builder.build()

        self.assertEqual(1, len(index.fingerprints_for(self.tmp / 'a')))
        self.assertEqual(2, builder.files_indexed)

    def test_files_below_min_size_are_ignored(self):
        small = write_file(self.tmp / 'small' / 'tiny.txt', b'12345')
        large = write_file(self.tmp / 'large' / 'big.txt', b'1234567890abc')

        builder = CorpusIndexBuilder(10, 1024)
        builder.add_files([small, large])
        index = builder.build()

        self.assertNotIn(self.tmp / 'small', index)
        self.assertIn(self.tmp / 'large', index)
        self.assertEqual(1, builder.files_ignored)
        self.assertEqual(1, builder.files_indexed)

    def test_unreadable_file_is_skipped_with_warning(self):
        good = write_file(self.tmp / 'a' / 'good.bin', b'good' * 100)
        missing = FileEntry(self.tmp / 'b' / 'missing.bin', 400)

        builder = CorpusIndexBuilder(1, 1024)
        with self.assertLogs('dirdup.index.corpus', level='WARNING') as cm:
            builder.add_files([missing, good])
        index = builder.build()

        self.assertIn('missing.bin', cm.output[0])
        self.assertNotIn(self.tmp / 'b', index)
        self.assertIn(self.tmp / 'a', index)
        self.assertEqual(1, builder.files_skipped)
        assert_consistent(self, index)

    def test_unreadable_file_aborts_when_requested(self):
        missing = FileEntry(self.tmp / 'b' / 'missing.bin', 400)

        builder = CorpusIndexBuilder(1, 1024, abort_on_error=True)
        with self.assertRaises(ScanError) as cm:
            builder.add_file(missing)

        self.assertIsInstance(cm.exception.__cause__, OSError)

    def test_observer_sees_every_file(self):
        seen = []
        entries = [
            write_file(self.tmp / 'a' / 'small', b'x'),
            write_file(self.tmp / 'a' / 'large', b'x' * 50),
            FileEntry(self.tmp / 'a' / 'gone', 50),
        ]

        builder = CorpusIndexBuilder(10, 1024, on_file_processed=lambda e, f: seen.append((e, f)))
        with self.assertLogs('dirdup.index.corpus', level='WARNING'):
            builder.add_files(entries)

        self.assertEqual([e for e, _ in seen], entries)
        self.assertIsNone(seen[0][1])
        self.assertIsNotNone(seen[1][1])
        self.assertIsNone(seen[2][1])

    def test_result_is_independent_of_input_order(self):
        contents = [bytes([i]) * (100 + i) for i in range(6)]
        entries = []
        for d in range(5):
            for c in range(6):
                if (d + c) % 3 != 0:
                    entries.append(write_file(self.tmp / f'dir{d}' / f'file{c}', contents[c]))

        builder = CorpusIndexBuilder(1, 1024)
        builder.add_files(entries)
        expected = builder.build()
        assert_consistent(self, expected)

        rng = random.Random(1234)
        for _ in range(5):
            shuffled = list(entries)
            rng.shuffle(shuffled)
            builder = CorpusIndexBuilder(1, 1024)
            builder.add_files(shuffled)
            index = builder.build()

            self.assertEqual(dict(expected.fingerprint_directories), dict(index.fingerprint_directories))
            self.assertEqual(dict(expected.directory_fingerprints), dict(index.directory_fingerprints))

    def test_builder_is_closed_after_build(self):
        builder = CorpusIndexBuilder(1, 1024)
        builder.build()

        with self.assertRaises(RuntimeError):
            builder.add_fingerprint(FileEntry(self.tmp / 'a' / 'f', 1), 1)
        with self.assertRaises(RuntimeError):
            builder.build()

    def test_discard_drops_partial_state(self):
        builder = CorpusIndexBuilder(1, 1024)
        builder.add_fingerprint(FileEntry(self.tmp / 'a' / 'f', 5), 42)
        builder.discard()

        with self.assertRaises(RuntimeError):
            builder.build()


class CorpusIndexTest(unittest.TestCase):
    def test_index_is_read_only(self):
        index = CorpusIndex({1: frozenset({Path('/a')})}, {Path('/a'): frozenset({1})})

        with self.assertRaises(TypeError):
            index.fingerprint_directories[2] = frozenset()  # type: ignore[index]
        with self.assertRaises(TypeError):
            index.directory_fingerprints[Path('/b')] = frozenset()  # type: ignore[index]

    def test_lookups(self):
        index = CorpusIndex({1: frozenset({Path('/a')})}, {Path('/a'): frozenset({1})})

        self.assertEqual(1, len(index))
        self.assertEqual([Path('/a')], list(index.directories()))
        self.assertEqual(frozenset(), index.directories_for(2))
        self.assertEqual(frozenset(), index.fingerprints_for(Path('/b')))


if __name__ == '__main__':
    unittest.main()
