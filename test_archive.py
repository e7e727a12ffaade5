from __future__ import annotations

import json
import os
import tempfile
import unittest
from pathlib import Path

from dotconf.builder import build_archive, constrict, merge_with_existing
from dotconf.codec import decode
from dotconf.errors import ConstrictError, NothingToConstrict, OptionsError
from dotconf.fsutil import load_archive, read, remove, write
from dotconf.log import Log
from dotconf.pathutil import get, resolve_paths
from dotconf.records import ArchiveRecord, Stats

TEST_FILE = ".test"
TEST_DIRECTORY = "testFolder"
TEST_CONTENT = "content"


def _create_sample_files(base: Path) -> Path:
    (base / TEST_DIRECTORY).mkdir()
    path = base / TEST_DIRECTORY / TEST_FILE
    path.write_text(TEST_CONTENT, encoding="utf-8")
    return path


def _create_nested_tree(base: Path) -> None:
    (base / "sub" / "deep").mkdir(parents=True)
    (base / "a.txt").write_text("a", encoding="utf-8")
    (base / "sub" / "b.txt").write_text("b", encoding="utf-8")
    (base / "sub" / "deep" / "c.txt").write_text("c", encoding="utf-8")
    (base / ".hidden.txt").write_text("h", encoding="utf-8")


class _TempDirCase(unittest.TestCase):
    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.base = Path(tmp.name)
        self.log = Log(silent=True)


class FileHelperTests(_TempDirCase):
    def test_read(self):
        _create_sample_files(self.base)
        self.assertEqual(read(TEST_FILE, str(self.base / TEST_DIRECTORY), log=self.log), TEST_CONTENT)

    def test_remove_file_then_directory(self):
        path = _create_sample_files(self.base)
        remove(TEST_FILE, str(self.base / TEST_DIRECTORY), log=self.log)
        self.assertFalse(path.exists())
        self.assertEqual(os.listdir(self.base / TEST_DIRECTORY), [])
        remove(TEST_DIRECTORY, str(self.base), log=self.log)
        self.assertFalse((self.base / TEST_DIRECTORY).exists())
        # absent path is fine
        remove(TEST_DIRECTORY, str(self.base), log=self.log)

    def test_write_and_load(self):
        archive = {"x/y": ArchiveRecord(content="a%20b")}
        out = write("out/archive.json", str(self.base), archive, log=self.log)
        self.assertEqual(json.loads(out.read_text()), {"x/y": {"content": "a%20b"}})
        self.assertEqual(load_archive("out/archive.json", str(self.base)), archive)
        self.assertFalse(out.with_name("archive.json.tmp").exists())


class ResolvePathsTests(_TempDirCase):
    def test_get_dotfiles(self):
        _create_sample_files(self.base)
        cwd = str(self.base / TEST_DIRECTORY)
        self.assertEqual(get("*", cwd=cwd, dot=True, log=self.log), [TEST_FILE])
        self.assertEqual(get("*", cwd=cwd, dot=False, log=self.log), [])

    def test_get_recursive_and_ignore(self):
        _create_nested_tree(self.base)
        cwd = str(self.base)
        self.assertEqual(
            get("**/*.txt", cwd=cwd, dot=False, log=self.log),
            ["a.txt", "sub/b.txt", "sub/deep/c.txt"],
        )
        self.assertEqual(
            get("**/*.txt", cwd=cwd, dot=True, ignore=["sub/deep/**"], log=self.log),
            [".hidden.txt", "a.txt", "sub/b.txt"],
        )
        self.assertEqual(get("sub/*", cwd=cwd, ignore=["sub/deep/**"], log=self.log), ["sub/b.txt"])

    def test_ignore_star_stays_in_one_segment(self):
        _create_nested_tree(self.base)
        cwd = str(self.base)
        self.assertEqual(
            get("**/*.txt", cwd=cwd, dot=False, ignore=["*.txt"], log=self.log),
            ["sub/b.txt", "sub/deep/c.txt"],
        )
        self.assertEqual(
            get("**/*.txt", cwd=cwd, dot=False, ignore=["sub/*"], log=self.log),
            ["a.txt", "sub/deep/c.txt"],
        )
        self.assertEqual(
            get("**/*.txt", cwd=cwd, dot=False, ignore=["**/b.txt"], log=self.log),
            ["a.txt", "sub/deep/c.txt"],
        )

    def test_top_level_ignore_keeps_nested_files_in_archive(self):
        _create_nested_tree(self.base)
        archive = constrict(pattern="**/*.txt", ignore=["*.txt"], cwd=str(self.base), dot=False, log=self.log)
        self.assertEqual(sorted(archive), ["sub/b.txt", "sub/deep/c.txt"])

    def test_explicit_files_first_no_dedup(self):
        _create_nested_tree(self.base)
        paths = resolve_paths("*.txt", ["a.txt", "zz"], cwd=str(self.base), dot=False, log=self.log)
        self.assertEqual(paths, ["a.txt", "zz", "a.txt"])

    def test_empty_selection(self):
        with self.assertRaises(NothingToConstrict):
            resolve_paths("nothing/*", None, cwd=str(self.base), log=self.log)

    def test_files_must_be_a_list(self):
        with self.assertRaises(OptionsError):
            resolve_paths(None, "a.txt", cwd=str(self.base), log=self.log)


class BuildArchiveTests(_TempDirCase):
    def test_directories_counted_not_stored(self):
        _create_nested_tree(self.base)
        archive, stats = build_archive(["a.txt", "sub", "sub/b.txt"], cwd=str(self.base), log=self.log)
        self.assertEqual(archive, {"a.txt": ArchiveRecord("a"), "sub/b.txt": ArchiveRecord("b")})
        self.assertEqual(stats, Stats(files=2, directories=1))

    def test_stats_are_per_call(self):
        _create_nested_tree(self.base)
        _, first = build_archive(["a.txt"], cwd=str(self.base), log=self.log)
        _, second = build_archive(["a.txt"], cwd=str(self.base), log=self.log)
        self.assertEqual(first, Stats(files=1))
        self.assertEqual(second, Stats(files=1))
        self.assertEqual(first + second, Stats(files=2))

    def test_missing_path(self):
        with self.assertRaises(ConstrictError):
            build_archive(["missing.txt"], cwd=str(self.base), log=self.log)

    def test_passphrase(self):
        _create_nested_tree(self.base)
        archive, _ = build_archive(["a.txt"], cwd=str(self.base), passphrase="pw", log=self.log)
        self.assertNotEqual(archive["a.txt"].content, "a")
        self.assertEqual(decode(archive["a.txt"].content, "pw", log=self.log), "a")


class MergeTests(_TempDirCase):
    def test_merge_new_entries_win(self):
        (self.base / "file.json").write_text(json.dumps({"test": {"content": "old"}, "both": {"content": "old"}}))
        merged = merge_with_existing(
            str(self.base / "file.json"), {"test2": ArchiveRecord("new"), "both": ArchiveRecord("new")}
        )
        self.assertEqual(
            merged,
            {"test": ArchiveRecord("old"), "test2": ArchiveRecord("new"), "both": ArchiveRecord("new")},
        )

    def test_no_previous_file(self):
        entries = {"test2": ArchiveRecord("new")}
        self.assertEqual(merge_with_existing(str(self.base / "file2.json"), entries), entries)

    def test_unparseable_previous_file(self):
        (self.base / "broken.json").write_text("{not json")
        entries = {"test2": ArchiveRecord("new")}
        self.assertEqual(merge_with_existing("broken.json", entries, cwd=str(self.base)), entries)


class ConstrictTests(_TempDirCase):
    def setUp(self):
        super().setUp()
        self.path = _create_sample_files(self.base)
        self.expected = {str(self.path): ArchiveRecord(content=TEST_CONTENT)}

    def test_output(self):
        output = constrict(files=[str(self.path)], cwd=str(self.base), log=self.log)
        self.assertEqual(output, self.expected)

    def test_missing_options(self):
        with self.assertRaises(OptionsError):
            constrict(log=self.log)
        with self.assertRaises(OptionsError):
            constrict(files=str(self.path), cwd=str(self.base), log=self.log)
        self.assertEqual(sorted(os.listdir(self.base)), [TEST_DIRECTORY])

    def test_nothing_matched(self):
        with self.assertRaises(NothingToConstrict):
            constrict(pattern="./inexistant/*", cwd=str(self.base), log=self.log)

    def test_destination_written(self):
        output = constrict(files=[str(self.path)], cwd=str(self.base), destination=".config", log=self.log)
        content = json.loads((self.base / ".config").read_text())
        self.assertEqual(output, self.expected)
        self.assertEqual(content, {str(self.path): {"content": TEST_CONTENT}})

    def test_destination_overwritten_by_default(self):
        (self.base / ".config").write_text(json.dumps({"old": {"content": "x"}}))
        constrict(files=[str(self.path)], cwd=str(self.base), destination=".config", log=self.log)
        self.assertEqual(json.loads((self.base / ".config").read_text()), {str(self.path): {"content": TEST_CONTENT}})

    def test_destination_merged(self):
        (self.base / ".config").write_text(json.dumps({"old": {"content": "x"}}))
        output = constrict(files=[str(self.path)], cwd=str(self.base), destination=".config", merge=True, log=self.log)
        self.assertEqual(output, {"old": ArchiveRecord("x"), **self.expected})
        self.assertEqual(
            json.loads((self.base / ".config").read_text()),
            {"old": {"content": "x"}, str(self.path): {"content": TEST_CONTENT}},
        )

    def test_pattern_keys_relative_to_cwd(self):
        output = constrict(pattern="**/.test", cwd=str(self.base), log=self.log)
        self.assertEqual(output, {f"{TEST_DIRECTORY}/{TEST_FILE}": ArchiveRecord(TEST_CONTENT)})


if __name__ == "__main__":
    unittest.main()
