from __future__ import annotations

from pathlib import Path
import tempfile
import unittest

from imbapack.errors import FilesystemError
from imbapack.paths import FileKind, PathCorrelator, lookup_key


def _touch(path: Path, text: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class PathCorrelatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name) / "build"
        self.root.mkdir()

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_classifies_scripts_and_markup_case_insensitively(self) -> None:
        index = _touch(self.root / "Index.HTML")
        main = _touch(self.root / "_dist_" / "Main.JS")
        util = _touch(self.root / "_dist_" / "app" / "util.js")
        deep = _touch(self.root / "a" / "b" / "c" / "deep.js")
        _touch(self.root / "readme.txt")

        result = PathCorrelator().walk(self.root)

        self.assertEqual(
            result.scripts_by_basename,
            {"main": main, "util": util, "deep": deep},
        )
        self.assertEqual(result.markup_files, [index])
        kinds = {unit.path.name: unit.kind for unit in result.units}
        self.assertEqual(kinds["readme.txt"], FileKind.OTHER)
        self.assertEqual(kinds["Main.JS"], FileKind.SCRIPT)
        self.assertEqual(len(result.units), 5)

    def test_traversal_is_breadth_first(self) -> None:
        _touch(self.root / "z.js")
        _touch(self.root / "a" / "b" / "deeper.js")
        _touch(self.root / "a" / "shallow.js")

        names = [unit.path.name for unit in PathCorrelator().walk(self.root).units]
        self.assertEqual(names, ["z.js", "shallow.js", "deeper.js"])

    def test_later_visited_file_wins_on_collision(self) -> None:
        _touch(self.root / "a" / "x.js")
        later = _touch(self.root / "b" / "X.js")

        result = PathCorrelator().walk(self.root)
        self.assertEqual(result.scripts_by_basename["x"], later)

    def test_unit_attributes(self) -> None:
        _touch(self.root / "App.Imba.js")
        unit = PathCorrelator().walk(self.root).units[0]
        self.assertEqual(unit.name, "app.imba.js")
        self.assertEqual(unit.stem, "app.imba")
        self.assertTrue(unit.path.is_absolute())

    def test_custom_suffixes(self) -> None:
        module = _touch(self.root / "entry.mjs")
        result = PathCorrelator(script_suffix=".mjs", markup_suffix=".htm").walk(self.root)
        self.assertEqual(result.scripts_by_basename, {"entry": module})

    def test_missing_root_raises(self) -> None:
        with self.assertRaises(FilesystemError):
            PathCorrelator().walk(self.root / "missing")


class LookupKeyTests(unittest.TestCase):
    def test_strips_directory_and_extension(self) -> None:
        self.assertEqual(lookup_key("main.imba"), "main")
        self.assertEqual(lookup_key("/_dist_/App.js"), "app")
        self.assertEqual(lookup_key("C:\\src\\Main.imba"), "main")
        self.assertEqual(lookup_key("https://cdn.example/lib.js"), "lib")
        self.assertEqual(lookup_key("noext"), "noext")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
