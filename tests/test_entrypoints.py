from __future__ import annotations

from pathlib import Path
import tempfile
import textwrap
import unittest

from core.console import Console
from imbapack.entrypoints import EntrypointResolver
from imbapack.errors import ConfigError


class EntrypointResolverTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name) / "build"
        self.root.mkdir()
        self.resolver = EntrypointResolver(console=Console("none"))

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _write(self, relative: str, text: str = "") -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path

    def test_names_resolving_to_same_script_appear_once(self) -> None:
        main = self._write("_dist_/main.js")
        resolved = self.resolver.resolve(["main", "main.imba"], self.root, scan_markup=False)
        self.assertEqual(resolved, [main])

    def test_single_bare_name(self) -> None:
        main = self._write("_dist_/Main.js")
        self.assertEqual(self.resolver.resolve("MAIN", self.root, scan_markup=False), [main])

    def test_markup_references_are_resolved(self) -> None:
        index = self._write("_dist_/index.js")
        self._write(
            "index.html",
            textwrap.dedent(
                """
                <html><head>
                <script type="module" src="/_dist_/index.js"></script>
                <script src="https://cdn.example/lib.js"></script>
                </head></html>
                """
            ),
        )
        self.assertEqual(self.resolver.resolve([], self.root), [index])

    def test_configured_names_come_before_scanned_references(self) -> None:
        admin = self._write("_dist_/admin.js")
        index = self._write("_dist_/index.js")
        self._write(
            "index.html",
            "<script src=\"/_dist_/index.js\"></script><script>import '/_dist_/admin.js'</script>",
        )
        resolved = self.resolver.resolve(["admin"], self.root)
        self.assertEqual(resolved, [admin, index])

    def test_unresolvable_reference_is_dropped_without_error(self) -> None:
        main = self._write("_dist_/main.js")
        self._write("index.html", "<script src=\"https://cdn.example/lib.js\"></script>")
        resolved = self.resolver.resolve(["main"], self.root)
        self.assertEqual(resolved, [main])

    def test_scanning_can_be_disabled(self) -> None:
        self._write("_dist_/index.js")
        self._write("index.html", "<script src=\"/_dist_/index.js\"></script>")
        self.assertEqual(self.resolver.resolve(["other"], self.root, scan_markup=False), [])

    def test_empty_tree_without_names_raises(self) -> None:
        with self.assertRaises(ConfigError):
            self.resolver.resolve([], self.root, scan_markup=False)
        with self.assertRaises(ConfigError):
            self.resolver.resolve(None, self.root, scan_markup=False)

    def test_configured_but_unresolved_names_are_not_an_error(self) -> None:
        self.assertEqual(self.resolver.resolve(["ghost"], self.root, scan_markup=False), [])

    def test_non_string_names_are_rejected(self) -> None:
        with self.assertRaises(ConfigError):
            self.resolver.resolve([1, 2], self.root)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
