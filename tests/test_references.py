from __future__ import annotations

import textwrap
import unittest

from imbapack.references import scan, scan_imports


class ReferenceScannerTests(unittest.TestCase):
    def test_src_attributes_then_inline_imports_in_document_order(self) -> None:
        markup = "<script src=\"a.js\"></script><script>import 'b'; import \"c\"</script>"
        self.assertEqual(list(scan(markup)), ["a.js", "b", "c"])

    def test_scan_is_restartable(self) -> None:
        markup = "<script src=\"a.js\"></script><script>import 'b'</script>"
        first = list(scan(markup))
        second = list(scan(markup))
        self.assertEqual(first, second)
        self.assertEqual(first, ["a.js", "b"])

    def test_scan_is_lazy(self) -> None:
        iterator = scan("<script src=\"one.js\"></script><script src=\"two.js\"></script>")
        self.assertEqual(next(iterator), "one.js")
        self.assertEqual(next(iterator), "two.js")
        with self.assertRaises(StopIteration):
            next(iterator)

    def test_src_values_are_yielded_verbatim(self) -> None:
        markup = textwrap.dedent(
            """
            <!DOCTYPE html>
            <html>
              <head>
                <script type="module" src="/_dist_/index.js"></script>
                <SCRIPT src="https://cdn.example/lib.js"></SCRIPT>
              </head>
              <body></body>
            </html>
            """
        )
        self.assertEqual(list(scan(markup)), ["/_dist_/index.js", "https://cdn.example/lib.js"])

    def test_src_wins_over_inline_body(self) -> None:
        markup = "<script src=\"x.js\">import 'ignored'</script>"
        self.assertEqual(list(scan(markup)), ["x.js"])

    def test_inline_import_forms(self) -> None:
        markup = textwrap.dedent(
            """
            <script type="module">
              import { a, b } from "./util.js";
              import * as ns from './ns.js';
              import App from '/_dist_/App.js'
              import('./lazy.js').then((m) => m.default);
              const important = 'not-an-import';
            </script>
            """
        )
        self.assertEqual(
            list(scan(markup)),
            ["./util.js", "./ns.js", "/_dist_/App.js", "./lazy.js"],
        )

    def test_malformed_or_empty_markup_yields_nothing(self) -> None:
        for markup in ["", "   ", "<<<>>>", "<script>var x = 1;</script>", "<script></script>"]:
            with self.subTest(markup=markup):
                self.assertEqual(list(scan(markup)), [])

    def test_unclosed_elements_are_tolerated(self) -> None:
        self.assertEqual(list(scan("<div><p><script src='m.js'></script>")), ["m.js"])

    def test_scan_imports_on_plain_script_text(self) -> None:
        self.assertEqual(list(scan_imports("import 'x';import\"y\"")), ["x", "y"])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
