from __future__ import annotations

import unittest

from core.console import Console
from imbapack.sourcemap import (
    SourceMapStitcher,
    decode_mappings,
    decode_vlq,
    encode_mappings,
    encode_vlq,
    read_inline_map,
    strip_map_markers,
    utf16_width,
)

PREFIX = "import '/web_modules/imba/dist/imba.js';\n"
CODE = "let a = 1;\nlet b = 2;\n"


def _map(**overrides):
    data = {
        "version": 3,
        "file": "main.js",
        "sources": ["main.imba"],
        "names": [],
        "mappings": "AAAA;AACA",
    }
    data.update(overrides)
    return data


class VlqTests(unittest.TestCase):
    def test_encodes_small_and_negative_values(self) -> None:
        self.assertEqual(encode_vlq(0), "A")
        self.assertEqual(encode_vlq(1), "C")
        self.assertEqual(encode_vlq(-1), "D")
        self.assertEqual(encode_vlq(16), "gB")

    def test_decodes_continuation_digits(self) -> None:
        self.assertEqual(decode_vlq("gB"), [16])
        self.assertEqual(decode_vlq("AACA"), [0, 0, 1, 0])

    def test_decode_mappings_accumulates_relative_fields(self) -> None:
        lines = decode_mappings("AAAA;AACA", source_count=1, name_count=0)
        self.assertEqual(lines, [[(0, 0, 0, 0)], [(0, 0, 1, 0)]])

    def test_encode_mappings_matches_canonical_input(self) -> None:
        mappings = "AAAA,IAAI;;AACA,EAAE"
        lines = decode_mappings(mappings, source_count=1, name_count=0)
        self.assertEqual(encode_mappings(lines), mappings)

    def test_utf16_width_counts_surrogate_pairs(self) -> None:
        self.assertEqual(utf16_width("abc"), 3)
        self.assertEqual(utf16_width("\U0001F600"), 2)


class SourceMapStitcherTests(unittest.TestCase):
    def setUp(self) -> None:
        self.stitcher = SourceMapStitcher(Console("none"))

    def test_prefix_lines_are_unmapped(self) -> None:
        result = self.stitcher.stitch(CODE, _map(), PREFIX)

        self.assertTrue(result.startswith(PREFIX + "let a = 1;\nlet b = 2;\n//# sourceMappingURL="))
        stitched = read_inline_map(result)
        self.assertIsNotNone(stitched)
        self.assertEqual(stitched["mappings"], ";AAAA;AACA")
        self.assertEqual(stitched["sources"], ["main.imba"])
        self.assertEqual(stitched["file"], "main.js")

    def test_marker_is_the_final_line(self) -> None:
        result = self.stitcher.stitch(CODE, _map(), PREFIX)
        last_line = result.splitlines()[-1]
        self.assertTrue(
            last_line.startswith("//# sourceMappingURL=data:application/json;charset=utf-8;base64,")
        )

    def test_existing_markers_are_replaced(self) -> None:
        code = "x();\n//# sourceMappingURL=main.js.map\n"
        result = self.stitcher.stitch(code, _map(mappings="AAAA"), PREFIX)

        self.assertNotIn("main.js.map", result)
        self.assertEqual(result.count("sourceMappingURL"), 1)

    def test_prefix_without_newline_shifts_first_line_columns(self) -> None:
        result = self.stitcher.stitch("a;b;", _map(mappings="AAAA,IAAI"), "/*x*/")
        self.assertEqual(read_inline_map(result)["mappings"], "KAAA,IAAI")

    def test_file_argument_retargets_map(self) -> None:
        result = self.stitcher.stitch(CODE, _map(file=None), PREFIX, file="out.js")
        self.assertEqual(read_inline_map(result)["file"], "out.js")

    def test_sources_content_and_names_are_preserved(self) -> None:
        source_map = _map(sourcesContent=["tag app"], names=["app"], mappings="AAAAA")
        result = self.stitcher.stitch("app();", source_map, PREFIX)
        stitched = read_inline_map(result)
        self.assertEqual(stitched["sourcesContent"], ["tag app"])
        self.assertEqual(stitched["names"], ["app"])
        self.assertEqual(stitched["mappings"], ";AAAAA")

    def test_stitching_again_with_empty_prefix_is_stable(self) -> None:
        once = self.stitcher.stitch(CODE, _map(), PREFIX)
        twice = self.stitcher.stitch(once, read_inline_map(once), "")
        self.assertEqual(twice, once)

    def test_malformed_maps_fall_back_to_plain_prefix(self) -> None:
        cases = [
            None,
            {"mappings": 5},
            _map(mappings="!!!!"),
            _map(file=None),
            _map(mappings="AAAAAAA"),
            _map(mappings="ACAA"),
            _map(version=2),
        ]
        for source_map in cases:
            with self.subTest(source_map=source_map):
                self.assertEqual(self.stitcher.stitch(CODE, source_map, PREFIX), PREFIX + CODE)

    def test_strip_map_markers_handles_block_comments(self) -> None:
        code = "a();\n/*# sourceMappingURL=a.js.map */\nb();"
        self.assertEqual(strip_map_markers(code), "a();\n\nb();")

    def test_multiline_block_marker_keeps_line_numbers(self) -> None:
        code = "a;\n/*# sourceMappingURL=x.map\n*/\nb;\n"
        self.assertEqual(strip_map_markers(code), "a;\n\n\nb;\n")

        result = self.stitcher.stitch(code, _map(mappings="AAAA;;;AACA"), "P;\n")

        self.assertTrue(result.startswith("P;\na;\n\n\nb;\n//# sourceMappingURL="))
        stitched = read_inline_map(result)
        self.assertEqual(
            decode_mappings(stitched["mappings"], source_count=1, name_count=0),
            [[], [(0, 0, 0, 0)], [], [], [(0, 0, 1, 0)]],
        )



if __name__ == "__main__":  # pragma: no cover
    unittest.main()
