"""Source map v3 decoding, re-encoding and prefix stitching."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence, Tuple
import base64
import binascii
import json
import re

from core.console import Console

from .errors import SourceMapError

Segment = Tuple[int, ...]
"""Absolute segment: ``(column,)``, ``(column, source, line, col)`` or with a trailing name index."""

INLINE_MAP_PREFIX = "//# sourceMappingURL=data:application/json;charset=utf-8;base64,"

_BASE64_DIGITS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_BASE64_VALUES = {char: index for index, char in enumerate(_BASE64_DIGITS)}
_VLQ_SHIFT = 5
_VLQ_CONTINUATION = 1 << _VLQ_SHIFT
_VLQ_MASK = _VLQ_CONTINUATION - 1

_MARKER_PATTERN = re.compile(
    r"//[#@][ \t]+sourceMappingURL=[^\r\n]*"
    r"|/\*[#@][ \t]+sourceMappingURL=[\s\S]*?\*/"
)
_INLINE_MAP_PATTERN = re.compile(
    r"//[#@][ \t]+sourceMappingURL=data:application/json(?:;charset=[\w-]+)?;base64,(?P<data>[A-Za-z0-9+/=]+)"
)


def encode_vlq(value: int) -> str:
    vlq = ((-value) << 1) | 1 if value < 0 else value << 1
    digits: List[str] = []
    while True:
        digit = vlq & _VLQ_MASK
        vlq >>= _VLQ_SHIFT
        if vlq:
            digit |= _VLQ_CONTINUATION
        digits.append(_BASE64_DIGITS[digit])
        if not vlq:
            return "".join(digits)


def decode_vlq(text: str) -> List[int]:
    values: List[int] = []
    value = 0
    shift = 0
    for char in text:
        digit = _BASE64_VALUES.get(char)
        if digit is None:
            raise SourceMapError(f"Invalid base64 VLQ character {char!r}")
        value += (digit & _VLQ_MASK) << shift
        if digit & _VLQ_CONTINUATION:
            shift += _VLQ_SHIFT
            continue
        values.append(-(value >> 1) if value & 1 else value >> 1)
        value = 0
        shift = 0
    if shift:
        raise SourceMapError(f"Truncated VLQ segment {text!r}")
    return values


def decode_mappings(mappings: str, *, source_count: int, name_count: int) -> List[List[Segment]]:
    """Decode a ``mappings`` string into absolute segments per generated line."""

    lines: List[List[Segment]] = []
    source = line = column = name = 0
    for encoded_line in mappings.split(";"):
        generated = 0
        segments: List[Segment] = []
        for encoded in encoded_line.split(","):
            if not encoded:
                continue
            fields = decode_vlq(encoded)
            if len(fields) not in (1, 4, 5):
                raise SourceMapError(f"Segment {encoded!r} has {len(fields)} fields")
            generated += fields[0]
            if generated < 0:
                raise SourceMapError("Negative generated column in mappings")
            if len(fields) == 1:
                segments.append((generated,))
                continue
            source += fields[1]
            line += fields[2]
            column += fields[3]
            if not 0 <= source < source_count:
                raise SourceMapError(f"Source index {source} out of range")
            if line < 0 or column < 0:
                raise SourceMapError("Negative original position in mappings")
            if len(fields) == 5:
                name += fields[4]
                if not 0 <= name < name_count:
                    raise SourceMapError(f"Name index {name} out of range")
                segments.append((generated, source, line, column, name))
            else:
                segments.append((generated, source, line, column))
        lines.append(segments)
    return lines


def encode_mappings(lines: Sequence[Sequence[Segment]]) -> str:
    encoded_lines: List[str] = []
    source = line = column = name = 0
    for segments in lines:
        generated = 0
        encoded: List[str] = []
        for segment in segments:
            parts = [encode_vlq(segment[0] - generated)]
            generated = segment[0]
            if len(segment) >= 4:
                parts.append(encode_vlq(segment[1] - source))
                parts.append(encode_vlq(segment[2] - line))
                parts.append(encode_vlq(segment[3] - column))
                source, line, column = segment[1], segment[2], segment[3]
                if len(segment) == 5:
                    parts.append(encode_vlq(segment[4] - name))
                    name = segment[4]
            encoded.append("".join(parts))
        encoded_lines.append(",".join(encoded))
    return ";".join(encoded_lines)


def utf16_width(text: str) -> int:
    # Source map columns count UTF-16 code units.
    return len(text.encode("utf-16-le")) // 2


def strip_map_markers(code: str) -> str:
    # Removed block markers keep their line breaks; generated line numbers must not shift.
    return _MARKER_PATTERN.sub(lambda match: "\n" * match.group(0).count("\n"), code)



def inline_map_comment(source_map: Mapping[str, Any]) -> str:
    payload = json.dumps(source_map, separators=(",", ":"), ensure_ascii=False)
    return INLINE_MAP_PREFIX + base64.b64encode(payload.encode("utf-8")).decode("ascii")


def read_inline_map(code: str) -> Dict[str, Any] | None:
    """Return the last inline data-URL map embedded in ``code``, if any."""

    matches = list(_INLINE_MAP_PATTERN.finditer(code))
    if not matches:
        return None
    try:
        payload = base64.b64decode(matches[-1].group("data"), validate=True)
        data = json.loads(payload.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


class SourceMapStitcher:
    """Prepends unmapped text to compiled code while keeping its map valid."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def stitch(
        self,
        code: str,
        source_map: Mapping[str, Any] | None,
        prefix: str,
        *,
        file: str | None = None,
    ) -> str:
        """Return ``prefix + code`` with a single, updated inline debug map.

        ``file`` re-targets the map at the output file. Falls back to plain
        concatenation when the map cannot be rebuilt.
        """

        return self.stitch_with_map(code, source_map, prefix, file=file)[0]

    def stitch_with_map(
        self,
        code: str,
        source_map: Mapping[str, Any] | None,
        prefix: str,
        *,
        file: str | None = None,
    ) -> Tuple[str, Dict[str, Any] | None]:
        """Like :meth:`stitch`, also returning the embedded map.

        The map is ``None`` when the plain concatenation fallback was taken.
        """

        try:
            return self._stitch(code, source_map, prefix, file=file)
        except (SourceMapError, TypeError, ValueError, KeyError, UnicodeError) as exc:
            self.console.warning(f"Error patching source map, emitting code without it: {exc}")
            return prefix + code, None

    def _stitch(
        self,
        code: str,
        source_map: Mapping[str, Any] | None,
        prefix: str,
        *,
        file: str | None,
    ) -> Tuple[str, Dict[str, Any]]:
        if not isinstance(source_map, Mapping):
            raise SourceMapError("debug map must be a mapping")
        if source_map.get("version", 3) != 3:
            raise SourceMapError(f"Unsupported source map version {source_map.get('version')!r}")
        mappings = source_map.get("mappings")
        if not isinstance(mappings, str):
            raise SourceMapError("debug map has no 'mappings' string")
        sources = source_map.get("sources") or []
        names = source_map.get("names") or []
        if not isinstance(sources, list) or not isinstance(names, list):
            raise SourceMapError("'sources' and 'names' must be lists")
        target = file or source_map.get("file")
        if not target:
            raise SourceMapError("debug map has no 'file' attribute")

        lines = decode_mappings(mappings, source_count=len(sources), name_count=len(names))

        body = strip_map_markers(code).rstrip("\r\n")
        del lines[body.count("\n") + 1:]

        *prefix_lines, prefix_tail = prefix.split("\n")
        shift = utf16_width(prefix_tail)
        if shift and lines:
            lines[0] = [(segment[0] + shift,) + tuple(segment[1:]) for segment in lines[0]]
        lines = [[] for _ in prefix_lines] + lines

        stitched: Dict[str, Any] = {"version": 3, "file": str(target)}
        if "sourceRoot" in source_map:
            stitched["sourceRoot"] = source_map["sourceRoot"]
        stitched["sources"] = list(sources)
        if isinstance(source_map.get("sourcesContent"), list):
            stitched["sourcesContent"] = list(source_map["sourcesContent"])
        stitched["names"] = list(names)
        stitched["mappings"] = encode_mappings(lines)

        self.console.debug(
            f"Stitched {len(prefix_lines)} unmapped line(s) into debug map for {target}"
        )
        return f"{prefix}{body}\n{inline_map_comment(stitched)}", stitched


__all__ = [
    "INLINE_MAP_PREFIX",
    "SourceMapStitcher",
    "decode_mappings",
    "decode_vlq",
    "encode_mappings",
    "encode_vlq",
    "inline_map_comment",
    "read_inline_map",
    "strip_map_markers",
    "utf16_width",
]
