"""Line-level source map (revision 3) generation."""

from __future__ import annotations

import json
from typing import Dict, List, Optional, Tuple

_BASE64 = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"


def encode_vlq(value: int) -> str:
    """Encode one signed integer as a base64 VLQ segment field."""
    vlq = ((-value) << 1) | 1 if value < 0 else value << 1
    encoded = ""
    while True:
        digit = vlq & 0b11111
        vlq >>= 5
        if vlq:
            digit |= 0b100000
        encoded += _BASE64[digit]
        if not vlq:
            return encoded


class SourceMapBuilder:
    """Accumulates generated lines and the source line each one came from.

    Mappings are line granular: every mapped generated line starts at
    column 0 of its source line.
    """

    def __init__(self) -> None:
        self._sources: List[str] = []
        self._contents: List[Optional[str]] = []
        self._index: Dict[str, int] = {}
        self._lines: List[Optional[Tuple[int, int]]] = []

    def add_source(self, name: str, content: Optional[str] = None) -> int:
        if name not in self._index:
            self._index[name] = len(self._sources)
            self._sources.append(name)
            self._contents.append(content)
        return self._index[name]

    def add_unmapped(self, count: int = 1) -> None:
        self._lines.extend([None] * count)

    def add_mapped(self, source: int, line_count: int, source_line_count: int) -> None:
        """Map ``line_count`` generated lines onto consecutive source lines."""
        last = max(source_line_count - 1, 0)
        for offset in range(line_count):
            self._lines.append((source, min(offset, last)))

    def to_dict(self, file: str) -> Dict[str, object]:
        groups: List[str] = []
        previous_source = 0
        previous_line = 0
        for entry in self._lines:
            if entry is None:
                groups.append("")
                continue
            source, line = entry
            groups.append(
                encode_vlq(0)
                + encode_vlq(source - previous_source)
                + encode_vlq(line - previous_line)
                + encode_vlq(0)
            )
            previous_source, previous_line = source, line
        return {
            "version": 3,
            "file": file,
            "sources": list(self._sources),
            "sourcesContent": list(self._contents),
            "names": [],
            "mappings": ";".join(groups),
        }

    def to_json(self, file: str) -> bytes:
        return json.dumps(self.to_dict(file), separators=(",", ":")).encode("utf-8")


__all__ = ["SourceMapBuilder", "encode_vlq"]
