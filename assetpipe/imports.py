"""Import specifier extraction for script and style sources."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Tuple

IMPORT_FROM_RE = re.compile(
    r"""\bimport\s+(?P<clause>[\w$*{}\s,]+?)\s+from\s*(?P<q>['"])(?P<spec>[^'"\n]+)(?P=q)\s*;?"""
)
IMPORT_BARE_RE = re.compile(r"""\bimport\s*(?P<q>['"])(?P<spec>[^'"\n]+)(?P=q)\s*;?""")
EXPORT_FROM_RE = re.compile(
    r"""\bexport\s+(?P<clause>[\w$*{}\s,]+?)\s+from\s*(?P<q>['"])(?P<spec>[^'"\n]+)(?P=q)\s*;?"""
)
REQUIRE_RE = re.compile(r"""\brequire\s*\(\s*(?P<q>['"])(?P<spec>[^'"\n]+)(?P=q)\s*\)""")
DYNAMIC_IMPORT_RE = re.compile(r"""\bimport\s*\(\s*(?P<q>['"])(?P<spec>[^'"\n]+)(?P=q)\s*\)""")

CSS_IMPORT_RE = re.compile(
    r"""@import\s+(?:url\(\s*)?(?P<q>['"]?)(?P<spec>[^'")\s;]+)(?P=q)\s*\)?[^;]*;"""
)
CSS_URL_RE = re.compile(r"""url\(\s*(?P<q>['"]?)(?P<spec>[^'")]+?)(?P=q)\s*\)""")

_EXTERNAL_PREFIXES = ("http:", "https:", "//", "data:", "#", "about:", "blob:")


@dataclass(frozen=True)
class ImportRef:
    """One import occurrence found in a source file."""

    specifier: str
    kind: str
    start: int
    end: int

    @property
    def dynamic(self) -> bool:
        return self.kind == "dynamic"


def is_external(specifier: str) -> bool:
    """Return True for URLs that point outside the source tree."""
    return specifier.startswith(_EXTERNAL_PREFIXES) or "://" in specifier


def strip_query(specifier: str) -> str:
    """Drop ``?query`` and ``#fragment`` suffixes used for cache or font hacks."""
    for marker in ("?", "#"):
        index = specifier.find(marker)
        if index > 0:
            specifier = specifier[:index]
    return specifier


def extract_script_imports(text: str) -> List[ImportRef]:
    """Return script imports in source order."""
    patterns: Tuple[Tuple[re.Pattern[str], str], ...] = (
        (IMPORT_FROM_RE, "import"),
        (IMPORT_BARE_RE, "import"),
        (EXPORT_FROM_RE, "export"),
        (REQUIRE_RE, "require"),
        (DYNAMIC_IMPORT_RE, "dynamic"),
    )
    found: List[ImportRef] = []
    for pattern, kind in patterns:
        for match in pattern.finditer(text):
            found.append(ImportRef(match.group("spec"), kind, match.start(), match.end()))
    return _ordered(found)


def extract_style_imports(text: str) -> List[ImportRef]:
    """Return ``@import`` and ``url()`` references in source order."""
    found: List[ImportRef] = []
    import_spans: List[Tuple[int, int]] = []
    for match in CSS_IMPORT_RE.finditer(text):
        import_spans.append((match.start(), match.end()))
        if not is_external(match.group("spec")):
            found.append(ImportRef(match.group("spec"), "css-import", match.start(), match.end()))
    for match in CSS_URL_RE.finditer(text):
        if any(start <= match.start() < end for start, end in import_spans):
            continue
        spec = match.group("spec").strip()
        if is_external(spec):
            continue
        found.append(ImportRef(spec, "css-url", match.start(), match.end()))
    return _ordered(found)


def unique_specifiers(refs: List[ImportRef]) -> List[Tuple[str, bool]]:
    """Collapse repeated specifiers, keeping first occurrence order.

    A specifier imported both statically and dynamically is static.
    """
    order: List[str] = []
    dynamic: dict[str, bool] = {}
    for ref in refs:
        if ref.specifier not in dynamic:
            order.append(ref.specifier)
            dynamic[ref.specifier] = ref.dynamic
        elif not ref.dynamic:
            dynamic[ref.specifier] = False
    return [(spec, dynamic[spec]) for spec in order]


def _ordered(found: List[ImportRef]) -> List[ImportRef]:
    found.sort(key=lambda ref: (ref.start, -ref.end))
    result: List[ImportRef] = []
    last_end = -1
    for ref in found:
        # A bare import pattern also matches inside a longer statement.
        if ref.start < last_end:
            continue
        result.append(ref)
        last_end = ref.end
    return result


__all__ = [
    "ImportRef",
    "extract_script_imports",
    "extract_style_imports",
    "is_external",
    "strip_query",
    "unique_specifiers",
]
