"""Script transforms: ES module syntax to registry calls, JSON modules."""

from __future__ import annotations

import json
import re
from typing import List, Tuple

from ..imports import EXPORT_FROM_RE, IMPORT_FROM_RE, extract_script_imports
from ..models import SCRIPT, Artifact, Module
from .base import Transform

SCRIPT_SUFFIXES = frozenset({".js", ".jsx", ".mjs"})
JAVASCRIPT = "application/javascript"

_EXPORT_DEFAULT_RE = re.compile(r"\bexport\s+default\s+")
_EXPORT_DECL_RE = re.compile(
    r"\bexport\s+(?P<decl>(?:async\s+)?function\s*\*?\s*(?P<fn>[\w$]+)|class\s+(?P<cls>[\w$]+)|(?:const|let|var)\s+(?P<var>[\w$]+))"
)
_EXPORT_LIST_RE = re.compile(r"\bexport\s*\{(?P<names>[^}]*)\}\s*;?")
_NAMESPACE_RE = re.compile(r"\*\s*as\s+(?P<name>[\w$]+)")

ES_MODULE_FLAG = 'Object.defineProperty(exports, "__esModule", { value: true });'


def _split_names(block: str) -> List[Tuple[str, str]]:
    """Parse ``a, b as c`` into ``[(a, a), (b, c)]`` pairs of (source, local)."""
    pairs: List[Tuple[str, str]] = []
    for part in block.split(","):
        part = part.strip()
        if not part:
            continue
        if " as " in part:
            source, local = (piece.strip() for piece in part.split(" as ", 1))
        else:
            source = local = part
        pairs.append((source, local))
    return pairs


class ScriptTransform(Transform):
    """Rewrites import and export statements into module registry calls.

    The rewritten body expects ``module``, ``exports``, ``__require__`` and
    ``__import__`` in scope; the bundler supplies them when wrapping. Line
    count is preserved so source maps stay line-accurate.
    """

    name = "script"

    def match(self, module: Module) -> bool:
        return module.kind == SCRIPT and module.suffix in SCRIPT_SUFFIXES

    def apply(self, module: Module) -> Artifact:
        text = module.text
        rewritten, esm = self._rewrite_imports(module, text)
        rewritten, exported = self._rewrite_exports(rewritten)
        esm = esm or bool(exported)
        if exported:
            rewritten = rewritten.rstrip("\n") + "\n" + " ".join(
                f"exports.{name} = {local};" for name, local in exported
            )
        if esm:
            rewritten = ES_MODULE_FLAG + " " + rewritten
        return Artifact(
            name=module.id,
            content=rewritten.encode("utf-8"),
            kind="script",
            media_type=JAVASCRIPT,
            module_id=module.id,
        )

    def _rewrite_imports(self, module: Module, text: str) -> Tuple[str, bool]:
        refs = extract_script_imports(text)
        esm = False
        counter = 0
        pieces: List[str] = []
        cursor = 0
        for ref in refs:
            target = module.target_for(ref.specifier)
            if target is None:
                raise ValueError(f"unresolved import '{ref.specifier}'")
            statement = text[ref.start:ref.end]
            required = f"__require__({json.dumps(target)})"
            if ref.kind == "dynamic":
                replacement = f"__import__({json.dumps(target)})"
            elif ref.kind == "require":
                replacement = required
            elif ref.kind == "export":
                esm = True
                replacement = self._reexport(statement, required, counter)
                counter += 1
            elif IMPORT_FROM_RE.match(statement):
                esm = True
                replacement = self._import_bindings(statement, required, counter)
                counter += 1
            else:
                esm = True
                replacement = required + ";"
            pieces.append(text[cursor:ref.start])
            pieces.append(replacement + "\n" * statement.count("\n"))
            cursor = ref.end
        pieces.append(text[cursor:])
        return "".join(pieces), esm

    @staticmethod
    def _import_bindings(statement: str, required: str, index: int) -> str:
        match = IMPORT_FROM_RE.match(statement)
        clause = match.group("clause") if match else ""
        handle = f"__import_{index}__"
        bindings: List[str] = [f"{handle} = {required}"]

        namespace = _NAMESPACE_RE.search(clause)
        if namespace:
            bindings.append(f"{namespace.group('name')} = {handle}")
            clause = clause[: namespace.start()] + clause[namespace.end():]

        named_start = clause.find("{")
        if named_start != -1:
            named_end = clause.find("}", named_start)
            for source, local in _split_names(clause[named_start + 1:named_end]):
                bindings.append(f"{local} = {handle}.{source}")
            clause = clause[:named_start] + clause[named_end + 1:]

        default = clause.replace(",", " ").strip()
        if default:
            bindings.append(f"{default} = __require__.interop({handle})")
        return "var " + ", ".join(bindings) + ";"

    @staticmethod
    def _reexport(statement: str, required: str, index: int) -> str:
        match = EXPORT_FROM_RE.match(statement)
        clause = match.group("clause").strip() if match else "*"
        if clause == "*":
            return f"__require__.reexport(exports, {required});"
        handle = f"__reexport_{index}__"
        names = clause.strip("{} ")
        assignments = " ".join(
            f"exports.{local} = {handle}.{source};" for source, local in _split_names(names)
        )
        return f"var {handle} = {required}; {assignments}"

    @staticmethod
    def _rewrite_exports(text: str) -> Tuple[str, List[Tuple[str, str]]]:
        exported: List[Tuple[str, str]] = []

        def _decl(match: re.Match[str]) -> str:
            name = match.group("fn") or match.group("cls") or match.group("var")
            exported.append((name, name))
            return match.group("decl")

        def _list(match: re.Match[str]) -> str:
            for source, local in _split_names(match.group("names")):
                exported.append((local, source))
            return "\n" * match.group(0).count("\n")

        text = _EXPORT_LIST_RE.sub(_list, text)
        text = _EXPORT_DECL_RE.sub(_decl, text)
        text = _EXPORT_DEFAULT_RE.sub("exports.default = ", text)
        return text, exported


class JsonTransform(Transform):
    """Exposes a JSON document as a script module's exports."""

    name = "json"

    def match(self, module: Module) -> bool:
        return module.kind == SCRIPT and module.suffix == ".json"

    def apply(self, module: Module) -> Artifact:
        try:
            payload = json.loads(module.text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"invalid JSON: {exc}") from exc
        body = "module.exports = " + json.dumps(payload, separators=(",", ":")) + ";"
        return Artifact(
            name=module.id,
            content=body.encode("utf-8"),
            kind="script",
            media_type=JAVASCRIPT,
            module_id=module.id,
        )


__all__ = ["JsonTransform", "ScriptTransform"]
