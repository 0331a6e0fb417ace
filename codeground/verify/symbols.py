"""
Symbol Providers
=================

Structural facts for the AST claim verifier: "is there a function (or
class) called X in file F, and on which line is it declared?"

Providers:
    - PythonSymbolProvider:     stdlib ``ast`` over .py / .pyi files
    - DeclarationScanProvider:  line-oriented declaration patterns for
                                TypeScript / JavaScript sources
    - StaticSymbolProvider:     facts supplied by an external parser
    - DefaultSymbolProvider:    dispatch on file extension

Parsed symbol tables are cached per absolute path and rebuilt when the
file's modification time changes; unparseable files are cached as
failures the same way.

Lookup precedence within a file follows declaration kind, then source
order: top-level functions before methods, methods before functions
bound to variables.
"""

from __future__ import annotations

import ast
import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

logger = logging.getLogger("codeground.verify.symbols")


class SymbolKind(str, Enum):
    FUNCTION = "function"
    CLASS = "class"


@dataclass(frozen=True)
class SymbolLocation:
    """Where a symbol is declared: 1-based line and the declaration's first line."""
    line: int
    content: str
    kind: SymbolKind = SymbolKind.FUNCTION


class SymbolParseError(Exception):
    """A file exists but its symbol table could not be built."""


SymbolTable = dict[SymbolKind, dict[str, SymbolLocation]]


class SymbolProvider(ABC):
    """Interface consumed by ASTClaimVerifier."""

    @abstractmethod
    def supports(self, file_path: str) -> bool:
        """Whether this provider can build a symbol table for the file."""
        ...

    @abstractmethod
    def find(self, file_path: str, name: str, kind: SymbolKind) -> Optional[SymbolLocation]:
        """
        Locate a declaration.

        Raises:
            OSError / UnicodeDecodeError: the file cannot be read.
            SymbolParseError: the file cannot be parsed.
        """
        ...


class CachingSymbolProvider(SymbolProvider):
    """Builds one symbol table per file and remembers it (or its failure)."""

    def __init__(self) -> None:
        self._cache: dict[str, tuple[int, Union[SymbolTable, SymbolParseError]]] = {}

    @abstractmethod
    def build_table(self, source: str, file_path: str) -> SymbolTable:
        ...

    def find(self, file_path: str, name: str, kind: SymbolKind) -> Optional[SymbolLocation]:
        table = self._table(file_path)
        return table.get(kind, {}).get(name)

    def _table(self, file_path: str) -> SymbolTable:
        key = os.path.abspath(file_path)
        mtime = os.stat(file_path).st_mtime_ns
        entry = self._cache.get(key)
        if entry is not None and entry[0] == mtime:
            cached = entry[1]
        else:
            with open(file_path, encoding="utf-8") as f:
                source = f.read()
            try:
                cached = self.build_table(source, file_path)
            except SymbolParseError as e:
                cached = e
            self._cache[key] = (mtime, cached)
            logger.debug(f"Built symbol table for {key}")
        if isinstance(cached, SymbolParseError):
            raise cached
        return cached


# ── Python ─────────────────────────────────────────────────────────

class PythonSymbolProvider(CachingSymbolProvider):
    """
    Symbol tables from the stdlib ``ast`` module.

    Functions: ``def`` / ``async def`` at any depth (module level first),
    then module-level ``name = lambda ...`` bindings. Classes: ``class``
    at any depth.
    """

    EXTENSIONS = (".py", ".pyi")

    def supports(self, file_path: str) -> bool:
        return file_path.lower().endswith(self.EXTENSIONS)

    def build_table(self, source: str, file_path: str) -> SymbolTable:
        try:
            tree = ast.parse(source, filename=file_path)
        except (SyntaxError, ValueError) as e:
            raise SymbolParseError(f"Unable to parse {file_path}: {e}") from e

        lines = source.splitlines()
        functions: dict[str, SymbolLocation] = {}
        classes: dict[str, SymbolLocation] = {}
        bound: dict[str, SymbolLocation] = {}

        # ast.walk is breadth-first, so shallower declarations win
        for node in ast.walk(tree):
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                functions.setdefault(node.name, _location(lines, node.lineno, SymbolKind.FUNCTION))
            elif isinstance(node, ast.ClassDef):
                classes.setdefault(node.name, _location(lines, node.lineno, SymbolKind.CLASS))

        for node in tree.body:
            if isinstance(node, ast.Assign) and isinstance(node.value, ast.Lambda):
                for target in node.targets:
                    if isinstance(target, ast.Name):
                        bound.setdefault(target.id, _location(lines, node.lineno, SymbolKind.FUNCTION))

        for name, loc in bound.items():
            functions.setdefault(name, loc)
        return {SymbolKind.FUNCTION: functions, SymbolKind.CLASS: classes}


# ── TypeScript / JavaScript ────────────────────────────────────────

_MODIFIERS = r"(?:(?:export|default|declare|abstract|public|private|protected|static|readonly|override|async)\s+)*"

FUNCTION_DECLARATION = re.compile(rf"^\s*{_MODIFIERS}function\s*\*?\s*([A-Za-z_$][\w$]*)")
CLASS_DECLARATION = re.compile(rf"^\s*{_MODIFIERS}class\s+([A-Za-z_$][\w$]*)")
ARROW_BINDING = re.compile(
    r"^\s*(?:export\s+)?(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*(?::[^=]+)?="
    r"\s*(?:async\s+)?(?:\([^)]*\)|[A-Za-z_$][\w$]*)\s*(?::[^=]+)?=>"
)
METHOD_SHORTHAND = re.compile(
    r"^\s*(?:(?:public|private|protected|static|readonly|override|async|get|set)\s+)*"
    r"\*?([A-Za-z_$][\w$]*)\s*(?:<[^>]*>)?\s*\([^;]*\)\s*(?::[^{;]+)?\{"
)

# Words that look like method shorthand when followed by "(...) {"
_CONTROL_WORDS = frozenset({
    "if", "for", "while", "switch", "catch", "function", "return", "with", "constructor",
})


class DeclarationScanProvider(CachingSymbolProvider):
    """
    Line-oriented declaration scan for TypeScript / JavaScript.

    Recognizes ``function X``, ``class X``, ``const X = (...) =>`` and
    class method shorthand ``X(...) {``. It is a scan, not a parser: a
    declaration is found on the line where its name appears.
    """

    EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".mts", ".cts")

    def supports(self, file_path: str) -> bool:
        return file_path.lower().endswith(self.EXTENSIONS)

    def build_table(self, source: str, file_path: str) -> SymbolTable:
        lines = source.splitlines()
        functions: dict[str, SymbolLocation] = {}
        methods: dict[str, SymbolLocation] = {}
        arrows: dict[str, SymbolLocation] = {}
        classes: dict[str, SymbolLocation] = {}

        scans = (
            (FUNCTION_DECLARATION, functions, SymbolKind.FUNCTION),
            (CLASS_DECLARATION, classes, SymbolKind.CLASS),
            (ARROW_BINDING, arrows, SymbolKind.FUNCTION),
            (METHOD_SHORTHAND, methods, SymbolKind.FUNCTION),
        )
        for lineno, line in enumerate(lines, start=1):
            for regex, table, kind in scans:
                match = regex.match(line)
                if match and match.group(1) not in _CONTROL_WORDS:
                    table.setdefault(match.group(1), _location(lines, lineno, kind))
                    break

        for table in (methods, arrows):
            for name, loc in table.items():
                functions.setdefault(name, loc)
        return {SymbolKind.FUNCTION: functions, SymbolKind.CLASS: classes}


# ── Static / Dispatch ──────────────────────────────────────────────

class StaticSymbolProvider(SymbolProvider):
    """
    Symbol facts supplied by an external parser.

    Args:
        facts: {file_path: {symbol_name: SymbolLocation}}
    """

    def __init__(self, facts: dict[str, dict[str, SymbolLocation]]):
        self._facts = {os.path.abspath(path): symbols for path, symbols in facts.items()}

    def supports(self, file_path: str) -> bool:
        return os.path.abspath(file_path) in self._facts

    def find(self, file_path: str, name: str, kind: SymbolKind) -> Optional[SymbolLocation]:
        loc = self._facts.get(os.path.abspath(file_path), {}).get(name)
        if loc is not None and loc.kind == kind:
            return loc
        return None


class DefaultSymbolProvider(SymbolProvider):
    """Routes each file to the first provider that supports it."""

    def __init__(self, providers: Optional[list[SymbolProvider]] = None):
        self.providers = providers or [PythonSymbolProvider(), DeclarationScanProvider()]

    def _provider_for(self, file_path: str) -> Optional[SymbolProvider]:
        for provider in self.providers:
            if provider.supports(file_path):
                return provider
        return None

    def supports(self, file_path: str) -> bool:
        return self._provider_for(file_path) is not None

    def find(self, file_path: str, name: str, kind: SymbolKind) -> Optional[SymbolLocation]:
        provider = self._provider_for(file_path)
        if provider is None:
            return None
        return provider.find(file_path, name, kind)


def _location(lines: list[str], lineno: int, kind: SymbolKind) -> SymbolLocation:
    content = lines[lineno - 1].strip() if 0 < lineno <= len(lines) else ""
    return SymbolLocation(line=lineno, content=content, kind=kind)
