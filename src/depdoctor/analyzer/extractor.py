"""Extraction of external package references from JS/TS syntax trees."""
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple
from tree_sitter import Node, Tree

from ..errors import ParseRecoverableError
from .parser import LanguageParser
from .specifiers import classify_specifier


class NodeKind(Enum):
    """The syntax forms that can carry a module specifier."""
    IMPORT_DECLARATION = 'import_declaration'
    CALL_EXPRESSION = 'call_expression'
    NAMED_REEXPORT = 'named_reexport'
    WILDCARD_REEXPORT = 'wildcard_reexport'


@dataclass(frozen=True)
class Diagnostic:
    """A per-file problem reported during extraction.

    recovered is True when a partial tree was still walked, False when the
    file contributed nothing.
    """
    path: str
    message: str
    recovered: bool = False

    @classmethod
    def from_error(cls, error: ParseRecoverableError) -> 'Diagnostic':
        return cls(path=error.path, message=str(error), recovered=False)


@dataclass(frozen=True)
class FileExtraction:
    """Immutable extraction result for one source file."""
    path: str
    packages: frozenset = frozenset()
    diagnostics: Tuple[Diagnostic, ...] = ()


@dataclass(frozen=True)
class ProgressEvent:
    """Ordinal progress of a multi-file extraction."""
    current: int
    total: int
    file: str


@dataclass
class ParseOutcome:
    """Aggregate of a multi-file extraction."""
    dependency_map: Dict[str, List[str]] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)


def _node_text(node: Node) -> str:
    return node.text.decode('utf-8', errors='replace')


_ESCAPE_PATTERN = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])")

_SIMPLE_ESCAPES = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    'b': '\b',
    'f': '\f',
    'v': '\v',
    '0': '\0',
}

# Backslash followed by a line terminator is a line continuation
_LINE_CONTINUATIONS = ('\n', '\r', '\r\n', '\u2028', '\u2029')


def _decode_escape(match: re.Match) -> str:
    sequence = match.group(1)
    if sequence.startswith('u{'):
        code_point = int(sequence[2:-1], 16)
        return chr(code_point) if code_point <= 0x10FFFF else match.group(0)
    if len(sequence) > 1 and sequence[0] in 'ux':
        return chr(int(sequence[1:], 16))
    if sequence in _LINE_CONTINUATIONS:
        return ''
    return _SIMPLE_ESCAPES.get(sequence, sequence)


def decode_string_literal(body: str) -> str:
    """Resolve JavaScript escape sequences in the body of a string literal.

    Args:
        body: Literal text without its surrounding quotes

    Returns:
        The string value the literal denotes at runtime
    """
    if '\\' not in body:
        return body
    return _ESCAPE_PATTERN.sub(_decode_escape, body)


def _string_value(node: Optional[Node]) -> Optional[str]:
    """Return the value of a plain string literal node, else None.

    Template strings and any other expression are not statically resolvable.
    """
    if node is None or node.type != 'string':
        return None
    text = _node_text(node)
    if len(text) >= 2 and text[0] in '"\'' and text[-1] == text[0]:
        return decode_string_literal(text[1:-1])
    return None


def _first_argument(call: Node) -> Optional[Node]:
    """First real argument of a call, skipping interleaved comments."""
    arguments = call.child_by_field_name('arguments')
    if arguments is None:
        return None
    for child in arguments.named_children:
        if child.type != 'comment':
            return child
    return None


def _node_kind(node: Node) -> Optional[NodeKind]:
    """Classify a syntax node into one of the specifier-bearing kinds."""
    if node.type == 'import_statement':
        return NodeKind.IMPORT_DECLARATION
    if node.type == 'call_expression':
        return NodeKind.CALL_EXPRESSION
    if node.type == 'export_statement' and node.child_by_field_name('source') is not None:
        if any(child.type == '*' for child in node.children):
            return NodeKind.WILDCARD_REEXPORT
        return NodeKind.NAMED_REEXPORT
    return None


def _first_syntax_error(root: Node) -> Optional[Node]:
    """Locate the first ERROR or MISSING node in document order."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            return node
        if node.has_error:
            stack.extend(reversed(node.children))
    return None


class SpecifierExtractor:
    """Extract the set of external package identifiers a source file references.

    One instance keeps one tree-sitter parser per grammar, so instances must
    not be shared between threads.
    """

    def __init__(self):
        self._parsers: Dict[str, LanguageParser] = {}

    def _parser_for(self, file_path: str) -> LanguageParser:
        language = LanguageParser.language_for(file_path)
        if language not in self._parsers:
            self._parsers[language] = LanguageParser(language)
        return self._parsers[language]

    def _parse(self, source_code: str | bytes, file_path: str) -> Tree:
        """Parse source, converting unusable input into ParseRecoverableError."""
        try:
            tree = self._parser_for(file_path).parse_source(source_code)
        except UnicodeEncodeError as e:
            # Lone surrogates in a str have no UTF-8 encoding
            raise ParseRecoverableError(file_path, f"source is not valid Unicode text ({e.reason})") from e
        if tree is None:
            raise ParseRecoverableError(file_path, "parser produced no syntax tree")
        return tree

    def specifiers(self, tree: Tree) -> List[str]:
        """Collect every literal specifier string in a tree.

        Args:
            tree: Parsed tree-sitter Tree (may contain ERROR nodes)

        Returns:
            Specifiers in traversal order, duplicates included
        """
        found = []
        stack = [tree.root_node]

        while stack:
            node = stack.pop()
            kind = _node_kind(node)

            if kind is NodeKind.IMPORT_DECLARATION:
                source = node.child_by_field_name('source')
                if source is None:
                    # TypeScript: import x = require('y')
                    for child in node.named_children:
                        if child.type == 'import_require_clause':
                            source = child.child_by_field_name('source')
                value = _string_value(source)
                if value is not None:
                    found.append(value)

            elif kind is NodeKind.CALL_EXPRESSION:
                callee = node.child_by_field_name('function')
                is_require = (
                    callee is not None
                    and callee.type == 'identifier'
                    and _node_text(callee) == 'require'
                )
                is_dynamic_import = callee is not None and callee.type == 'import'
                if is_require or is_dynamic_import:
                    value = _string_value(_first_argument(node))
                    if value is not None:
                        found.append(value)

            elif kind in (NodeKind.NAMED_REEXPORT, NodeKind.WILDCARD_REEXPORT):
                value = _string_value(node.child_by_field_name('source'))
                if value is not None:
                    found.append(value)

            # Nested scopes can hold requires and dynamic imports too
            stack.extend(reversed(node.named_children))

        return found

    def extract_source(self, source_code: str | bytes, file_path: str | Path = 'unknown') -> FileExtraction:
        """Extract package identifiers from in-memory source.

        Never raises for malformed input: syntax errors produce a recovered
        diagnostic, an unusable parse produces an empty result.

        Args:
            source_code: File contents
            file_path: Path used for grammar selection and diagnostics

        Returns:
            FileExtraction for the file
        """
        file_path = str(file_path)

        try:
            tree = self._parse(source_code, file_path)
        except ParseRecoverableError as e:
            return FileExtraction(path=file_path, diagnostics=(Diagnostic.from_error(e),))

        packages = set()
        for specifier in self.specifiers(tree):
            package = classify_specifier(specifier)
            if package:
                packages.add(package)

        diagnostics = ()
        if tree.root_node.has_error:
            error_node = _first_syntax_error(tree.root_node)
            location = ""
            if error_node is not None:
                row, column = error_node.start_point
                location = f" at line {row + 1}, column {column + 1}"
            diagnostics = (Diagnostic(
                path=file_path,
                message=f"Syntax error in {file_path}{location}",
                recovered=True,
            ),)

        return FileExtraction(path=file_path, packages=frozenset(packages), diagnostics=diagnostics)

    def extract_file(self, file_path: str | Path) -> FileExtraction:
        """Read and extract a file from disk.

        Args:
            file_path: Path to the source file

        Returns:
            FileExtraction; unreadable files yield an empty one with a diagnostic
        """
        file_path = str(file_path)
        try:
            with open(file_path, 'rb') as f:
                source_code = f.read()
        except FileNotFoundError:
            error = ParseRecoverableError(file_path, "file not found")
            return FileExtraction(path=file_path, diagnostics=(Diagnostic.from_error(error),))
        except OSError as e:
            error = ParseRecoverableError(file_path, e.strerror or str(e))
            return FileExtraction(path=file_path, diagnostics=(Diagnostic.from_error(error),))

        return self.extract_source(source_code, file_path)


def extract(source_text: str, file_path: str | Path = 'unknown') -> Set[str]:
    """Return the distinct external package identifiers referenced by source_text."""
    return set(SpecifierExtractor().extract_source(source_text, file_path).packages)


def merge_extractions(extractions: Iterable[FileExtraction]) -> Dict[str, List[str]]:
    """Fold per-file results into a DependencyMap.

    Each package maps to the files referencing it, in the order the
    extractions are given, without duplicates.
    """
    dependency_map: Dict[str, List[str]] = {}
    seen: Dict[str, Set[str]] = {}

    for extraction in extractions:
        for package in sorted(extraction.packages):
            files = dependency_map.setdefault(package, [])
            seen_files = seen.setdefault(package, set())
            if extraction.path not in seen_files:
                seen_files.add(extraction.path)
                files.append(extraction.path)

    return dependency_map


def _extract_one(file_path: str) -> FileExtraction:
    return SpecifierExtractor().extract_file(file_path)


def parse_files(
    file_paths: List[str],
    on_progress: Optional[Callable[[ProgressEvent], None]] = None,
    on_warning: Optional[Callable[[Diagnostic], None]] = None,
    workers: int = 1,
) -> ParseOutcome:
    """Extract every file and aggregate the results.

    Args:
        file_paths: Files to parse (already filtered by discovery)
        on_progress: Called once per completed file, in input order
        on_warning: Called for every diagnostic
        workers: Thread count; 1 extracts sequentially on the calling thread

    Returns:
        ParseOutcome with the merged DependencyMap and all diagnostics
    """
    total = len(file_paths)
    extractions: List[FileExtraction] = []

    if workers > 1 and total > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = pool.map(_extract_one, file_paths)
            for i, extraction in enumerate(results):
                extractions.append(extraction)
                _report(extraction, i, total, on_progress, on_warning)
    else:
        extractor = SpecifierExtractor()
        for i, file_path in enumerate(file_paths):
            extraction = extractor.extract_file(file_path)
            extractions.append(extraction)
            _report(extraction, i, total, on_progress, on_warning)

    diagnostics = [d for extraction in extractions for d in extraction.diagnostics]
    return ParseOutcome(dependency_map=merge_extractions(extractions), diagnostics=diagnostics)


def _report(extraction, index, total, on_progress, on_warning):
    if on_warning:
        for diagnostic in extraction.diagnostics:
            on_warning(diagnostic)
    if on_progress:
        on_progress(ProgressEvent(current=index + 1, total=total, file=extraction.path))
