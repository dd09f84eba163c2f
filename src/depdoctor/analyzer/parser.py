"""Tree-sitter parser for JavaScript/TypeScript sources."""
from pathlib import Path
from typing import Dict, Optional
from tree_sitter import Language, Parser, Tree
import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript


class LanguageParser:
    """JS/TS parser using the tree-sitter v0.22+ API.

    Tree-sitter recovers from syntax errors by inserting ERROR nodes, so a
    broken file still yields a partial tree instead of an exception.
    """

    SUPPORTED_LANGUAGES = {
        '.js': 'javascript',
        '.jsx': 'javascript',
        '.mjs': 'javascript',
        '.cjs': 'javascript',
        '.ts': 'typescript',
        '.mts': 'typescript',
        '.cts': 'typescript',
        '.tsx': 'tsx',
    }

    DEFAULT_LANGUAGE = 'javascript'

    # Language objects are immutable and shared; Parser instances are not.
    _languages: Dict[str, Language] = {}

    def __init__(self, language: str):
        """Initialize parser for given language.

        Args:
            language: One of 'javascript', 'typescript', 'tsx'

        Raises:
            ValueError: If language is not supported
        """
        self.language = language
        self.parser = Parser(self._load_language(language))

    @classmethod
    def _load_language(cls, language: str) -> Language:
        """Build (once) the tree-sitter Language for a grammar name.

        Raises:
            ValueError: If language is not supported
        """
        if language not in cls._languages:
            if language == 'javascript':
                capsule = tsjavascript.language()
            elif language == 'typescript':
                capsule = tstypescript.language_typescript()
            elif language == 'tsx':
                capsule = tstypescript.language_tsx()
            else:
                raise ValueError(f"Unsupported language: {language}")
            cls._languages[language] = Language(capsule)
        return cls._languages[language]

    def parse_source(self, source_code: str | bytes) -> Optional[Tree]:
        """Parse in-memory source and return the tree.

        Args:
            source_code: Source text or UTF-8 bytes

        Returns:
            Parsed Tree object, or None if the parser produced nothing
        """
        if isinstance(source_code, str):
            source_code = source_code.encode('utf-8')
        return self.parser.parse(source_code)

    @classmethod
    def language_for(cls, file_path: str | Path) -> str:
        """Pick the grammar for a path; unknown extensions fall back to JavaScript."""
        extension = Path(file_path).suffix.lower()
        return cls.SUPPORTED_LANGUAGES.get(extension, cls.DEFAULT_LANGUAGE)
