"""Source file discovery with gitignore-style filtering."""
import os
from pathlib import Path
from typing import Dict, Iterable, List
import pathspec

from ..utils.logger import warn

SOURCE_EXTENSIONS = ('.js', '.jsx', '.ts', '.tsx', '.mjs', '.cjs')

# Build output, dependency directories and bundles never hold project imports
DEFAULT_IGNORE_PATTERNS = [
    'node_modules/',
    '.git/',
    'dist/',
    'build/',
    'coverage/',
    '.next/',
    '.nuxt/',
    'out/',
    '.cache/',
    '*.min.js',
    '*.bundle.js',
]


def build_ignore_spec(root_path: str | Path, ignore_patterns: Iterable[str] = (),
                      respect_gitignore: bool = True) -> pathspec.PathSpec:
    """Combine default, caller and .gitignore patterns into one matcher.

    Args:
        root_path: Project root (location of .gitignore)
        ignore_patterns: Additional gitignore-style patterns
        respect_gitignore: Whether to read the project's .gitignore

    Returns:
        PathSpec matching paths relative to root_path
    """
    lines = list(DEFAULT_IGNORE_PATTERNS)
    lines.extend(ignore_patterns)

    if respect_gitignore:
        gitignore_path = Path(root_path) / '.gitignore'
        if gitignore_path.is_file():
            try:
                lines.extend(gitignore_path.read_text(encoding='utf-8').splitlines())
            except (OSError, UnicodeDecodeError) as e:
                warn(f"Could not read {gitignore_path}: {e}")

    return pathspec.GitIgnoreSpec.from_lines(lines)


def scan_files(root_path: str | Path, ignore_patterns: Iterable[str] = (),
               respect_gitignore: bool = True) -> List[str]:
    """Scan a directory for JavaScript/TypeScript files.

    Hidden files and directories are skipped, as are ignored directories
    (without descending into them).

    Args:
        root_path: The root directory to scan
        ignore_patterns: Additional patterns to ignore
        respect_gitignore: Whether to respect .gitignore

    Returns:
        Sorted list of absolute file paths
    """
    root = Path(root_path).resolve()
    spec = build_ignore_spec(root, ignore_patterns, respect_gitignore)
    files = set()

    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        relative_dir = current.relative_to(root).as_posix()
        prefix = '' if relative_dir == '.' else relative_dir + '/'

        dirnames[:] = sorted(
            name for name in dirnames
            if not name.startswith('.') and not spec.match_file(f"{prefix}{name}/")
        )

        for name in filenames:
            if name.startswith('.') or not name.endswith(SOURCE_EXTENSIONS):
                continue
            if spec.match_file(f"{prefix}{name}"):
                continue
            files.add(str(current / name))

    return sorted(files)


def get_file_stats(files: Iterable[str | Path]) -> Dict:
    """Get statistics about scanned files.

    Args:
        files: File paths

    Returns:
        Dictionary with total_files, total_size and per-extension counts
    """
    total_files = 0
    total_size = 0
    extensions: Dict[str, int] = {}

    for file_path in files:
        total_files += 1
        path = Path(file_path)
        try:
            total_size += path.stat().st_size
        except OSError:
            continue
        extensions[path.suffix] = extensions.get(path.suffix, 0) + 1

    return {
        'total_files': total_files,
        'total_size': total_size,
        'extensions': extensions,
    }


def format_bytes(size: int) -> str:
    """Format a byte count as a human-readable size."""
    if size == 0:
        return '0 Bytes'

    units = ['Bytes', 'KB', 'MB', 'GB']
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1

    return f"{round(value, 2):g} {units[index]}"
