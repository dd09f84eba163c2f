"""Classification of import specifiers into npm package names."""
from typing import Optional

# Node.js built-in modules that should not be considered as npm packages
BUILTIN_MODULES = frozenset({
    'assert', 'buffer', 'child_process', 'cluster', 'console', 'constants',
    'crypto', 'dgram', 'dns', 'domain', 'events', 'fs', 'http', 'https',
    'module', 'net', 'os', 'path', 'punycode', 'querystring', 'readline',
    'repl', 'stream', 'string_decoder', 'sys', 'timers', 'tls', 'tty',
    'url', 'util', 'v8', 'vm', 'zlib', 'process', 'async_hooks', 'http2',
    'perf_hooks', 'trace_events', 'worker_threads', 'inspector',
})

BUILTIN_PROTOCOL = 'node:'

SCOPE_MARKER = '@'

LOCAL_PREFIXES = ('.', '/', '\\')


def is_builtin_module(specifier: str) -> bool:
    """Check if a specifier names a Node.js built-in module.

    Args:
        specifier: Raw specifier, e.g. 'fs' or 'node:crypto'

    Returns:
        True for 'node:'-prefixed specifiers and core module names
    """
    if specifier.startswith(BUILTIN_PROTOCOL):
        return True
    return specifier in BUILTIN_MODULES


def is_relative_import(specifier: str) -> bool:
    """Check if a specifier addresses a file inside the project.

    Absolute paths (POSIX or Windows-style) count as local too.
    """
    return specifier.startswith(LOCAL_PREFIXES)


def extract_package_name(specifier: str) -> str:
    """Extract the installable package name from a specifier.

    Handles scoped packages and sub-paths:
    'lodash/fp/map' -> 'lodash', '@babel/parser/lib/index' -> '@babel/parser'.
    A lone scope such as '@babel' is returned unchanged.

    Args:
        specifier: Bare (non-relative, non-builtin) specifier

    Returns:
        Canonical package identifier
    """
    parts = specifier.split('/')

    if specifier.startswith(SCOPE_MARKER):
        if len(parts) >= 2:
            return f"{parts[0]}/{parts[1]}"
        return specifier

    # Platform-specific entry points like 'pkg/win32' collapse into 'pkg' as well
    return parts[0]


def classify_specifier(specifier: str) -> Optional[str]:
    """Map a raw specifier to a package identifier, or None if it is not external.

    Rules are applied in order: built-in, local path, then canonicalization.
    """
    if not specifier:
        return None

    if is_builtin_module(specifier):
        return None

    if is_relative_import(specifier):
        return None

    return extract_package_name(specifier) or None
