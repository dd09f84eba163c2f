"""Terminal-safe output helpers with Unicode fallback.

Detects terminal encoding and provides ASCII alternatives for the icons
dep-doctor prints, so reports never crash a non-UTF-8 terminal.
"""
import sys
import locale


# Unicode to ASCII icon mapping for Windows compatibility
ICON_MAP = {
    # Status icons
    '✓': '[OK]',
    '✅': '[OK]',
    '✗': '[FAIL]',
    '❌': '[FAIL]',
    '⚠️': '[WARN]',
    '⚠': '[WARN]',

    # Progress/action icons
    '→': '->',
    '←': '<-',

    # Symbols
    '…': '...',
    '•': '*',
    '\U0001f4e6': '[pkg]',
    '\U0001f4ca': '[stats]',
    '\U0001f4a1': '[tip]',
    '\U0001f50d': '[search]',
}


def detect_terminal_encoding() -> str:
    """Detect the terminal's encoding capability.

    Returns:
        str: Terminal encoding ('utf-8', 'cp1252', 'ascii', etc.)
    """
    if hasattr(sys.stdout, 'encoding') and sys.stdout.encoding:
        return sys.stdout.encoding.lower()

    try:
        return locale.getpreferredencoding().lower()
    except Exception:
        pass

    return 'ascii'


def is_utf8_capable() -> bool:
    """Check if the terminal can handle UTF-8 Unicode characters."""
    return detect_terminal_encoding() in ('utf-8', 'utf8', 'utf_8')


def sanitize_for_terminal(text: str) -> str:
    """Replace Unicode icons with ASCII equivalents if terminal doesn't support UTF-8.

    Args:
        text: Text potentially containing Unicode icons

    Returns:
        str: Sanitized text safe for current terminal
    """
    if is_utf8_capable():
        return text

    sanitized = text
    for unicode_char, ascii_replacement in ICON_MAP.items():
        sanitized = sanitized.replace(unicode_char, ascii_replacement)

    return sanitized


_warning_console = None


def warn(message: str) -> None:
    """Print a warning to stderr through the terminal-safe console.

    Args:
        message: Plain text (Rich markup is escaped)
    """
    global _warning_console
    from .safe_console import SafeConsole

    if _warning_console is None:
        _warning_console = SafeConsole(stderr=True)
    _warning_console.warning(message)
