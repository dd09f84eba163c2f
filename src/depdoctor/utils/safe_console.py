"""Rich console for dep-doctor output.

Icons are replaced with ASCII on terminals that can't encode them, and
package names or paths coming from scanned projects are escaped so they
are never interpreted as Rich markup.
"""
from typing import Any, Iterable

from rich.console import Console
from rich.markup import escape

from .logger import is_utf8_capable, sanitize_for_terminal


class SafeConsole(Console):
    """Console that sanitizes icons and knows dep-doctor's message kinds.

    All constructor arguments are passed through to Rich's Console.
    """

    def __init__(self, *args, **kwargs):
        self._needs_sanitization = not is_utf8_capable()
        if self._needs_sanitization:
            kwargs['legacy_windows'] = True
        super().__init__(*args, **kwargs)

    def print(self, *objects: Any, **kwargs) -> None:
        if self._needs_sanitization:
            objects = tuple(
                sanitize_for_terminal(obj) if isinstance(obj, str) else obj
                for obj in objects
            )
        super().print(*objects, **kwargs)

    def status(self, *args, **kwargs):
        """Spinner context; falls back to an ASCII spinner on legacy terminals."""
        if self._needs_sanitization:
            kwargs['spinner'] = 'line'
        return super().status(*args, **kwargs)

    def error(self, message: str) -> None:
        """Print a fatal error line (message is plain text)."""
        self.print(f"[bold red]❌ Error:[/bold red] {escape(message)}")

    def warning(self, message: str) -> None:
        """Print a non-fatal warning such as a per-file parse diagnostic."""
        self.print(f"[yellow]⚠ {escape(message)}[/yellow]")

    def package_list(self, packages: Iterable[str], marker: str = "→",
                     style: str = "cyan", numbered: bool = False) -> None:
        """Print one package name per line.

        Args:
            packages: Package identifiers from the scan
            marker: Prefix icon, ignored when numbered
            style: Rich style applied to the marker (or to the name when numbered)
            numbered: Use "1." style prefixes instead of the marker
        """
        for index, package in enumerate(packages, 1):
            if numbered:
                self.print(f"  {index}. [{style}]{escape(package)}[/{style}]")
            else:
                self.print(f"  [{style}]{marker}[/{style}] {escape(package)}")
