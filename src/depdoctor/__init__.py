"""dep-doctor - detect missing and unused npm dependencies."""
from .config import __version__
from .analyzer.extractor import extract, parse_files
from .analyzer.reconciler import reconcile
from .pipeline import find_unused, fix, prune, scan

__all__ = [
    "__version__",
    "extract",
    "find_unused",
    "fix",
    "parse_files",
    "prune",
    "reconcile",
    "scan",
]
