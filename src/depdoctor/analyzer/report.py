"""Presentation-ready views of a reconciliation."""
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from .reconciler import ReconciliationResult, missing_by_usage


@dataclass
class Analysis:
    """A reconciliation together with the manifest it was computed against."""
    package_json_path: Path
    package_json: Dict
    result: ReconciliationResult


def _relative(path: str, base: Path) -> str:
    try:
        return os.path.relpath(path, base)
    except ValueError:
        # Different drive on Windows
        return path


def format_analysis_results(analysis: Analysis, verbose: bool = False) -> Dict:
    """Format analysis results for display.

    Args:
        analysis: Analysis to summarize
        verbose: Include each package's referencing files, relative to the manifest

    Returns:
        Dictionary with 'summary' and 'missing' (most-used first)
    """
    result = analysis.result
    stats = result.stats
    base = analysis.package_json_path.parent

    formatted = {
        'summary': {
            'package_json': str(analysis.package_json_path),
            'files_scanned': stats.files_scanned,
            'dependencies_found': stats.dependencies_found,
            'dependencies_missing': stats.missing_count,
            'dependencies_installed': stats.used_and_declared_count,
        },
        'missing': [],
    }

    for package, locations in missing_by_usage(result):
        item = {
            'package': package,
            'used_in_files': len(locations),
        }
        if verbose:
            item['locations'] = [_relative(location, base) for location in locations]
        formatted['missing'].append(item)

    return formatted


def generate_report(analysis: Analysis, generated_at: Optional[datetime] = None) -> Dict:
    """Generate a JSON-serializable report of missing and unused dependencies.

    Args:
        analysis: Analysis to report on
        generated_at: Timestamp override (defaults to now, UTC)

    Returns:
        Report dictionary
    """
    if generated_at is None:
        generated_at = datetime.now(timezone.utc)

    result = analysis.result
    package_json = analysis.package_json

    missing: List[Dict] = [
        {
            'name': package,
            'usage_count': len(files),
            'files': list(files),
        }
        for package, files in missing_by_usage(result)
    ]

    return {
        'timestamp': generated_at.isoformat(),
        'project': {
            'name': package_json.get('name') or 'unknown',
            'version': package_json.get('version') or 'unknown',
        },
        'statistics': asdict(result.stats),
        'missing_dependencies': missing,
        'unused_dependencies': list(result.unused),
    }
