"""High-level scan / fix / unused workflows."""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from .analyzer.extractor import Diagnostic, ProgressEvent, parse_files
from .analyzer.manifest import load_manifest
from .analyzer.reconciler import find_unused_dependencies, reconcile
from .analyzer.report import Analysis, format_analysis_results
from .analyzer.scanner import scan_files
from .errors import EmptyCorpusError, InstallerUnavailableError
from .reaper.installer import (
    InstallResult,
    check_install_capability,
    install_dependencies,
    uninstall_dependencies,
)
from .utils.logger import warn


@dataclass(frozen=True)
class StepEvent:
    """Coarse pipeline stage notification."""
    step: str
    message: str


@dataclass
class ScanResult:
    """Everything a scan produced."""
    summary: Dict
    missing: List[Dict]
    analysis: Analysis
    files: List[str]
    diagnostics: List[Diagnostic] = field(default_factory=list)


@dataclass
class UnusedResult:
    unused: List[str]
    total: int
    scan: ScanResult


@dataclass
class FixResult:
    """Scan plus the package manager run that followed it."""
    install: InstallResult
    scan: ScanResult
    packages: List[str] = field(default_factory=list)


ProgressCallback = Callable[[Union[StepEvent, ProgressEvent]], None]


def _warn_diagnostic(diagnostic: Diagnostic) -> None:
    warn(diagnostic.message)


def scan(project_path: str | Path, ignore_patterns: Optional[List[str]] = None,
         respect_gitignore: bool = True, verbose: bool = False,
         on_progress: Optional[ProgressCallback] = None,
         on_warning: Optional[Callable[[Diagnostic], None]] = _warn_diagnostic,
         workers: int = 1) -> ScanResult:
    """Scan a project and find missing dependencies.

    Args:
        project_path: Project root
        ignore_patterns: Additional gitignore-style patterns
        respect_gitignore: Whether to honour the project's .gitignore
        verbose: Include per-package file locations in the formatted output
        on_progress: Receives StepEvent for each stage and ProgressEvent per file
        on_warning: Receives per-file diagnostics (defaults to a stderr warning)
        workers: Extraction threads

    Returns:
        ScanResult

    Raises:
        EmptyCorpusError: If no source files were found
        ManifestMissingError: If no package.json governs the project
        ManifestMalformedError: If package.json is not a JSON object
    """
    project_path = Path(project_path).resolve()

    if on_progress:
        on_progress(StepEvent('scanning', 'Scanning files...'))
    files = scan_files(project_path, ignore_patterns or [], respect_gitignore)

    if not files:
        raise EmptyCorpusError(project_path)

    if on_progress:
        on_progress(StepEvent('parsing', 'Parsing dependencies...'))
    outcome = parse_files(files, on_progress=on_progress, on_warning=on_warning, workers=workers)

    if on_progress:
        on_progress(StepEvent('analyzing', 'Analyzing dependencies...'))
    manifest = load_manifest(project_path)
    result = reconcile(outcome.dependency_map, manifest.declared)
    analysis = Analysis(package_json_path=manifest.path, package_json=manifest.data, result=result)

    formatted = format_analysis_results(analysis, verbose=verbose)

    return ScanResult(
        summary=formatted['summary'],
        missing=formatted['missing'],
        analysis=analysis,
        files=files,
        diagnostics=outcome.diagnostics,
    )


def fix(project_path: str | Path, save_dev: bool = False, dry_run: bool = False,
        on_progress: Optional[ProgressCallback] = None,
        on_output: Optional[Callable[[str], None]] = None, **scan_options) -> FixResult:
    """Scan and install missing dependencies.

    Raises:
        InstallerUnavailableError: If the package manager cannot be run
    """
    scan_result = scan(project_path, on_progress=on_progress, **scan_options)

    if not scan_result.missing:
        return FixResult(
            install=InstallResult(success=True, message='No missing dependencies found!'),
            scan=scan_result,
        )

    packages = [item['package'] for item in scan_result.missing]
    install_root = scan_result.analysis.package_json_path.parent

    if not dry_run:
        if on_progress:
            on_progress(StepEvent('checking', 'Checking package manager...'))
        capability = check_install_capability(install_root)
        if not capability.available:
            raise InstallerUnavailableError(capability.package_manager)

    if on_progress:
        on_progress(StepEvent('installing', 'Installing packages...'))
    install = install_dependencies(packages, install_root, save_dev=save_dev,
                                   dry_run=dry_run, on_output=on_output)

    return FixResult(install=install, scan=scan_result, packages=packages)


def find_unused(project_path: str | Path, **scan_options) -> UnusedResult:
    """Find declared dependencies that no source file references."""
    scan_result = scan(project_path, **scan_options)
    unused = find_unused_dependencies(scan_result.analysis.result)
    return UnusedResult(unused=unused, total=len(unused), scan=scan_result)


def prune(project_path: str | Path, dry_run: bool = False,
          on_output: Optional[Callable[[str], None]] = None, **scan_options) -> FixResult:
    """Find unused dependencies and remove them from the manifest.

    Raises:
        InstallerUnavailableError: If the package manager cannot be run
    """
    unused_result = find_unused(project_path, **scan_options)
    install_root = unused_result.scan.analysis.package_json_path.parent

    if unused_result.unused and not dry_run:
        capability = check_install_capability(install_root)
        if not capability.available:
            raise InstallerUnavailableError(capability.package_manager)

    removal = uninstall_dependencies(unused_result.unused, install_root,
                                     dry_run=dry_run, on_output=on_output)
    return FixResult(install=removal, scan=unused_result.scan, packages=list(unused_result.unused))
