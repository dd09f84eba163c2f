"""Reconciliation of referenced packages against declared manifest dependencies."""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Tuple


@dataclass(frozen=True)
class ReconciliationStats:
    """Aggregate counts for one reconciliation."""
    files_scanned: int
    dependencies_found: int
    dependencies_declared: int
    missing_count: int
    used_and_declared_count: int


@dataclass(frozen=True)
class ReconciliationResult:
    """Immutable diff between the DependencyMap and the declared dependencies.

    missing maps each referenced-but-undeclared package to its referencing
    files; used_and_declared and unused are package names.
    """
    missing: Mapping[str, Tuple[str, ...]]
    used_and_declared: Tuple[str, ...]
    unused: Tuple[str, ...]
    found: Tuple[str, ...]
    declared: Tuple[str, ...]
    stats: ReconciliationStats
    dependency_map: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)


def reconcile(dependency_map: Mapping[str, List[str]], declared_names: Iterable[str]) -> ReconciliationResult:
    """Classify referenced and declared packages.

    Pure computation: no filesystem or package manager access.

    Args:
        dependency_map: Package identifier -> files referencing it
        declared_names: Union of the manifest's dependency group names

    Returns:
        ReconciliationResult snapshot
    """
    declared = set(declared_names)
    frozen_map: Dict[str, Tuple[str, ...]] = {
        package: tuple(files) for package, files in dependency_map.items()
    }

    missing: Dict[str, Tuple[str, ...]] = {}
    used_and_declared: List[str] = []

    for package, files in frozen_map.items():
        if package in declared:
            used_and_declared.append(package)
        else:
            missing[package] = files

    unused = sorted(name for name in declared if name not in frozen_map)

    # A file referencing several packages is counted once
    files_scanned = len({path for files in frozen_map.values() for path in files})

    stats = ReconciliationStats(
        files_scanned=files_scanned,
        dependencies_found=len(frozen_map),
        dependencies_declared=len(declared),
        missing_count=len(missing),
        used_and_declared_count=len(used_and_declared),
    )

    return ReconciliationResult(
        missing=MappingProxyType(missing),
        used_and_declared=tuple(used_and_declared),
        unused=tuple(unused),
        found=tuple(frozen_map),
        declared=tuple(sorted(declared)),
        stats=stats,
        dependency_map=MappingProxyType(frozen_map),
    )


def find_unused_dependencies(result: ReconciliationResult) -> List[str]:
    """Declared dependencies that no scanned file references."""
    return list(result.unused)


def missing_by_usage(result: ReconciliationResult) -> List[Tuple[str, Tuple[str, ...]]]:
    """Missing packages ordered most-referenced first for triage."""
    return sorted(result.missing.items(), key=lambda item: len(item[1]), reverse=True)
