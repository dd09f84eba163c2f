"""package.json discovery and loading."""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Set

from ..errors import ManifestMalformedError, ManifestMissingError

MANIFEST_NAME = "package.json"

DEPENDENCY_GROUPS = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
)


@dataclass
class LoadedManifest:
    """A located and parsed package.json."""
    path: Path
    data: Dict
    declared: Set[str] = field(default_factory=set)

    @property
    def root(self) -> Path:
        """Directory containing the manifest."""
        return self.path.parent


def find_package_json(start_path: str | Path) -> Optional[Path]:
    """Find package.json by walking up the directory tree.

    Args:
        start_path: Directory (or file) to start searching from

    Returns:
        Path to the nearest package.json, or None if the filesystem root is reached
    """
    current = Path(start_path).resolve()
    if current.is_file():
        current = current.parent

    while True:
        candidate = current / MANIFEST_NAME
        if candidate.is_file():
            return candidate

        parent = current.parent
        if parent == current:
            return None
        current = parent


def read_package_json(package_json_path: str | Path) -> Dict:
    """Read and parse package.json.

    Args:
        package_json_path: Path to package.json

    Returns:
        Parsed JSON object

    Raises:
        ManifestMalformedError: If the file is not valid JSON or not an object
    """
    package_json_path = Path(package_json_path)

    try:
        with open(package_json_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ManifestMalformedError(package_json_path, str(e)) from e
    except UnicodeDecodeError as e:
        raise ManifestMalformedError(package_json_path, f"not UTF-8 text ({e.reason})") from e

    if not isinstance(data, dict):
        raise ManifestMalformedError(
            package_json_path, f"expected a JSON object, got {type(data).__name__}"
        )

    return data


def declared_dependencies(package_json: Dict) -> Set[str]:
    """Get all declared dependency names from package.json.

    Merges dependencies, devDependencies, peerDependencies and
    optionalDependencies. Version ranges are ignored.

    Args:
        package_json: Parsed package.json object

    Returns:
        Set of declared package names
    """
    names = set()
    for group in DEPENDENCY_GROUPS:
        entries = package_json.get(group)
        if isinstance(entries, dict):
            names.update(entries.keys())
    return names


def load_manifest(project_path: str | Path) -> LoadedManifest:
    """Locate, read and summarize the manifest governing project_path.

    Raises:
        ManifestMissingError: If no package.json is found upward
        ManifestMalformedError: If the found file is not a JSON object
    """
    path = find_package_json(project_path)
    if path is None:
        raise ManifestMissingError(project_path)

    data = read_package_json(path)
    return LoadedManifest(path=path, data=data, declared=declared_dependencies(data))
