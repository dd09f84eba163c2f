"""Exception types raised across dep-doctor."""
from pathlib import Path


class DepDoctorError(Exception):
    """Base class for all dep-doctor failures."""


class ParseRecoverableError(DepDoctorError):
    """A single source file could not be parsed.

    Never escapes the extractor: it is converted into a Diagnostic and the
    file contributes an empty package set.
    """

    def __init__(self, path: str | Path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Error parsing {self.path}: {reason}")


class ManifestMissingError(DepDoctorError):
    """No package.json between the project path and the filesystem root."""

    def __init__(self, start_path: str | Path):
        self.start_path = str(start_path)
        super().__init__(
            f"No package.json found from {self.start_path} upward. "
            f'Please run "npm init" first.'
        )


class ManifestMalformedError(DepDoctorError):
    """package.json exists but is not a JSON object."""

    def __init__(self, path: str | Path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Invalid JSON in {self.path}: {reason}")


class EmptyCorpusError(DepDoctorError):
    """Discovery found no JavaScript/TypeScript sources to scan."""

    def __init__(self, project_path: str | Path):
        self.project_path = str(project_path)
        super().__init__(
            f"No JavaScript/TypeScript files found in {self.project_path}."
        )


class InstallerUnavailableError(DepDoctorError):
    """The detected package manager is not runnable."""

    def __init__(self, package_manager: str):
        self.package_manager = package_manager
        super().__init__(
            f"Package manager {package_manager} not available. Please install it first."
        )
