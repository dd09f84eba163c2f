"""Configuration management for dep-doctor.

Loads environment variables (optionally from a .env file) and provides
centralized config access.
"""
import os
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv

__version__ = "1.0.0"

SUPPORTED_PACKAGE_MANAGERS = ('npm', 'yarn', 'pnpm')


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_path: Optional[str | Path] = None):
        """Initialize config by loading a .env file.

        Args:
            env_path: Explicit .env location. Defaults to ./.env in the
                current working directory.
        """
        if env_path is None:
            env_path = Path.cwd() / ".env"
        load_dotenv(env_path)

        self._validate()

    def _validate(self):
        """Validate environment overrides.

        Raises:
            ValueError: If a numeric or enumerated setting is out of range
        """
        if self.workers < 1:
            raise ValueError(
                f"DEPDOCTOR_WORKERS must be a positive integer, got {self.workers}"
            )

        if self.install_timeout <= 0:
            raise ValueError(
                f"DEPDOCTOR_INSTALL_TIMEOUT must be positive, got {self.install_timeout}"
            )

        forced = self.package_manager
        if forced is not None and forced not in SUPPORTED_PACKAGE_MANAGERS:
            raise ValueError(
                f"DEPDOCTOR_PACKAGE_MANAGER must be one of "
                f"{', '.join(SUPPORTED_PACKAGE_MANAGERS)}, got '{forced}'"
            )

    @property
    def ignore_patterns(self) -> List[str]:
        """Extra ignore patterns from DEPDOCTOR_IGNORE (comma separated).

        Returns:
            List of gitignore-style patterns
        """
        raw = os.getenv("DEPDOCTOR_IGNORE", "")
        return [pattern.strip() for pattern in raw.split(",") if pattern.strip()]

    @property
    def respect_gitignore(self) -> bool:
        """Whether the project's .gitignore filters discovery.

        Returns:
            True unless DEPDOCTOR_RESPECT_GITIGNORE is a false-ish value
        """
        value = os.getenv("DEPDOCTOR_RESPECT_GITIGNORE", "true").strip().lower()
        return value not in ("0", "false", "no", "off")

    @property
    def package_manager(self) -> Optional[str]:
        """Forced package manager, bypassing lockfile detection.

        Returns:
            'npm', 'yarn', 'pnpm' or None when detection should be used
        """
        value = os.getenv("DEPDOCTOR_PACKAGE_MANAGER", "").strip().lower()
        return value or None

    @property
    def workers(self) -> int:
        """Number of threads used for per-file extraction."""
        try:
            return int(os.getenv("DEPDOCTOR_WORKERS", "1"))
        except ValueError:
            raise ValueError("DEPDOCTOR_WORKERS must be an integer")

    @property
    def install_timeout(self) -> float:
        """Seconds before a package manager subprocess is abandoned."""
        try:
            return float(os.getenv("DEPDOCTOR_INSTALL_TIMEOUT", "600"))
        except ValueError:
            raise ValueError("DEPDOCTOR_INSTALL_TIMEOUT must be a number")


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config():
    """Drop the cached Config so the next get_config() re-reads the environment."""
    global _config
    _config = None
