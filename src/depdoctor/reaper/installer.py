"""Package manager invocation for installing missing and removing unused dependencies."""
import shutil
import subprocess
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from ..config import get_config

LOCKFILES = (
    ('pnpm-lock.yaml', 'pnpm'),
    ('yarn.lock', 'yarn'),
)

# Seconds to wait for trailing output once the package manager has exited
READER_GRACE_SECONDS = 5


@dataclass
class InstallResult:
    """Outcome of one package manager run."""
    success: bool
    message: str
    installed: List[str] = field(default_factory=list)
    package_manager: Optional[str] = None
    error: Optional[str] = None
    dry_run: bool = False
    command: List[str] = field(default_factory=list)


@dataclass
class Capability:
    """Whether the project's package manager can be executed."""
    available: bool
    package_manager: str
    version: str = 'unknown'
    error: Optional[str] = None


def detect_package_manager(project_path: str | Path) -> str:
    """Detect which package manager the project uses.

    DEPDOCTOR_PACKAGE_MANAGER overrides lockfile detection.

    Args:
        project_path: Project root

    Returns:
        'npm', 'yarn', or 'pnpm'
    """
    forced = get_config().package_manager
    if forced:
        return forced

    project_path = Path(project_path)
    for lockfile, manager in LOCKFILES:
        if (project_path / lockfile).exists():
            return manager

    return 'npm'


def build_install_command(package_manager: str, packages: List[str], save_dev: bool = False) -> List[str]:
    """Build the install command based on package manager.

    Args:
        package_manager: 'npm', 'yarn', or 'pnpm' (anything else uses npm)
        packages: Packages to install
        save_dev: Whether to save as devDependencies

    Returns:
        argv list
    """
    if package_manager == 'yarn':
        return ['yarn', 'add'] + (['--dev'] if save_dev else []) + list(packages)
    if package_manager == 'pnpm':
        return ['pnpm', 'add'] + (['--save-dev'] if save_dev else []) + list(packages)
    return ['npm', 'install', '--save-dev' if save_dev else '--save'] + list(packages)


def build_uninstall_command(package_manager: str, packages: List[str]) -> List[str]:
    """Build the removal command based on package manager."""
    if package_manager in ('yarn', 'pnpm'):
        return [package_manager, 'remove'] + list(packages)
    return ['npm', 'uninstall'] + list(packages)


def _stream_output(stream, full_output: List[str],
                   on_output: Optional[Callable[[str], None]]) -> None:
    """Drain a merged stdout/stderr pipe line by line."""
    for line in iter(stream.readline, ''):
        full_output.append(line)
        if on_output:
            on_output(line)


def execute_command(command: List[str], cwd: str | Path,
                    on_output: Optional[Callable[[str], None]] = None) -> str:
    """Run a package manager command, streaming merged output line by line.

    Output is drained on a reader thread so DEPDOCTOR_INSTALL_TIMEOUT bounds
    the whole run, including a child that hangs with its output still open.

    Args:
        command: argv list
        cwd: Working directory
        on_output: Called with every output line (from the reader thread)

    Returns:
        Combined stdout/stderr

    Raises:
        RuntimeError: If the executable is missing, times out, or exits non-zero
    """
    executable = shutil.which(command[0])
    if executable is None:
        raise RuntimeError(f"Failed to execute {command[0]}: command not found")

    timeout = get_config().install_timeout
    full_output: List[str] = []

    try:
        process = subprocess.Popen(
            [executable] + command[1:],
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding='utf-8',
            errors='replace',
            bufsize=1,
        )
    except OSError as e:
        raise RuntimeError(f"Failed to execute {command[0]}: {e}") from e

    reader = threading.Thread(
        target=_stream_output,
        args=(process.stdout, full_output, on_output),
        daemon=True,
    )
    reader.start()

    try:
        returncode = process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        raise RuntimeError(f"{command[0]} timed out after {timeout:g}s")
    finally:
        if process.poll() is None:
            process.kill()
            process.wait()
        # Grandchildren may still hold the pipe open after a kill
        reader.join(timeout=READER_GRACE_SECONDS)
        if not reader.is_alive():
            process.stdout.close()

    combined_output = "".join(full_output)
    if returncode != 0:
        raise RuntimeError(f"{command[0]} exited with code {returncode}\n{combined_output}")

    return combined_output


def _run_package_manager(packages: List[str], project_path: str | Path, command: List[str],
                         package_manager: str, verb: str, dry_run: bool,
                         on_output: Optional[Callable[[str], None]]) -> InstallResult:
    if dry_run:
        return InstallResult(
            success=True,
            message=f"Would {verb}: {', '.join(packages)}",
            package_manager=package_manager,
            dry_run=True,
            command=command,
        )

    try:
        execute_command(command, project_path, on_output)
    except RuntimeError as e:
        return InstallResult(
            success=False,
            message=f"Failed to {verb} packages: {e}",
            package_manager=package_manager,
            error=str(e),
            command=command,
        )

    return InstallResult(
        success=True,
        message=f"Successfully {verb}ed {len(packages)} package(s)",
        installed=list(packages),
        package_manager=package_manager,
        command=command,
    )


def install_dependencies(packages: List[str], project_path: str | Path, save_dev: bool = False,
                         dry_run: bool = False,
                         on_output: Optional[Callable[[str], None]] = None) -> InstallResult:
    """Install missing dependencies.

    Args:
        packages: Package names to install
        project_path: Project root (directory holding package.json)
        save_dev: Save as devDependencies
        dry_run: Report the command without running it
        on_output: Streaming output callback

    Returns:
        InstallResult; a failing subprocess is reported, not raised
    """
    if not packages:
        return InstallResult(success=True, message='No packages to install')

    package_manager = detect_package_manager(project_path)
    command = build_install_command(package_manager, packages, save_dev)
    return _run_package_manager(packages, project_path, command, package_manager,
                                'install', dry_run, on_output)


def uninstall_dependencies(packages: List[str], project_path: str | Path, dry_run: bool = False,
                           on_output: Optional[Callable[[str], None]] = None) -> InstallResult:
    """Remove unused dependencies from the manifest."""
    if not packages:
        return InstallResult(success=True, message='No packages to remove')

    package_manager = detect_package_manager(project_path)
    command = build_uninstall_command(package_manager, packages)
    result = _run_package_manager(packages, project_path, command, package_manager,
                                  'uninstall', dry_run, on_output)
    if result.success and not dry_run:
        result.message = f"Successfully removed {len(packages)} package(s)"
    return result


def check_install_capability(project_path: str | Path) -> Capability:
    """Check if packages can be installed (package manager is available).

    Args:
        project_path: Project root

    Returns:
        Capability describing the detected package manager
    """
    package_manager = detect_package_manager(project_path)
    executable = shutil.which(package_manager)
    if executable is None:
        return Capability(available=False, package_manager=package_manager,
                          error=f"{package_manager} not found")

    try:
        completed = subprocess.run(
            [executable, '--version'],
            capture_output=True,
            text=True,
            timeout=30,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        return Capability(available=False, package_manager=package_manager, error=str(e))

    return Capability(
        available=completed.returncode == 0,
        package_manager=package_manager,
        version=completed.stdout.strip() or 'unknown',
    )
