"""Tests for package manager detection and invocation.

No real package manager is run: shutil.which and subprocess are patched.
"""

import io
import subprocess
import sys
import time

import pytest

from depdoctor.reaper import installer
from depdoctor.reaper.installer import (
    build_install_command,
    build_uninstall_command,
    check_install_capability,
    detect_package_manager,
    execute_command,
    install_dependencies,
    uninstall_dependencies,
)


class FakeProcess:
    """Minimal stand-in for subprocess.Popen with canned output."""

    def __init__(self, output: str, returncode: int = 0):
        self.stdout = io.StringIO(output)
        self.returncode = returncode
        self.killed = False

    def wait(self, timeout=None):
        return self.returncode

    def poll(self):
        return self.returncode

    def kill(self):
        self.killed = True


@pytest.fixture
def fake_npm(monkeypatch):
    """Pretend npm is installed and record every spawned command."""
    calls = []

    def fake_popen(argv, **kwargs):
        calls.append((argv, kwargs))
        return FakeProcess('added 2 packages\naudited 3 packages\n')

    monkeypatch.setattr(installer.shutil, 'which', lambda name: f'/usr/bin/{name}')
    monkeypatch.setattr(installer.subprocess, 'Popen', fake_popen)
    return calls


class TestDetectPackageManager:

    def test_default_is_npm(self, tmp_path):
        """Projects without a lockfile use npm."""
        assert detect_package_manager(tmp_path) == 'npm'

    def test_yarn_lockfile(self, tmp_path):
        """yarn.lock selects yarn."""
        (tmp_path / 'yarn.lock').write_text('', encoding='utf-8')
        assert detect_package_manager(tmp_path) == 'yarn'

    def test_pnpm_lockfile_wins(self, tmp_path):
        """pnpm-lock.yaml takes precedence over yarn.lock."""
        (tmp_path / 'yarn.lock').write_text('', encoding='utf-8')
        (tmp_path / 'pnpm-lock.yaml').write_text('', encoding='utf-8')
        assert detect_package_manager(tmp_path) == 'pnpm'

    def test_environment_override(self, tmp_path, monkeypatch):
        """DEPDOCTOR_PACKAGE_MANAGER beats lockfile detection."""
        (tmp_path / 'yarn.lock').write_text('', encoding='utf-8')
        monkeypatch.setenv('DEPDOCTOR_PACKAGE_MANAGER', 'pnpm')
        assert detect_package_manager(tmp_path) == 'pnpm'


class TestBuildCommands:

    @pytest.mark.parametrize('manager, save_dev, expected', [
        ('npm', False, ['npm', 'install', '--save', 'axios', 'zod']),
        ('npm', True, ['npm', 'install', '--save-dev', 'axios', 'zod']),
        ('yarn', False, ['yarn', 'add', 'axios', 'zod']),
        ('yarn', True, ['yarn', 'add', '--dev', 'axios', 'zod']),
        ('pnpm', False, ['pnpm', 'add', 'axios', 'zod']),
        ('pnpm', True, ['pnpm', 'add', '--save-dev', 'axios', 'zod']),
    ])
    def test_install(self, manager, save_dev, expected):
        """Each manager gets its own add/install syntax."""
        assert build_install_command(manager, ['axios', 'zod'], save_dev) == expected

    def test_uninstall(self):
        """Removal uses uninstall for npm and remove otherwise."""
        assert build_uninstall_command('npm', ['jest']) == ['npm', 'uninstall', 'jest']
        assert build_uninstall_command('yarn', ['jest']) == ['yarn', 'remove', 'jest']
        assert build_uninstall_command('pnpm', ['jest']) == ['pnpm', 'remove', 'jest']


class TestExecuteCommand:

    def test_streams_output(self, tmp_path, fake_npm):
        """Output lines reach the callback and the return value."""
        lines = []
        output = execute_command(['npm', 'install', 'axios'], tmp_path, on_output=lines.append)

        assert lines == ['added 2 packages\n', 'audited 3 packages\n']
        assert output == 'added 2 packages\naudited 3 packages\n'
        argv, kwargs = fake_npm[0]
        assert argv == ['/usr/bin/npm', 'install', 'axios']
        assert kwargs['cwd'] == str(tmp_path)
        assert kwargs['stderr'] is subprocess.STDOUT

    def test_missing_executable(self, tmp_path, monkeypatch):
        """A missing executable raises before spawning."""
        monkeypatch.setattr(installer.shutil, 'which', lambda name: None)

        with pytest.raises(RuntimeError, match='command not found'):
            execute_command(['pnpm', 'add', 'axios'], tmp_path)

    def test_non_zero_exit(self, tmp_path, monkeypatch):
        """A failing exit status raises with the output attached."""
        monkeypatch.setattr(installer.shutil, 'which', lambda name: f'/usr/bin/{name}')
        monkeypatch.setattr(installer.subprocess, 'Popen',
                            lambda argv, **kwargs: FakeProcess('npm ERR! 404\n', returncode=1))

        with pytest.raises(RuntimeError, match='exited with code 1'):
            execute_command(['npm', 'install', 'nope'], tmp_path)

    def test_real_process_output(self, tmp_path):
        """A real child process is run to completion and its output kept."""
        output = execute_command([sys.executable, '-c', 'print("added 1 package")'], tmp_path)
        assert output.strip() == 'added 1 package'

    def test_hanging_process_times_out(self, tmp_path, monkeypatch):
        """A child that never exits is killed once the install timeout passes."""
        monkeypatch.setenv('DEPDOCTOR_INSTALL_TIMEOUT', '1')
        hanging = [sys.executable, '-c', 'import time; print("resolving", flush=True); time.sleep(30)']
        lines = []

        started = time.monotonic()
        with pytest.raises(RuntimeError, match='timed out after 1s'):
            execute_command(hanging, tmp_path, on_output=lines.append)

        assert time.monotonic() - started < 10
        assert lines == ['resolving\n']


class TestInstallDependencies:

    def test_nothing_to_install(self, tmp_path, fake_npm):
        """An empty package list is a no-op success."""
        result = install_dependencies([], tmp_path)

        assert result.success
        assert result.message == 'No packages to install'
        assert fake_npm == []

    def test_dry_run_never_spawns(self, tmp_path, fake_npm):
        """Dry runs describe the command without running it."""
        result = install_dependencies(['axios', 'zod'], tmp_path, dry_run=True)

        assert result.success
        assert result.dry_run
        assert result.message == 'Would install: axios, zod'
        assert result.command == ['npm', 'install', '--save', 'axios', 'zod']
        assert fake_npm == []

    def test_install(self, tmp_path, fake_npm):
        """A successful run lists the installed packages."""
        result = install_dependencies(['axios'], tmp_path, save_dev=True)

        assert result.success
        assert result.installed == ['axios']
        assert result.package_manager == 'npm'
        assert fake_npm[0][0] == ['/usr/bin/npm', 'install', '--save-dev', 'axios']

    def test_failure_is_reported(self, tmp_path, monkeypatch):
        """Subprocess errors are reported, not raised."""
        monkeypatch.setattr(installer.shutil, 'which', lambda name: None)
        result = install_dependencies(['axios'], tmp_path)

        assert not result.success
        assert 'command not found' in result.error
        assert result.installed == []


class TestUninstallDependencies:

    def test_remove(self, tmp_path, fake_npm):
        """Removal reports how many packages were removed."""
        (tmp_path / 'yarn.lock').write_text('', encoding='utf-8')
        result = uninstall_dependencies(['jest', 'moment'], tmp_path)

        assert result.success
        assert result.message == 'Successfully removed 2 package(s)'
        assert fake_npm[0][0] == ['/usr/bin/yarn', 'remove', 'jest', 'moment']

    def test_dry_run(self, tmp_path, fake_npm):
        """Dry-run removal reports the command."""
        result = uninstall_dependencies(['jest'], tmp_path, dry_run=True)

        assert result.message == 'Would uninstall: jest'
        assert result.command == ['npm', 'uninstall', 'jest']
        assert fake_npm == []


class TestCheckInstallCapability:

    def test_available(self, tmp_path, monkeypatch):
        """A working --version marks the manager available."""
        monkeypatch.setattr(installer.shutil, 'which', lambda name: f'/usr/bin/{name}')
        monkeypatch.setattr(
            installer.subprocess, 'run',
            lambda argv, **kwargs: subprocess.CompletedProcess(argv, 0, stdout='10.2.4\n', stderr=''),
        )

        capability = check_install_capability(tmp_path)

        assert capability.available
        assert capability.package_manager == 'npm'
        assert capability.version == '10.2.4'

    def test_unavailable(self, tmp_path, monkeypatch):
        """A manager missing from PATH is unavailable."""
        monkeypatch.setattr(installer.shutil, 'which', lambda name: None)
        capability = check_install_capability(tmp_path)

        assert not capability.available
        assert capability.error == 'npm not found'
