"""Tests for source file discovery."""

from pathlib import Path

import pytest

from depdoctor.analyzer.scanner import (
    build_ignore_spec,
    format_bytes,
    get_file_stats,
    scan_files,
)


def touch(root: Path, relative: str, content: str = '') -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding='utf-8')
    return path


def relative_names(root: Path, files):
    return sorted(Path(f).relative_to(root).as_posix() for f in files)


@pytest.fixture
def project(tmp_path):
    for relative in (
        'index.js',
        'src/App.jsx',
        'src/types.ts',
        'src/View.tsx',
        'src/loader.mjs',
        'src/legacy.cjs',
        'src/styles.css',
        'README.md',
        'node_modules/react/index.js',
        'packages/ui/node_modules/left-pad/index.js',
        'dist/bundle.js',
        'build/out.js',
        'coverage/lcov-report/prettify.js',
        'vendor/jquery.min.js',
        '.eslintrc.js',
        '.storybook/main.js',
    ):
        touch(tmp_path, relative)
    return tmp_path


class TestScanFiles:

    def test_default_discovery(self, project):
        """Source extensions are found; vendored, built and hidden files are not."""
        files = scan_files(project)

        assert relative_names(project, files) == [
            'index.js',
            'src/App.jsx',
            'src/View.tsx',
            'src/legacy.cjs',
            'src/loader.mjs',
            'src/types.ts',
        ]

    def test_paths_are_absolute_and_sorted(self, project):
        """Results are absolute and sorted."""
        files = scan_files(project)

        assert files == sorted(files)
        assert all(Path(f).is_absolute() for f in files)

    def test_extra_ignore_patterns(self, project):
        """Caller patterns filter files by path and glob."""
        files = scan_files(project, ignore_patterns=['src/legacy.cjs', '*.ts'])

        assert relative_names(project, files) == [
            'index.js',
            'src/App.jsx',
            'src/View.tsx',
            'src/loader.mjs',
        ]

    def test_respects_gitignore(self, project):
        """Directory and file patterns from .gitignore apply."""
        touch(project, '.gitignore', 'generated/\n# comment\nsrc/View.tsx\n')
        touch(project, 'generated/api.js')

        files = relative_names(project, scan_files(project))

        assert 'generated/api.js' not in files
        assert 'src/View.tsx' not in files
        assert 'src/App.jsx' in files

    def test_gitignore_can_be_disabled(self, project):
        """--no-gitignore discovery ignores the project's .gitignore."""
        touch(project, '.gitignore', 'src/\n')

        with_gitignore = relative_names(project, scan_files(project))
        without_gitignore = relative_names(project, scan_files(project, respect_gitignore=False))

        assert with_gitignore == ['index.js']
        assert 'src/App.jsx' in without_gitignore

    def test_empty_directory(self, tmp_path):
        """An empty tree yields no files."""
        assert scan_files(tmp_path) == []


class TestBuildIgnoreSpec:

    def test_defaults_match_nested_directories(self, tmp_path):
        """Default directory patterns match at any depth."""
        spec = build_ignore_spec(tmp_path)

        assert spec.match_file('node_modules/react/index.js')
        assert spec.match_file('apps/web/node_modules/react/index.js')
        assert spec.match_file('lib/app.min.js')
        assert not spec.match_file('src/index.js')


class TestFileStats:

    def test_stats(self, tmp_path):
        """Totals, sizes and extension counts are reported."""
        a = touch(tmp_path, 'a.js', 'const a = 1;\n')
        b = touch(tmp_path, 'b.ts', 'export {};\n')
        c = touch(tmp_path, 'c.js', '')

        stats = get_file_stats([a, b, c])

        assert stats['total_files'] == 3
        assert stats['total_size'] == a.stat().st_size + b.stat().st_size
        assert stats['extensions'] == {'.js': 2, '.ts': 1}

    def test_vanished_file_is_counted_without_size(self, tmp_path):
        """Files that vanish before stat still count."""
        stats = get_file_stats([tmp_path / 'gone.js'])
        assert stats['total_files'] == 1
        assert stats['total_size'] == 0


class TestFormatBytes:

    @pytest.mark.parametrize('size, expected', [
        (0, '0 Bytes'),
        (512, '512 Bytes'),
        (1024, '1 KB'),
        (1536, '1.5 KB'),
        (5 * 1024 * 1024, '5 MB'),
    ])
    def test_format(self, size, expected):
        """Sizes are rendered with the largest fitting unit."""
        assert format_bytes(size) == expected
