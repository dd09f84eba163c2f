"""dep-doctor CLI - Detect and fix missing or unused npm dependencies."""
import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.markup import escape
from rich.table import Table

from .analyzer.extractor import ProgressEvent
from .analyzer.report import generate_report
from .analyzer.scanner import format_bytes, get_file_stats
from .config import __version__, get_config
from .errors import DepDoctorError
from .pipeline import StepEvent, find_unused, fix, prune, scan
from .utils.safe_console import SafeConsole

app = typer.Typer(
    name="dep-doctor",
    help="Automatically detect and fix missing Node.js dependencies",
    add_completion=False,
)
console = SafeConsole()

# Show at most this many referencing files per package in verbose mode
MAX_LOCATIONS = 5


def _fail(message: str) -> None:
    console.error(message)
    raise typer.Exit(1)


def _scan_options(path: str, ignore: Optional[List[str]], gitignore: Optional[bool],
                  workers: Optional[int]) -> dict:
    """Merge CLI flags with environment configuration."""
    try:
        config = get_config()
    except ValueError as e:
        _fail(str(e))

    project_path = Path(path).resolve()
    if not project_path.exists():
        _fail(f"Project path does not exist: {project_path}")

    return {
        'project_path': project_path,
        'ignore_patterns': config.ignore_patterns + list(ignore or []),
        'respect_gitignore': config.respect_gitignore if gitignore is None else gitignore,
        'workers': workers or config.workers,
    }


def _progress_handler(status):
    """Route pipeline events to a console status spinner."""
    def on_progress(event):
        if status is None:
            return
        if isinstance(event, StepEvent):
            status.update(f"[bold blue]{event.message}[/bold blue]")
        elif isinstance(event, ProgressEvent):
            status.update(f"[bold blue]Parsing dependencies... ({event.current}/{event.total})[/bold blue]")
    return on_progress


def _print_summary(results) -> None:
    summary = results.summary
    stats = get_file_stats(results.files)

    console.print("[bold blue]📊 Summary:[/bold blue]")
    console.print(f"  Files discovered: [cyan]{stats['total_files']}[/cyan] ({format_bytes(stats['total_size'])})")
    console.print(f"  Files scanned: [cyan]{summary['files_scanned']}[/cyan]")
    console.print(f"  Dependencies found: [cyan]{summary['dependencies_found']}[/cyan]")
    console.print(f"  Dependencies installed: [green]{summary['dependencies_installed']}[/green]")
    console.print(f"  Dependencies missing: [red]{summary['dependencies_missing']}[/red]")
    if results.diagnostics:
        console.print(f"  Files with parse warnings: [yellow]{len(results.diagnostics)}[/yellow]")
    console.print()


@app.command("scan")
def scan_command(
    path: str = typer.Option(".", "--path", "-p", help="Project path to scan"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed output including file locations"),
    ignore: Optional[List[str]] = typer.Option(None, "--ignore", help="Additional patterns to ignore (repeatable)"),
    gitignore: Optional[bool] = typer.Option(None, "--gitignore/--no-gitignore", help="Respect .gitignore"),
    as_json: bool = typer.Option(False, "--json", help="Print a JSON report instead of tables"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the JSON report to a file"),
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Parallel extraction threads"),
):
    """Scan project and report missing dependencies."""
    options = _scan_options(path, ignore, gitignore, workers)

    try:
        if as_json:
            results = scan(options['project_path'], options['ignore_patterns'],
                           options['respect_gitignore'], verbose=verbose,
                           workers=options['workers'])
        else:
            with console.status("[bold blue]Scanning project...[/bold blue]") as status:
                results = scan(options['project_path'], options['ignore_patterns'],
                               options['respect_gitignore'], verbose=verbose,
                               on_progress=_progress_handler(status),
                               workers=options['workers'])
    except DepDoctorError as e:
        _fail(str(e))

    report = generate_report(results.analysis)

    if output is not None:
        output.write_text(json.dumps(report, indent=2), encoding='utf-8')

    if as_json:
        typer.echo(json.dumps(report, indent=2))
        return

    console.print("[green]✓ Scan complete![/green]\n")
    _print_summary(results)

    if output is not None:
        console.print(f"[dim]Report written to {escape(str(output))}[/dim]\n")

    if not results.missing:
        console.print("[bold green]✅ All dependencies are installed![/bold green]")
        return

    console.print(f"[bold red]❌ {len(results.missing)} missing dependencies found:[/bold red]\n")

    table = Table(title="Missing Dependencies")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Package", style="yellow")
    table.add_column("Files", justify="right", style="cyan")
    if verbose:
        table.add_column("Locations", style="magenta", no_wrap=False)

    for index, item in enumerate(results.missing, 1):
        row = [str(index), item['package'], str(item['used_in_files'])]
        if verbose:
            locations = item.get('locations', [])
            shown = [f"→ {escape(location)}" for location in locations[:MAX_LOCATIONS]]
            if len(locations) > MAX_LOCATIONS:
                shown.append(f"... and {len(locations) - MAX_LOCATIONS} more")
            row.append("\n".join(shown))
        table.add_row(*row)

    console.print(table)
    console.print("\n[blue]💡 To install missing dependencies, run:[/blue]")
    console.print("[cyan]   dep-doctor install[/cyan]\n")


@app.command("install")
def install_command(
    path: str = typer.Option(".", "--path", "-p", help="Project path to scan"),
    save_dev: bool = typer.Option(False, "--save-dev", "-D", help="Install as devDependencies"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be installed without installing"),
    ignore: Optional[List[str]] = typer.Option(None, "--ignore", help="Additional patterns to ignore (repeatable)"),
    gitignore: Optional[bool] = typer.Option(None, "--gitignore/--no-gitignore", help="Respect .gitignore"),
):
    """Scan and automatically install missing dependencies."""
    options = _scan_options(path, ignore, gitignore, None)

    def on_output(line: str) -> None:
        console.print(escape(line.rstrip()), highlight=False)

    try:
        results = fix(
            options['project_path'],
            save_dev=save_dev,
            dry_run=dry_run,
            on_output=on_output,
            ignore_patterns=options['ignore_patterns'],
            respect_gitignore=options['respect_gitignore'],
            workers=options['workers'],
        )
    except DepDoctorError as e:
        _fail(str(e))

    if not results.scan.missing:
        console.print("[bold green]✅ All dependencies are already installed![/bold green]")
        return

    if dry_run:
        console.print("[yellow]🔍 Dry Run Mode - Would install:[/yellow]")
        console.package_list(results.packages)
        console.print(f"[dim]Command: {escape(' '.join(results.install.command))}[/dim]")
        return

    if results.install.success:
        console.print(f"[bold green]✅ Successfully installed {len(results.packages)} package(s):[/bold green]")
        console.package_list(results.packages, marker="✓", style="green")
        console.print(f"[dim]Using: {results.install.package_manager}[/dim]")
    else:
        _fail(results.install.error or results.install.message)


# 'fix' is an alias of 'install'
app.command("fix", help="Alias of install.")(install_command)


@app.command("unused")
def unused_command(
    path: str = typer.Option(".", "--path", "-p", help="Project path to scan"),
    remove: bool = typer.Option(False, "--remove", help="Uninstall the unused dependencies"),
    dry_run: bool = typer.Option(False, "--dry-run", help="With --remove, show the command without running it"),
    ignore: Optional[List[str]] = typer.Option(None, "--ignore", help="Additional patterns to ignore (repeatable)"),
    gitignore: Optional[bool] = typer.Option(None, "--gitignore/--no-gitignore", help="Respect .gitignore"),
):
    """Find dependencies that are declared but never imported."""
    options = _scan_options(path, ignore, gitignore, None)
    scan_options = {
        'ignore_patterns': options['ignore_patterns'],
        'respect_gitignore': options['respect_gitignore'],
        'workers': options['workers'],
    }

    try:
        if remove:
            removal = prune(options['project_path'], dry_run=dry_run, **scan_options)
            unused = removal.packages
        else:
            results = find_unused(options['project_path'], **scan_options)
            unused = results.unused
    except DepDoctorError as e:
        _fail(str(e))

    if not unused:
        console.print("[green]✅ No unused dependencies found![/green]")
        console.print("[dim]All declared packages are being used.[/dim]")
        return

    console.print(f"[bold yellow]⚠️  {len(unused)} unused dependencies found:[/bold yellow]\n")
    console.package_list(unused, style="yellow", numbered=True)
    console.print()

    if not remove:
        console.print("[blue]💡 You can remove them with:[/blue]")
        console.print("[cyan]   dep-doctor unused --remove[/cyan]")
        return

    if dry_run:
        console.print(f"[dim]Would run: {escape(' '.join(removal.install.command))}[/dim]")
    elif removal.install.success:
        console.print(f"[bold green]{escape(removal.install.message)}[/bold green]")
    else:
        _fail(removal.install.error or removal.install.message)


def _version_callback(value: bool):
    if value:
        typer.echo(f"dep-doctor {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True,
                                 help="Show the version and exit"),
):
    """dep-doctor - Detect missing and unused npm dependencies."""
    pass


if __name__ == "__main__":
    app()
