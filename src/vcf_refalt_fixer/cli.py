"""vcf-refalt-fixer: put major/minor VCF alleles back into ref/alt convention."""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from . import __version__
from .config import load_config
from .errors import (
    ConfigValidationError,
    EnvironmentConflictError,
    FatalInputError,
    FixerError,
    OutputError,
)
from .fixer import fix_vcf


def version_callback(value: bool) -> None:
    if value:
        print(__version__)
        raise typer.Exit()


app = typer.Typer(
    name="vcf-refalt-fixer",
    help="Check a VCF against a reference genome and fix major/minor REF/ALT calls",
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()


@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version", callback=version_callback, is_eager=True, help="Show version and exit"
        ),
    ] = None,
) -> None:
    pass


def setup_logging(verbose: bool, quiet: bool, default_level: str = "INFO") -> None:
    """Configure logging based on verbosity flags."""
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, default_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("vcf_refalt_fixer").setLevel(level)


def _usage_error(ctx: typer.Context, message: str) -> None:
    console.print(f"[red]*** Error: {message} ***[/red]")
    console.print(ctx.get_usage())
    console.print("Try 'vcf-refalt-fixer fix --help' for help.")
    raise typer.Exit(1)


@app.command()
def fix(
    ctx: typer.Context,
    vcf_path: Annotated[
        Path, typer.Option("--vcf", "-v", help="Input VCF (.vcf.gz) from the TASSEL GBS pipeline")
    ],
    reference_path: Annotated[
        Path, typer.Option("--ref", "-r", help="Reference sequence (.fa) to check the VCF against")
    ],
    name: Annotated[str, typer.Option("--name", "-n", help="Name of the fixed .vcf.gz output")],
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", "-o", help="Directory for the output (default: current)"),
    ] = None,
    config_file: Annotated[
        Path | None, typer.Option("--config", "-c", help="TOML configuration file")
    ] = None,
    scratch_dir: Annotated[
        Path | None,
        typer.Option("--scratch-dir", help="Scratch directory to create (must not exist)"),
    ] = None,
    workers: Annotated[
        int | None, typer.Option("--workers", "-w", help="Threads used to check records")
    ] = None,
    index_format: Annotated[
        str | None, typer.Option("--index", help="Output index format: csi or tbi")
    ] = None,
    report: Annotated[
        Path | None, typer.Option("--report", help="Write a TSV report of changed/dropped records")
    ] = None,
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing output"),
    json_output: bool = typer.Option(False, "--json", help="Print the run summary as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-error output"),
) -> None:
    """Check a VCF against a reference genome and fix its REF/ALT alleles.

    Records whose REF matches the reference are kept, records whose ALT
    matches are swapped, and records matching neither are dropped. The
    output is bgzipped and indexed.
    """
    if not vcf_path.is_file():
        _usage_error(ctx, f"VCF file '{vcf_path}' not found!")
    if not reference_path.is_file():
        _usage_error(ctx, f"Reference sequence '{reference_path}' not found!")

    try:
        config = load_config(
            config_file,
            overrides={"workers": workers, "index_format": index_format},
        )
    except (FileNotFoundError, ConfigValidationError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    setup_logging(verbose, quiet, config.log_level)

    output_path = (output_dir or Path.cwd()) / name

    if not quiet and not json_output:
        console.print(f"[bold]vcf-refalt-fixer {__version__}[/bold]")
        console.print(f"Checking {vcf_path.name} against {reference_path.name}...")

    try:
        result = fix_vcf(
            vcf_path,
            reference_path,
            output_path,
            config=config,
            scratch_dir=scratch_dir,
            overwrite=force,
            report_path=report,
        )
    except FatalInputError as e:
        console.print(f"[red]Input Error: {e}[/red]")
        raise typer.Exit(1) from None
    except EnvironmentConflictError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None
    except OutputError as e:
        console.print(f"[red]Output Error: {e}[/red]")
        raise typer.Exit(1) from None
    except FixerError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    if json_output:
        print(json.dumps(result.to_dict(), indent=2))
        return

    if not quiet:
        console.print(f"[green]✓[/green] Wrote {result.n_written:,} of {result.n_input:,} variants")
        console.print(f"  Swapped: {result.n_swapped:,}")
        console.print(f"  Dropped: {result.n_dropped:,}")
        if result.n_lookup_failed:
            console.print(
                f"  [yellow]Reference lookup failures: {result.n_lookup_failed:,}[/yellow]"
            )
        console.print(f"  Output: {result.output_path}")
        console.print(f"  Index: {result.index_path}")
        if report:
            console.print(f"  Report: {report}")


@app.command()
def doctor(
    reference_path: Annotated[
        Path | None, typer.Option("--ref", "-r", help="Also check this reference FASTA")
    ] = None,
) -> None:
    """Check system dependencies.

    Verifies that the libraries used for reference lookup and output
    indexing are installed and, with --ref, that the reference is indexable.
    """
    from .doctor import INSTALL_INSTRUCTIONS, DependencyChecker

    console.print("\n[bold]vcf-refalt-fixer System Check[/bold]")
    console.print("─" * 30)

    checker = DependencyChecker()
    results = checker.check_all(reference_path)

    all_passed = True
    for result in results:
        if result.passed:
            version_str = f" ({result.version})" if result.version else ""
            console.print(f"[green]✓[/green] {result.name}{version_str}")
            if result.message:
                console.print(f"    [dim]{result.message}[/dim]")
        else:
            all_passed = False
            console.print(f"[red]✗[/red] {result.name}")
            if result.message:
                console.print(f"    {result.message}")
            dependency = result.name.lower()
            if dependency in INSTALL_INSTRUCTIONS:
                console.print(f"    [dim]{checker.get_install_instructions(dependency)}[/dim]")

    if not all_passed:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
