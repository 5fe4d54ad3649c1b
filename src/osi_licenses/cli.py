"""Command-line interface for osi_licenses.

Provides read-only commands over the OSI license catalog: listing,
searching, looking up a single license and server-side filtering.
"""

import asyncio
import logging
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from osi_licenses.catalog import LicenseFilter
from osi_licenses.client import OsiLicensesClient
from osi_licenses.config import OsiClientOptions
from osi_licenses.models import OsiLicense

app = typer.Typer(
    name="osi-licenses",
    help="Browse the Open Source Initiative license catalog.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)
logger = logging.getLogger("osi_licenses")

BaseUrlOption = Annotated[
    Optional[str],
    typer.Option(
        "--base-url",
        envvar="OSI_API_BASE_URL",
        help="Base URL of the OSI API",
    ),
]
VerboseOption = Annotated[
    bool,
    typer.Option(
        "--verbose",
        "-v",
        help="Enable verbose output, including HTTP request logging",
    ),
]


def _setup_logging(verbose: bool) -> None:
    """Configure logging level based on verbosity flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.getLogger("osi_licenses").setLevel(level)


def _options(base_url: Optional[str], verbose: bool) -> OsiClientOptions:
    return OsiClientOptions.from_env(
        base_url=base_url,
        enable_logging=True if verbose else None,
    )


async def _load_all(options: OsiClientOptions) -> tuple[OsiLicense, ...]:
    """Fetch the complete, enriched catalog."""
    async with OsiLicensesClient(options=options) as client:
        return await client.get_all_licenses()


async def _search(options: OsiClientOptions, query: str) -> tuple[OsiLicense, ...]:
    """Search the catalog by name or OSI id."""
    async with OsiLicensesClient(options=options) as client:
        return await client.search(query)


async def _show(options: OsiClientOptions, key: str) -> Optional[OsiLicense]:
    """Look up one license by SPDX id or name."""
    async with OsiLicensesClient(options=options) as client:
        return await client.get_by_spdx(key)


async def _filter(
    options: OsiClientOptions, license_filter: LicenseFilter, value: str
) -> tuple[OsiLicense, ...]:
    """Run a server-side filtered query."""
    async with OsiLicensesClient(options=options) as client:
        if license_filter is LicenseFilter.KEYWORD:
            return await client.get_licenses_by_keyword(value)
        return await client.fetch_filtered(license_filter, value)


def _run_with_spinner(description: str, coro):
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(description, total=None)
        return asyncio.run(coro)


def _print_table(licenses: tuple[OsiLicense, ...], title: str) -> None:
    table = Table(title=title)
    table.add_column("SPDX ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Approved", justify="center")
    table.add_column("Keywords", style="dim")

    for lic in licenses:
        table.add_row(
            lic.spdx_id or "-",
            lic.name,
            "yes" if lic.approved else "no",
            ", ".join(str(k) for k in lic.keywords),
        )
    console.print(table)


def _print_license(lic: OsiLicense, show_text: bool) -> None:
    console.print(f"[bold]{lic.name}[/bold]")
    console.print(f"[bold]OSI ID:[/bold] {lic.id}")
    console.print(f"[bold]SPDX ID:[/bold] {lic.spdx_id or '-'}")
    if lic.version:
        console.print(f"[bold]Version:[/bold] {lic.version}")
    console.print(f"[bold]Approved:[/bold] {'yes' if lic.approved else 'no'}")
    if lic.approval_date:
        console.print(f"[bold]Approval date:[/bold] {lic.approval_date.isoformat()}")
    if lic.stewards:
        console.print(f"[bold]Stewards:[/bold] {', '.join(lic.stewards)}")
    if lic.keywords:
        console.print(
            f"[bold]Keywords:[/bold] {', '.join(str(k) for k in lic.keywords)}"
        )
    if lic.links.html.href:
        console.print(f"[bold]URL:[/bold] {lic.links.html.href}")

    if show_text:
        console.print()
        if lic.license_text:
            console.print(lic.license_text, markup=False, highlight=False)
        else:
            console.print("[yellow]License text unavailable[/yellow]")


@app.command("list")
def list_licenses(
    base_url: BaseUrlOption = None,
    verbose: VerboseOption = False,
) -> None:
    """List every license in the OSI catalog."""
    _setup_logging(verbose)

    try:
        licenses = _run_with_spinner(
            "Fetching licenses...", _load_all(_options(base_url, verbose))
        )
    except Exception as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    if not licenses:
        err_console.print("[yellow]No licenses could be loaded[/yellow]")
        raise typer.Exit(code=1)

    _print_table(licenses, f"OSI licenses ({len(licenses)})")


@app.command()
def search(
    query: Annotated[
        str,
        typer.Argument(help="Text to match against license names and OSI ids"),
    ],
    base_url: BaseUrlOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Search licenses by name or OSI id (case-insensitive)."""
    _setup_logging(verbose)

    try:
        results = _run_with_spinner(
            f"Searching for '{query}'...", _search(_options(base_url, verbose), query)
        )
    except Exception as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    if not results:
        console.print(f"[yellow]No licenses match '{query}'[/yellow]")
        raise typer.Exit(code=1)

    _print_table(results, f"Licenses matching '{query}' ({len(results)})")


@app.command()
def show(
    key: Annotated[
        str,
        typer.Argument(help="SPDX identifier (e.g. MIT) or license name"),
    ],
    text: Annotated[
        bool,
        typer.Option(
            "--text",
            help="Print the full license text",
        ),
    ] = False,
    base_url: BaseUrlOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show details of a single license."""
    _setup_logging(verbose)

    try:
        lic = _run_with_spinner(
            f"Looking up {key}...", _show(_options(base_url, verbose), key)
        )
    except Exception as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    if lic is None:
        err_console.print(f"[red]License not found:[/red] {key}")
        raise typer.Exit(code=1)

    _print_license(lic, show_text=text)


@app.command("filter")
def filter_licenses(
    kind: Annotated[
        str,
        typer.Argument(help="Filter kind: 'name', 'keyword', 'steward' or 'spdx'"),
    ],
    value: Annotated[
        str,
        typer.Argument(help="Filter value; spdx accepts '*' wildcards (e.g. 'gpl*')"),
    ],
    base_url: BaseUrlOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Query licenses with a server-side filter.

    Examples:
        osi-licenses filter keyword popular-strong-community
        osi-licenses filter spdx 'gpl*'
    """
    _setup_logging(verbose)

    try:
        license_filter = LicenseFilter(kind.lower())
    except ValueError:
        err_console.print(f"[red]Unknown filter:[/red] {kind}")
        err_console.print(
            "Valid filters: " + ", ".join(f.value for f in LicenseFilter)
        )
        raise typer.Exit(code=1)

    try:
        results = _run_with_spinner(
            f"Fetching licenses by {license_filter.value}...",
            _filter(_options(base_url, verbose), license_filter, value),
        )
    except Exception as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    if not results:
        console.print(
            f"[yellow]No licenses found for {license_filter.value}='{value}'[/yellow]"
        )
        raise typer.Exit(code=1)

    _print_table(
        results, f"Licenses with {license_filter.value}='{value}' ({len(results)})"
    )


if __name__ == "__main__":
    app()
