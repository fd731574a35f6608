"""Command line interface for crxparse."""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Callable

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from crxparse import __version__
from crxparse.container import api
from crxparse.container.format import FormatVersion
from crxparse.errors import CrxError, NotZip, UnsupportedVersion
from crxparse.keys import container_extension_id, describe_public_key

EXIT_SUCCESS = 0
EXIT_USAGE = 1
EXIT_UNSUPPORTED = 2
EXIT_FS = 3
EXIT_CORRUPT = 4
EXIT_NOT_ZIP = 5

console = Console()


def _package_version() -> str:
    try:
        return version("crxparse")
    except PackageNotFoundError:
        return __version__


def _configure_logging(debug: bool) -> None:
    if not debug:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _human_size(num: int) -> str:
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if num < 1024 or unit == "TB":
            return f"{num:.1f} {unit}" if unit != "B" else f"{num} {unit}"
        num /= 1024
    return f"{num:.1f} TB"


def _algorithm_label(algorithm) -> str:
    if algorithm is None:
        return "untagged (CRX2)"
    return algorithm.name.lower()


def _handle_action(action: Callable[[], None]) -> int:
    try:
        action()
    except UnsupportedVersion as exc:
        console.print(f"[red]Unsupported container:[/red] {exc}")
        return EXIT_UNSUPPORTED
    except NotZip as exc:
        console.print(f"[red]Payload is not a ZIP archive:[/red] {exc}. Use --allow-non-zip to keep it anyway.")
        return EXIT_NOT_ZIP
    except CrxError as exc:
        console.print(f"[red]Error: container is corrupted or not supported:[/red] {exc}")
        return EXIT_CORRUPT
    except FileExistsError as exc:
        console.print(f"[red]{exc}. Use --overwrite to replace.[/red]")
        return EXIT_FS
    except FileNotFoundError as exc:
        console.print(f"[red]File not found:[/red] {exc}")
        return EXIT_FS
    except PermissionError as exc:
        console.print(f"[red]Permission denied:[/red] {exc}")
        return EXIT_FS
    except OSError as exc:  # noqa: BLE001
        console.print(f"[red]Filesystem error:[/red] {exc}")
        return EXIT_FS
    except Exception as exc:  # noqa: BLE001
        console.print(f"[red]Unexpected error:[/red] {exc}")
        return EXIT_USAGE
    return EXIT_SUCCESS


@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=False,
)
@click.version_option(version=_package_version(), prog_name="crxparse")
@click.option("--debug/--no-debug", default=False, help="Log parser details to stderr.")
def cli(debug: bool) -> None:
    """Inspect Chrome extension (.crx) containers and extract their ZIP payload."""
    _configure_logging(debug)


@cli.command(
    help="Display container header information without extracting the payload.",
    epilog="Examples:\n  crxparse info extension.crx\n  crxparse info extension.crx --verbose",
)
@click.argument("container", type=click.Path(path_type=Path))
@click.option(
    "--verbose/--quiet",
    "verbose",
    default=False,
    help="Show per-signer details.",
)
@click.pass_context
def info(ctx: click.Context, container: Path, verbose: bool) -> None:
    def _run() -> None:
        overview = api.inspect_file(container)
        header = overview.header

        table = Table(show_header=False, box=None)
        table.add_row("Magic/Version", f"Cr24 / {int(header.format_version)}")
        if header.format_version == FormatVersion.CRX3:
            table.add_row("Header length", f"{header.header_length} B")
        else:
            table.add_row(
                "Key/signature",
                f"{len(header.public_keys[0])} B / {len(header.signatures[0])} B",
            )
        table.add_row("ZIP offset", str(overview.zip_offset))
        table.add_row("Payload size", f"~{_human_size(overview.payload_size)}")
        table.add_row("ZIP signature", "present" if overview.looks_like_zip else "missing")
        table.add_row("Extension ID", container_extension_id(header) or "(none)")
        table.add_row("Signers", str(len(header.public_keys)))

        console.print("[bold]CRX container[/bold]")
        console.print(table)

        if verbose:
            console.print("Signers (verbose):")
            for index, proof in enumerate(header.proofs):
                console.print(
                    f"  - #{index} ({_algorithm_label(proof.algorithm)}, key={describe_public_key(proof.public_key)}, "
                    + f"key size={len(proof.public_key)}B, signature size={len(proof.signature)}B)",
                )
        if not overview.looks_like_zip:
            console.print("[yellow]Payload does not start with a ZIP signature.[/yellow]")
        console.print("[yellow]Signatures were not verified.[/yellow]")

    ctx.exit(_handle_action(_run))


@cli.command(
    help="Extract the ZIP payload of a .crx container.",
    epilog="Examples:\n  crxparse extract extension.crx\n  crxparse extract extension.crx out.zip --overwrite",
)
@click.argument("container", type=click.Path(path_type=Path))
@click.argument("output_path", required=False, type=click.Path(path_type=Path))
@click.option(
    "--overwrite/--no-overwrite",
    default=False,
    help="Overwrite output if it already exists.",
)
@click.option(
    "--allow-non-zip",
    is_flag=True,
    default=False,
    help="Write the payload even if it does not start with a ZIP signature.",
)
@click.pass_context
def extract(
    ctx: click.Context,
    container: Path,
    output_path: Path | None,
    overwrite: bool,
    allow_non_zip: bool,
) -> None:
    target = output_path or container.with_suffix(".zip")
    written: dict[str, int] = {}
    code = _handle_action(
        lambda: written.setdefault(
            "size",
            api.extract_zip(container, target, overwrite=overwrite, require_zip=not allow_non_zip),
        ),
    )
    if code == EXIT_SUCCESS:
        console.print(f"[green]Extracted to[/green] {target} (~{_human_size(written['size'])}).")
    ctx.exit(code)


@cli.command(
    name="id",
    help="Print the extension ID derived from the container's key material.",
    epilog="Example:\n  crxparse id extension.crx",
)
@click.argument("container", type=click.Path(path_type=Path))
@click.pass_context
def id_command(ctx: click.Context, container: Path) -> None:
    result: dict[str, str | None] = {}
    code = _handle_action(
        lambda: result.setdefault("id", container_extension_id(api.inspect_file(container).header)),
    )
    if code != EXIT_SUCCESS:
        ctx.exit(code)
        return
    if result["id"] is None:
        console.print("[red]Container carries no public key or crx_id.[/red]")
        ctx.exit(EXIT_CORRUPT)
        return
    console.print(result["id"])
    ctx.exit(EXIT_SUCCESS)


def main(argv: list[str] | None = None) -> int:
    try:
        return cli.main(args=argv, prog_name="crxparse", standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return EXIT_USAGE
    except click.Abort:
        return EXIT_USAGE
    except SystemExit as exc:  # noqa: TRY003
        code = exc.code if isinstance(exc.code, int) else EXIT_USAGE
        return code


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
