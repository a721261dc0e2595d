"""CLI entrypoint for unit-packager."""

import logging
from pathlib import Path

import rich_click as click

from unit_packager import __version__
from unit_packager.packaging.controllers import (
    PackageCommand,
    PackagingCliController,
    ResolveCommand,
)

click.rich_click.USE_MARKDOWN = True
PACKAGING_CONTROLLER = PackagingCliController()


@click.group()
@click.version_option(version=__version__, prog_name="unit-packager")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def unit_packager(verbose: bool) -> None:
    """Deployment artifact packager."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


@unit_packager.command("package")
@click.option(
    "--service-file",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    required=True,
    help="JSON service description with functions, layers and package options.",
)
@click.option(
    "--service-dir",
    type=click.Path(path_type=Path, exists=True, file_okay=False),
    default=None,
    help="Service root. Defaults to the directory of --service-file.",
)
def package(service_file: Path, service_dir: Path | None) -> None:
    """Package every function and layer into deployment archives."""

    result = PACKAGING_CONTROLLER.package(
        PackageCommand(service_file=service_file, service_dir=service_dir),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Packaging failed.")


@unit_packager.command("resolve")
@click.argument(
    "root_dir",
    type=click.Path(path_type=Path, exists=True, file_okay=False),
)
@click.option("--include", "include", multiple=True, help="Include glob. Can be repeated.")
@click.option("--exclude", "exclude", multiple=True, help="Exclude glob. Can be repeated.")
def resolve(root_dir: Path, include: tuple[str, ...], exclude: tuple[str, ...]) -> None:
    """Print the files an archive rooted at ROOT_DIR would contain."""

    result = PACKAGING_CONTROLLER.resolve(
        ResolveCommand(root_dir=root_dir, include=include, exclude=exclude),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("No files selected.")


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    unit_packager()
