"""Cyclopts CLI entrypoint for compiling and previewing Signum sites.

The ``signum`` console script defined here exports a site directory to a ZIP
archive, previews a single URL as HTML, and prints the merged settings schema
of a layout. Every option can also be supplied through ``SIGNUM_*``
environment variables, which keeps CI invocations short.

Examples
--------
Export the site in the current directory:

>>> from signum_pages.cli import main
>>> main()  # doctest: +SKIP

Preview the second page of the blog listing:

>>> from signum_pages.cli import app
>>> app(["render", "/blog", "--page", "2", "--site-dir", "my-site"])  # doctest: +SKIP
"""

from __future__ import annotations

import json
import logging
import sys
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from .assets import AssetResolver
from .config import load_site
from .exporter import SiteExporter
from .rendering import RenderOptions, ThemeEngine

DEFAULT_SITE_DIR = Path()
DEFAULT_ARCHIVE = Path("site.zip")

app = App(name="signum", config=cyclopts.config.Env("SIGNUM_", command=False))  # type: ignore[unknown-argument]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


@app.command(help="Compile the site into a deployable ZIP archive.")
def export(
    *,
    site_dir: typ.Annotated[
        Path, Parameter(help="Site directory holding manifest.json", env_var="SIGNUM_SITE_DIR")
    ] = DEFAULT_SITE_DIR,
    output: typ.Annotated[
        Path, Parameter(help="Where to write the archive", env_var="SIGNUM_OUTPUT")
    ] = DEFAULT_ARCHIVE,
    verbose: typ.Annotated[bool, Parameter(help="Enable debug logging")] = False,
) -> None:
    """Export every page, source file, asset bundle, and feed to ``output``.

    Parameters
    ----------
    site_dir : Path, optional
        Site directory (overridable via ``SIGNUM_SITE_DIR``).
    output : Path, optional
        Destination archive path; parent folders are created.
    verbose : bool, optional
        Log at DEBUG level.

    Raises
    ------
    ExportError
        If the site has no usable theme or the archive cannot be written.
    """
    _configure_logging(verbose)
    site = load_site(site_dir)
    archive = SiteExporter(site).export_to_archive()
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(archive)
    print(f"wrote {_format_path(output)}")


@app.command(help="Render a single URL path to HTML for previewing.")
def render(
    path: typ.Annotated[str, Parameter(help="URL path such as /blog")] = "/",
    *,
    site_dir: typ.Annotated[
        Path, Parameter(help="Site directory holding manifest.json", env_var="SIGNUM_SITE_DIR")
    ] = DEFAULT_SITE_DIR,
    page: typ.Annotated[int, Parameter(help="Listing page number")] = 1,
    site_root: typ.Annotated[
        str, Parameter(help="Prefix for preview links", env_var="SIGNUM_SITE_ROOT")
    ] = "/",
    output: typ.Annotated[
        Path | None, Parameter(help="Write the HTML here instead of stdout")
    ] = None,
    verbose: typ.Annotated[bool, Parameter(help="Enable debug logging")] = False,
) -> None:
    """Resolve ``path`` against the site and render it in preview mode."""
    _configure_logging(verbose)
    site = load_site(site_dir)
    html = ThemeEngine(site).render_path(
        path.split("/"),
        page,
        options=RenderOptions(is_export=False, site_root_path=site_root),
    )
    if output is None:
        sys.stdout.write(html)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(html, encoding="utf-8")
    print(f"wrote {_format_path(output)}")


@app.command(help="Print the merged settings schema of a layout as JSON.")
def schema(
    layout: typ.Annotated[str, Parameter(help="Layout identifier")],
    *,
    site_dir: typ.Annotated[
        Path, Parameter(help="Site directory holding manifest.json", env_var="SIGNUM_SITE_DIR")
    ] = DEFAULT_SITE_DIR,
) -> None:
    """Print the layout manifest with the base schema merged in."""
    site = load_site(site_dir)
    manifest = AssetResolver(site).get_merged_layout_manifest(layout)
    print(json.dumps(manifest.to_mapping(), indent=2, sort_keys=True))


def main() -> None:
    """Invoke the Cyclopts application that powers the ``signum`` command."""
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
