"""Compile Signum site snapshots into static, paginated websites.

This package resolves URL paths against a site's structure tree, renders pages
with Jinja2 themes and layouts, and packages the result (with RSS, sitemap,
and round-trippable sources) into a ZIP archive.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from signum_pages import main
>>> main()  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
