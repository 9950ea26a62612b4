"""Template rendering for resolved pages.

Exports
-------
- ``ThemeEngine``: renders a page resolution into a full HTML document.
- ``RenderOptions``: export/preview link settings for one render.
- ``RenderSession``: isolated template registry for one render pass.
- ``MarkdownRenderer``: markdown to sanitized HTML conversion.
"""

from .engine import RenderError, RenderOptions, ThemeEngine, error_document
from .helpers import CORE_HELPERS, HelperContext
from .markdown import MarkdownRenderer, sanitize_html
from .session import RenderSession

__all__ = [
    "CORE_HELPERS",
    "HelperContext",
    "MarkdownRenderer",
    "RenderError",
    "RenderOptions",
    "RenderSession",
    "ThemeEngine",
    "error_document",
    "sanitize_html",
]
