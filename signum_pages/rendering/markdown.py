"""Render content bodies to sanitized HTML with highlighted code blocks."""

from __future__ import annotations

import html
import re
import typing as typ
from html.parser import HTMLParser
from urllib.parse import urlparse

from markdown import Markdown
from pygments.formatters.html import HtmlFormatter

if typ.TYPE_CHECKING:
    from markdown.extensions import Extension
else:  # pragma: no cover - type-checking fallback
    Extension = typ.Any

CODE_BLOCK_PATTERN = re.compile(r"```([A-Za-z0-9_+#.-]+)?[^\n]*\n(.*?)```", re.DOTALL)
FENCED_INDENT_PATTERN = re.compile(r"^[ ]{1,3}([`~]{3,})", re.MULTILINE)
CODEHILITE_OPEN_TAG = re.compile(r'<div class="codehilite">')

_SAFE_ID_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9:_-]*$")
_VOID_TAGS: frozenset[str] = frozenset(
    {
        "area", "base", "br", "col", "embed", "hr", "img", "input",
        "link", "meta", "source", "track", "wbr",
    }
)
_DROPPED_CONTENT_TAGS: frozenset[str] = frozenset({"script", "style", "iframe"})
_ALLOWED_TAGS: frozenset[str] = frozenset(
    {
        "a",
        "abbr",
        "blockquote",
        "br",
        "code",
        "dd",
        "del",
        "div",
        "dl",
        "dt",
        "em",
        "figcaption",
        "figure",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "hr",
        "img",
        "kbd",
        "li",
        "ol",
        "p",
        "pre",
        "span",
        "strong",
        "sub",
        "sup",
        "table",
        "tbody",
        "td",
        "th",
        "thead",
        "tr",
        "ul",
    }
)
_GLOBAL_ALLOWED_ATTRS: frozenset[str] = frozenset({"class", "id"})
_TAG_ALLOWED_ATTRS: dict[str, frozenset[str]] = {
    "a": frozenset({"href", "title"}),
    "abbr": frozenset({"title"}),
    "div": frozenset({"data-language"}),
    "img": frozenset({"alt", "src", "title", "width", "height"}),
    "td": frozenset({"colspan", "rowspan", "align"}),
    "th": frozenset({"colspan", "rowspan", "align"}),
}


def _is_safe_url(url_value: str, *, allow_non_http: bool) -> bool:
    """Validate URL values for href/src attributes."""
    value = url_value.strip()
    if not value:
        return False
    if value.startswith(("#", "/", "./", "../")):
        return not value.startswith("//")
    parsed = urlparse(value)
    if not parsed.scheme:
        return True
    allowed_schemes = {"http", "https"}
    if allow_non_http:
        allowed_schemes.update({"mailto", "tel"})
    return parsed.scheme.lower() in allowed_schemes


class _HtmlSanitizer(HTMLParser):
    """Allowlist-based sanitizer applied to converted markdown."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=False)
        self._parts: list[str] = []
        self._open_tags: list[tuple[str, bool]] = []
        self._dropped_depth = 0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        tag_name = tag.lower()
        if tag_name in _DROPPED_CONTENT_TAGS:
            self._dropped_depth += 1
            return
        allowed = tag_name in _ALLOWED_TAGS
        if allowed:
            self._parts.append(f"<{tag_name}{self._render_attrs(tag_name, attrs)}>")
        if tag_name not in _VOID_TAGS:
            self._open_tags.append((tag_name, allowed))

    def handle_endtag(self, tag: str) -> None:
        tag_name = tag.lower()
        if tag_name in _DROPPED_CONTENT_TAGS:
            self._dropped_depth = max(0, self._dropped_depth - 1)
            return
        if tag_name in _VOID_TAGS:
            return
        # Stray end tags are ignored; skipped end tags close implicitly.
        if all(name != tag_name for name, _ in self._open_tags):
            return
        while self._open_tags:
            open_tag, allowed = self._open_tags.pop()
            if allowed:
                self._parts.append(f"</{open_tag}>")
            if open_tag == tag_name:
                break

    def handle_startendtag(
        self, tag: str, attrs: list[tuple[str, str | None]]
    ) -> None:
        tag_name = tag.lower()
        if tag_name not in _ALLOWED_TAGS:
            return
        self._parts.append(f"<{tag_name}{self._render_attrs(tag_name, attrs)} />")

    def handle_data(self, data: str) -> None:
        if not self._dropped_depth:
            self._parts.append(html.escape(data, quote=False))

    def handle_entityref(self, name: str) -> None:
        if not self._dropped_depth:
            self._parts.append(f"&{name};")

    def handle_charref(self, name: str) -> None:
        if not self._dropped_depth:
            self._parts.append(f"&#{name};")

    def get_sanitized_html(self) -> str:
        closing = [
            f"</{name}>" for name, allowed in reversed(self._open_tags) if allowed
        ]
        return "".join(self._parts + closing)

    def _render_attrs(self, tag_name: str, attrs: list[tuple[str, str | None]]) -> str:
        allowed = _GLOBAL_ALLOWED_ATTRS | _TAG_ALLOWED_ATTRS.get(tag_name, frozenset())
        rendered: list[str] = []
        for raw_name, raw_value in attrs:
            name = raw_name.lower()
            if raw_value is None or name not in allowed:
                continue
            value = raw_value.strip()
            if name == "href" and not _is_safe_url(value, allow_non_http=True):
                continue
            if name == "src" and not _is_safe_url(value, allow_non_http=False):
                continue
            if name == "id" and not _SAFE_ID_RE.fullmatch(value):
                continue
            rendered.append(f' {name}="{html.escape(value, quote=True)}"')
        return "".join(rendered)


def sanitize_html(rendered_html: str) -> str:
    """Strip tags, attributes, and URLs outside the allowlist."""
    sanitizer = _HtmlSanitizer()
    sanitizer.feed(rendered_html)
    sanitizer.close()
    return sanitizer.get_sanitized_html()


class MarkdownRenderer:
    """Convert markdown to sanitized HTML with Pygments code highlighting."""

    def __init__(self, pygments_style: str = "default") -> None:
        """Initialize the renderer.

        Parameters
        ----------
        pygments_style : str, optional
            Name of the Pygments style used for highlighted code blocks.
        """
        self.pygments_style = pygments_style
        self._formatter = HtmlFormatter(style=pygments_style, cssclass="codehilite")

    @property
    def stylesheet(self) -> str:
        """Return the CSS used for highlighted code blocks."""
        return self._formatter.get_style_defs(".codehilite")

    def render(self, text: str) -> str:
        """Render markdown into sanitized HTML."""
        normalized = FENCED_INDENT_PATTERN.sub(r"\1", text or "")
        if not normalized.strip():
            return ""
        extensions: list[Extension | str] = [
            "fenced_code",
            "codehilite",
            "tables",
            "sane_lists",
        ]
        md = Markdown(
            extensions=extensions,
            extension_configs={
                "codehilite": {
                    "linenums": False,
                    "guess_lang": False,
                    "css_class": "codehilite",
                    "pygments_style": self.pygments_style,
                }
            },
        )
        converted = self._annotate_codehilite(md.convert(normalized), normalized)
        return sanitize_html(converted)

    @staticmethod
    def _annotate_codehilite(rendered: str, source_markdown: str) -> str:
        """Attach language metadata to each highlighted block."""
        languages = [
            match.group(1) or "text"
            for match in CODE_BLOCK_PATTERN.finditer(source_markdown)
        ]
        if not languages:
            return rendered
        lang_iter = iter(languages)

        def _repl(match: re.Match[str]) -> str:
            lang = next(lang_iter, "text")
            return (
                f'<div class="codehilite" data-language="{html.escape(lang, quote=True)}">'
            )

        return CODEHILITE_OPEN_TAG.sub(_repl, rendered, len(languages))


__all__ = ["CODE_BLOCK_PATTERN", "MarkdownRenderer", "sanitize_html"]
