r"""Parse and serialize markdown content files with YAML frontmatter.

Content files are stored as ``---``-delimited YAML frontmatter followed by a
raw markdown body. Parsing uses ruamel.yaml in round-trip mode so that keys,
quoting, and dates survive a save/export cycle untouched, and the body is kept
verbatim. For any file already in canonical form the pair is idempotent:
``stringify_content_file(parse_content_file(path, raw)) == raw``.

Example
-------
>>> from signum_pages.frontmatter import parse_content_file, stringify_content_file
>>> raw = "---\ntitle: Hello\nlayout: page\n---\nBody text\n"
>>> content = parse_content_file("content/hello.md", raw)
>>> content.title, content.slug
('Hello', 'hello')
>>> stringify_content_file(content) == raw
True
"""

from __future__ import annotations

import dataclasses as dc
import enum
import io
import logging
import re
import typing as typ

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.error import YAMLError

from .structure import slug_from_path

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = logging.getLogger(__name__)

FRONTMATTER_PATTERN = re.compile(
    r"\A---[ \t]*\r?\n(?P<yaml>.*?)^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE
)
_SORT_ALIASES: dict[str, tuple[str, ...]] = {
    "sort_by": ("sort_by", "sortBy"),
    "sort_order": ("sort_order", "sortOrder"),
    "items_per_page": ("items_per_page", "itemsPerPage"),
}


class FrontmatterError(ValueError):
    """Raised when a content file's frontmatter is missing or invalid."""


class SortOrder(enum.StrEnum):
    """Direction applied to a collection listing."""

    ASC = "asc"
    DESC = "desc"


@dc.dataclass(frozen=True, slots=True)
class CollectionConfig:
    """Query settings embedded in a collection page's frontmatter."""

    sort_by: str = "date"
    sort_order: SortOrder = SortOrder.DESC
    items_per_page: int | None = None

    @classmethod
    def from_mapping(cls, payload: cabc.Mapping[str, typ.Any]) -> CollectionConfig:
        """Build a config from a frontmatter ``collection`` block."""
        sort_by = _first_alias(payload, "sort_by") or "date"
        raw_order = str(_first_alias(payload, "sort_order") or "desc").lower()
        order = SortOrder.ASC if raw_order in {"asc", "ascending"} else SortOrder.DESC
        return cls(
            sort_by=str(sort_by),
            sort_order=order,
            items_per_page=_coerce_page_size(_first_alias(payload, "items_per_page")),
        )


@dc.dataclass(slots=True)
class ContentFile:
    """A parsed content document.

    Attributes
    ----------
    slug : str
        URL-friendly identifier derived from ``path``.
    path : str
        Storage key matching exactly one structure node.
    frontmatter : MutableMapping[str, Any]
        Round-trip YAML mapping; always holds ``title`` and ``layout``.
    body : str
        Raw markdown body, exactly as stored.
    """

    slug: str
    path: str
    frontmatter: cabc.MutableMapping[str, typ.Any]
    body: str

    @property
    def title(self) -> str:
        """Return the frontmatter title."""
        return str(self.frontmatter["title"])

    @property
    def layout(self) -> str:
        """Return the layout id named in the frontmatter."""
        return str(self.frontmatter["layout"])

    @property
    def collection(self) -> CollectionConfig | None:
        """Return the collection query config, or ``None`` for plain pages."""
        block = self.frontmatter.get("collection")
        if not isinstance(block, dict):
            return None
        return CollectionConfig.from_mapping(block)


def _build_roundtrip_yaml() -> YAML:
    yaml = YAML()
    yaml.preserve_quotes = True
    yaml.width = 4096
    yaml.indent(mapping=2, sequence=4, offset=2)
    return yaml


def _first_alias(payload: cabc.Mapping[str, typ.Any], key: str) -> typ.Any:
    for alias in _SORT_ALIASES[key]:
        if payload.get(alias) is not None:
            return payload[alias]
    return None


def _coerce_page_size(value: object) -> int | None:
    """Return a positive page size or ``None`` when pagination is disabled."""
    if value is None or isinstance(value, bool):
        return None
    try:
        size = int(str(value))
    except ValueError:
        logger.warning("Ignoring non-numeric items_per_page value %r", value)
        return None
    return size if size > 0 else None


def split_frontmatter(raw: str) -> tuple[CommentedMap, str]:
    """Split ``raw`` into its parsed frontmatter mapping and verbatim body.

    Raises
    ------
    FrontmatterError
        If the document has no frontmatter block, the YAML cannot be parsed,
        or the YAML is not a mapping.
    """
    match = FRONTMATTER_PATTERN.match(raw)
    if match is None:
        msg = "Content file is missing a '---' delimited frontmatter block."
        raise FrontmatterError(msg)
    try:
        data = _build_roundtrip_yaml().load(match.group("yaml"))
    except YAMLError as exc:
        msg = f"Invalid YAML frontmatter: {exc}"
        raise FrontmatterError(msg) from exc
    if data is None:
        data = CommentedMap()
    if not isinstance(data, dict):
        msg = "Frontmatter must be a mapping of keys to values."
        raise FrontmatterError(msg)
    return data, raw[match.end() :]


def parse_content_file(path: str, raw: str) -> ContentFile:
    """Parse a raw content document stored at ``path``.

    Raises
    ------
    FrontmatterError
        If the frontmatter is malformed or lacks a non-empty ``title`` or a
        ``layout``.
    """
    frontmatter, body = split_frontmatter(raw)
    title = frontmatter.get("title")
    if not isinstance(title, str) or not title.strip():
        msg = f"'{path}' frontmatter requires a non-empty 'title'."
        raise FrontmatterError(msg)
    if not frontmatter.get("layout"):
        msg = f"'{path}' frontmatter requires a 'layout'."
        raise FrontmatterError(msg)
    return ContentFile(
        slug=slug_from_path(path), path=path, frontmatter=frontmatter, body=body
    )


def build_content_file(
    path: str, frontmatter: cabc.Mapping[str, typ.Any], body: str = ""
) -> ContentFile:
    """Create a content file from an in-memory mapping and body."""
    return parse_content_file(path, stringify(frontmatter, body))


def stringify(frontmatter: cabc.Mapping[str, typ.Any], body: str) -> str:
    """Serialize a frontmatter mapping and body into canonical document text."""
    if isinstance(frontmatter, CommentedMap):
        # Parsed mappings carry comments and explicit nulls; dump them as-is.
        cleaned = frontmatter
    else:
        cleaned = CommentedMap(
            (key, value) for key, value in frontmatter.items() if value is not None
        )
    buffer = io.StringIO()
    _build_roundtrip_yaml().dump(cleaned, buffer)
    return f"---\n{buffer.getvalue()}---\n{body}"


def stringify_content_file(content: ContentFile) -> str:
    """Reconstitute the stored text of ``content``."""
    return stringify(content.frontmatter, content.body)


__all__ = [
    "CollectionConfig",
    "ContentFile",
    "FrontmatterError",
    "SortOrder",
    "build_content_file",
    "parse_content_file",
    "split_frontmatter",
    "stringify",
    "stringify_content_file",
]
