"""Utility helpers shared by the site loader and the renderer."""

from __future__ import annotations

import datetime as dt
import typing as typ

from signum_pages.structure import StructureNode

from .models import LayoutInfo, SiteConfigError, ThemeInfo, ThemeSelection

MANIFEST_KEYS = frozenset(
    {
        "siteId",
        "generatorVersion",
        "title",
        "description",
        "author",
        "baseUrl",
        "theme",
        "structure",
        "layouts",
        "themes",
        "logo",
        "favicon",
        "settings",
    }
)


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _build_theme_selection(payload: object) -> ThemeSelection:
    """Build the active theme selection from the manifest ``theme`` entry."""
    match payload:
        case str() as name if name.strip():
            return ThemeSelection(name=name.strip())
        case dict():
            name = _optional_str(payload.get("name"))
            if not name:
                msg = "Manifest 'theme' entry is missing a 'name'."
                raise SiteConfigError(msg)
            config = payload.get("config") or {}
            if not isinstance(config, dict):
                msg = "Manifest 'theme.config' must be a mapping."
                raise SiteConfigError(msg)
            return ThemeSelection(name=name, config=dict(config))
        case _:
            msg = "Manifest does not configure a theme."
            raise SiteConfigError(msg)


def _build_structure(payload: object) -> list[StructureNode]:
    """Build root structure nodes, rejecting duplicate paths."""
    if payload is None:
        return []
    if not isinstance(payload, list):
        msg = "Manifest 'structure' must be a list of nodes."
        raise SiteConfigError(msg)
    try:
        nodes = [StructureNode.from_mapping(item) for item in payload]
    except (KeyError, ValueError) as exc:
        msg = f"Invalid structure node: {exc}"
        raise SiteConfigError(msg) from exc
    seen: set[str] = set()
    stack = list(nodes)
    while stack:
        node = stack.pop()
        if node.path in seen:
            msg = f"Duplicate structure path '{node.path}'."
            raise SiteConfigError(msg)
        seen.add(node.path)
        stack.extend(node.children)
    return nodes


def _build_layout_infos(payload: object) -> list[LayoutInfo]:
    if not isinstance(payload, list):
        return []
    infos: list[LayoutInfo] = []
    for item in payload:
        if not isinstance(item, dict) or not _optional_str(item.get("id")):
            continue
        layout_id = str(item["id"]).strip()
        infos.append(
            LayoutInfo(
                id=layout_id,
                name=_optional_str(item.get("name")) or layout_id,
                layout_type=_optional_str(item.get("type")) or "page",
            )
        )
    return infos


def _build_theme_infos(payload: object) -> list[ThemeInfo]:
    if not isinstance(payload, list):
        return []
    infos: list[ThemeInfo] = []
    for item in payload:
        theme_id = _optional_str(item.get("id")) if isinstance(item, dict) else None
        if theme_id:
            infos.append(
                ThemeInfo(id=theme_id, name=_optional_str(item.get("name")) or theme_id)
            )
    return infos


def _mapping_or_none(value: object) -> dict[str, typ.Any] | None:
    return dict(value) if isinstance(value, dict) else None


def parse_timestamp(value: object) -> dt.datetime | None:
    """Return a timezone-aware UTC datetime parsed from ``value``, or None.

    Accepts ``datetime`` and ``date`` instances (as produced by YAML loaders)
    and ISO 8601 strings, including a trailing ``Z``.
    """
    match value:
        case dt.datetime():
            parsed = value
        case dt.date():
            parsed = dt.datetime(value.year, value.month, value.day)
        case str() as text:
            sanitized = text.strip()
            if not sanitized:
                return None
            if sanitized.endswith("Z"):
                sanitized = sanitized[:-1] + "+00:00"
            try:
                parsed = dt.datetime.fromisoformat(sanitized)
            except ValueError:
                return None
        case _:
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=dt.UTC)
    return parsed.astimezone(dt.UTC)


__all__ = [
    "MANIFEST_KEYS",
    "_build_layout_infos",
    "_build_structure",
    "_build_theme_infos",
    "_build_theme_selection",
    "_mapping_or_none",
    "_optional_str",
    "parse_timestamp",
]
