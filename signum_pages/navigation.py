"""Build navigation menus from the structure tree."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from .urls import live_segment, relative_path, rooted_url, url_for_node

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .rendering.engine import RenderOptions
    from .structure import StructureNode


@dc.dataclass(frozen=True, slots=True)
class NavLink:
    """A single menu entry ready for templates."""

    label: str
    href: str
    is_active: bool = False
    children: tuple[NavLink, ...] = ()


def build_nav_links(
    nodes: cabc.Sequence[StructureNode],
    current_export_path: str,
    options: RenderOptions,
) -> list[NavLink]:
    """Return menu links for every node that declares a ``nav_order``.

    Links are ordered by ``nav_order``. In export mode each ``href`` is
    relative to ``current_export_path``; in preview mode it is rooted at
    ``options.site_root_path``. Children of collections are listing items, not
    menu entries, so they are never expanded.
    """
    in_menu = sorted(
        (node for node in nodes if node.nav_order is not None),
        key=lambda node: typ.cast("int", node.nav_order),
    )
    links: list[NavLink] = []
    for node in in_menu:
        if options.is_export:
            href = relative_path(
                current_export_path, url_for_node(node, is_export=True)
            )
        else:
            href = rooted_url(options.site_root_path, live_segment(node.slug))
        children: tuple[NavLink, ...] = ()
        if not node.is_collection and node.children:
            children = tuple(
                build_nav_links(node.children, current_export_path, options)
            )
        links.append(
            NavLink(
                label=node.menu_title or node.title,
                href=href,
                is_active=_is_active(node, current_export_path),
                children=children,
            )
        )
    return links


def _is_active(node: StructureNode, current_export_path: str) -> bool:
    if url_for_node(node, is_export=True) == current_export_path:
        return True
    segment = live_segment(node.slug)
    return bool(segment) and current_export_path.startswith(f"{segment}/")


__all__ = ["NavLink", "build_nav_links"]
