r"""In-memory model of a site's page and collection tree.

The structure tree is owned by the site manifest. Every node carries a unique
``path`` (the storage key of its backing content file, such as
``content/blog/first-post.md``) and a ``slug`` derived from that path. The
helpers in this module are pure: they never mutate the tree they are given and
return fresh nodes whenever something changes, so callers can treat a
structure snapshot as copy-on-read.

Example
-------
>>> from signum_pages.structure import NodeKind, StructureNode, find_node_by_path
>>> post = StructureNode(NodeKind.PAGE, "Hello", "content/blog/hello.md", "blog/hello")
>>> blog = StructureNode(
...     NodeKind.COLLECTION, "Blog", "content/blog.md", "blog", children=[post]
... )
>>> find_node_by_path([blog], "content/blog/hello.md").title
'Hello'
"""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

from ._constants import CONTENT_PREFIX, CONTENT_SUFFIX, DEFAULT_PAGE_LAYOUT

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class NodeKind(enum.StrEnum):
    """Whether a node renders a single page or a listing of its children."""

    PAGE = "page"
    COLLECTION = "collection"


@dc.dataclass(slots=True)
class StructureNode:
    """A node in the site tree.

    Attributes
    ----------
    kind : NodeKind
        ``page`` or ``collection``.
    title : str
        Human-readable title shown in navigation.
    path : str
        Canonical storage key, unique across the whole tree.
    slug : str
        ``path`` without the ``content/`` prefix and ``.md`` suffix.
    layout_id : str
        Layout used to render the node's body.
    item_layout_id : str | None
        Layout used for each child when the node is a collection.
    children : list[StructureNode]
        Ordered child nodes.
    menu_title : str | None
        Optional shorter label for navigation menus.
    nav_order : int | None
        Position in the navigation menu; ``None`` keeps the node out of it.
    """

    kind: NodeKind
    title: str
    path: str
    slug: str
    layout_id: str = DEFAULT_PAGE_LAYOUT
    item_layout_id: str | None = None
    children: list[StructureNode] = dc.field(default_factory=list)
    menu_title: str | None = None
    nav_order: int | None = None

    @property
    def is_collection(self) -> bool:
        """Return ``True`` when the node lists its children."""
        return self.kind is NodeKind.COLLECTION

    @classmethod
    def from_mapping(cls, payload: cabc.Mapping[str, typ.Any]) -> StructureNode:
        """Build a node (and its subtree) from a manifest JSON mapping."""
        path = str(payload["path"])
        kind = NodeKind(payload.get("type", NodeKind.PAGE))
        children = [
            cls.from_mapping(child)
            for child in payload.get("children") or []
            if isinstance(child, dict)
        ]
        nav_order = payload.get("navOrder")
        return cls(
            kind=kind,
            title=str(payload.get("title") or ""),
            path=path,
            slug=str(payload.get("slug") or slug_from_path(path)),
            layout_id=str(payload.get("layout") or DEFAULT_PAGE_LAYOUT),
            item_layout_id=payload.get("itemLayout"),
            children=children,
            menu_title=payload.get("menuTitle"),
            nav_order=int(nav_order) if nav_order is not None else None,
        )

    def to_mapping(self) -> dict[str, typ.Any]:
        """Return the manifest JSON representation of the node."""
        payload: dict[str, typ.Any] = {
            "type": self.kind.value,
            "title": self.title,
            "path": self.path,
            "slug": self.slug,
            "layout": self.layout_id,
        }
        if self.item_layout_id:
            payload["itemLayout"] = self.item_layout_id
        if self.menu_title:
            payload["menuTitle"] = self.menu_title
        if self.nav_order is not None:
            payload["navOrder"] = self.nav_order
        if self.children:
            payload["children"] = [child.to_mapping() for child in self.children]
        return payload


def slug_from_path(path: str) -> str:
    """Strip the ``content/`` prefix and ``.md`` suffix from a storage path."""
    return path.removeprefix(CONTENT_PREFIX).removesuffix(CONTENT_SUFFIX)


def find_node_by_path(
    nodes: cabc.Sequence[StructureNode], path: str
) -> StructureNode | None:
    """Return the node whose ``path`` matches exactly, searching depth-first."""
    for node in nodes:
        if node.path == path:
            return node
        found = find_node_by_path(node.children, path)
        if found is not None:
            return found
    return None


def flatten_renderable_nodes(
    nodes: cabc.Sequence[StructureNode],
) -> list[StructureNode]:
    """Return every page and collection node in pre-order."""
    flattened: list[StructureNode] = []
    for node in nodes:
        flattened.append(node)
        flattened.extend(flatten_renderable_nodes(node.children))
    return flattened


def find_child_nodes(
    nodes: cabc.Sequence[StructureNode], parent_path: str
) -> list[StructureNode]:
    """Return the direct children of the node at ``parent_path``."""
    parent = find_node_by_path(nodes, parent_path)
    return list(parent.children) if parent else []


def remove_node(
    nodes: cabc.Sequence[StructureNode], path: str
) -> tuple[StructureNode | None, list[StructureNode]]:
    """Remove the node at ``path``, returning it alongside a rebuilt tree."""
    removed: StructureNode | None = None

    def _filter(current: cabc.Sequence[StructureNode]) -> list[StructureNode]:
        nonlocal removed
        kept: list[StructureNode] = []
        for node in current:
            if node.path == path:
                removed = node
                continue
            kept.append(dc.replace(node, children=_filter(node.children)))
        return kept

    tree = _filter(nodes)
    return removed, tree


def reparent_node(node: StructureNode, new_parent_path: str) -> StructureNode:
    """Move ``node`` under ``new_parent_path``, rewriting descendant paths.

    ``new_parent_path`` is a folder-style prefix such as ``content`` or
    ``content/blog``. The node keeps its file name; its slug and the paths of
    all descendants are recomputed so storage keys stay consistent.
    """
    file_name = node.path.rsplit("/", 1)[-1]
    new_path = f"{new_parent_path.rstrip('/')}/{file_name}"
    child_parent = new_path.removesuffix(CONTENT_SUFFIX)
    return dc.replace(
        node,
        path=new_path,
        slug=slug_from_path(new_path),
        children=[reparent_node(child, child_parent) for child in node.children],
    )


__all__ = [
    "NodeKind",
    "StructureNode",
    "find_child_nodes",
    "find_node_by_path",
    "flatten_renderable_nodes",
    "remove_node",
    "reparent_node",
    "slug_from_path",
]
