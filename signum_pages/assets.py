"""Resolve theme and layout manifests and files for a site.

Built-in assets ship inside the package under ``signum_pages/bundle`` and are
read from disk once per resolver (memoized by path until
:meth:`AssetResolver.clear_cache` is called). Custom assets live in the site
snapshot's ``theme_files``/``layout_files`` under ``themes/<id>/...`` and
``layouts/<id>/...``. Lookups never raise: a missing or unreadable asset is
reported as ``None`` and logged.

Example
-------
>>> from signum_pages.assets import AssetKind, AssetResolver
>>> resolver = AssetResolver(site)  # doctest: +SKIP
>>> resolver.get_asset_manifest(AssetKind.THEME, "default").name  # doctest: +SKIP
'Default Theme'
"""

from __future__ import annotations

import copy
import dataclasses as dc
import enum
import json
import logging
import typing as typ
from pathlib import Path, PurePosixPath

from .config import ThemeSelection

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .config import Manifest, SiteData

logger = logging.getLogger(__name__)

BUNDLE_DIR = Path(__file__).parent / "bundle"
BUILTIN_THEMES: tuple[str, ...] = ("default",)
BUILTIN_LAYOUTS: tuple[str, ...] = ("page", "listing")

BASE_SCHEMA: dict[str, typ.Any] = {
    "schema": {
        "type": "object",
        "properties": {
            "title": {"type": "string", "title": "Title"},
            "description": {"type": "string", "title": "Description"},
            "slug": {"type": "string", "title": "Slug"},
            "date": {"type": "string", "format": "date", "title": "Publish date"},
            "image": {"type": "object", "title": "Featured image"},
        },
        "required": ["title"],
    },
    "uiSchema": {
        "description": {"ui:widget": "textarea"},
        "date": {"ui:widget": "date"},
    },
}
_RESERVED_SCHEMA_KEYS = ("title", "description", "slug")


class AssetKind(enum.StrEnum):
    """The two families of installable presentation assets."""

    THEME = "theme"
    LAYOUT = "layout"

    @property
    def folder(self) -> str:
        """Return the storage folder name, e.g. ``themes``."""
        return f"{self.value}s"

    @property
    def manifest_filename(self) -> str:
        """Return the JSON manifest file name for this kind."""
        return f"{self.value}.json"

    @property
    def builtin_ids(self) -> tuple[str, ...]:
        """Return the ids shipped with the package for this kind."""
        return BUILTIN_THEMES if self is AssetKind.THEME else BUILTIN_LAYOUTS


class AssetFileType(enum.StrEnum):
    """Role of a file listed in an asset manifest."""

    MANIFEST = "manifest"
    BASE = "base"
    TEMPLATE = "template"
    ITEM = "item"
    PARTIAL = "partial"
    STYLESHEET = "stylesheet"
    SCRIPT = "script"
    ASSET = "asset"


@dc.dataclass(frozen=True, slots=True)
class AssetFile:
    """A single file entry in ``theme.json`` or ``layout.json``."""

    path: str
    type: AssetFileType
    name: str | None = None


@dc.dataclass(slots=True)
class AssetManifest:
    """Metadata shared by theme and layout manifests."""

    name: str
    version: str = "1.0.0"
    files: list[AssetFile] = dc.field(default_factory=list)
    description: str | None = None
    icon: str | None = None
    appearance_schema: dict[str, typ.Any] | None = None

    def files_of_type(self, file_type: AssetFileType) -> list[AssetFile]:
        """Return the files of ``file_type`` in manifest order."""
        return [item for item in self.files if item.type is file_type]

    def first_file(self, file_type: AssetFileType) -> AssetFile | None:
        """Return the first file of ``file_type`` or ``None``."""
        return next(iter(self.files_of_type(file_type)), None)

    @classmethod
    def from_mapping(
        cls, payload: cabc.Mapping[str, typ.Any], fallback_name: str
    ) -> AssetManifest:
        """Build a theme manifest from decoded ``theme.json`` data."""
        return cls(
            name=str(payload.get("name") or fallback_name),
            version=str(payload.get("version") or "1.0.0"),
            files=_parse_files(payload.get("files")),
            description=payload.get("description"),
            icon=payload.get("icon"),
            appearance_schema=_mapping_or_none(payload.get("appearanceSchema")),
        )


@dc.dataclass(slots=True)
class LayoutManifest(AssetManifest):
    """A layout manifest with its content schema."""

    id: str = ""
    layout_type: str = "page"
    schema: dict[str, typ.Any] | None = None
    ui_schema: dict[str, typ.Any] | None = None

    @classmethod
    def from_mapping(
        cls, payload: cabc.Mapping[str, typ.Any], fallback_name: str
    ) -> LayoutManifest:
        """Build a layout manifest from decoded ``layout.json`` data."""
        return cls(
            name=str(payload.get("name") or fallback_name),
            version=str(payload.get("version") or "1.0.0"),
            files=_parse_files(payload.get("files")),
            description=payload.get("description"),
            icon=payload.get("icon"),
            id=fallback_name,
            layout_type=str(payload.get("layoutType") or "page"),
            schema=_mapping_or_none(payload.get("schema")),
            ui_schema=_mapping_or_none(payload.get("uiSchema")),
        )

    def to_mapping(self) -> dict[str, typ.Any]:
        """Return a JSON-ready mapping in ``layout.json`` key style."""
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "layoutType": self.layout_type,
            "description": self.description,
            "files": [
                {"path": item.path, "type": item.type.value, "name": item.name}
                for item in self.files
            ],
            "schema": self.schema,
            "uiSchema": self.ui_schema,
        }


def _mapping_or_none(value: object) -> dict[str, typ.Any] | None:
    return dict(value) if isinstance(value, dict) else None


def _parse_files(payload: object) -> list[AssetFile]:
    if not isinstance(payload, list):
        return []
    files: list[AssetFile] = []
    for entry in payload:
        if not isinstance(entry, dict) or not entry.get("path"):
            continue
        try:
            file_type = AssetFileType(entry.get("type", AssetFileType.ASSET))
        except ValueError:
            logger.warning("Unknown asset file type %r; treating as asset", entry)
            file_type = AssetFileType.ASSET
        files.append(AssetFile(str(entry["path"]), file_type, entry.get("name")))
    return files


def merge_schemas(
    base: cabc.Mapping[str, typ.Any], specific: cabc.Mapping[str, typ.Any] | None
) -> dict[str, typ.Any]:
    """Merge a layout schema over ``base``.

    Properties are unioned with the layout winning on conflicts; ``required``
    lists are unioned with base entries first and duplicates dropped.
    """
    merged = copy.deepcopy(dict(base))
    if not specific:
        return merged
    merged.update(copy.deepcopy(dict(specific)))
    merged["properties"] = {
        **(base.get("properties") or {}),
        **(specific.get("properties") or {}),
    }
    required = [*(base.get("required") or []), *(specific.get("required") or [])]
    merged["required"] = list(dict.fromkeys(required))
    return merged


class AssetResolver:
    """Look up theme and layout manifests and file contents for one site."""

    def __init__(self, site: SiteData, *, bundle_dir: Path | None = None) -> None:
        self.site = site
        self.bundle_dir = bundle_dir or BUNDLE_DIR
        self._cache: dict[str, str | None] = {}

    def clear_cache(self) -> None:
        """Forget every memoized built-in file."""
        self._cache.clear()

    def is_builtin(self, kind: AssetKind, asset_id: str) -> bool:
        """Return ``True`` when ``asset_id`` ships with the package."""
        return asset_id in kind.builtin_ids

    def get_asset_content(
        self, kind: AssetKind, asset_id: str, relative_path: str
    ) -> str | None:
        """Return the text of ``relative_path`` inside the asset, or ``None``.

        Parameters
        ----------
        kind : AssetKind
            Theme or layout.
        asset_id : str
            Asset identifier, e.g. ``default`` or ``listing``.
        relative_path : str
            File path relative to the asset folder, e.g. ``partials/head.jinja``.
        """
        relative = PurePosixPath(relative_path)
        if relative.is_absolute() or ".." in relative.parts:
            logger.warning("Refusing asset path outside %s/%s", kind.folder, asset_id)
            return None
        storage_path = f"{kind.folder}/{asset_id}/{relative.as_posix()}"
        if not self.is_builtin(kind, asset_id):
            files = (
                self.site.theme_files
                if kind is AssetKind.THEME
                else self.site.layout_files
            )
            return next(
                (item.content for item in files if item.path == storage_path), None
            )
        if storage_path not in self._cache:
            self._cache[storage_path] = self._read_bundle_file(storage_path)
        return self._cache[storage_path]

    def _read_bundle_file(self, storage_path: str) -> str | None:
        file_path = self.bundle_dir / storage_path
        try:
            return file_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Could not read bundled asset %s: %s", storage_path, exc)
            return None

    def _get_json(
        self, kind: AssetKind, asset_id: str
    ) -> cabc.Mapping[str, typ.Any] | None:
        content = self.get_asset_content(kind, asset_id, kind.manifest_filename)
        if not content:
            return None
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as exc:
            logger.error(
                "Failed to parse %s/%s/%s: %s",
                kind.folder,
                asset_id,
                kind.manifest_filename,
                exc,
            )
            return None
        if not isinstance(payload, dict):
            logger.error("%s/%s manifest is not an object", kind.folder, asset_id)
            return None
        return payload

    def get_asset_manifest(
        self, kind: AssetKind, asset_id: str
    ) -> AssetManifest | None:
        """Return the parsed manifest of a theme or layout, or ``None``."""
        payload = self._get_json(kind, asset_id)
        if payload is None:
            return None
        if kind is AssetKind.LAYOUT:
            return LayoutManifest.from_mapping(payload, asset_id)
        return AssetManifest.from_mapping(payload, asset_id)

    def get_merged_layout_manifest(self, layout_id: str) -> LayoutManifest:
        """Return a layout manifest whose schema includes the base fields.

        ``title``, ``description``, and ``slug`` are removed from the merged
        properties because they are edited outside the layout form. A layout
        without a readable ``layout.json`` yields a fallback manifest carrying
        only the base schema.
        """
        base_schema = BASE_SCHEMA["schema"]
        base_ui = BASE_SCHEMA["uiSchema"]
        manifest = self.get_asset_manifest(AssetKind.LAYOUT, layout_id)
        if not isinstance(manifest, LayoutManifest):
            return LayoutManifest(
                name=layout_id,
                id=layout_id,
                schema=copy.deepcopy(base_schema),
                ui_schema=copy.deepcopy(base_ui),
            )
        schema = merge_schemas(base_schema, manifest.schema)
        for key in _RESERVED_SCHEMA_KEYS:
            schema["properties"].pop(key, None)
        schema["required"] = [
            key for key in schema["required"] if key not in _RESERVED_SCHEMA_KEYS
        ]
        manifest.schema = schema
        manifest.ui_schema = {**copy.deepcopy(base_ui), **(manifest.ui_schema or {})}
        return manifest

    def get_available_layouts(self) -> list[str]:
        """Return built-in layout ids followed by custom ids, de-duplicated."""
        custom = [info.id for info in self.site.manifest.layouts]
        return list(dict.fromkeys([*BUILTIN_LAYOUTS, *custom]))

    def list_bundle_paths(self, kind: AssetKind, asset_id: str) -> list[str]:
        """Return the manifest file plus every file it lists, de-duplicated."""
        manifest = self.get_asset_manifest(kind, asset_id)
        if manifest is None:
            return []
        paths = [kind.manifest_filename, *(item.path for item in manifest.files)]
        return list(dict.fromkeys(paths))

    def synchronize_theme_config(self, manifest: Manifest) -> Manifest:
        """Overlay the saved theme config on the theme's schema defaults.

        Saved values win; keys the user never set take the default declared in
        the theme's ``appearanceSchema``. The input manifest is not modified.
        """
        theme = self.get_asset_manifest(AssetKind.THEME, manifest.theme.name)
        if theme is None or not theme.appearance_schema:
            return manifest
        properties = theme.appearance_schema.get("properties") or {}
        defaults = {
            key: prop["default"]
            for key, prop in properties.items()
            if isinstance(prop, dict) and "default" in prop
        }
        merged = {**defaults, **manifest.theme.config}
        return dc.replace(
            manifest, theme=ThemeSelection(name=manifest.theme.name, config=merged)
        )


__all__ = [
    "BASE_SCHEMA",
    "BUILTIN_LAYOUTS",
    "BUILTIN_THEMES",
    "BUNDLE_DIR",
    "AssetFile",
    "AssetFileType",
    "AssetKind",
    "AssetManifest",
    "AssetResolver",
    "LayoutManifest",
    "merge_schemas",
]
