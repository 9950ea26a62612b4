"""Image references and the services that resolve them to URLs and bytes.

An image reference is a mapping embedded in the manifest (``logo``,
``favicon``) or in frontmatter, shaped like
``{"serviceId": "local", "src": "assets/images/cat.png", "alt": "A cat"}``.
The active service is chosen by ``manifest.settings["imageService"]``; only
the ``local`` service ships here, and unknown ids fall back to it.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .config import Manifest, SiteData

logger = logging.getLogger(__name__)

LOCAL_SERVICE_ID = "local"


@dc.dataclass(frozen=True, slots=True)
class ImageRef:
    """A pointer to an image managed by an image service."""

    service_id: str
    src: str
    alt: str | None = None
    width: int | None = None
    height: int | None = None

    @classmethod
    def from_mapping(cls, payload: cabc.Mapping[str, typ.Any]) -> ImageRef | None:
        """Return a reference when ``payload`` has ``serviceId`` and ``src``."""
        service_id = payload.get("serviceId")
        src = payload.get("src")
        if not isinstance(service_id, str) or not isinstance(src, str) or not src:
            return None
        return cls(
            service_id=service_id,
            src=src,
            alt=payload.get("alt"),
            width=_optional_int(payload.get("width")),
            height=_optional_int(payload.get("height")),
        )


def _optional_int(value: object) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(str(value))
    except ValueError:
        return None


class ImageService(typ.Protocol):
    """Resolve image references for previews and exports."""

    id: str

    def get_display_url(
        self, ref: ImageRef, *, is_export: bool, prefix: str = ""
    ) -> str:
        """Return the URL templates should use for ``ref``."""
        ...

    def get_exportable_assets(
        self, refs: cabc.Iterable[ImageRef]
    ) -> list[tuple[str, bytes]]:
        """Return ``(archive path, bytes)`` pairs for every exportable ref."""
        ...


class LocalImageService:
    """Serve images stored alongside the site in ``SiteData.image_assets``."""

    id = LOCAL_SERVICE_ID

    def __init__(self, site: SiteData) -> None:
        self.site = site

    def get_display_url(
        self, ref: ImageRef, *, is_export: bool, prefix: str = ""
    ) -> str:
        """Return ``ref.src`` joined onto ``prefix``.

        ``prefix`` is the relative asset path in export mode and the preview
        site root otherwise.
        """
        if is_export:
            return f"{prefix}{ref.src}"
        return f"{prefix.rstrip('/')}/{ref.src}" if prefix else ref.src

    def get_exportable_assets(
        self, refs: cabc.Iterable[ImageRef]
    ) -> list[tuple[str, bytes]]:
        """Return stored bytes for each local reference, skipping missing ones."""
        exported: dict[str, bytes] = {}
        for ref in refs:
            if ref.service_id != self.id or ref.src in exported:
                continue
            data = self.site.image_assets.get(ref.src)
            if data is None:
                logger.warning("Image %s is referenced but not stored", ref.src)
                continue
            exported[ref.src] = data
        return list(exported.items())


def get_active_image_service(site: SiteData) -> ImageService:
    """Return the image service selected by the manifest settings."""
    service_id = site.manifest.settings.get("imageService") or LOCAL_SERVICE_ID
    if service_id != LOCAL_SERVICE_ID:
        logger.warning(
            "Image service %r is not available; using the local service", service_id
        )
    return LocalImageService(site)


def _collect_refs(value: object, found: dict[tuple[str, str], ImageRef]) -> None:
    match value:
        case dict():
            ref = ImageRef.from_mapping(value)
            if ref is not None:
                found.setdefault((ref.service_id, ref.src), ref)
                return
            for nested in value.values():
                _collect_refs(nested, found)
        case list() | tuple():
            for nested in value:
                _collect_refs(nested, found)
        case _:
            return


def find_image_refs(payload: object) -> list[ImageRef]:
    """Return every image reference nested anywhere inside ``payload``."""
    found: dict[tuple[str, str], ImageRef] = {}
    _collect_refs(payload, found)
    return list(found.values())


def find_all_image_refs(site: SiteData, manifest: Manifest | None = None) -> list[ImageRef]:
    """Scan the manifest and every frontmatter block for image references.

    References are de-duplicated by ``(service_id, src)`` in discovery order.
    """
    found: dict[tuple[str, str], ImageRef] = {}
    _collect_refs((manifest or site.manifest).to_mapping(), found)
    for content in site.content_files or []:
        _collect_refs(dict(content.frontmatter), found)
    return list(found.values())


__all__ = [
    "LOCAL_SERVICE_ID",
    "ImageRef",
    "ImageService",
    "LocalImageService",
    "find_all_image_refs",
    "find_image_refs",
    "get_active_image_service",
]
