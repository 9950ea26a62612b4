"""Per-render template registry backed by a private Jinja environment.

Every page render opens a fresh :class:`RenderSession`. Partials, layout
templates, globals, and filters registered on one session are invisible to
every other session, so a theme's partials can never leak into a render that
uses a different theme. Including a partial that was never registered renders
an HTML comment marker instead of raising.

Example
-------
>>> from signum_pages.rendering.session import RenderSession
>>> with RenderSession() as session:
...     session.register_template("greeting", "Hello {{ name }}")
...     session.render("greeting", {"name": "<world>"})
'Hello &lt;world&gt;'
"""

from __future__ import annotations

import dataclasses as dc
import html
import logging
import typing as typ

from jinja2 import BaseLoader, Environment, TemplateNotFound, select_autoescape

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from types import TracebackType

logger = logging.getLogger(__name__)


class HelperKind(typ.NamedTuple):
    """Where a helper is exposed to templates."""

    is_global: bool
    is_filter: bool


GLOBAL = HelperKind(is_global=True, is_filter=False)
FILTER = HelperKind(is_global=False, is_filter=True)
GLOBAL_AND_FILTER = HelperKind(is_global=True, is_filter=True)


@dc.dataclass(frozen=True, slots=True)
class Helper:
    """A callable exposed to templates under ``name``."""

    name: str
    func: cabc.Callable[..., typ.Any]
    kind: HelperKind = GLOBAL


def missing_partial_marker(name: str) -> str:
    """Return the comment emitted in place of an unregistered partial."""
    return f'<!-- Partial "{html.escape(name)}" not found -->'


class _SessionLoader(BaseLoader):
    """Serve templates registered on one session only."""

    def __init__(self, templates: cabc.Mapping[str, str]) -> None:
        self._templates = templates

    def get_source(
        self, environment: Environment, template: str
    ) -> tuple[str, str | None, cabc.Callable[[], bool] | None]:
        source = self._templates.get(template)
        if source is None:
            logger.warning("Partial %r is not registered for this render", template)
            marker = missing_partial_marker(template)
            return f"{{% raw %}}{marker}{{% endraw %}}", None, lambda: False
        return source, None, lambda: True

    def list_templates(self) -> list[str]:
        return sorted(self._templates)


class RenderSession:
    """Own the templates and helpers of a single render pass."""

    def __init__(self) -> None:
        self._templates: dict[str, str] = {}
        self.environment = Environment(
            loader=_SessionLoader(self._templates),
            autoescape=select_autoescape(
                ["html", "xml", "jinja"], default_for_string=True, default=True
            ),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def __enter__(self) -> RenderSession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Drop every registration so the session cannot be reused."""
        self._templates.clear()
        self.environment.globals.clear()
        self.environment.filters.clear()
        self.environment.cache = None

    def register_template(self, name: str, source: str) -> None:
        """Register ``source`` under ``name`` for ``include`` and rendering."""
        if name in self._templates:
            logger.debug("Template %r re-registered; last registration wins", name)
        self._templates[name] = source

    register_partial = register_template

    def register_helper(self, helper: Helper) -> None:
        """Expose ``helper`` as a global function and/or a filter."""
        if helper.kind.is_global:
            self.environment.globals[helper.name] = helper.func
        if helper.kind.is_filter:
            self.environment.filters[helper.name] = helper.func

    def register_helpers(self, helpers: cabc.Iterable[Helper]) -> None:
        for helper in helpers:
            self.register_helper(helper)

    def has_template(self, name: str) -> bool:
        """Return ``True`` when ``name`` was registered on this session."""
        return name in self._templates

    @property
    def template_names(self) -> list[str]:
        """Return the registered template names in sorted order."""
        return sorted(self._templates)

    def render(self, name: str, context: cabc.Mapping[str, typ.Any]) -> str:
        """Render the registered template ``name`` with ``context``.

        Raises
        ------
        TemplateNotFound
            If ``name`` was never registered on this session.
        """
        if name not in self._templates:
            raise TemplateNotFound(name)
        return self.environment.get_template(name).render(context)


__all__ = [
    "FILTER",
    "GLOBAL",
    "GLOBAL_AND_FILTER",
    "Helper",
    "HelperKind",
    "RenderSession",
    "missing_partial_marker",
]
