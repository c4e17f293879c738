"""
View Object.

Holds the template variables of a request and renders Jinja2 templates found
under ``<app_root>/views``. ``partial`` swaps in its own variable set while a
template renders and restores the caller's afterwards, so nested partials do
not leak variables into each other.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Union

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from markupsafe import Markup, escape

from mini_engine.core.errors import ViewNotFoundError

TEMPLATE_EXTENSION = ".html"


def create_template_environment(app_root: Union[str, Path]) -> Environment:
    """Jinja2 environment loading templates from ``<app_root>/views``."""
    return Environment(
        loader=FileSystemLoader(str(Path(app_root) / "views")),
        autoescape=select_autoescape(["html", "htm", "xml"]),
    )


def template_name(name: str) -> str:
    return name if Path(name).suffix else f"{name}{TEMPLATE_EXTENSION}"


class ViewObject:
    """Open-ended variable bag with partial rendering.

    Variables are set and read as attributes (``view.title = ...``) or items;
    reading an unset variable gives ``None``.
    """

    def __init__(self, environment: Environment, data: Optional[Mapping[str, Any]] = None) -> None:
        object.__setattr__(self, "_environment", environment)
        object.__setattr__(self, "_data", dict(data or {}))
        object.__setattr__(self, "_yield", {})

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self._data.get(name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
        else:
            self._data[name] = value

    def __getitem__(self, name: str) -> Any:
        return self._data.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self._data[name] = value

    def __contains__(self, name: str) -> bool:
        return self._data.get(name) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)

    def set_yield(self, name: str, value: str) -> None:
        """Store a named block of content for a layout to pick up."""
        self._yield[name] = value

    def get_yield(self, name: str) -> Markup:
        return Markup(self._yield.get(name, ""))

    def escape(self, value: Any) -> Markup:
        return escape(value)

    def partial(self, name: str, data: Union["ViewObject", Mapping[str, Any], None] = None) -> Markup:
        """
        Render ``views/<name>`` with ``data`` as its variables.

        Args:
            name: Template path relative to ``views/``; ``.html`` is appended
                when no extension is given.
            data: Variables for the template. Another view object contributes
                its variables; ``None`` reuses the current variables.

        Raises:
            ViewNotFoundError: The template file does not exist.
        """
        if isinstance(data, ViewObject):
            variables = data.to_dict()
        elif data is None:
            variables = dict(self._data)
        else:
            variables = dict(data)

        try:
            template = self._environment.get_template(template_name(name))
        except TemplateNotFound as exc:
            raise ViewNotFoundError(f"Partial file not found: {name}") from exc

        original_data = self._data
        self._data = variables
        try:
            content = template.render({**variables, "view": self})
        finally:
            self._data = original_data
        return Markup(content)
