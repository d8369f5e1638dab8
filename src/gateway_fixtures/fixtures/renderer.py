"""Configuration template rendering for gateway fixtures.

The gateway's configuration files are rendered from Jinja2 templates and then
embedded verbatim as literal block scalars inside a ConfigMap manifest, which
is why :meth:`ConfigRenderer.indent` exists alongside :meth:`render`.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
from jinja2 import Environment, StrictUndefined, TemplateError, UndefinedError

from gateway_fixtures.fixtures.exceptions import RenderError, TemplateNotFoundError

logger = structlog.get_logger()

DEFAULT_INDENT_UNIT = "    "


class ConfigRenderer:
    """Render configuration templates and reindent them for embedding.

    Templates are read fresh on every call; nothing is cached between
    fixtures. Any value a template references must be supplied, otherwise
    rendering fails instead of silently producing an empty string.
    """

    def __init__(self, environment: Environment | None = None) -> None:
        self._env = environment or Environment(
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )
        self._log = logger.bind(entity="renderer")

    def render(self, template_path: Path | str, values: Mapping[str, Any] | None = None) -> str:
        """Render the template at ``template_path`` with ``values``.

        Args:
            template_path: Path to the configuration template.
            values: Substitution values referenced by the template.

        Returns:
            The rendered text.

        Raises:
            TemplateNotFoundError: If the file is missing or unreadable.
            RenderError: If a referenced value is missing or the template is
                malformed.
        """
        path = Path(template_path)
        try:
            source = path.read_text(encoding="utf-8")
        except OSError as e:
            raise TemplateNotFoundError(path, e.strerror) from e

        try:
            text = self._env.from_string(source).render(**dict(values or {}))
        except UndefinedError as e:
            raise RenderError(path, f"missing substitution value: {e.message}") from e
        except TemplateError as e:
            raise RenderError(path, str(e)) from e

        self._log.debug("rendered_template", path=str(path), size=len(text))
        return text

    @staticmethod
    def indent(text: str, unit: str = DEFAULT_INDENT_UNIT) -> str:
        """Prefix every line of ``text`` with ``unit``.

        The line count is preserved: empty input yields a single line made of
        ``unit`` alone, and a trailing newline yields a trailing indented
        empty line.
        """
        return "\n".join(unit + line for line in text.split("\n"))

    @staticmethod
    def dedent(text: str, unit: str = DEFAULT_INDENT_UNIT) -> str:
        """Strip exactly one ``unit`` prefix from every line of ``text``.

        Raises:
            ValueError: If a line does not start with ``unit``.
        """
        lines = text.split("\n")
        for number, line in enumerate(lines, start=1):
            if not line.startswith(unit):
                raise ValueError(f"line {number} is not indented with {unit!r}")
        return "\n".join(line[len(unit) :] for line in lines)
