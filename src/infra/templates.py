"""
Template rendering for notification bodies.

Engines are registered by name in a TemplateEngineRegistry and all expose
render(template: bytes, variables: dict) -> bytes. Variable names may be
dotted ("job.name"); each engine maps them onto its own syntax.

Built-in engines:
- "jinja2": {{ job.name }}
- "format": ${job_name} (string.Template, dots become underscores)
"""

import logging
from pathlib import Path
from string import Template
from typing import Any, Optional, Protocol

import jinja2

logger = logging.getLogger(__name__)

ENCODING = "utf-8"


class TemplateRenderError(Exception):
    """Raised when a template cannot be rendered."""
    pass


class TemplateEngine(Protocol):
    """Protocol for a template engine."""

    def render(self, template: bytes, variables: dict[str, Any]) -> bytes:
        ...


def expand_dotted(variables: dict[str, Any]) -> dict[str, Any]:
    """
    Expand dotted keys into nested mappings.

    {"job.name": "a", "job.host": "h"} -> {"job": {"name": "a", "host": "h"}}
    """
    expanded: dict[str, Any] = {}
    for key, value in variables.items():
        target = expanded
        parts = key.split(".")
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        target[parts[-1]] = value
    return expanded


class Jinja2TemplateEngine:
    """Jinja2 rendering; None renders as an empty string."""

    def __init__(self):
        self._env = jinja2.Environment(
            autoescape=False,
            keep_trailing_newline=True,
            undefined=jinja2.ChainableUndefined,
            finalize=lambda value: "" if value is None else value,
        )

    def render(self, template: bytes, variables: dict[str, Any]) -> bytes:
        try:
            compiled = self._env.from_string(template.decode(ENCODING))
            return compiled.render(**expand_dotted(variables)).encode(ENCODING)
        except (jinja2.TemplateError, UnicodeDecodeError) as e:
            raise TemplateRenderError(f"jinja2 rendering failed: {e}") from e
        except Exception as e:
            # Errors raised by expressions inside the template itself
            raise TemplateRenderError(f"jinja2 template raised {type(e).__name__}: {e}") from e


class FormatTemplateEngine:
    """string.Template rendering; unknown placeholders are left as-is."""

    def render(self, template: bytes, variables: dict[str, Any]) -> bytes:
        flat = {
            key.replace(".", "_"): "" if value is None else str(value)
            for key, value in variables.items()
        }
        try:
            return Template(template.decode(ENCODING)).safe_substitute(flat).encode(ENCODING)
        except (ValueError, UnicodeDecodeError) as e:
            raise TemplateRenderError(f"format rendering failed: {e}") from e


class TemplateEngineRegistry:
    """Template engines keyed by name."""

    def __init__(self):
        self._engines: dict[str, TemplateEngine] = {}

    @classmethod
    def default(cls) -> "TemplateEngineRegistry":
        """Registry with the built-in engines."""
        registry = cls()
        registry.register("jinja2", Jinja2TemplateEngine())
        registry.register("format", FormatTemplateEngine())
        return registry

    def register(self, name: str, engine: TemplateEngine) -> None:
        self._engines[name] = engine

    def names(self) -> list[str]:
        return sorted(self._engines)

    def render(self, engine_name: str, template: bytes, variables: dict[str, Any]) -> bytes:
        """
        Render a template with the named engine.

        Raises:
            TemplateRenderError: Unknown engine or rendering failure
        """
        engine = self._engines.get(engine_name)
        if engine is None:
            raise TemplateRenderError(f"Unknown template engine: {engine_name}")
        return engine.render(template, variables)


class TemplateResourceLoader:
    """
    Loads template bytes by location.

    A location is tried as a filesystem path first, then relative to the
    fallback directory (built-in templates).
    """

    def __init__(self, fallback_dir: Path):
        self.fallback_dir = Path(fallback_dir)

    def load(self, location: Optional[str]) -> Optional[bytes]:
        """Return template bytes, or None if the location does not resolve."""
        if not location:
            return None

        candidates = [Path(location), self.fallback_dir / location.lstrip("/")]
        for candidate in candidates:
            if candidate.is_file():
                try:
                    return candidate.read_bytes()
                except OSError as e:
                    logger.warning(f"Cannot read template {candidate}: {e}")
        return None
