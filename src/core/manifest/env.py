"""Environment variable containers.

Every value is tagged once, when the manifest is parsed:

- ``IN_VAULT`` values are fetched from the secret store
- values containing ``{{`` are jinja2 templates; templates piped through
  ``as_secret`` end up in the manifest's secrets map
- everything else is plain

Consumers ask an entry for its ``source`` instead of comparing strings.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment
from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

VAULT_SENTINEL = "IN_VAULT"
TEMPLATE_MARKER = "{{"
SECRET_FILTER_PATTERN = re.compile(r"\|\s*as_secret\b")
ENV_KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class EnvSource(Enum):
    """Where the value of an environment variable comes from."""

    PLAIN = "plain"
    VAULT = "vault"
    TEMPLATE = "template"


@dataclass(frozen=True)
class EnvValue:
    """A single tagged environment value.

    Attributes:
        raw: Value exactly as declared in the manifest
        source: Classification of the raw value
        secret: Template output belongs in the secrets map
        resolved: Rendered template output (templates only)
    """

    raw: str
    source: EnvSource
    secret: bool = False
    resolved: str | None = None

    @classmethod
    def classify(cls, raw: Any) -> EnvValue:
        """Tag a raw manifest value."""
        value = _stringify(raw)
        if value == VAULT_SENTINEL:
            return cls(raw=value, source=EnvSource.VAULT)
        if TEMPLATE_MARKER in value:
            return cls(
                raw=value,
                source=EnvSource.TEMPLATE,
                secret=bool(SECRET_FILTER_PATTERN.search(value)),
            )
        return cls(raw=value, source=EnvSource.PLAIN)

    @property
    def value(self) -> str:
        """Value to hand to the chart (rendered output for templates)."""
        if self.source is EnvSource.TEMPLATE and self.resolved is not None:
            return self.resolved
        return self.raw


def _stringify(raw: Any) -> str:
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if raw is None:
        return ""
    return str(raw)


def _template_environment() -> SandboxedEnvironment:
    env = SandboxedEnvironment(undefined=StrictUndefined, autoescape=False)
    # marker only; the classification already recorded the secret flag
    env.filters["as_secret"] = lambda value: value
    return env


class EnvVars:
    """Ordered, tagged mapping of environment variables."""

    def __init__(self, entries: Mapping[str, Any] | None = None) -> None:
        self._entries: dict[str, EnvValue] = {}
        for key, raw in (entries or {}).items():
            self._entries[str(key)] = (
                raw if isinstance(raw, EnvValue) else EnvValue.classify(raw)
            )

    # -------------------------------------------------------------------------
    # Mapping behaviour
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __getitem__(self, key: str) -> EnvValue:
        return self._entries[key]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, EnvVars):
            return self.to_mapping() == other.to_mapping()
        if isinstance(other, Mapping):
            return self.to_mapping() == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"EnvVars({self.to_mapping()!r})"

    def items(self) -> Iterator[tuple[str, EnvValue]]:
        yield from self._entries.items()

    def to_mapping(self) -> dict[str, str]:
        """Raw mapping, as it was declared."""
        return {key: entry.raw for key, entry in self._entries.items()}

    def merged(self, override: EnvVars) -> EnvVars:
        """Return a copy with ``override`` applied on top (override wins)."""
        combined = dict(self._entries)
        combined.update(override._entries)
        return EnvVars(combined)

    # -------------------------------------------------------------------------
    # Partitions
    # -------------------------------------------------------------------------

    def vault_secrets(self) -> list[str]:
        """Keys whose value must be read from the secret store."""
        return [k for k, e in self._entries.items() if e.source is EnvSource.VAULT]

    def template_secrets(self) -> dict[str, str]:
        """Rendered templates that were marked ``as_secret``.

        Raises:
            ValueError: If a secret template has not been rendered yet
        """
        secrets: dict[str, str] = {}
        for key, entry in self._entries.items():
            if entry.source is EnvSource.TEMPLATE and entry.secret:
                if entry.resolved is None:
                    raise ValueError(f"Template for {key} has not been rendered")
                secrets[key] = entry.resolved
        return secrets

    def plain(self) -> dict[str, str]:
        """Values that are injected as ordinary environment variables."""
        return {
            key: entry.value
            for key, entry in self._entries.items()
            if entry.source is EnvSource.PLAIN
            or (entry.source is EnvSource.TEMPLATE and not entry.secret)
        }

    def render_templates(self, context: Mapping[str, Any]) -> None:
        """Render every template entry against ``context``.

        Rendering always starts from the raw template, so repeated calls
        produce the same result.

        Raises:
            ValueError: If a template is malformed or references an unknown key
        """
        environment = _template_environment()
        for key, entry in self._entries.items():
            if entry.source is not EnvSource.TEMPLATE:
                continue
            try:
                rendered = environment.from_string(entry.raw).render(**context)
            except TemplateError as e:
                raise ValueError(f"Failed to render template for {key}: {e}") from e
            self._entries[key] = replace(entry, resolved=rendered)

    def verify(self) -> None:
        """Check key names and template syntax.

        Raises:
            ValueError: On the first invalid entry
        """
        environment = _template_environment()
        for key, entry in self._entries.items():
            if not ENV_KEY_PATTERN.fullmatch(key):
                raise ValueError(f"Invalid environment variable name '{key}'")
            if entry.source is EnvSource.TEMPLATE:
                try:
                    environment.parse(entry.raw)
                except TemplateError as e:
                    raise ValueError(f"Invalid template in {key}: {e}") from e

    # -------------------------------------------------------------------------
    # Pydantic integration
    # -------------------------------------------------------------------------

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        def validate(value: Any) -> EnvVars:
            if isinstance(value, EnvVars):
                return value
            return cls(value)

        from_mapping = core_schema.no_info_after_validator_function(
            validate,
            core_schema.dict_schema(
                keys_schema=core_schema.str_schema(),
                values_schema=core_schema.union_schema(
                    [
                        core_schema.str_schema(),
                        core_schema.bool_schema(strict=True),
                        core_schema.int_schema(),
                        core_schema.float_schema(),
                        core_schema.none_schema(),
                    ]
                ),
            ),
        )
        return core_schema.json_or_python_schema(
            json_schema=from_mapping,
            python_schema=core_schema.union_schema(
                [core_schema.is_instance_schema(cls), from_mapping]
            ),
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda v: v.to_mapping()
            ),
        )
