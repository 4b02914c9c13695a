"""Variable placeholder resolution for node parameters.

Placeholders use double braces: ``{{name}}`` (inner whitespace allowed).
A string that is exactly one placeholder is replaced by the variable's native
value; placeholders embedded in longer strings are replaced by its string
form.
"""

from __future__ import annotations

import json
import math
import re
import sys
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from nodeflow.domain.errors import ResolutionError, VariableDefinitionError
from nodeflow.domain.models import Variable

PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_.\-]*)\s*\}\}")

VariableContext = Mapping[str, Any]


def format_value(value: Any) -> str:
    """String form of a value embedded in a larger string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def coerce_variable(variable: Variable) -> Any:
    """Coerce a variable's raw value to its declared type.

    Raises:
        VariableDefinitionError: If the value cannot represent the type.
    """
    value = variable.value

    if variable.type == "number":
        if isinstance(value, bool):
            raise VariableDefinitionError(
                f"Variable '{variable.name}' is declared number but holds a boolean"
            )
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str):
            try:
                number = float(value.strip())
            except ValueError:
                raise VariableDefinitionError(
                    f"Variable '{variable.name}' is declared number but holds {value!r}"
                ) from None
            return int(number) if number.is_integer() else number
        raise VariableDefinitionError(
            f"Variable '{variable.name}' is declared number but holds {type(value).__name__}"
        )

    if variable.type == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise VariableDefinitionError(
            f"Variable '{variable.name}' is declared boolean but holds {value!r}"
        )

    # text and media types carry strings (media values are URLs / data URIs)
    return format_value(value)


def build_variable_context(
    variables: Iterable[Variable] | Mapping[str, Any] | None,
) -> VariableContext:
    """Build the read-only variable context for one run.

    Accepts either typed ``Variable`` objects or a plain name → value mapping.

    Raises:
        VariableDefinitionError: On duplicate names or failed coercion.
    """
    if variables is None:
        return MappingProxyType({})

    if isinstance(variables, Mapping):
        return MappingProxyType(dict(variables))

    context: dict[str, Any] = {}
    for variable in variables:
        if variable.name in context:
            raise VariableDefinitionError(f"Duplicate variable name '{variable.name}'")
        context[variable.name] = coerce_variable(variable)
    return MappingProxyType(context)


class VariableResolver:
    """Resolves ``{{name}}`` placeholders inside node parameter payloads.

    Resolution is pure: inputs are never mutated and a payload without
    placeholders comes back equal to what went in.
    """

    def resolve(self, value: Any, context: VariableContext) -> Any:
        """Resolve placeholders in ``value`` recursively.

        Args:
            value: A node's ``data`` payload (or any part of it)
            context: Variable name → value

        Returns:
            A new structure with every placeholder substituted.

        Raises:
            ResolutionError: Listing every name missing from ``context``.
        """
        missing = self.validate(value, context)
        if missing:
            sys.stderr.write(f"[RESOLVER] Missing variables: {missing}\n")
            sys.stderr.flush()
            raise ResolutionError(missing)
        return self._resolve(value, context)

    def _resolve(self, value: Any, context: VariableContext) -> Any:
        if isinstance(value, str):
            return self._resolve_string(value, context)
        if isinstance(value, Mapping):
            return {key: self._resolve(item, context) for key, item in value.items()}
        if isinstance(value, list):
            return [self._resolve(item, context) for item in value]
        if isinstance(value, tuple):
            return tuple(self._resolve(item, context) for item in value)
        return value

    def _resolve_string(self, text: str, context: VariableContext) -> Any:
        whole = PLACEHOLDER.fullmatch(text)
        if whole is not None:
            return context[whole.group(1)]
        return PLACEHOLDER.sub(lambda match: format_value(context[match.group(1)]), text)

    def extract_variables(self, value: Any) -> list[str]:
        """Names referenced anywhere in ``value``, in first-seen order."""
        names: list[str] = []
        for text in _strings(value):
            for match in PLACEHOLDER.finditer(text):
                if match.group(1) not in names:
                    names.append(match.group(1))
        return names

    def validate(self, value: Any, context: VariableContext) -> list[str]:
        """Sorted names referenced by ``value`` that ``context`` lacks."""
        return sorted(name for name in self.extract_variables(value) if name not in context)


def _strings(value: Any) -> Iterable[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from _strings(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _strings(item)
