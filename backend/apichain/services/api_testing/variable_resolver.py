"""Variable resolution for chain request templates."""

import re
import json
import math
from typing import Any, Iterable, Mapping

from apichain.schemas.data_repository import DataRepositoryVariable
from apichain.services.api_testing.data_generator import generate_dynamic_value


def stringify(value: Any) -> str:
    """Render a runtime value the way it should appear inside a request."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def _format_number(raw: str) -> str:
    try:
        number = float(raw.strip()) if raw.strip() else 0.0
    except ValueError:
        return "NaN"
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    return stringify(number)


def format_repository_value(var_type: str, raw: str) -> str:
    """Apply type-specific normalization to a static or generated value."""
    if var_type == "number":
        return _format_number(raw)
    if var_type == "boolean":
        return "true" if raw.lower() == "true" else "false"
    if var_type == "object":
        try:
            return json.dumps(json.loads(raw), separators=(",", ":"))
        except (json.JSONDecodeError, TypeError):
            return raw
    return raw


class VariableResolver:
    """
    Resolves ${variable} patterns in strings.

    Each placeholder is looked up first in the runtime chain variables,
    then by name in the data repository variables. Unknown placeholders
    are left untouched.
    """

    VARIABLE_PATTERN = re.compile(r'\$\{([^}]+)\}')

    def resolve(
        self,
        template: str | None,
        runtime_vars: Mapping[str, Any] | None = None,
        repo_vars: Iterable[DataRepositoryVariable] | None = None,
    ) -> str:
        """
        Resolve variables in a string template.

        Args:
            template: String containing ${variable} patterns
            runtime_vars: Values extracted earlier in the current chain run
            repo_vars: Data repository variables

        Returns:
            String with resolvable variables replaced by their values
        """
        if not template:
            return template or ""

        if not isinstance(template, str):
            return str(template)

        runtime_vars = runtime_vars or {}
        repository = self._index_repository(repo_vars)

        def replacer(match: re.Match) -> str:
            name = match.group(1)
            value = runtime_vars.get(name)
            if value is not None:
                return stringify(value)

            repo_var = repository.get(name)
            if repo_var is None:
                # Keep original placeholder if variable not found
                return match.group(0)
            return self.repository_value(repo_var)

        return self.VARIABLE_PATTERN.sub(replacer, template)

    def resolve_dict(
        self,
        obj: Mapping[str, str] | None,
        runtime_vars: Mapping[str, Any] | None = None,
        repo_vars: Iterable[DataRepositoryVariable] | None = None,
    ) -> dict[str, str]:
        """Resolve every value of a string mapping, preserving key order."""
        if not obj:
            return {}
        repo_vars = list(repo_vars or [])
        return {
            key: self.resolve(value, runtime_vars, repo_vars)
            for key, value in obj.items()
        }

    def repository_value(self, variable: DataRepositoryVariable) -> str:
        """Current value of a data repository variable (fresh for dynamic ones)."""
        if variable.is_dynamic:
            raw = generate_dynamic_value(variable.type, variable.config)
        else:
            raw = variable.value
        return format_repository_value(variable.type, raw)

    def has_variables(self, template: str | None) -> bool:
        """Check if a string contains any ${variable} patterns."""
        if not template or not isinstance(template, str):
            return False
        return bool(self.VARIABLE_PATTERN.search(template))

    def extract_variables(self, template: str | None) -> list[str]:
        """Extract all variable names from a template."""
        if not template or not isinstance(template, str):
            return []
        return [match.group(1) for match in self.VARIABLE_PATTERN.finditer(template)]

    @staticmethod
    def _index_repository(
        repo_vars: Iterable[DataRepositoryVariable] | None,
    ) -> dict[str, DataRepositoryVariable]:
        index: dict[str, DataRepositoryVariable] = {}
        for variable in repo_vars or []:
            # First definition of a name wins
            index.setdefault(variable.name, variable)
        return index
