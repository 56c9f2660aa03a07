"""Read-side access to data repository variables."""

import json
import logging
from pathlib import Path
from typing import Iterable

from pydantic import TypeAdapter, ValidationError

from apichain.schemas.data_repository import DataRepositoryVariable

logger = logging.getLogger(__name__)

_variables_adapter = TypeAdapter(list[DataRepositoryVariable])


class DataRepository:
    """Source of data repository variables. The chain engine only reads from it."""

    def list_variables(self) -> list[DataRepositoryVariable]:
        raise NotImplementedError


class InMemoryDataRepository(DataRepository):
    def __init__(self, variables: Iterable[DataRepositoryVariable | dict] | None = None):
        self._variables = _variables_adapter.validate_python(list(variables or []))

    def list_variables(self) -> list[DataRepositoryVariable]:
        return list(self._variables)


class JsonFileDataRepository(DataRepository):
    """
    Variables stored as a JSON array in a file, one object per variable,
    e.g. ``[{"name": "email", "type": "email", "value": "", "isDynamic": true}]``.

    The file is re-read on every call so edits made between runs are seen.
    A missing file is an empty repository.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def list_variables(self) -> list[DataRepositoryVariable]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.error(f"Data repository file {self.path} is not valid JSON: {e}")
            raise
        try:
            return _variables_adapter.validate_python(raw)
        except ValidationError as e:
            logger.error(f"Data repository file {self.path} has invalid variables: {e}")
            raise
