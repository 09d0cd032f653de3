"""Command metadata schema - Parse command.yaml files.

Each installed command carries a command.yaml describing it. This is the only
place a command's *declared* version lives; the lock file records the
version that was actually checked out.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError
from pydantic import field_validator

from .exceptions import StructureError

METADATA_FILENAME = "command.yaml"


class CommandMetadata(BaseModel):
    """
    Command metadata from command.yaml.

    Required fields must be present and non-empty; optional fields default to
    empty values.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    description: str
    author: str
    repository: str
    entry: str

    tags: list[str] = Field(default_factory=list)
    license: str | None = None
    homepage: str | None = None

    @field_validator("name", "version", "description", "author", "repository", "entry", mode="before")
    @classmethod
    def _require_non_empty(cls, value: object) -> str:
        # YAML turns versions like 1.0 into floats
        text = "" if value is None else str(value).strip()
        if not text:
            raise ValueError("must not be empty")
        return text

    @classmethod
    def from_file(cls, metadata_path: Path) -> "CommandMetadata":
        """
        Load command metadata from command.yaml.

        Args:
            metadata_path: Path to command.yaml

        Returns:
            CommandMetadata instance

        Raises:
            StructureError: If the file is missing, is not valid YAML, or misses required fields
        """
        if not metadata_path.exists():
            raise StructureError(
                f"{METADATA_FILENAME} not found: {metadata_path}",
                context={"path": str(metadata_path)},
            )

        try:
            data = yaml.safe_load(metadata_path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise StructureError(
                f"Failed to parse {metadata_path}: {e}", context={"path": str(metadata_path)}
            ) from e

        if not isinstance(data, dict):
            raise StructureError(
                f"{metadata_path} must contain a mapping of metadata fields",
                context={"path": str(metadata_path)},
            )

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
            raise StructureError(
                f"Invalid {METADATA_FILENAME} at {metadata_path}: missing or empty fields: {fields}",
                context={"path": str(metadata_path), "fields": fields},
            ) from e

    def to_yaml(self) -> str:
        data = self.model_dump(exclude_none=True)
        if not data["tags"]:
            del data["tags"]
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)

    def write(self, metadata_path: Path) -> None:
        metadata_path.write_text(self.to_yaml(), encoding="utf-8")
