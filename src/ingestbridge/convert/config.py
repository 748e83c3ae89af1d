"""
Converter configuration models.

A converter config is declared inline (YAML or JSON) or registered by name.
It is validated with pydantic and frozen once parsed.

Example YAML::

    type: delimited-text
    id-field: $1
    options:
      skip-lines: 0
      error-mode: raise-errors
    fields:
      - name: id
        transform: $1
      - name: ts
        transform: dateTime($2)
      - name: geom
        transform: point(toDouble($3), toDouble($4))
    user-data:
      source: $inputFilePath
"""

from __future__ import annotations

import codecs
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ingestbridge.core.errors import ConfigurationError


class FieldConfig(BaseModel):
    """One computed field. ``path`` is used by the json converter."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1)
    transform: str | None = Field(default=None, description="Transform expression")
    path: str | None = Field(default=None, description="Dotted lookup path into a JSON record")


class ConverterOptions(BaseModel):
    """Parsing options shared by the built-in converters."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    skip_lines: int = Field(default=0, ge=0, alias="skip-lines")
    delimiter: str = Field(default=",", min_length=1, max_length=1)
    quote_char: str = Field(default='"', min_length=1, max_length=1, alias="quote-char")
    error_mode: Literal["raise-errors", "skip-bad-records"] = Field(
        default="raise-errors", alias="error-mode"
    )
    encoding: str = Field(default="utf-8")

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        try:
            codecs.lookup(v)
        except LookupError as e:
            raise ValueError(f"Unknown encoding: {v!r}") from e
        return v


class ConverterConfig(BaseModel):
    """Complete converter configuration."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    type: str = Field(..., min_length=1, description="Registered converter type")
    id_field: str | None = Field(
        default=None,
        alias="id-field",
        description="Expression for the record identifier (default: md5 of the raw record)",
    )
    fields: tuple[FieldConfig, ...] = Field(default=())
    options: ConverterOptions = Field(default_factory=ConverterOptions)
    user_data: dict[str, str] = Field(default_factory=dict, alias="user-data")

    @field_validator("fields")
    @classmethod
    def validate_unique_names(cls, v: tuple[FieldConfig, ...]) -> tuple[FieldConfig, ...]:
        names = [f.name for f in v]
        if len(names) != len(set(names)):
            duplicates = sorted({n for n in names if names.count(n) > 1})
            raise ValueError(f"Duplicate field names: {duplicates}")
        return v

    @classmethod
    def from_mapping(cls, data: Any) -> ConverterConfig:
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Converter config must be a mapping, got {type(data).__name__}"
            )
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid converter config: {e}", cause=e) from e

    @classmethod
    def from_yaml(cls, text: str) -> ConverterConfig:
        """Parse YAML (or JSON, a YAML subset) into a validated config."""
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid converter YAML: {e}", cause=e) from e
        return cls.from_mapping(data)


__all__ = ["FieldConfig", "ConverterOptions", "ConverterConfig"]
