"""Environment-driven settings for the ingest bridge.

Every processor property can come from an ``INGEST_``-prefixed environment
variable or a ``.env`` file, so a deployment can be configured without
command-line flags. CLI options override these values.

Features:
    - **IngestSettings:** processor properties, backend connection, logging
    - **env_prefix:** ``INGEST_`` (``INGEST_SCHEMA_NAME``, ``INGEST_BACKEND_URL``, ...)
    - **.env file support:** automatic loading via pydantic-settings
    - **Extra ignore:** unknown env vars don't cause startup failures

Examples:
    >>> import os
    >>> os.environ["INGEST_SCHEMA_NAME"] = "obs"
    >>> IngestSettings().schema_name
    'obs'

List-valued settings take JSON::

    INGEST_SCHEMA_FILES='["schemas/obs.yaml"]'
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ingestbridge.sink.protocol import ConnectionParams


class IngestSettings(BaseSettings):
    """Settings for one ingest-bridge process.

    Fields
    ──────
    schema_* / converter_*  : processor properties (see ``ProcessorConfig``)
    backend_*               : storage backend connection
    log_level / log_format  : structlog configuration
    schema_files            : YAML files of named schemas to load at startup
    converter_files         : YAML files of named converters to load at startup
    """

    model_config = SettingsConfigDict(
        env_prefix="INGEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Schema / converter ───────────────────────────────────────
    schema_name: str | None = None
    schema_spec: str | None = None
    feature_name_override: str | None = None
    converter_name: str | None = None
    converter_spec: str | None = None
    strict_sources: bool = True

    # ── Backend ──────────────────────────────────────────────────
    backend_url: str = Field(default="memory://", description="Backend URL")
    instance_id: str | None = None
    catalog: str = "ingest"
    user: str | None = None
    password: str | None = Field(default=None, repr=False)

    # ── Registries ───────────────────────────────────────────────
    schema_files: list[Path] = Field(default_factory=list)
    converter_files: list[Path] = Field(default_factory=list)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = Field(default="auto", pattern="^(auto|json|console)$")

    def connection_params(self) -> ConnectionParams:
        return ConnectionParams(
            url=self.backend_url,
            instance_id=self.instance_id,
            catalog=self.catalog,
            user=self.user,
            password=self.password,
        )

    def to_processor_config(self, **overrides):
        """Build a ``ProcessorConfig``; non-None ``overrides`` replace settings values."""
        from ingestbridge.framework.processor import ProcessorConfig

        values = {
            "schema_name": self.schema_name,
            "schema_spec": self.schema_spec,
            "feature_name_override": self.feature_name_override,
            "converter_name": self.converter_name,
            "converter_spec": self.converter_spec,
            "strict_sources": self.strict_sources,
            "connection": self.connection_params(),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ProcessorConfig(**values)

    @property
    def json_logs(self) -> bool | None:
        """``None`` lets logging decide from whether stderr is a TTY."""
        return {"json": True, "console": False}.get(self.log_format)


__all__ = ["IngestSettings"]
