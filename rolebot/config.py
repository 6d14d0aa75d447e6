"""
Registry configuration loading.

The registry document is a JSON file holding an ordered array of capability
records plus global orchestration settings. Loading problems are fatal: they
raise ``ConfigurationError`` at startup rather than surfacing per request.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError
from .models import DEFAULT_MAX_CONCURRENCY, ExecutionMode, OrchestrationConfig

logger = logging.getLogger(__name__)

DEFAULT_RESPONSE_TIMEOUT = 30.0
DEFAULT_CLEANUP_INTERVAL_HOURS = 24.0
DEFAULT_STATE_DIRECTORY = "state"


class CapabilityConfigRecord(BaseModel):
    """
    One capability entry of the registry document.

    Attributes:
        id: Capability id to register under
        implementation: Key into the capability factory map
        configuration: Passed to ``initialize`` unexamined
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "roleId", "role_id"))
    implementation: str = Field(
        validation_alias=AliasChoices(
            "implementation", "implementationRef", "implementation_ref", "typeName", "type"
        )
    )
    configuration: Dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("configuration", "config")
    )

    @field_validator("configuration", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return {} if value is None else value


class RegistrySettings(BaseModel):
    """
    Global settings plus the ordered capability records.

    Attributes:
        capabilities: Capability records, in load order
        max_concurrent_roles: Default Parallel-mode concurrency bound
        default_execution_mode: Mode used when a call passes no config
        enable_state_persistence: Whether conversation state is persisted
        cleanup_interval_hours: Age threshold for state housekeeping
        response_timeout_seconds: Default budget for a whole orchestration call
        state_directory: Directory of the file state backend
    """

    model_config = ConfigDict(populate_by_name=True)

    capabilities: List[CapabilityConfigRecord] = Field(
        default_factory=list, validation_alias=AliasChoices("capabilities", "roles")
    )
    max_concurrent_roles: int = Field(
        default=DEFAULT_MAX_CONCURRENCY,
        ge=1,
        validation_alias=AliasChoices("maxConcurrentRoles", "max_concurrent_roles"),
    )
    default_execution_mode: ExecutionMode = Field(
        default=ExecutionMode.FIRST_MATCH,
        validation_alias=AliasChoices("defaultExecutionMode", "default_execution_mode"),
    )
    enable_state_persistence: bool = Field(
        default=True,
        validation_alias=AliasChoices("enableStatePersistence", "enable_state_persistence"),
    )
    cleanup_interval_hours: float = Field(
        default=DEFAULT_CLEANUP_INTERVAL_HOURS,
        gt=0,
        validation_alias=AliasChoices("cleanupIntervalHours", "cleanup_interval_hours"),
    )
    response_timeout_seconds: Optional[float] = Field(
        default=DEFAULT_RESPONSE_TIMEOUT,
        validation_alias=AliasChoices("responseTimeoutSeconds", "response_timeout_seconds"),
    )
    state_directory: str = Field(
        default=DEFAULT_STATE_DIRECTORY,
        validation_alias=AliasChoices("stateDirectory", "state_directory"),
    )

    @field_validator("default_execution_mode", mode="before")
    @classmethod
    def _parse_mode(cls, value):
        return ExecutionMode(value) if isinstance(value, str) else value

    @field_validator("response_timeout_seconds", mode="before")
    @classmethod
    def _non_positive_disables_timeout(cls, value):
        try:
            if value is not None and float(value) <= 0:
                return None
        except (TypeError, ValueError):
            # Left for the float validation to reject
            pass
        return value

    @field_validator("capabilities")
    @classmethod
    def _unique_ids(cls, records):
        seen = set()
        for record in records:
            if record.id in seen:
                raise ValueError(f"Duplicate capability id: {record.id}")
            seen.add(record.id)
        return records

    def orchestration_defaults(self) -> OrchestrationConfig:
        """Default per-call config derived from the global settings."""
        return OrchestrationConfig(
            execution_mode=self.default_execution_mode,
            max_concurrency=self.max_concurrent_roles,
            timeout_seconds=self.response_timeout_seconds,
        )


def load_registry_settings(filepath: str | Path) -> RegistrySettings:
    """
    Load registry settings from a JSON file.

    Args:
        filepath: Path to the registry JSON document

    Returns:
        Validated RegistrySettings

    Raises:
        ConfigurationError: If the file cannot be read or is not a valid document
    """
    path = Path(filepath)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Config file {path} is not valid JSON: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Could not read config file {path}: {e}") from e

    settings = parse_registry_settings(data, source=str(path))
    logger.info(f"Loaded registry settings from {path} ({len(settings.capabilities)} capabilities)")
    return settings


def parse_registry_settings(data: Any, source: str = "<memory>") -> RegistrySettings:
    """
    Validate an already-decoded registry document.

    Raises:
        ConfigurationError: If the document does not match the schema
    """
    if not isinstance(data, dict):
        raise ConfigurationError(f"Registry document {source} must be a JSON object")

    try:
        return RegistrySettings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid registry document {source}: {e}") from e
