import logging
from argparse import Namespace
from pathlib import Path
from typing import Any, Dict, List, Optional, Self, Set

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .constants import ALL_GENERATOR_KINDS, CacheDefaults, DefaultConfig, GeneratorKind
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# --- Pydantic Models for Configuration Schema ---

class PerformanceSettings(BaseModel):
    """Batching of the generation run."""

    enabled: bool = Field(
        default=False,
        description="Process several entities concurrently. When False, one entity at a time.",
    )
    worker_count: int = Field(
        default=DefaultConfig.CONCURRENCY_LIMIT,
        ge=1,
        le=DefaultConfig.MAX_WORKER_COUNT,
        description="Entities per batch when enabled.",
    )

    model_config = ConfigDict(extra="ignore")


class CacheSettings(BaseModel):
    """Bounds of the shared resolution cache."""

    max_entries: int = Field(default=CacheDefaults.MAX_ENTRIES, ge=1)
    ttl_seconds: float = Field(default=CacheDefaults.TTL_SECONDS, gt=0)
    sweep_interval: int = Field(default=CacheDefaults.SWEEP_INTERVAL, ge=1)

    model_config = ConfigDict(extra="ignore")


class ToolConfigSchema(BaseModel):
    """Pydantic schema defining the expected structure and types for the configuration."""

    entities: List[str] = Field(
        ...,
        min_length=1,
        description="Manifest paths or glob patterns holding entity declarations.",
    )
    output_dir: str = Field(
        DefaultConfig.OUTPUT_DIR,
        min_length=1,
        description="Root directory; artifacts go to <output_dir>/generated/<entity>/.",
    )
    generators: List[GeneratorKind] = Field(
        default_factory=lambda: list(ALL_GENERATOR_KINDS),
        description="Artifact kinds to generate for every entity.",
    )
    performance: PerformanceSettings = Field(default_factory=PerformanceSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    dry_run: bool = Field(default=False, description="Render artifacts without writing files.")

    def __getitem__(self, key: str) -> Any:
        """Allow dictionary-style access."""
        return getattr(self, key)

    def get(self, key: str, default: Any = None) -> Any:
        return getattr(self, key, default)

    @property
    def concurrency_limit(self) -> int:
        return self.performance.worker_count if self.performance.enabled else 1

    # --- Custom Field Validators using @field_validator ---

    @field_validator("entities", mode="before")
    @classmethod
    def check_entity_patterns(cls, v: Any) -> Any:
        """Ensure manifest patterns are non-empty strings."""
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, list):
            raise TypeError("entities must be a list of manifest paths or glob patterns.")
        processed_list = []
        for index, item in enumerate(v):
            if not isinstance(item, str):
                raise TypeError(
                    f"Item at index {index} must be a string, found: {type(item).__name__}"
                )
            stripped_item = item.strip()
            if not stripped_item:
                raise ValueError(f"Item at index {index} cannot be empty or just whitespace.")
            processed_list.append(stripped_item)
        return processed_list

    @field_validator("generators", mode="before")
    @classmethod
    def check_generator_kinds(cls, v: Any) -> Any:
        """Reject unknown kinds with the list of valid ones."""
        if v is None:
            return list(ALL_GENERATOR_KINDS)
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, list):
            raise TypeError("generators must be a list of generator kinds.")
        valid = GeneratorKind.values()
        for item in v:
            value = item.value if isinstance(item, GeneratorKind) else item
            if value not in valid:
                raise ValueError(f"Unknown generator kind '{value}'. Valid kinds: {', '.join(valid)}")
        return v

    # --- Custom Model Validator using @model_validator ---

    @model_validator(mode="after")
    def check_generators(self) -> Self:
        """Perform cross-field validation checks."""
        if not self.generators:
            raise ValueError("At least one generator kind must be requested.")

        duplicates = sorted({kind.value for kind in self.generators if self.generators.count(kind) > 1})
        if duplicates:
            raise ValueError(f"Duplicate generator kinds: {', '.join(duplicates)}")

        if not self.performance.enabled and self.performance.worker_count != DefaultConfig.CONCURRENCY_LIMIT:
            logger.warning(
                "'performance.worker_count' is set but 'performance.enabled' is False; "
                "entities will be processed one at a time."
            )
        return self

    model_config = ConfigDict(extra="ignore")


# --- Validation Function ---

def validate_and_parse_config(config_dict: Dict[str, Any], config_file: Optional[str] = None) -> ToolConfigSchema:
    """
    Validates a raw configuration dictionary against the ToolConfigSchema.

    Raises:
        ConfigurationError: listing every validation problem
    """
    try:
        validated_config = ToolConfigSchema.model_validate(config_dict)
        logger.debug("Configuration dictionary parsed and validated successfully against schema.")
        return validated_config
    except ValidationError as e:
        problems = []
        for error in e.errors():
            loc_parts = [str(loc_item) for loc_item in error.get("loc", ())]
            loc_str = " -> ".join(loc_parts) if loc_parts else "Model Level"
            msg = error.get("msg", "Unknown validation error")
            problems.append(f"{loc_str}: {msg}")
        raise ConfigurationError(
            "Configuration validation failed: " + "; ".join(problems),
            config_file=config_file,
        ) from e


# CLI attribute -> nested config location
CLI_OVERRIDES = {
    "entities": ("entities",),
    "output_dir": ("output_dir",),
    "generators": ("generators",),
    "dry_run": ("dry_run",),
    "worker_count": ("performance", "worker_count"),
}


def apply_cli_overrides(raw_config: Dict[str, Any], cli_args: Optional[Namespace]) -> Set[str]:
    """Override file values in place with CLI arguments that were explicitly given; returns their names."""
    if cli_args is None:
        return set()

    cli_dict = vars(cli_args)
    overridden_keys = set()
    for key, location in CLI_OVERRIDES.items():
        value = cli_dict.get(key)
        # store_true flags default to False, which means "not given"
        if value is None or value is False:
            continue
        target = raw_config
        for part in location[:-1]:
            section = target.get(part)
            if not isinstance(section, dict):
                section = {}
                target[part] = section
            target = section
        target[location[-1]] = value
        overridden_keys.add(key)

    # An explicit worker count implies concurrent processing
    if "worker_count" in overridden_keys:
        raw_config["performance"]["enabled"] = True

    if overridden_keys:
        logger.debug(f"Overridden config keys from CLI arguments: {overridden_keys}")
    return overridden_keys


def load_config(config_path: Optional[str], cli_args: Optional[Namespace] = None) -> ToolConfigSchema:
    """
    Loads configuration from YAML file, merges with CLI arguments,
    validates the result, and returns a validated Pydantic model instance.

    Raises:
        ConfigurationError: unreadable file or invalid configuration
    """
    raw_config: Dict[str, Any] = {}

    # 1. Load from YAML file if path is provided
    if config_path:
        config_file = Path(config_path)
        if not config_file.is_file():
            raise ConfigurationError(f"Config file not found at {config_path}", config_file=config_path)
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing YAML file: {e}", config_file=config_path) from e
        except OSError as e:
            raise ConfigurationError(f"Error reading config file: {e}", config_file=config_path) from e

        if yaml_config and isinstance(yaml_config, dict):
            raw_config.update(yaml_config)
            logger.debug(f"Loaded configuration from {config_path}")
        elif yaml_config:
            raise ConfigurationError(
                "Config file content must be a mapping",
                config_file=config_path,
            )

    # 2. Override with CLI arguments (only those explicitly provided)
    overridden_keys = apply_cli_overrides(raw_config, cli_args)

    # 3. Validate
    logger.debug("Validating final configuration...")
    validated_config = validate_and_parse_config(raw_config, config_file=config_path)

    # 4. Paths from the file are relative to it; paths from the CLI to the cwd
    base_dir = Path(config_path).resolve().parent if config_path else Path.cwd()
    output_base = Path.cwd() if "output_dir" in overridden_keys else base_dir
    validated_config.output_dir = str((output_base / validated_config.output_dir).resolve())
    if "entities" not in overridden_keys:
        validated_config.entities = [
            pattern if Path(pattern).is_absolute() else str(base_dir / pattern)
            for pattern in validated_config.entities
        ]

    logger.info("Configuration loaded and validated successfully.")
    return validated_config
