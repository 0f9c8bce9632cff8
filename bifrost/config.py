"""Configuration for Bifrost with validation."""

from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, ValidationError, field_validator, ConfigDict
import structlog
import toml

log = structlog.get_logger()


class TemplateSettings(BaseModel):
    """Versions pinned in the generated preamble."""

    terraform_version: str = ">= 1.0"
    google_provider_version: str = "~> 5.0"

    @field_validator('terraform_version', 'google_provider_version')
    @classmethod
    def constraint_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Version constraint cannot be empty')
        return v.strip()


class BifrostConfig(BaseModel):
    """Main configuration for Bifrost with validation."""

    model_config = ConfigDict(validate_assignment=True)

    # Output
    output_dir: Path = Path("terraform")

    # Pricing
    pricing_url: Optional[str] = None  # None = local estimate only
    pricing_timeout: float = Field(gt=0, default=5.0)

    # Template
    template: TemplateSettings = Field(default_factory=TemplateSettings)

    # Logging
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR)$")
    log_file: Optional[Path] = None
    json_logs: bool = False

    @classmethod
    def load(cls, path: Optional[str] = None) -> 'BifrostConfig':
        """Load configuration from TOML file.

        Search order if path not provided:
        1. ./bifrost.toml (project-specific)
        2. ~/.bifrost/config.toml (user default)

        Args:
            path: Optional explicit config file path

        Returns:
            BifrostConfig instance
        """
        if path is None:
            candidates = [
                Path("bifrost.toml"),
                Path("~/.bifrost/config.toml").expanduser()
            ]
            for candidate in candidates:
                if candidate.exists():
                    path = str(candidate)
                    log.info("config_found", path=path)
                    break

        if path and Path(path).exists():
            try:
                data = toml.load(path)
                log.info("config_loaded", path=path)
                return cls(**data)
            except (toml.TomlDecodeError, ValidationError, OSError) as e:
                log.error("config_load_failed", path=path, error=str(e))
                return cls()

        log.info("config_using_defaults")
        return cls()

    def save(self, path: str):
        """Save configuration to TOML file.

        Args:
            path: File path to save to
        """
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            data = self.model_dump(mode='json', exclude_none=True)
            toml.dump(data, f)
        log.info("config_saved", path=path)


def validate_config(config: BifrostConfig) -> list[str]:
    """Validate configuration and return warnings.

    Args:
        config: Config to validate

    Returns:
        List of warning messages
    """
    warnings = []

    if config.pricing_url and not config.pricing_url.startswith(("http://", "https://")):
        warnings.append(
            f"pricing_url is not an HTTP(S) URL ({config.pricing_url}); "
            "cost estimates will use the local table"
        )

    if config.pricing_timeout > 30:
        warnings.append(
            f"pricing_timeout of {config.pricing_timeout:.0f}s delays cost estimates; "
            "the pricing call is advisory"
        )

    if config.output_dir.exists() and not config.output_dir.is_dir():
        warnings.append(f"output_dir exists and is not a directory: {config.output_dir}")

    return warnings
