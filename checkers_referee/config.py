"""
Central configuration for the checkers referee.
Pydantic models for type-safe configuration management.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from checkers_referee.errors import ConfigurationError


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


class RulesSettings(BaseModel):
    """Rule toggles applied by the move validator."""

    captures_mandatory: bool = Field(default=True, description="Reject simple moves while any jump is available")
    strict_cell_values: bool = Field(default=True, description="Check the values a move writes into source, captured and landing cells")

    @field_validator('captures_mandatory', 'strict_cell_values', mode='before')
    @classmethod
    def validate_bool_fields(cls, v):
        if isinstance(v, str):
            return v.strip().lower() in ('1', 'true', 'yes', 'on')
        return bool(v)


class ReportSettings(BaseModel):
    """Addressing of the cheat report payload handed to the abuse collaborator."""

    email: str = Field(default="x@x.x", description="Recipient of cheat reports")
    subject: str = Field(default="hacker!", description="Subject line of cheat reports")


class LoggingSettings(BaseModel):
    """Logging configuration."""

    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")

    @field_validator('log_level', mode='before')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR']
        v_upper = v.upper() if isinstance(v, str) else str(v).upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper


class RefereeConfig(BaseModel):
    """Main configuration model for the checkers referee."""

    rules: RulesSettings = Field(default_factory=RulesSettings)
    report: ReportSettings = Field(default_factory=ReportSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Metadata
    version: str = Field(default="1.0.0", description="Configuration version")
    config_file: Optional[str] = Field(default=None, description="Path to config file")

    @classmethod
    def from_env(cls) -> 'RefereeConfig':
        """Create configuration from environment variables."""
        try:
            return cls(
                rules=RulesSettings(
                    captures_mandatory=_env_flag('CHECKERS_MANDATORY', 'true'),
                    strict_cell_values=_env_flag('CHECKERS_STRICT_CELLS', 'true'),
                ),
                report=ReportSettings(
                    email=os.getenv('CHECKERS_REPORT_EMAIL', 'x@x.x'),
                    subject=os.getenv('CHECKERS_REPORT_SUBJECT', 'hacker!'),
                ),
                logging=LoggingSettings(
                    log_level=os.getenv('CHECKERS_LOG_LEVEL', 'INFO'),
                ),
            )
        except ValidationError as e:
            raise ConfigurationError("Invalid configuration in environment",
                                     context={"errors": e.error_count()}) from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            'rules': self.rules.model_dump(),
            'report': self.report.model_dump(),
            'logging': self.logging.model_dump(),
            'version': self.version,
            'config_file': self.config_file,
        }

    def save_to_file(self, filepath: str) -> None:
        """Save configuration to JSON file."""
        config_dict = self.to_dict()
        config_dict['config_file'] = filepath

        with open(filepath, 'w') as f:
            json.dump(config_dict, f, indent=2)

    @classmethod
    def load_from_file(cls, filepath: str) -> 'RefereeConfig':
        """Load configuration from JSON file."""
        try:
            with open(filepath, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read config file: {e}",
                                     context={"path": filepath}) from e

        try:
            return cls(
                rules=RulesSettings(**data.get('rules', {})),
                report=ReportSettings(**data.get('report', {})),
                logging=LoggingSettings(**data.get('logging', {})),
                version=data.get('version', '1.0.0'),
                config_file=filepath,
            )
        except ValidationError as e:
            raise ConfigurationError("Invalid configuration file",
                                     context={"path": filepath, "errors": e.error_count()}) from e


# Global configuration instance
_config: Optional[RefereeConfig] = None


def get_config() -> RefereeConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = RefereeConfig.from_env()
    return _config


def load_config_from_file(filepath: str) -> RefereeConfig:
    """Load configuration from file and update global instance."""
    global _config
    _config = RefereeConfig.load_from_file(filepath)
    return _config


def reset_config() -> None:
    """Reset the global configuration to defaults."""
    global _config
    _config = None


def get_rules() -> RulesSettings:
    """Get rules configuration settings."""
    return get_config().rules


def get_report_settings() -> ReportSettings:
    """Get report configuration settings."""
    return get_config().report


def setup_logging() -> None:
    """Configure root logging once, controlled by the configured log level."""
    if getattr(setup_logging, "_configured", False):
        return
    level: int = getattr(logging, get_config().logging.log_level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    setup_logging._configured = True  # type: ignore[attr-defined]
