"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.slot_calculator import OverrunPolicy, SlotCalculator


class SlotDefaults(BaseModel):
    """Settings for the slot grid."""
    slot_interval_minutes: int = 30
    align_to_hour: bool = True
    overrun_policy: OverrunPolicy = OverrunPolicy.ALLOW

    @field_validator("slot_interval_minutes")
    @classmethod
    def validate_interval(cls, value: int) -> int:
        """Ensure the cadence fits evenly into an hour."""
        if value <= 0 or 60 % value != 0:
            raise ValueError(f"slot_interval_minutes must divide 60, got {value}")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "UTC"
    data_file: Path = Path("salon_data.json")
    slots: SlotDefaults = Field(default_factory=SlotDefaults)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Unknown timezone: {value!r}") from exc
        return value

    @model_validator(mode="after")
    def resolve_data_file(self) -> "AppConfig":
        """Expand ``~`` in the data file path."""
        self.data_file = self.data_file.expanduser()
        return self

    def build_slot_calculator(self) -> SlotCalculator:
        """Create a calculator configured for this salon."""
        return SlotCalculator(
            timezone=self.timezone,
            slot_interval_minutes=self.slots.slot_interval_minutes,
            align_to_hour=self.slots.align_to_hour,
            overrun_policy=self.slots.overrun_policy,
        )

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        A relative ``data_file`` is resolved against the config file's directory.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)
        if not config.data_file.is_absolute():
            config.data_file = config_path.parent / config.data_file
        return config


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
