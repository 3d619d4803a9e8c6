"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from touchless.llm_providers import OpenAIModel

logger = logging.getLogger(__name__)


class DeploymentConfig(BaseModel):
    """Target machine parameters for the Exchange deployment."""

    domain_name: str = ""
    netbios_name: str = ""
    dsrm_password: str = ""
    exchange_setup_path: str = r"C:\Setup-Software\Exchange"
    organization_name: str = ""
    timezone: str = "Eastern Standard Time"
    user_count: int = Field(default=10, ge=0)
    users_dir: Path = Field(default_factory=lambda: Path.home() / "Desktop")


class RemediationConfig(BaseModel):
    """Automated fixer parameters."""

    model: OpenAIModel = OpenAIModel.GPT_4O_MINI
    web_search: bool = True
    max_output_tokens: int = Field(default=512, gt=0)
    shell: Literal["auto", "powershell", "bash"] = "auto"
    reboot_on_success: bool = True
    reboot_delay_seconds: int = Field(default=5, ge=0)


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    # API Keys
    openai_api_key: str = ""
    logfire_token: str = ""

    # Nested configuration sections
    deployment: DeploymentConfig = Field(default_factory=DeploymentConfig)
    remediation: RemediationConfig = Field(default_factory=RemediationConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    @property
    def log_dir(self) -> Path:
        return self.data_dir / "Logs"

    @property
    def log_file(self) -> Path:
        """Durable deployment log shared by stages and the fixer."""
        return self.log_dir / "ExchangeDeploy.log"

    @property
    def state_file(self) -> Path:
        return self.data_dir / "state.txt"

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.debug(
                f"Config file not found: {config_path}. "
                "Using defaults. Run 'touchless init' to create it."
            )
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in ["deployment", "remediation"]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    yaml_section = yaml_config[section_name] or {}

                    section_dict = section.model_dump()
                    section_dict.update(yaml_section)

                    new_section = section.__class__(**section_dict)
                    setattr(self, section_name, new_section)

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to load config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
