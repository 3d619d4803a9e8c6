"""Deployment parameters for the Exchange stage recipes."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from touchless.config import DeploymentConfig


class DeploymentParams(BaseModel):
    """Validated inputs for a single touchless Exchange deployment."""

    domain_name: str = Field(description="FQDN of the new AD forest (e.g. corp.contoso.com)")
    netbios_name: str = Field(max_length=15, description="NetBIOS name (e.g. CONTOSO)")
    dsrm_password: str = Field(repr=False, description="DSRM (Safe Mode) password")
    exchange_setup_path: str = Field(description="Directory containing Exchange Setup.exe")
    organization_name: str = Field(description="Exchange organization name")

    @field_validator(
        "domain_name",
        "netbios_name",
        "dsrm_password",
        "exchange_setup_path",
        "organization_name",
        mode="after",
    )
    @classmethod
    def require_value(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @classmethod
    def from_config(cls, config: DeploymentConfig, **overrides: str | None) -> DeploymentParams:
        """Merge CLI overrides (ignoring None) over configured values."""
        values = {
            "domain_name": config.domain_name,
            "netbios_name": config.netbios_name,
            "dsrm_password": config.dsrm_password,
            "exchange_setup_path": config.exchange_setup_path,
            "organization_name": config.organization_name,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
