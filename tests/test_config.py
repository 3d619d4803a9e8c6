"""Tests for settings loading: env vars, YAML merge and derived paths."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from touchless.config import RemediationConfig, Settings, get_settings
from touchless.deployment import DeploymentParams
from touchless.llm_providers import OpenAIModel, get_model_string


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch):
    """Run with a clean data dir and no stray deployment env vars."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    for name in ("OPENAI_API_KEY", "LOGFIRE_TOKEN", "DEPLOYMENT__DOMAIN_NAME", "REMEDIATION__MODEL"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield tmp_path / "data"
    get_settings.cache_clear()


def test_defaults(isolated_env: Path):
    settings = get_settings()

    assert settings.data_dir == isolated_env.resolve()
    assert settings.log_dir == settings.data_dir / "Logs"
    assert settings.log_file == settings.data_dir / "Logs" / "ExchangeDeploy.log"
    assert settings.state_file == settings.data_dir / "state.txt"
    assert settings.remediation.model == OpenAIModel.GPT_4O_MINI
    assert settings.remediation.web_search is True
    assert settings.deployment.exchange_setup_path == r"C:\Setup-Software\Exchange"


def test_yaml_sections_merge_over_defaults(isolated_env: Path):
    isolated_env.mkdir(parents=True)
    (isolated_env / "config.yaml").write_text(
        "deployment:\n"
        "  domain_name: corp.example.com\n"
        "  user_count: 3\n"
        "remediation:\n"
        "  web_search: false\n"
        "  shell: bash\n",
        encoding="utf-8",
    )

    settings = get_settings()

    assert settings.deployment.domain_name == "corp.example.com"
    assert settings.deployment.user_count == 3
    assert settings.deployment.timezone == "Eastern Standard Time"
    assert settings.remediation.web_search is False
    assert settings.remediation.shell == "bash"
    assert settings.remediation.max_output_tokens == 512


def test_empty_yaml_keeps_defaults(isolated_env: Path):
    isolated_env.mkdir(parents=True)
    (isolated_env / "config.yaml").write_text("", encoding="utf-8")

    assert get_settings().deployment.user_count == 10


def test_nested_env_override(isolated_env: Path, monkeypatch):
    monkeypatch.setenv("DEPLOYMENT__DOMAIN_NAME", "env.example.com")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    settings = get_settings()

    assert settings.deployment.domain_name == "env.example.com"
    assert settings.openai_api_key == "sk-test"


def test_invalid_yaml_value_raises(isolated_env: Path):
    isolated_env.mkdir(parents=True)
    (isolated_env / "config.yaml").write_text("remediation:\n  shell: fish\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        get_settings()


def test_settings_are_cached(isolated_env: Path):
    assert get_settings() is get_settings()


def test_model_string_uses_responses_api():
    assert get_model_string(OpenAIModel.GPT_4O_MINI) == "openai-responses:gpt-4o-mini"
    assert RemediationConfig(model="gpt-4.1-mini").model == OpenAIModel.GPT_4_1_MINI


class TestDeploymentParams:
    def _settings(self, **deployment) -> Settings:
        return Settings(deployment=deployment)

    def test_from_config_with_overrides(self, isolated_env: Path):
        settings = self._settings(
            domain_name="corp.example.com",
            netbios_name="CORP",
            dsrm_password="P@ssw0rd!",
            organization_name="Example",
        )

        params = DeploymentParams.from_config(
            settings.deployment, organization_name="Override", netbios_name=None
        )

        assert params.organization_name == "Override"
        assert params.netbios_name == "CORP"
        assert "P@ssw0rd!" not in repr(params)

    def test_blank_values_rejected(self, isolated_env: Path):
        settings = self._settings(domain_name="corp.example.com")

        with pytest.raises(ValidationError):
            DeploymentParams.from_config(settings.deployment)

    def test_netbios_length_limited(self):
        with pytest.raises(ValidationError):
            DeploymentParams(
                domain_name="a.b",
                netbios_name="THISNAMEISTOOLONG",
                dsrm_password="x",
                exchange_setup_path="C:\\ex",
                organization_name="o",
            )
