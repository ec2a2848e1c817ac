from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class JiraConfig(BaseModel):
    """Resolved, immutable connection settings for the Jira client."""

    model_config = ConfigDict(frozen=True)

    base_url: str
    email: str
    api_token: SecretStr
    timeout: float = 30.0


class LLMConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: Literal["openai", "azure", "ollama"]
    base_url: str
    model: str
    api_key: Optional[SecretStr] = None
    deployment: Optional[str] = None
    api_version: Optional[str] = None
    timeout: float = 120.0
    max_tokens: int = 500
    temperature: float = 0.0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "dev"  # dev / prod
    log_level: str = "INFO"
    enable_metrics: bool = True
    # OTLP/HTTP collector; empty disables tracing
    otel_exporter_otlp_endpoint: str = ""

    # Jira Cloud (basic auth: email + API token)
    jira_base_url: str = ""
    jira_email: str = ""
    jira_api_token: SecretStr | None = None
    jira_timeout: float = 30.0
    jira_page_size: int = 50

    # Defaults for tickets filed from a stack trace
    triage_project_key: str = ""
    triage_issue_type: str = "Bug"
    triage_labels: List[str] = ["bug"]
    triage_assignee: str | None = None

    llm_provider: str = "openai"
    llm_timeout: float = 120.0
    llm_max_tokens: int = 500
    llm_temperature: float = 0.0

    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o"

    azure_openai_endpoint: str = ""
    azure_openai_api_key: SecretStr | None = None
    azure_openai_deployment: str | None = None
    azure_openai_model: str = "gpt-35-turbo"
    azure_openai_api_version: str = "2023-05-15"

    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "qwen2.5:3b"

    @field_validator("llm_provider", mode="before")
    @classmethod
    def _normalize_provider(cls, v: Any) -> str:
        return str(v or "").strip().lower()

    @field_validator("jira_base_url", "azure_openai_endpoint", "ollama_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return (v or "").strip().rstrip("/")

    def jira_config(self) -> JiraConfig:
        token = self.jira_api_token.get_secret_value() if self.jira_api_token else ""
        if not self.jira_base_url or not self.jira_email or not token:
            raise RuntimeError(
                "Jira configuration missing. Set JIRA_BASE_URL, JIRA_EMAIL and JIRA_API_TOKEN."
            )
        return JiraConfig(
            base_url=self.jira_base_url,
            email=self.jira_email,
            api_token=self.jira_api_token,
            timeout=self.jira_timeout,
        )

    def llm_config(self) -> LLMConfig:
        common: dict[str, Any] = {
            "timeout": self.llm_timeout,
            "max_tokens": self.llm_max_tokens,
            "temperature": self.llm_temperature,
        }

        if self.llm_provider == "openai":
            if not self.openai_api_key:
                raise RuntimeError("OPENAI_API_KEY required when LLM_PROVIDER=openai")
            return LLMConfig(
                provider="openai",
                base_url="https://api.openai.com/v1",
                model=self.openai_model,
                api_key=self.openai_api_key,
                **common,
            )

        if self.llm_provider == "azure":
            if not self.azure_openai_endpoint or not self.azure_openai_api_key:
                raise RuntimeError("Azure OpenAI endpoint and key must be set.")
            return LLMConfig(
                provider="azure",
                base_url=self.azure_openai_endpoint,
                model=self.azure_openai_model,
                api_key=self.azure_openai_api_key,
                deployment=self.azure_openai_deployment or None,
                api_version=self.azure_openai_api_version,
                **common,
            )

        if self.llm_provider == "ollama":
            base = self.ollama_base_url
            if base.endswith("/api"):
                base = base[: -len("/api")]
            return LLMConfig(
                provider="ollama",
                base_url=base,
                model=self.ollama_model,
                **common,
            )

        raise RuntimeError(f"LLM_PROVIDER not supported: {self.llm_provider}")


settings = Settings()
