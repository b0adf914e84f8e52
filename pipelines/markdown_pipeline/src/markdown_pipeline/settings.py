"""
Configuration settings for the markdown pipeline.

Environment variables:
    AZURE_OPENAI_KEY             Azure OpenAI API key (required)
    AZURE_OPENAI_ENDPOINT        Azure OpenAI resource endpoint (required)
    AZURE_OPENAI_API_VERSION     Chat completions API version
    TEXTCHUNK_MODEL              Model name sent to the deployment
    TEXTCHUNK_DEPLOYMENT         Deployment name (derived from the model when unset)
    TEXTCHUNK_CHUNK_SIZE         Segment size in tokens
    TEXTCHUNK_CHUNK_OVERLAP      Token overlap between consecutive segments
    TEXTCHUNK_MAX_ITERATIONS     Upper bound on oracle round trips per document
"""

from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from markdown_pipeline.errors import ConfigError


class Settings(BaseSettings):
    """Markdown pipeline settings."""

    model_config = SettingsConfigDict(
        env_prefix="TEXTCHUNK_",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Credentials keep the unprefixed Azure names.
    azure_openai_key: str | None = Field(default=None, validation_alias=AliasChoices("azure_openai_key"))
    azure_openai_endpoint: str | None = Field(
        default=None, validation_alias=AliasChoices("azure_openai_endpoint")
    )
    azure_openai_api_version: str = Field(
        default="2023-07-01-preview", validation_alias=AliasChoices("azure_openai_api_version")
    )

    model: str = "gpt-4"
    deployment: str | None = None
    timeout_s: float = 120.0

    # Segmentation
    chunk_size: int = 500
    chunk_overlap: int = 50
    encoding_name: str = "cl100k_base"

    # Window loop
    max_iterations: int = 1000

    def require_credentials(self) -> tuple[str, str]:
        if not self.azure_openai_key:
            raise ConfigError("Missing AZURE_OPENAI_KEY (or --azure-openai-key).")
        if not self.azure_openai_endpoint:
            raise ConfigError("Missing AZURE_OPENAI_ENDPOINT (or --azure-openai-endpoint).")
        if not self.azure_openai_endpoint.startswith(("http://", "https://")):
            raise ConfigError(f"Azure OpenAI endpoint must be an http(s) URL: {self.azure_openai_endpoint!r}")
        return self.azure_openai_key, self.azure_openai_endpoint


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
