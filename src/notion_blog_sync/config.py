"""Configuration helpers for the Notion blog sync service."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", populate_by_name=True
    )

    notion_api_key: str | None = Field(None, alias="NOTION_API_KEY")
    notion_database_id: str | None = Field(None, alias="NOTION_DATABASE_ID")
    notion_base_url: str = Field(
        "https://api.notion.com/v1", alias="NOTION_BASE_URL"
    )
    notion_timeout: float = Field(
        30.0, alias="NOTION_TIMEOUT", description="HTTP timeout per Notion request."
    )
    page_size: int = Field(
        100, ge=1, le=100, description="Records per database query page (Notion max 100)."
    )
    published_property: str = Field(
        "Published", description="Checkbox property that marks a post as published."
    )
    sort_property: str = Field(
        "Date", description="Date property used to sort posts (newest first)."
    )

    r2_bucket: str | None = Field(None, alias="R2_BUCKET")
    r2_account_id: str | None = Field(None, alias="R2_ACCOUNT_ID")
    r2_endpoint_url: str | None = Field(
        None,
        alias="R2_ENDPOINT_URL",
        description="S3 endpoint; derived from R2_ACCOUNT_ID when unset.",
    )
    r2_access_key_id: str | None = Field(None, alias="R2_ACCESS_KEY_ID")
    r2_secret_access_key: str | None = Field(None, alias="R2_SECRET_ACCESS_KEY")
    local_store_dir: str | None = Field(
        None,
        alias="LOCAL_STORE_DIR",
        description="Directory used as the object store when no R2 bucket is bound.",
    )

    artifact_key: str = Field("blog-data.json", alias="ARTIFACT_KEY")
    backup_prefix: str = Field("backups/", alias="BACKUP_PREFIX")
    cache_max_age: int = Field(
        3600, description="Cache-Control max-age (seconds) for written artifacts."
    )
    list_limit: int = Field(
        1000, description="Maximum number of keys returned by /list-bucket."
    )

    sync_cron: str = Field("0 * * * *", alias="SYNC_CRON")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    def resolved_r2_endpoint(self) -> str | None:
        if self.r2_endpoint_url:
            return self.r2_endpoint_url
        if self.r2_account_id:
            return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"
        return None


def get_settings() -> Settings:
    """Return a settings instance built from the current environment."""
    return Settings()
