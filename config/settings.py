"""Configuration management for diff markers, limits, and logging."""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Inline markers (word-level changes)
    insert_class: str = Field(
        default="diff-insert",
        description="CSS class of the inline marker wrapped around inserted words",
    )
    delete_class: str = Field(
        default="diff-delete",
        description="CSS class of the inline marker wrapped around removed words",
    )

    # Block markers (whole structural units)
    insert_block_class: str = Field(
        default="diff-insert-block",
        description="CSS class of the block marker wrapped around an added unit",
    )
    delete_block_class: str = Field(
        default="diff-delete-block",
        description="CSS class of the block marker wrapped around a removed unit",
    )
    added_label_class: str = Field(
        default="added-element-label",
        description="CSS class of the label shown above an added unit",
    )
    removed_label_class: str = Field(
        default="removed-element-label",
        description="CSS class of the label shown above a removed unit",
    )
    show_label_icons: bool = Field(
        default=False,
        description="Prefix unit labels with a per-kind icon (e.g. an image icon before 'Image Added')",
    )

    # Extraction
    identity_key_length: int = Field(
        default=20,
        description="Number of text/attribute characters kept in a unit's identity key",
    )

    # Limits
    max_diff_tokens: int = Field(
        default=20000,
        description="Word tokens per side above which text reconciliation falls back to sentence tokens",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Default level for configure_logging()")

    class Config:
        env_prefix = "RICHDIFF_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


def get_settings() -> Settings:
    """Return a cached settings instance."""
    return _get_settings()


@lru_cache()
def _get_settings() -> Settings:
    return Settings()


settings = get_settings()
