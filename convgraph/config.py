from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)

    # Analysis Limits
    max_files: int = Field(default=200)
    max_total_chars: int = Field(default=2_000_000)
    max_file_size_bytes: int = Field(default=10 * 1024 * 1024)

    # Parser Configuration
    include_docstrings: bool = Field(default=True)
    value_snippet_max_len: int = Field(default=120)
    supported_extensions: str = Field(default=".py")

    # Output Configuration
    graph_output_path: str = Field(default="graph.json")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @field_validator("max_files", "max_total_chars", "value_snippet_max_len")
    @classmethod
    def ensure_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @property
    def supported_extensions_list(self) -> List[str]:
        """Get supported extensions as a list."""
        return [ext.strip().lower() for ext in self.supported_extensions.split(",") if ext.strip()]


settings = Settings()
