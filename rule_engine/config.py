from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Optional cap on nesting of documents read from an external store; unlimited by default.
    max_document_depth: Optional[int] = Field(default=None, ge=1)
    # When False, unknown keys in a node document are dropped instead of rejected.
    strict_documents: bool = True
    string_case_sensitive: bool = True
    # Parsed conditions kept per predicate registry (least recently used are evicted).
    parse_cache_size: int = Field(default=1024, ge=1)

    model_config = SettingsConfigDict(env_prefix="RULE_ENGINE_", env_file=".env", extra="ignore")


settings = Settings()  # singleton
