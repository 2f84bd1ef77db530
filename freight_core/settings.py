from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Service settings.

    Defaults are local (SQLite file next to the repo, bundled policy file);
    every value can be overridden with a `FREIGHT_*` environment variable.
    """

    model_config = SettingsConfigDict(env_prefix="FREIGHT_", extra="ignore")

    db_url: str | None = None
    policy_config_path: str | None = None
    log_level: str = "INFO"
    seed_demo_data: bool = True

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        return f"sqlite:///{repo_root / 'freight.db'}"

    def resolved_policy_config_path(self) -> Path:
        if self.policy_config_path:
            return Path(self.policy_config_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "config" / "policy.yaml"


@lru_cache
def get_settings() -> Settings:
    return Settings()
