"""Application settings for story-safe."""

import os
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from story_safe.runtime_config import current_runtime_config

TOKEN_ENV_KEYS: tuple[str, ...] = (
    "STORYBLOK_DELIVERY_API_TOKEN",
    "STORY_SAFE_DELIVERY_API_TOKEN",
)


class Settings(BaseSettings):
    """Runtime settings for the Storyblok delivery API."""

    model_config = SettingsConfigDict(
        env_prefix="STORY_SAFE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    delivery_api_token: str = Field(
        default="",
        validation_alias=AliasChoices(*TOKEN_ENV_KEYS),
    )
    api_base_url: str = "https://api.storyblok.com/v2"
    timeout_s: float = 10.0
    version: Literal["draft", "published"] = "published"

    @staticmethod
    def _parse_key_file(path: Path, *, allowed_names: set[str]) -> str:
        try:
            raw = path.read_text(encoding="utf-8").strip()
        except OSError:
            return ""
        if not raw:
            return ""
        first_line = raw.splitlines()[0].strip()
        if not first_line:
            return ""
        if "=" in first_line:
            key_name, value = first_line.split("=", 1)
            if key_name.strip().upper() not in allowed_names:
                return ""
            return value.strip().strip('"').strip("'")
        return first_line.strip().strip('"').strip("'")

    @classmethod
    def from_runtime(cls) -> "Settings":
        """Construct settings from runtime config + direct token env/key-file fallback."""
        runtime = current_runtime_config()
        config_root = runtime.config_path.parent.resolve()

        resolved_token = direct_delivery_token()
        if not resolved_token:
            for candidate in runtime.token_files:
                candidate_path = Path(candidate).expanduser()
                path = (
                    candidate_path
                    if candidate_path.is_absolute()
                    else (config_root / candidate_path).resolve()
                )
                if not path.exists() or not path.is_file():
                    continue
                parsed = cls._parse_key_file(path, allowed_names=set(TOKEN_ENV_KEYS))
                if parsed:
                    resolved_token = parsed
                    break

        return cls(
            delivery_api_token=resolved_token,
            api_base_url=runtime.api_base_url,
            timeout_s=runtime.timeout_s,
            version=runtime.version,
        )


def direct_delivery_token() -> str:
    """Read the delivery token from the process environment at call time."""
    for name in TOKEN_ENV_KEYS:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return ""
