"""Runtime configuration for plotty."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="PLOTTY_", env_file=".env", extra="ignore")

    app_name: str = "plotty"
    log_level: str = "INFO"
    rcon_address: str = Field(
        default="127.0.0.1:25575",
        description="host:port of the Minecraft server's RCON listener.",
    )
    rcon_password: str = ""
    rcon_timeout_seconds: float = 5.0
    registry_path: str = Field(
        default="data/regions.json",
        description="JSON document holding all plots and per-owner plot counters.",
    )
    default_world: str = "world"
    confirmation_timeout_seconds: float = Field(default=60.0, gt=0)
    collision_mode: Literal["corners", "axis"] = Field(
        default="corners",
        description="'corners' uses strict corner containment, 'axis' also catches crossing plots.",
    )
    serialize_commits: bool = True
    mojang_api_root: str = "https://api.mojang.com"


settings = Settings()
