"""Settings loader for Dicetray."""

from pathlib import Path
from typing import Any

import tomllib
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _norm_level(v: Any, default: str) -> str:
    if isinstance(v, str):
        return v.upper()
    if isinstance(v, bool):
        return default if v else "NONE"
    return default


def _toml_settings_source() -> dict[str, Any]:
    """Load settings from config.toml with keys mapped to Settings fields.

    This source has LOWER priority than env/.env so those can override TOML.
    """
    cfg_path = Path("config.toml")
    if not cfg_path.exists():
        return {}
    with cfg_path.open("rb") as f:
        t = tomllib.load(f)

    dice_cfg = t.get("dice", {}) or {}
    log_cfg = t.get("logging", {}) or {}
    out: dict[str, Any] = {
        "env": t.get("app", {}).get("env", "dev"),
        "roll_delay_seconds": dice_cfg.get("roll_delay_seconds", 0.8),
        "logging_level": log_cfg.get("level", "INFO"),
        "logging_file_path": log_cfg.get("file_path", "logs/dicetray.jsonl"),
        "logging_max_bytes": log_cfg.get("max_bytes", 5_000_000),
        "logging_backup_count": log_cfg.get("backup_count", 5),
    }
    if dice_cfg.get("seed") is not None:
        out["rng_seed"] = int(dice_cfg["seed"])

    # Per-handler levels: strings INFO|DEBUG|WARNING|ERROR|CRITICAL|NONE, or
    # bools where True means "use the overall level" and False means NONE.
    overall = str(out["logging_level"]).upper()
    out["logging_console"] = _norm_level(log_cfg.get("console"), overall)
    out["logging_file"] = _norm_level(log_cfg.get("to_file"), overall)
    return out


class Settings(BaseSettings):
    env: str = Field(default="dev")

    # --- Dice ---
    roll_delay_seconds: float = Field(default=0.8, ge=0)
    rng_seed: int | None = None

    # --- Logging ---
    logging_level: str = "INFO"
    logging_console: str = "INFO"
    logging_file: str = "NONE"
    logging_file_path: str = "logs/dicetray.jsonl"
    logging_max_bytes: int = 5_000_000
    logging_backup_count: int = 5

    model_config = SettingsConfigDict(
        env_prefix="DICETRAY_",
        case_sensitive=False,
        env_file=".env",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Precedence (highest to lowest):
        # 1) init_settings (explicit overrides in code/tests)
        # 2) dotenv (.env in cwd)
        # 3) env_settings (OS env)
        # 4) TOML (config.toml in cwd)
        # 5) file_secret_settings
        return (
            init_settings,
            dotenv_settings,
            env_settings,
            _toml_settings_source,
            file_secret_settings,
        )


def load_settings(**overrides: Any) -> Settings:
    return Settings(**overrides)
