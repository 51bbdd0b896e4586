"""Configuration management for the TMS backend.

Loads from a YAML config file with environment variable overrides.
Pattern: CONFIG__{SECTION}__{KEY} overrides nested YAML keys.
Example: CONFIG__REMINDERS__ENABLED=false

A handful of well-known variables are honoured directly because that is
how deployments usually pass secrets: DATABASE_URL, JWT_SECRET,
EMAIL_USER, EMAIL_PASS, CLIENT_ORIGIN, PORT.
"""

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field


# --- Sections ---


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8001
    cors_origins: list[str] = ["http://localhost:5173"]


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///data/tms.db"
    echo: bool = False


class AuthConfig(BaseModel):
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 7 * 24 * 60  # 7 days
    cookie_name: str = "token"


class EmailConfig(BaseModel):
    backend: Literal["smtp", "gmail_api", "log"] = "log"
    sender: str = "TMS Notifications <noreply@tms.local>"

    # SMTP
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_starttls: bool = True
    username: str = ""
    password: str = ""
    timeout_s: int = 10

    # Gmail API (OAuth refresh token flow)
    client_id: str = ""
    client_secret: str = ""
    refresh_token: str = ""


class RemindersConfig(BaseModel):
    enabled: bool = True
    cron: str = "0 8 * * *"
    timezone: str = "UTC"
    include_events: bool = False


class Settings(BaseModel):
    server: ServerConfig = ServerConfig()
    database: DatabaseConfig = DatabaseConfig()
    auth: AuthConfig = AuthConfig()
    email: EmailConfig = EmailConfig()
    reminders: RemindersConfig = RemindersConfig()
    environment: str = Field(default="development")


def _apply_env_overrides(config_dict: dict, prefix: str = "CONFIG") -> dict:
    """Apply environment variable overrides to config dict.

    Pattern: CONFIG__SECTION__KEY=value maps to config[section][key] = value
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}__"):
            continue
        parts = key[len(prefix) + 2 :].lower().split("__")
        target = config_dict
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        # Type coercion for common cases
        if value.lower() in ("true", "false"):
            value = value.lower() == "true"
        elif value.isdigit():
            value = int(value)
        target[parts[-1]] = value
    return config_dict


def _apply_named_env(config_dict: dict) -> dict:
    """Map the conventional deployment variables onto their sections."""
    named = {
        "DATABASE_URL": ("database", "url"),
        "JWT_SECRET": ("auth", "secret_key"),
        "EMAIL_USER": ("email", "username"),
        "EMAIL_PASS": ("email", "password"),
        "PORT": ("server", "port"),
        "ENVIRONMENT": (None, "environment"),
    }
    for env_name, (section, key) in named.items():
        value = os.getenv(env_name)
        if not value:
            continue
        target = config_dict.setdefault(section, {}) if section else config_dict
        target[key] = value

    origin = os.getenv("CLIENT_ORIGIN")
    if origin:
        server = config_dict.setdefault("server", {})
        origins = list(server.get("cors_origins") or ServerConfig().cors_origins)
        if origin not in origins:
            origins.append(origin)
        server["cors_origins"] = origins

    # Credentials present but no backend chosen: assume SMTP
    email = config_dict.get("email", {})
    if email.get("username") and email.get("password") and "backend" not in email:
        email["backend"] = "smtp"
        email.setdefault("sender", f"TMS Notifications <{email['username']}>")
    return config_dict


def load_config(config_path: Optional[str] = None) -> Settings:
    """Load configuration from YAML file with env overrides.

    Priority: CONFIG__ env vars > named env vars > YAML file > defaults
    """
    config_dict = {}

    # 1. Load YAML if exists
    if config_path is None:
        config_path = os.getenv("TMS_CONFIG_PATH", "config/tms.yml")
    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            config_dict = yaml.safe_load(f) or {}

    # 2. Named env vars, then generic overrides
    config_dict = _apply_named_env(config_dict)
    config_dict = _apply_env_overrides(config_dict)

    return Settings(**config_dict)


# Singleton for the service
_config: Optional[Settings] = None


def get_config() -> Settings:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(config_path: Optional[str] = None) -> Settings:
    global _config
    _config = load_config(config_path)
    return _config
