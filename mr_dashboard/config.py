"""Application configuration loaded from config.json."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

# Project root is one level up from mr_dashboard/
PROJECT_ROOT = Path(__file__).parent.parent

# Database file path
DB_PATH = PROJECT_ROOT / "mr_dashboard.db"

# Environment variables that override secrets from config.json
SECRET_ENV_OVERRIDES = {
    ("gitlab", "token"): "GITLAB_TOKEN",
    ("ai", "providers", "openai", "api_key"): "OPENAI_API_KEY",
    ("ai", "providers", "gemini", "api_key"): "GEMINI_API_KEY",
}

DEFAULT_AI_PROVIDERS = {
    "openai": {
        "name": "OpenAI",
        "api_url": "https://api.openai.com/v1/chat/completions",
        "api_key": "",
        "model": "gpt-3.5-turbo",
    },
    "gemini": {
        "name": "Gemini",
        "api_url": "https://generativelanguage.googleapis.com/v1beta/models",
        "api_key": "",
        "model": "gemini-2.0-flash",
    },
}


def get_db_path() -> Path:
    """Get the database path from config, with fallback to PROJECT_ROOT/mr_dashboard.db."""
    config = get_config()
    db_path = config.get("db_path")
    if db_path:
        return Path(db_path)
    return DB_PATH


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    for path, env_name in SECRET_ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if not value:
            continue
        node = config
        for key in path[:-1]:
            node = node.setdefault(key, {})
        node[path[-1]] = value
    return config


def load_config(config_path: Path = None) -> Dict[str, Any]:
    """Load configuration from config.json.

    Args:
        config_path: Optional path to config file. Defaults to PROJECT_ROOT/config.json.

    Returns:
        Configuration dictionary. A missing file yields an empty config so the
        built-in defaults apply.
    """
    if config_path is None:
        config_path = PROJECT_ROOT / "config.json"
    if not Path(config_path).exists():
        return _apply_env_overrides({})
    with open(config_path) as f:
        return _apply_env_overrides(json.load(f))


# Singleton config instance
_config: Dict[str, Any] = None


def get_config() -> Dict[str, Any]:
    """Get the singleton config dictionary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


@dataclass
class GitLabSettings:
    """Connection settings for the GitLab REST API."""
    api_url: str = "https://gitlab.com/api/v4"
    token: str = ""
    project_id: str = ""
    timeout: float = 30.0
    reviewer_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None):
        """Build from the "gitlab" section of the config dict."""
        section = (config if config is not None else get_config()).get("gitlab", {})
        return cls(
            api_url=section.get("api_url", cls.api_url).rstrip("/"),
            token=section.get("token", ""),
            project_id=str(section.get("project_id", "")),
            timeout=float(section.get("timeout", 30.0)),
            reviewer_ids=[str(r) for r in section.get("reviewer_ids", [])],
        )


def get_ai_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return the "ai" section merged over the built-in provider defaults."""
    section = (config if config is not None else get_config()).get("ai", {})
    providers = {}
    for key, defaults in DEFAULT_AI_PROVIDERS.items():
        providers[key] = {**defaults, **section.get("providers", {}).get(key, {})}
    for key, extra in section.get("providers", {}).items():
        if key not in providers:
            providers[key] = dict(extra)
    return {
        "default_provider": section.get("default_provider", "gemini"),
        "timeout": float(section.get("timeout", 60.0)),
        "providers": providers,
    }
