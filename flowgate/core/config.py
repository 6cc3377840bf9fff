# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
flowgate configuration - single source of truth.
YAML is king. Env vars ONLY for secrets.

- ALL configuration in plain text (YAML)
- NO hidden state - everything inspectable via `cat`, `grep`
"""

import logging
import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "configs/flowgate.yaml"


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable application configuration.
    All values from YAML. No hidden state.
    """

    # -- Engine --
    strict_leveling: bool = True
    prune_untaken_branches: bool = True
    node_timeout_seconds: Optional[float] = None

    # -- Approval --
    approval_timeout_seconds: float = 86400.0
    approval_base_url: str = "http://localhost:3001"
    approval_subject: str = "Approval Required: Workflow Update"
    approval_notify_to: Optional[str] = None

    # -- HTTP --
    http_timeout: float = 30.0
    http_timeout_long: float = 600.0

    # -- AI --
    ai_model: str = "gpt-5-mini"
    adaptation_model: str = "gpt-5"
    embedding_model: str = "text-embedding-3-small"
    ai_max_tokens: int = 4096

    # -- Email --
    email_from: str = "Workflow System <onboarding@resend.dev>"

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "json"
    run_log_dir: Optional[str] = None

    @property
    def run_log_path(self) -> Optional[Path]:
        return Path(self.run_log_dir) if self.run_log_dir else None


# =============================================================================
# SECRETS - The ONLY thing from environment variables
# =============================================================================

def get_openai_api_key() -> Optional[str]:
    """API keys cannot be in version control."""
    return os.getenv("OPENAI_API_KEY")


def get_resend_api_key() -> Optional[str]:
    return os.getenv("RESEND_API_KEY")


def get_firecrawl_api_key() -> Optional[str]:
    return os.getenv("FIRECRAWL_API_KEY")


def get_reducto_api_key() -> Optional[str]:
    return os.getenv("REDUCTO_API_KEY")


def get_slack_bot_token() -> Optional[str]:
    return os.getenv("SLACK_BOT_TOKEN")


def get_notion_api_key() -> Optional[str]:
    return os.getenv("NOTION_API_KEY")


# =============================================================================
# LOADER
# =============================================================================

def load_config(path: str = DEFAULT_CONFIG_PATH) -> Config:
    """
    Load configuration from YAML.
    Returns defaults if file doesn't exist.
    """
    if not Path(path).exists():
        logger.info("Config not found at %s, using defaults", path)
        return Config()

    with open(path) as f:
        y = yaml.safe_load(f) or {}

    # Helper to safely navigate nested dicts
    def get(d: dict, *keys, default=None):
        for k in keys:
            if not isinstance(d, dict):
                return default
            d = d.get(k, {})
        return d if d != {} else default

    defaults = Config()

    return Config(
        # Engine
        strict_leveling=get(y, "engine", "strict_leveling", default=defaults.strict_leveling),
        prune_untaken_branches=get(
            y, "engine", "prune_untaken_branches", default=defaults.prune_untaken_branches
        ),
        node_timeout_seconds=get(y, "engine", "node_timeout_seconds"),

        # Approval
        approval_timeout_seconds=float(
            get(y, "approval", "default_timeout_seconds") or defaults.approval_timeout_seconds
        ),
        approval_base_url=os.getenv("API_BASE_URL")
        or get(y, "approval", "base_url")
        or defaults.approval_base_url,
        approval_subject=get(y, "approval", "default_subject") or defaults.approval_subject,
        approval_notify_to=get(y, "approval", "notify_to"),

        # HTTP
        http_timeout=get(y, "http", "timeouts", "default") or defaults.http_timeout,
        http_timeout_long=get(y, "http", "timeouts", "long_running") or defaults.http_timeout_long,

        # AI
        ai_model=get(y, "ai", "model") or defaults.ai_model,
        adaptation_model=get(y, "ai", "adaptation_model") or defaults.adaptation_model,
        embedding_model=get(y, "ai", "embedding_model") or defaults.embedding_model,
        ai_max_tokens=get(y, "ai", "max_tokens") or defaults.ai_max_tokens,

        # Email
        email_from=os.getenv("RESEND_FROM_EMAIL")
        or get(y, "email", "from_address")
        or defaults.email_from,

        # Logging
        log_level=os.getenv("LOG_LEVEL") or get(y, "logging", "level") or defaults.log_level,
        log_format=get(y, "logging", "format") or defaults.log_format,
        run_log_dir=get(y, "logging", "run_log_dir"),
    )


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None:
        config_path = os.getenv("FLOWGATE_CONFIG_PATH", DEFAULT_CONFIG_PATH)
        _config = load_config(config_path)
    return _config


def reload_config() -> Config:
    """Force reload configuration."""
    global _config
    _config = None
    return get_config()
