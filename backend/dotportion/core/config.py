# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
DotPortion Configuration - Single source of truth.
YAML is king. Env vars ONLY for secrets and deployment endpoints.
"""

import os
import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable application configuration.
    All values from YAML. No hidden state.
    """

    # -- Server --
    service_host: str = "0.0.0.0"
    service_port: int = 8000
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])

    # -- Paths --
    data_path: str = "./volumes/data"
    executions_path: str = "./volumes/executions"

    # -- URLs --
    frontend_url: str = "http://localhost:3000"
    base_url: str = "http://localhost:8000"
    websocket_url: str = "ws://localhost:8000/ws"

    # -- Orchestrator --
    dispatch_mode: str = "local"  # local | http
    orchestrator_url: str = "http://localhost:8000"
    connection_wait_timeout: float = 15.0
    node_timeout: float = 30.0
    max_steps: int = 1000
    http_timeout: float = 10.0

    # -- Email --
    smtp_host: str = "smtp.zoho.com"
    smtp_port: int = 465
    smtp_sender: str = "no-reply@dotportion.com"

    # -- Auth --
    jwt_algorithm: str = "HS256"
    jwt_expiry_hours: int = 6

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "json"

    # -- Secrets (from environment, never YAML) --
    def get_jwt_secret(self) -> str:
        return get_jwt_secret()

    def get_google_credentials(self) -> tuple:
        return os.getenv("GOOGLE_CLIENT_ID", ""), os.getenv("GOOGLE_CLIENT_SECRET", "")

    def get_github_credentials(self) -> tuple:
        return os.getenv("GITHUB_CLIENT_ID", ""), os.getenv("GITHUB_CLIENT_SECRET", "")

    def get_smtp_credentials(self) -> tuple:
        return os.getenv("SMTP_USER", ""), os.getenv("SMTP_PASSWORD", "")


# =============================================================================
# SECRETS - The ONLY thing from environment variables
# =============================================================================

def get_jwt_secret() -> str:
    """Signing key cannot be in version control."""
    return os.getenv("JWT_SECRET", "dev-only-insecure-secret")


# =============================================================================
# LOADER
# =============================================================================

def load_config(path: str = "configs/dotportion.yaml") -> Config:
    """
    Load configuration from YAML.
    Returns defaults if file doesn't exist.
    """
    if not Path(path).exists():
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
        # Server
        service_host=get(y, "server", "host") or defaults.service_host,
        service_port=get(y, "server", "port") or defaults.service_port,
        cors_origins=get(y, "server", "cors_origins") or defaults.cors_origins,

        # Paths
        data_path=get(y, "paths", "data") or defaults.data_path,
        executions_path=get(y, "paths", "executions") or defaults.executions_path,

        # URLs
        frontend_url=os.getenv("FRONTEND_URL") or get(y, "urls", "frontend") or defaults.frontend_url,
        base_url=os.getenv("BASE_URL") or get(y, "urls", "base") or defaults.base_url,
        websocket_url=os.getenv("WEBSOCKET_URL") or get(y, "urls", "websocket") or defaults.websocket_url,

        # Orchestrator
        dispatch_mode=get(y, "orchestrator", "dispatch_mode") or defaults.dispatch_mode,
        orchestrator_url=os.getenv("ORCHESTRATOR_URL") or get(y, "orchestrator", "url") or defaults.orchestrator_url,
        connection_wait_timeout=get(y, "orchestrator", "connection_wait_timeout") or defaults.connection_wait_timeout,
        node_timeout=get(y, "orchestrator", "node_timeout") or defaults.node_timeout,
        max_steps=get(y, "orchestrator", "max_steps") or defaults.max_steps,
        http_timeout=get(y, "http", "timeout") or defaults.http_timeout,

        # Email
        smtp_host=get(y, "email", "smtp_host") or defaults.smtp_host,
        smtp_port=get(y, "email", "smtp_port") or defaults.smtp_port,
        smtp_sender=get(y, "email", "sender") or defaults.smtp_sender,

        # Auth
        jwt_algorithm=get(y, "auth", "jwt_algorithm") or defaults.jwt_algorithm,
        jwt_expiry_hours=get(y, "auth", "jwt_expiry_hours") or defaults.jwt_expiry_hours,

        # Logging
        log_level=os.getenv("LOG_LEVEL") or get(y, "logging", "level") or defaults.log_level,
        log_format=get(y, "logging", "format") or defaults.log_format,
    )


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None:
        config_path = os.getenv("DOTPORTION_CONFIG_PATH", "configs/dotportion.yaml")
        _config = load_config(config_path)
    return _config


def reload_config() -> Config:
    """Force reload configuration."""
    global _config
    _config = None
    return get_config()
