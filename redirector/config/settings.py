import json
import logging
import os
from typing import List, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

LOG_LEVEL_ALIASES = {"WARN": "WARNING"}
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "OFF"]


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8000, ge=1, le=65535, description="Listen port")
    url_root: str = Field(default="/", description="Path prefix in front of the source URL")

    @field_validator('url_root')
    @classmethod
    def validate_url_root(cls, v):
        if not v.startswith("/"):
            raise ValueError("url_root must start with '/'")
        return v


class ResolverConfig(BaseModel):
    path: str = Field(default="yt-dlp", description="Resolver executable (yt-dlp compatible)")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Resolver call timeout in seconds")
    extra_args: List[str] = Field(default_factory=list, description="Extra arguments placed before -J")
    pass_through_headers: List[str] = Field(
        default=["User-Agent"],
        description="Request headers forwarded with --add-header"
    )


class CacheConfig(BaseModel):
    enabled: bool = Field(default=True, description="Cache resolved URLs until their expiry")
    max_entries: int = Field(default=1024, ge=1, description="Maximum number of cached source URLs")


class PolicyConfig(BaseModel):
    trusted_domains: List[str] = Field(
        default=["www.youtube.com", "youtu.be"],
        description="Hosts that may be resolved"
    )
    accepted_containers: List[str] = Field(default=["mp4"], description="Preferred container extensions")
    bypass_user_agent_markers: List[str] = Field(
        default=["Windows"],
        description="User-Agent substrings of clients that play the source page directly"
    )
    lock_mode: Literal["global", "per_key"] = Field(
        default="per_key",
        description="'global' serializes every resolution, 'per_key' only same-URL ones"
    )
    upstream_failure: Literal["redirect", "bad_gateway"] = Field(
        default="redirect",
        description="Response when the resolver fails: redirect to the source or 502"
    )

    @field_validator('trusted_domains')
    @classmethod
    def lowercase_domains(cls, v):
        return [domain.strip().lower() for domain in v if domain.strip()]


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR, OFF)")
    format: str = Field(default="%(message)s", description="Log format")
    enable_rich: bool = Field(default=True, description="Enable rich console logging")

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        level = LOG_LEVEL_ALIASES.get(level, level)
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"Log level must be one of {VALID_LOG_LEVELS}")
        return level


class ApiConfig(BaseModel):
    title: str = Field(default="VRC Video Redirector", description="API title")
    description: str = Field(default="Video URL redirector for VRChat Quest", description="API description")
    version: str = Field(default="0.3.0", description="API version")
    debug: bool = Field(default=False, description="Enable debug mode")


class Config(BaseSettings):
    """Main configuration model"""
    model_config = SettingsConfigDict(env_prefix="VVR_", env_nested_delimiter="__")

    server: ServerConfig = Field(default_factory=ServerConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @classmethod
    def load_from_file(cls, config_path: str) -> "Config":
        """Load configuration from a JSON file, falling back to env and defaults"""
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load config from {config_path}: {e}")
            logger.info("Using environment/default configuration")
            return cls()

        logger.info(f"Configuration loaded from {config_path}")
        return cls(**config_data)


def load_config(config_path: str = None) -> Config:
    """Load configuration with priority: config file > env vars > defaults"""
    config_path = config_path or os.getenv("CONFIG_PATH", "config.json")

    if os.path.exists(config_path):
        return Config.load_from_file(config_path)

    logger.debug(f"Config file not found at {config_path}, reading environment variables")
    return Config()
