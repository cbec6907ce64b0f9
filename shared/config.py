"""
Configuration management for services.
"""

import json
import os
from typing import Any

import yaml

from dotenv import load_dotenv


class ServiceConfig:
    """Configuration management for services using environment variables."""

    def __init__(self) -> None:
        """Initialize configuration by loading environment variables."""
        # Always load .env from the project root (where app.py is located)
        env_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.env"))
        load_dotenv(dotenv_path=env_path, override=False)
        self.config: dict[str, Any] = {}
        self.pipeline_config: dict[str, Any] = {}
        self.pipeline_config_path = os.getenv(
            "PIPELINE_CONFIG_PATH",
            os.path.join(os.path.dirname(__file__), "../config/pipeline.yaml"),
        )
        self.load_from_env()
        self.load_pipeline_config()

    def load_from_env(self) -> None:
        """Load configuration from environment variables."""
        self.config = {
            "openai_api_key": os.getenv("OPENAI_API_KEY"),
            "database_url": os.getenv("DATABASE_URL"),
            "redis_url": os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            "media_root": os.getenv("MEDIA_ROOT", "./media"),
            "media_url_prefix": os.getenv("MEDIA_URL_PREFIX", "/media"),
            "secret_key": os.getenv("SECRET_KEY", "supersecret"),
            "s3_bucket": os.getenv("S3_BUCKET"),
            "s3_region": os.getenv("S3_REGION"),
            "s3_endpoint_url": os.getenv("S3_ENDPOINT_URL"),
            "s3_public_base_url": os.getenv("S3_PUBLIC_BASE_URL"),
            "ffmpeg_binary": os.getenv("FFMPEG_BINARY", "ffmpeg"),
            "text_model": os.getenv("TEXT_MODEL", "gpt-4o"),
            "tts_model": os.getenv("TTS_MODEL", "tts-1-hd"),
            "provider_timeout": float(os.getenv("PROVIDER_TIMEOUT", "60")),
            "encoder_timeout": float(os.getenv("ENCODER_TIMEOUT", "600")),
            "worker_concurrency": int(os.getenv("WORKER_CONCURRENCY", "2")),
            "queue_max_attempts": int(os.getenv("QUEUE_MAX_ATTEMPTS", "3")),
            "queue_backoff_seconds": float(os.getenv("QUEUE_BACKOFF_SECONDS", "2")),
            "queue_visibility_timeout": float(os.getenv("QUEUE_VISIBILITY_TIMEOUT", "900")),
            "run_embedded_workers": os.getenv("RUN_EMBEDDED_WORKERS", "false").lower() == "true",
            "debug": os.getenv("DEBUG", "false").lower() == "true",
            "allowed_origins": json.loads(os.getenv("ALLOWED_ORIGINS", '["*"]')),
        }

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        value = self.config.get(key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value.

        Args:
            key: Configuration key
            value: Configuration value
        """
        self.config[key] = value

    def load_pipeline_config(self) -> None:
        """Load pipeline configuration from YAML file."""
        path = os.path.abspath(self.pipeline_config_path)
        try:
            with open(path, "r", encoding="utf-8") as stream:
                data = yaml.safe_load(stream) or {}
        except FileNotFoundError:
            data = {}
        self.pipeline_config = data

    def get_pipeline_value(self, path: str, default: Any = None) -> Any:
        """Retrieve a pipeline configuration value via dotted path."""
        env_override_key = f"PIPELINE_FLAG_{path.replace('.', '_').upper()}"
        env_value = os.getenv(env_override_key)
        if env_value is not None:
            return self._coerce_env_value(env_value, default)

        node: Any = self.pipeline_config
        for part in path.split("."):
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node if node is not None else default

    @staticmethod
    def _coerce_env_value(raw: str, default: Any) -> Any:
        lowered = raw.lower()
        if lowered in {"true", "false"}:
            return lowered == "true"
        if lowered.replace(".", "", 1).isdigit():
            try:
                return float(lowered) if "." in lowered else int(lowered)
            except ValueError:
                return raw
        return raw or default


# Global configuration instance
config = ServiceConfig()
