"""
Environment configuration for the analytics relay.
"""

import os
from typing import Mapping, Optional
from pydantic import BaseModel


class ConfigurationError(Exception):
    """Raised at startup when the relay is misconfigured."""


def _flag(environ: Mapping[str, str], key: str, default: str) -> bool:
    return environ.get(key, default).lower() == "true"


class Settings(BaseModel):
    """Relay settings, read from the environment."""
    api_key: str = "your-api-key-here"
    firehose_stream_name: str = "game-events-stream"
    aws_region: str = "us-east-1"
    use_mock_firehose: bool = True
    collector_url: str = "https://api.gameanalytics.com"
    collector_game_key: Optional[str] = None
    collector_secret_key: Optional[str] = None
    use_mock_collector: bool = True
    debug: bool = False
    sink_workers: int = 1
    source_name: str = "game_analytics_relay"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables."""
        if environ is None:
            environ = os.environ

        workers = environ.get("SINK_WORKERS", "1")
        try:
            sink_workers = int(workers)
        except ValueError:
            raise ConfigurationError(f"SINK_WORKERS must be an integer, got '{workers}'")

        return cls(
            api_key=environ.get("API_KEY", "your-api-key-here"),
            firehose_stream_name=environ.get("FIREHOSE_STREAM_NAME", "game-events-stream"),
            aws_region=environ.get("AWS_REGION", "us-east-1"),
            use_mock_firehose=_flag(environ, "USE_MOCK_FIREHOSE", "true"),
            collector_url=environ.get("COLLECTOR_URL", "https://api.gameanalytics.com"),
            collector_game_key=environ.get("COLLECTOR_GAME_KEY"),
            collector_secret_key=environ.get("COLLECTOR_SECRET_KEY"),
            use_mock_collector=_flag(environ, "USE_MOCK_COLLECTOR", "true"),
            debug=_flag(environ, "ANALYTICS_DEBUG", "false"),
            sink_workers=sink_workers,
        )

    def check(self) -> "Settings":
        """
        Validate settings that cannot be fixed at runtime.

        Raises:
            ConfigurationError: if a required startup parameter is missing
        """
        if not self.api_key:
            raise ConfigurationError("API_KEY is required")
        if self.sink_workers < 1:
            raise ConfigurationError("SINK_WORKERS must be at least 1")
        if not self.use_mock_collector:
            if not self.collector_game_key:
                raise ConfigurationError("COLLECTOR_GAME_KEY is required when USE_MOCK_COLLECTOR is false")
            if not self.collector_secret_key:
                raise ConfigurationError("COLLECTOR_SECRET_KEY is required when USE_MOCK_COLLECTOR is false")
        if not self.use_mock_firehose and not self.firehose_stream_name:
            raise ConfigurationError("FIREHOSE_STREAM_NAME is required when USE_MOCK_FIREHOSE is false")
        return self
