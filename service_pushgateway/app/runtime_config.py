"""
Reloadable runtime configuration for the push gateway.

The auth token and metric bucket can change while the service runs. They
live in a small YAML (or JSON) document in S3 and are re-read on a timer.
When no config bucket is set, the values come from process settings and
the timer has nothing to do.
"""

import asyncio
from typing import Any, Callable, Optional

import yaml
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, ConfigDict

from shared.config import BaseConfig
from shared.errors import ConfigError
from shared.logging import get_logger


class RuntimeConfig(BaseModel):
    """Values the ingest and read paths need per request."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    auth_token: str = ""
    metric_bucket: str = ""


ConfigSource = Callable[[], RuntimeConfig]


def settings_source(config: BaseConfig) -> ConfigSource:
    """Source reading the values straight from process settings."""
    def _load() -> RuntimeConfig:
        return RuntimeConfig(auth_token=config.auth_token, metric_bucket=config.metric_bucket)
    return _load


def s3_source(client: Any, bucket: str, key: str) -> ConfigSource:
    """Source reading a YAML/JSON document from S3."""
    def _load() -> RuntimeConfig:
        try:
            resp = client.get_object(Bucket=bucket, Key=key)
            document = yaml.safe_load(resp["Body"].read())
        except (BotoCoreError, ClientError) as e:
            raise ConfigError(f"failed to fetch config s3://{bucket}/{key}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"failed to parse config s3://{bucket}/{key}: {e}") from e

        if not isinstance(document, dict):
            raise ConfigError(f"config s3://{bucket}/{key} is not a mapping")
        return RuntimeConfig.model_validate(document)
    return _load


class RuntimeConfigManager:
    """Owns the current RuntimeConfig and refreshes it in the background."""

    def __init__(self, source: ConfigSource, reload_interval_seconds: int = 60):
        self._source = source
        self.reload_interval_seconds = reload_interval_seconds
        self.logger = get_logger("pushgateway.runtime_config")

        self._current: Optional[RuntimeConfig] = None
        self.reload_task: Optional[asyncio.Task] = None
        self.running = False

    @property
    def current(self) -> RuntimeConfig:
        if self._current is None:
            raise ConfigError("runtime config has not been loaded")
        return self._current

    @property
    def loaded(self) -> bool:
        return self._current is not None

    def auth_token(self) -> str:
        return self.current.auth_token

    def metric_bucket(self) -> str:
        return self.current.metric_bucket

    def load(self) -> RuntimeConfig:
        """Initial load. Failures propagate so the service refuses to start."""
        try:
            self._current = self._source()
        except ConfigError:
            raise
        except Exception as e:
            raise ConfigError(f"failed to load runtime config: {e}") from e
        self.logger.info("Runtime config loaded", metric_bucket=self._current.metric_bucket)
        return self._current

    def reload(self) -> bool:
        """Re-read the source; keep the previous value on failure.

        Returns:
            True when the stored value changed
        """
        try:
            fresh = self._source()
        except Exception as e:
            self.logger.error("Runtime config reload failed", error=str(e))
            return False

        if fresh == self._current:
            return False
        self._current = fresh
        self.logger.info("Runtime config reloaded", metric_bucket=fresh.metric_bucket)
        return True

    async def start(self):
        """Start the periodic reload task."""
        if not self.loaded:
            await asyncio.to_thread(self.load)
        self.running = True
        self.reload_task = asyncio.create_task(self._reload_loop())
        self.logger.info("Runtime config reloader started", interval=self.reload_interval_seconds)

    async def stop(self):
        """Stop the periodic reload task."""
        self.running = False
        if self.reload_task:
            self.reload_task.cancel()
            try:
                await self.reload_task
            except asyncio.CancelledError:
                pass
            self.reload_task = None

        self.logger.info("Runtime config reloader stopped")

    async def _reload_loop(self):
        while self.running:
            await asyncio.sleep(self.reload_interval_seconds)
            await asyncio.to_thread(self.reload)
