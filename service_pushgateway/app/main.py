"""
Push gateway service.

Clients push metric files to /metric; scrapers read the merged fleet view
from / or /metrics.
"""

from typing import Any, Dict, Optional

from fastapi import Depends, Request, Response

from shared.base_service import BaseService
from shared.config import ServiceConfig

from .auth.bearer import BearerTokenAuth
from .ingestion.aggregator import MetricsAggregator
from .ingestion.ingest import MetricsIngestor, decode_transport
from .runtime_config import RuntimeConfigManager, s3_source, settings_source
from .storage.object_store import ObjectStore, create_object_store, create_s3_client

EXPOSITION_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


class PushGatewayService(BaseService):
    """Push gateway service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        store: Optional[ObjectStore] = None,
        runtime_config: Optional[RuntimeConfigManager] = None
    ):
        super().__init__("pushgateway", 8080, config=config)

        self.runtime_config = runtime_config or self._create_runtime_config()
        self.store = store or create_object_store(self.config, self.runtime_config.metric_bucket)
        self.auth = BearerTokenAuth(self.runtime_config.auth_token)
        self.ingestor = MetricsIngestor(self.store)
        self.aggregator = MetricsAggregator(
            self.store,
            fetch_concurrency=self.config.fetch_concurrency,
            metrics=self.metrics
        )

        self._setup_gateway_routes()

    def _create_runtime_config(self) -> RuntimeConfigManager:
        if self.config.config_bucket:
            source = s3_source(
                create_s3_client(self.config),
                self.config.config_bucket,
                self.config.config_key
            )
        else:
            source = settings_source(self.config)
        return RuntimeConfigManager(source, self.config.config_reload_seconds)

    def _setup_gateway_routes(self):
        """Set up ingest and read routes."""

        @self.app.post("/metric", dependencies=[Depends(self.auth)])
        async def push_metric_file(request: Request):
            """Store one metric file under its name."""
            body = decode_transport(
                await request.body(),
                base64_encoded=request.headers.get("Content-Transfer-Encoding", "").lower() == "base64"
            )
            await self.ingestor.ingest(body)
            self.metrics.record_ingest()
            return Response(status_code=200)

        async def read_all_metrics() -> Response:
            all_metrics = await self.aggregator.collect()
            return Response(content=all_metrics.render(), media_type=EXPOSITION_CONTENT_TYPE)

        self.app.add_api_route("/", read_all_metrics, methods=["GET"])
        self.app.add_api_route("/metrics", read_all_metrics, methods=["GET"])

    async def _check_dependencies(self) -> Dict[str, Any]:
        return {
            "runtime_config": "ok" if self.runtime_config.loaded else "error",
            "storage_backend": self.config.storage_backend
        }

    async def start(self):
        """Load runtime config and start reloading it."""
        await self.runtime_config.start()
        self.logger.info("Push gateway components started")

    async def stop(self):
        await self.runtime_config.stop()
        self.logger.info("Push gateway components stopped")


def create_app():
    """Create push gateway application."""
    service = PushGatewayService()
    return service.app


if __name__ == "__main__":
    service = PushGatewayService()
    service.run()
