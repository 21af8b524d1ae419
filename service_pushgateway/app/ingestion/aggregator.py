"""
Read-path aggregation: merge every stored metric file into one.
"""

import asyncio
from typing import List, Optional, Sequence

from shared.errors import DecodeError, StoredObjectDecodeError, StoredObjectValidationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..models.metric import ALL_METRICS_NAME, Metric, MetricFile
from ..storage.object_store import ObjectStore


class MetricsAggregator:
    """Fetches stored metric files and concatenates their metrics.

    Fetches run concurrently, bounded by fetch_concurrency, but the result
    always follows listing order. Aggregation is all or nothing: the first
    object that cannot be fetched, decoded or validated aborts the whole
    read and cancels the remaining fetches.
    """

    def __init__(
        self,
        store: ObjectStore,
        fetch_concurrency: int = 8,
        metrics: Optional[MetricsCollector] = None
    ):
        if fetch_concurrency < 1:
            raise ValueError("fetch_concurrency must be at least 1")
        self.store = store
        self.fetch_concurrency = fetch_concurrency
        self.metrics = metrics
        self.logger = get_logger("pushgateway.aggregator")

    async def collect(self) -> MetricFile:
        """List every stored object and aggregate them."""
        keys = await self.store.list_keys()
        if self.metrics:
            with self.metrics.time_aggregation():
                result = await self.aggregate(keys)
            self.metrics.record_aggregation(len(keys))
            return result
        return await self.aggregate(keys)

    async def aggregate(self, keys: Sequence[str]) -> MetricFile:
        """Merge the metric files stored under keys, in the given order.

        Raises:
            StoreError: an object could not be fetched
            StoredObjectDecodeError: an object is not a well-formed metric file
            StoredObjectValidationError: an object holds an invalid metric file
        """
        semaphore = asyncio.Semaphore(self.fetch_concurrency)

        async def _bounded(key: str) -> MetricFile:
            async with semaphore:
                return await self.read_metric_file(key)

        tasks = [asyncio.create_task(_bounded(key)) for key in keys]
        try:
            files = await asyncio.gather(*tasks)
        except Exception as e:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            self.logger.error("Aggregation failed", objects=len(keys), error=str(e))
            raise

        merged: List[Metric] = []
        for metric_file in files:
            merged.extend(metric_file.metrics)

        self.logger.info("Aggregation completed", objects=len(keys), metric_count=len(merged))
        return MetricFile(name=ALL_METRICS_NAME, metrics=merged)

    async def read_metric_file(self, key: str) -> MetricFile:
        """Fetch, decode and validate a single stored object."""
        raw = await self.store.get(key)

        try:
            metric_file = MetricFile.decode(raw)
        except DecodeError as e:
            raise StoredObjectDecodeError(f"failed to decode {key}: {e.message}", details={"key": key}) from e

        if not metric_file.is_valid():
            raise StoredObjectValidationError(f"failed validation for {key}", details={"key": key})
        return metric_file
