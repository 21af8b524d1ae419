"""
Ingest path: decode, validate and store one pushed metric file.
"""

import base64
import binascii

from shared.errors import DecodeError, ValidationError
from shared.logging import get_logger
from ..models.metric import MetricFile
from ..storage.object_store import ObjectStore


def decode_transport(body: bytes, base64_encoded: bool = False) -> bytes:
    """Undo transport encoding applied before the body reached us."""
    if not base64_encoded:
        return body
    try:
        return base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"failed to decode: {e}") from e


class MetricsIngestor:
    """Stores validated metric files under their own name."""

    def __init__(self, store: ObjectStore):
        self.store = store
        self.logger = get_logger("pushgateway.ingest")

    async def ingest(self, raw: bytes) -> MetricFile:
        """Decode and validate raw, then write it to the store.

        Nothing is written unless validation passes. An existing object
        with the same name is replaced.

        Raises:
            DecodeError: raw is not a well-formed metric file
            ValidationError: a field fails its pattern or the name is empty
            StoreError: the write failed
        """
        metric_file = MetricFile.decode(raw)

        if not metric_file.is_valid():
            self.logger.warning("Rejected metric file", file_name=metric_file.name)
            raise ValidationError("failed validation", details={"file_name": metric_file.name})

        await self.store.put(metric_file.name, metric_file.encode())

        self.logger.info(
            "Metric file stored",
            file_name=metric_file.name,
            metric_count=len(metric_file.metrics)
        )
        return metric_file
