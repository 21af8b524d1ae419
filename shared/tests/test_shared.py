"""
Tests for shared configuration, errors and self-metrics.
"""

import os
from unittest import mock

import pydantic
import pytest

from shared.config import ServiceConfig, get_config
from shared.errors import (
    AuthenticationError,
    ConfigError,
    DecodeError,
    GatewayException,
    StoreError,
    StoredObjectDecodeError,
    StoredObjectValidationError,
    ValidationError,
)
from shared.metrics import MetricsCollector


class TestConfig:
    """Test cases for service configuration."""

    def test_defaults(self):
        """Test default values."""
        with mock.patch.dict(os.environ, {}, clear=True):
            config = get_config("pushgateway", 8080)

        assert config.service_name == "pushgateway"
        assert config.port == 8080
        assert config.storage_backend == "s3"
        assert config.config_key == "config.yml"
        assert config.config_reload_seconds == 60
        assert config.fetch_concurrency == 8

    def test_env_prefix(self):
        """Test settings are read from PUSHGW_ variables."""
        env = {
            "PUSHGW_METRIC_BUCKET": "fleet-metrics",
            "PUSHGW_AUTH_TOKEN": "abc",
            "PUSHGW_FETCH_CONCURRENCY": "3",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            config = get_config("pushgateway", 8080)

        assert config.metric_bucket == "fleet-metrics"
        assert config.auth_token == "abc"
        assert config.fetch_concurrency == 3

    def test_rejects_zero_concurrency(self):
        """Test fetch_concurrency must be positive."""
        with pytest.raises(pydantic.ValidationError):
            get_config("pushgateway", 8080, fetch_concurrency=0)

    def test_no_tracing_settings(self):
        """Test only settings the service reads are declared."""
        assert "enable_tracing" not in ServiceConfig.model_fields
        assert "otel_exporter" not in ServiceConfig.model_fields


class TestErrors:
    """Test cases for the exception hierarchy."""

    @pytest.mark.parametrize("exc, code, status", [
        (DecodeError(), "DECODE_ERROR", 400),
        (ValidationError(), "VALIDATION_ERROR", 400),
        (AuthenticationError(), "AUTHENTICATION_ERROR", 401),
        (StoreError(), "STORE_ERROR", 502),
        (StoredObjectDecodeError(), "DECODE_ERROR", 502),
        (StoredObjectValidationError(), "VALIDATION_ERROR", 502),
        (ConfigError(), "CONFIG_ERROR", 500),
    ])
    def test_codes_and_status(self, exc, code, status):
        """Test each error carries its code and HTTP status."""
        assert isinstance(exc, GatewayException)
        assert exc.code == code
        assert exc.status_code == status

    def test_to_response(self):
        """Test conversion to the error response model."""
        response = ValidationError("failed validation for a", details={"key": "a"}).to_response()

        assert response.trace_id is None
        assert response.code == "VALIDATION_ERROR"
        assert response.message == "failed validation for a"
        assert response.details == {"key": "a"}


class TestMetricsCollector:
    """Test cases for self-instrumentation."""

    def test_collectors_are_isolated(self):
        """Test two collectors can coexist without registry clashes."""
        first = MetricsCollector("pushgateway")
        second = MetricsCollector("pushgateway")

        first.record_ingest()

        assert first.registry.get_sample_value("metric_files_ingested_total") == 1.0
        assert second.registry.get_sample_value("metric_files_ingested_total") == 0.0

    def test_record_http_request(self):
        """Test HTTP requests are counted by labels."""
        collector = MetricsCollector("pushgateway")
        collector.record_http_request("GET", "/metrics", 200, 0.01)

        value = collector.registry.get_sample_value(
            "http_requests_total",
            {"method": "GET", "endpoint": "/metrics", "status_code": "200"}
        )
        assert value == 1.0

    def test_export(self):
        """Test the registry renders as exposition text."""
        collector = MetricsCollector("pushgateway")
        collector.record_error("STORE_ERROR")

        assert b'errors_total{error_type="STORE_ERROR"} 1.0' in collector.export()

    def test_exposes_only_recording_api(self):
        """Test metrics are read through the registry, not the collector."""
        assert not hasattr(MetricsCollector, "get_metric")
