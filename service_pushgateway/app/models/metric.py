"""
Metric data model for the push gateway.

A MetricFile is the unit clients push and the unit stored in the bucket:
one object per file, keyed by the file's name. Decoding and validation
are separate steps; callers always validate right after decoding.
"""

import re
from typing import Dict, List, Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.errors import DecodeError
from ..exporters.prometheus import render_metric, render_metric_file

# Name of the synthetic file produced by aggregation. Never persisted.
ALL_METRICS_NAME = "__all__"

TEXT_PATTERN = re.compile(r"[\w\-/]+", re.ASCII)
# Digits, optionally followed by any one character and a literal "+".
# Kept exactly as clients have been validated against so far.
VALUE_PATTERN = re.compile(r"\d+(.\+)?", re.ASCII)


def _matches(pattern: re.Pattern, text: str) -> bool:
    return pattern.fullmatch(text) is not None


class Metric(BaseModel):
    """A single named, typed, tagged value."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    type: str = ""
    tags: Dict[str, str] = Field(default_factory=dict)
    value: str = ""

    @field_validator("tags", mode="before")
    @classmethod
    def _null_tags(cls, v):
        return {} if v is None else v

    def is_valid(self) -> bool:
        """Check name, type, value and every tag against their patterns."""
        if not _matches(TEXT_PATTERN, self.name):
            return False
        if not _matches(TEXT_PATTERN, self.type):
            return False
        if not _matches(VALUE_PATTERN, self.value):
            return False
        for key, val in self.tags.items():
            if not _matches(TEXT_PATTERN, key) or not _matches(TEXT_PATTERN, val):
                return False
        return True

    def render(self) -> str:
        return render_metric(self.name, self.type, self.tags, self.value)


class MetricFile(BaseModel):
    """A named, ordered bundle of metrics."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    metrics: List[Metric] = Field(default_factory=list)

    @field_validator("metrics", mode="before")
    @classmethod
    def _null_metrics(cls, v):
        return [] if v is None else v

    def is_valid(self) -> bool:
        """A file needs a name and valid members; no members is fine."""
        if not self.name:
            return False
        return all(metric.is_valid() for metric in self.metrics)

    def render(self) -> str:
        return render_metric_file(self.metrics)

    def encode(self) -> bytes:
        """Canonical JSON bytes, as stored in the bucket."""
        return self.model_dump_json().encode("utf-8")

    @classmethod
    def decode(cls, raw: Union[bytes, str]) -> "MetricFile":
        """Parse JSON into a MetricFile without validating field contents.

        Raises:
            DecodeError: on malformed JSON or wrongly typed fields
        """
        try:
            return cls.model_validate_json(raw)
        except pydantic.ValidationError as e:
            raise DecodeError(
                f"failed to unmarshal: {e.errors()[0]['msg']}",
                details={"errors": e.error_count()}
            ) from e
        except ValueError as e:
            raise DecodeError(f"failed to unmarshal: {e}") from e
