"""Base model for location service payloads.

Every payload model inherits from :class:`BusTrackBaseModel` which
provides:

* ``alias_generator=to_camel`` so camelCase service keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that drops ``None`` and blank
  string values so the field default is used.

Timestamps use :data:`ServiceTimestamp`, which accepts ISO-8601 strings
and epoch numbers in seconds or milliseconds.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_service_timestamp(value: Any) -> Any:
    """Convert an epoch number or ISO string to a UTC datetime.

    Naive datetimes are assumed to be UTC.  Epochs that are not finite or
    fall outside the platform's time range raise ``ValueError``, which
    pydantic reports as a validation error.  Anything else is passed
    through for pydantic to reject.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        try:
            ts = float(value)
        except OverflowError:
            raise ValueError(f"timestamp out of range: {value!r}") from None
        if not math.isfinite(ts):
            raise ValueError(f"timestamp is not finite: {value!r}")
        if ts >= _MS_THRESHOLD:
            ts = ts / 1000
        try:
            return datetime.fromtimestamp(ts, tz=UTC)
        except (OverflowError, OSError, ValueError):
            raise ValueError(f"timestamp out of range: {value!r}") from None
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").replace(".", "", 1).isdigit():
            return parse_service_timestamp(float(text))
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return value
        return parse_service_timestamp(parsed)
    return value


ServiceTimestamp = Annotated[datetime, BeforeValidator(parse_service_timestamp)]
"""Annotated type that coerces service timestamps to tz-aware datetimes."""


class BusTrackBaseModel(BaseModel):
    """Base for immutable bustrack models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            cleaned[key] = value
        return cleaned
