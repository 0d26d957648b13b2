"""Validación de reglas de alerta.

Las reglas las escribe el servicio externo de gestión; aquí se aplican las
mismas invariantes antes de insertar (y en fixtures de tests).
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from common.clock import as_utc

from ..domain.alert_rule import MetricKind

TIME_RE = re.compile(r"^([0-1][0-9]|2[0-3]):([0-5][0-9])$")


class AlertRuleIn(BaseModel):
    """Regla de alerta entrante (camelCase o snake_case)."""

    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(..., validation_alias=AliasChoices("deviceId", "device_id"))
    metric: MetricKind = Field(..., validation_alias=AliasChoices("metric", "type"))
    min_threshold: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("minThreshold", "min_threshold"),
    )
    max_threshold: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("maxThreshold", "max_threshold"),
    )
    start_time: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("startTime", "start_time"),
    )
    end_time: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("endTime", "end_time"),
    )
    start_date: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("startDate", "start_date"),
    )
    end_date: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("endDate", "end_date"),
    )
    days_of_week: List[int] = Field(
        default_factory=list, validation_alias=AliasChoices("daysOfWeek", "days_of_week"),
    )
    emails: List[EmailStr] = Field(..., min_length=1)
    enabled: bool = True

    @field_validator("device_id")
    @classmethod
    def validate_device_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Device is required")
        return v.strip()

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not TIME_RE.match(v):
            raise ValueError("Time must be in HH:MM format (e.g., 09:30)")
        return v

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @field_validator("days_of_week")
    @classmethod
    def validate_days(cls, v: List[int]) -> List[int]:
        if any(d < 0 or d > 6 for d in v):
            raise ValueError(
                "Days of week must be integers between 0 (Sunday) and 6 (Saturday)"
            )
        return sorted(set(v))

    @field_validator("emails", mode="before")
    @classmethod
    def strip_emails(cls, v):
        if isinstance(v, list):
            return [e.strip() if isinstance(e, str) else e for e in v]
        return v

    @model_validator(mode="after")
    def validate_cross_fields(self) -> "AlertRuleIn":
        if self.min_threshold is None and self.max_threshold is None:
            raise ValueError("At least one threshold (min or max) must be provided")
        if (
            self.min_threshold is not None
            and self.max_threshold is not None
            and not self.min_threshold < self.max_threshold
        ):
            raise ValueError("Minimum threshold must be less than maximum threshold")
        if self.start_date and self.end_date and not self.start_date < self.end_date:
            raise ValueError("Start date must be before end date")
        return self

    def to_row(self) -> dict:
        return {
            "device_id": self.device_id,
            "metric": self.metric.value,
            "min_threshold": self.min_threshold,
            "max_threshold": self.max_threshold,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "days_of_week": list(self.days_of_week),
            "emails": list(self.emails),
            "enabled": self.enabled,
        }
