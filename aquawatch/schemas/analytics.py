"""
Analytics Query Schemas
=======================

Pydantic models validating the arguments of engine entry points. Engines
call :func:`validate_query`, which converts pydantic errors to the domain
``ValidationError``.
"""

from datetime import date, datetime
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from aquawatch.constants import MAX_PREDICTION_DAYS, MAX_TOLERANCE_MINUTES
from aquawatch.domain.exceptions import ValidationError

QueryT = TypeVar("QueryT", bound=BaseModel)


class _DateRangeMixin(BaseModel):
    start_date: Optional[date] = Field(default=None, description="Inclusive start of the range")
    end_date: Optional[date] = Field(default=None, description="Inclusive end of the range")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def to_calendar_date(cls, v):
        if isinstance(v, datetime):
            return v.date()
        return v

    @model_validator(mode="after")
    def check_order(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class GrowthAnalyticsQuery(_DateRangeMixin):
    """Growth rate / performance comparison over one or more devices."""
    model_config = ConfigDict(frozen=True)

    device_ids: List[str] = Field(..., min_length=1, description="Devices to analyse")

    @field_validator("device_ids")
    @classmethod
    def non_blank(cls, v: List[str]) -> List[str]:
        if any(not device_id or not device_id.strip() for device_id in v):
            raise ValueError("device ids must be non-empty")
        return v


class TrendQuery(_DateRangeMixin):
    model_config = ConfigDict(frozen=True)

    device_id: str = Field(..., min_length=1)


class StatisticsQuery(_DateRangeMixin):
    """Comprehensive statistics; ``device_ids=None`` means all devices."""
    model_config = ConfigDict(frozen=True)

    device_ids: Optional[List[str]] = Field(default=None)


class PredictionQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    device_id: str = Field(..., min_length=1)
    days_ahead: int = Field(default=30, ge=1, le=MAX_PREDICTION_DAYS, description="Forecast horizon in days")


class ComparisonQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    tolerance_minutes: float = Field(
        default=5,
        gt=0,
        le=MAX_TOLERANCE_MINUTES,
        description="Half-width of the matching window in minutes",
    )


def validate_query(model: Type[QueryT], **values) -> QueryT:
    """Build ``model`` from keyword arguments, raising the domain ValidationError."""
    try:
        return model(**values)
    except PydanticValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        raise ValidationError(
            f"Invalid {model.__name__} arguments",
            detail={"errors": errors},
        ) from exc
