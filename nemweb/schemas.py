"""Pydantic schemas for response payloads."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UnitRead(BaseModel):
    """A generating unit as read from the `units` table."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    duid: str = Field(description="Dispatchable unit identifier", examples=["BW01"])
    station_name: Optional[str] = Field(default=None, examples=["Bayswater Power Station"])
    region_id: Optional[str] = Field(default=None, examples=["NSW1"])
    fuel_source: Optional[str] = Field(default=None, examples=["Coal"])
    technology_type: Optional[str] = Field(default=None, examples=["Steam Sub-Critical"])
    max_capacity: Optional[int] = Field(default=None, description="Maximum capacity (MW)")


class DataPoint(BaseModel):
    time: datetime
    value: float


class RegionDataPoint(BaseModel):
    """Demand or rooftop solar point for one region."""

    time: datetime
    region_id: str
    value: float


class Series(BaseModel):
    """
    Ordered points for one unit or one group.

    `name` is the DUID for per-unit reads and the group label
    (e.g. "NSW1+Coal") for grouped reads.
    """

    name: str
    data: List[DataPoint] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str = Field(examples=["ok"])
