from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class MonthlyResult(BaseModel):
    date: str = Field(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$", description="YYYY-MM")
    count: int = Field(..., ge=0)


class MonthlyResponse(BaseModel):
    data: List[MonthlyResult]


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    timestamp: str
    configured: dict[str, bool]
