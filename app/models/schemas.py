from typing import Any, Literal

from pydantic import BaseModel, Field

from app.services.metrics import DEFAULT_PRIORITY_AREAS


# --- Auth Models ---
class LoginRequest(BaseModel):
    # Optional so that missing fields get the API's own 400 instead of a 422
    user_id: str | None = None
    name: str | None = None
    user_type: str | None = None


class UserProfile(BaseModel):
    id: str
    name: str
    type: Literal["personal", "company"]


class LoginResponse(BaseModel):
    success: bool
    user: UserProfile
    token: str


# --- Chat Models ---
class ChatRequest(BaseModel):
    message: str | None = None


class ChatResponse(BaseModel):
    response: str


# --- Analysis Models ---
class AnalysisRequest(BaseModel):
    tool: str | None = None
    parameters: dict[str, Any] | None = None


class ToolResult(BaseModel):
    success: bool
    message: str
    data: Any = None
    error: str | None = None


class AnalyzeKPIParams(BaseModel):
    company_id: str
    months: int = Field(6, ge=1, le=24)
    include_comparisons: bool = True


class TrendParams(BaseModel):
    company_id: str
    forecast_months: int = 3
    include_seasonality: bool = True


class OptimizationParams(BaseModel):
    company_id: str
    target_margin_increase: float = 5.0
    priority_areas: list[str] = Field(default_factory=lambda: list(DEFAULT_PRIORITY_AREAS))


class Scenario(BaseModel):
    name: str
    revenue_change: float = 0.0
    expense_changes: dict[str, float] = Field(default_factory=dict)


class ScenarioParams(BaseModel):
    company_id: str
    scenarios: list[Scenario]


class WhatIfParams(BaseModel):
    company_id: str
    revenue_change: float = 0.0
    expense_changes: dict[str, float] = Field(default_factory=dict)
    months: int = Field(3, ge=1, le=12)


ReportType = Literal["summary", "detailed", "trends", "recommendations"]
ReportPeriod = Literal["monthly", "quarterly", "yearly"]


class ReportParams(BaseModel):
    company_id: str | None = None
    user_id: str | None = None
    report_type: ReportType = "summary"
    period: ReportPeriod = "monthly"
