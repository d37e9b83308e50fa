from __future__ import annotations

from typing import List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

Severity = Literal["Low", "Medium", "High"]
RiskLevel = Literal["Low", "Moderate", "High"]
MoneyValue = Union[int, float, str, None]


class CensusRecord(BaseModel):
    """One normalized census row. Unmapped columns are kept as extra keys."""

    model_config = ConfigDict(frozen=True, extra="allow")

    employee_id: Optional[str] = None
    name: Optional[str] = None
    dob: Optional[str] = None
    employment_status: Optional[str] = None
    hire_date: Optional[str] = None
    annual_salary: MoneyValue = None
    basic_life_coverage: MoneyValue = None
    voluntary_life_multiple: MoneyValue = None
    dependent_elections: Optional[str] = None


class Issue(BaseModel):
    type: str
    count: int
    severity: Severity
    description: str


class SubScore(BaseModel):
    name: str
    score: int = Field(ge=0, le=100)
    issues: List[Issue] = Field(default_factory=list)


class SubScores(BaseModel):
    completeness: SubScore
    consistency: SubScore
    eligibility: SubScore
    eoi_risk: SubScore


class PredictedImpact(BaseModel):
    clarifications: str
    eoi_volume: int = 0
    post_issue_correction_risk: str


class RecommendedAction(BaseModel):
    area: str
    recommendation: str


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall_score: int = Field(ge=0, le=100)
    risk_level: RiskLevel
    total_employees: int = Field(ge=0)
    sub_scores: SubScores
    anomalies: List[Issue] = Field(default_factory=list)
    executive_summary: str
    top_risk_drivers: List[str] = Field(default_factory=list, max_length=5)
    predicted_impact: PredictedImpact
    recommended_actions: List[RecommendedAction] = Field(default_factory=list)


class ChatTurn(BaseModel):
    role: Literal["user", "model"]
    text: str


class ChatRequest(BaseModel):
    history: List[ChatTurn] = Field(default_factory=list)
    message: str
    context: Optional[AnalysisResult] = None


class ChatResponse(BaseModel):
    reply: str


class AnalyzeResponse(BaseModel):
    filename: str
    analysis: AnalysisResult
    summary: str
    report_filename: str = Field(examples=["Census-Risk-Report-2025-01-31.png"])


class HealthResponse(BaseModel):
    ok: bool = True
