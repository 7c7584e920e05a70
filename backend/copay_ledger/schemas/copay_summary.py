"""Copay summary schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class SummarySource(str, Enum):
    AI = "AI"
    SYSTEM = "SYSTEM"


class FinancialOverview(BaseModel):
    outstanding_balance: str
    total_amount: str
    total_copays: int
    paid_copays: int
    unpaid_copays: int
    partially_paid_copays: int


class CopaySummaryResponse(BaseModel):
    patient_id: UUID
    patient_name: str
    generated_at: datetime
    account_status: str
    financial_overview: FinancialOverview
    recommendations: list[str] = Field(default_factory=list)
    insights: list[str] = Field(default_factory=list)
    summary_source: SummarySource
