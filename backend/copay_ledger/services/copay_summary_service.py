"""Copay summary for front-desk staff.

The financial overview is always computed locally. Recommendations come from
an OpenRouter chat model when ``OPENROUTER_API_KEY`` is set, and from fixed
business rules otherwise or whenever the model call fails.
"""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from copay_ledger.core.config import settings
from copay_ledger.schemas.copay import CopayResponse
from copay_ledger.schemas.copay_summary import (
    CopaySummaryResponse,
    FinancialOverview,
    SummarySource,
)
from copay_ledger.services.copay_service import CopayService

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
LARGE_OUTSTANDING_BALANCE = Decimal("100")
HIGH_AVERAGE_COPAY = Decimal("50")

SYSTEM_PROMPT = (
    "You are a healthcare financial assistant. Provide helpful, professional "
    "insights about patient copay status."
)


class SummaryGenerationError(Exception):
    """The chat model could not produce usable recommendations."""


def format_money(amount: Decimal) -> str:
    return f"${amount.quantize(Decimal('0.01'))}"


def is_paid(copay: CopayResponse) -> bool:
    return copay.remaining_balance <= ZERO


def is_unpaid(copay: CopayResponse) -> bool:
    return copay.remaining_balance == copay.amount


def is_partially_paid(copay: CopayResponse) -> bool:
    return ZERO < copay.remaining_balance < copay.amount


def build_overview(copays: Sequence[CopayResponse]) -> FinancialOverview:
    total_amount = sum((c.amount for c in copays), ZERO)
    outstanding = sum((c.remaining_balance for c in copays), ZERO)
    return FinancialOverview(
        outstanding_balance=format_money(outstanding),
        total_amount=format_money(total_amount),
        total_copays=len(copays),
        paid_copays=sum(1 for c in copays if is_paid(c)),
        unpaid_copays=sum(1 for c in copays if is_unpaid(c)),
        partially_paid_copays=sum(1 for c in copays if is_partially_paid(c)),
    )


def account_status(copays: Sequence[CopayResponse]) -> str:
    outstanding = sum((c.remaining_balance for c in copays), ZERO)
    if outstanding == ZERO:
        return "All copays are current"
    if sum(1 for c in copays if is_unpaid(c)) > 3:
        return "Multiple outstanding copays need attention"
    return "Some outstanding balances"


def system_recommendations(copays: Sequence[CopayResponse]) -> list[str]:
    outstanding = sum((c.remaining_balance for c in copays), ZERO)
    if outstanding <= ZERO:
        return ["Account is current - continue good payment practices"]

    recommendations = ["Consider setting up a payment plan for outstanding balances"]
    if sum(1 for c in copays if is_unpaid(c)) > 2:
        recommendations.append("Prioritize oldest unpaid copays first")
    if outstanding > LARGE_OUTSTANDING_BALANCE:
        recommendations.append("Contact patient about large outstanding balance")
    return recommendations


def system_insights(copays: Sequence[CopayResponse]) -> list[str]:
    insights = []
    average = sum((c.amount for c in copays), ZERO) / max(1, len(copays))
    if average > HIGH_AVERAGE_COPAY:
        insights.append("Higher than average copay amounts detected")
    if any(is_partially_paid(c) for c in copays):
        insights.append("Patient has made partial payments - shows payment intent")
    if len({c.department for c in copays}) > 2:
        insights.append("Patient visits multiple departments - comprehensive care")
    return insights


def parse_bullets(text: str) -> list[str]:
    """Pull ``-``, ``*`` or ``•`` bullet lines out of free text."""
    bullets = []
    for line in text.splitlines():
        line = line.strip()
        if line[:1] in ("-", "*", "•"):
            item = line.lstrip("-*•").strip()
            if item:
                bullets.append(item)
    return bullets


def build_prompt(copays: Sequence[CopayResponse], patient_name: str) -> str:
    overview = build_overview(copays)
    total_paid = sum((c.paid_amount for c in copays), ZERO)
    departments = ", ".join(
        list(dict.fromkeys(c.department for c in copays if c.department))[:3]
    ) or "Various"
    return (
        f"Analyze copay status for patient {patient_name}:\n\n"
        "Financial Summary:\n"
        f"- Total copays: {overview.total_copays} (Amount: {overview.total_amount})\n"
        f"- Outstanding balance: {overview.outstanding_balance}\n"
        f"- Total paid: {format_money(total_paid)}\n"
        f"- Unpaid copays: {overview.unpaid_copays}\n"
        f"- Paid copays: {overview.paid_copays}\n"
        f"- Partially paid: {overview.partially_paid_copays}\n"
        f"- Recent departments: {departments}\n\n"
        "Provide a brief summary with 2-3 key insights and actionable recommendations "
        "as bullet points. Keep it professional and helpful for healthcare staff."
    )


class CopaySummaryService:
    def __init__(self, db: Session, http_client: httpx.Client | None = None):
        self.db = db
        self.copay_service = CopayService(db)
        self._http_client = http_client

    def generate_summary(self, patient_id: UUID) -> CopaySummaryResponse:
        """Summarize a patient's copays. Read-only.

        Raises:
            ResourceNotFoundError: the patient does not exist.
        """
        patient = self.copay_service.get_patient(patient_id)
        copays = self.copay_service.list_copays(patient_id)
        now = datetime.now(UTC)

        if not copays:
            return CopaySummaryResponse(
                patient_id=patient_id,
                patient_name=patient.full_name,
                generated_at=now,
                account_status="No copays found",
                financial_overview=build_overview(copays),
                recommendations=["No copays to review"],
                insights=[],
                summary_source=SummarySource.SYSTEM,
            )

        source = SummarySource.SYSTEM
        recommendations = system_recommendations(copays)
        if settings.summary_ai_enabled:
            try:
                recommendations = self._ai_recommendations(copays, patient.full_name)
                source = SummarySource.AI
            except (httpx.HTTPError, SummaryGenerationError) as exc:
                logger.warning("AI summary failed for patient %s, using fallback: %s", patient_id, exc)

        return CopaySummaryResponse(
            patient_id=patient_id,
            patient_name=patient.full_name,
            generated_at=now,
            account_status=account_status(copays),
            financial_overview=build_overview(copays),
            recommendations=recommendations,
            insights=system_insights(copays),
            summary_source=source,
        )

    def _ai_recommendations(self, copays: Sequence[CopayResponse], patient_name: str) -> list[str]:
        body = {
            "model": settings.OPENROUTER_MODEL,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(copays, patient_name)},
            ],
            "max_tokens": 200,
        }
        headers = {
            "Authorization": f"Bearer {settings.OPENROUTER_API_KEY}",
            "HTTP-Referer": f"https://{settings.APP_DOMAIN}",
            "X-Title": settings.APP_NAME,
        }
        url = f"{settings.OPENROUTER_BASE_URL}/chat/completions"

        if self._http_client is not None:
            resp = self._http_client.post(url, json=body, headers=headers)
        else:
            with httpx.Client(timeout=settings.SUMMARY_TIMEOUT_SECONDS) as client:
                resp = client.post(url, json=body, headers=headers)
        resp.raise_for_status()
        try:
            payload = resp.json()
        except ValueError as exc:
            raise SummaryGenerationError("Model response is not JSON") from exc

        bullets = parse_bullets(self._extract_content(payload))
        if not bullets:
            raise SummaryGenerationError("Model response contained no bullet points")
        return bullets

    @staticmethod
    def _extract_content(payload: Any) -> str:
        try:
            content = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise SummaryGenerationError(f"Unexpected model response: {exc}") from exc
        if not isinstance(content, str):
            raise SummaryGenerationError("Model response content is not text")
        return content
