import logging
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

import httpx
from arq import cron
from arq.worker import Retry

from copay_ledger.core.config import settings
from copay_ledger.core.database import SessionLocal
from copay_ledger.repositories.payment_repository import PaymentRepository
from copay_ledger.services.payment_processor import SimulatedProcessor
from copay_ledger.tasks import redis_settings

logger = logging.getLogger(__name__)

CALLBACK_MAX_TRIES = 5
CALLBACK_RETRY_BACKOFF_SECONDS = 5


async def simulate_processor_callback_task(
    ctx: dict[str, Any], processor_charge_id: str, amount: str
) -> str:
    """Background task: play the payment processor and post the charge outcome.

    Scheduled by the submit endpoint with a random delay. The outcome is a
    success or one of the processor failure codes, posted to
    ``PROCESSOR_WEBHOOK_URL`` like a real processor would. Transport errors
    and retryable error responses are retried with a linear backoff until
    ``CALLBACK_MAX_TRIES`` is reached.
    """
    processor = SimulatedProcessor()
    outcome = processor.decide_outcome(processor_charge_id, Decimal(amount))
    logger.info(
        "Simulated processor sending %s for charge %s", outcome.event_type, processor_charge_id
    )

    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            resp = await client.post(settings.PROCESSOR_WEBHOOK_URL, json=outcome.to_payload())
        resp.raise_for_status()
    except httpx.HTTPError as exc:
        job_try = ctx.get("job_try", 1)
        if not _is_retryable(exc):
            logger.error("Processor callback for charge %s rejected: %s", processor_charge_id, exc)
            raise
        if job_try >= CALLBACK_MAX_TRIES:
            logger.error(
                "Processor callback for charge %s failed after %d tries: %s",
                processor_charge_id,
                job_try,
                exc,
            )
            raise
        logger.warning(
            "Processor callback for charge %s failed (try %d): %s",
            processor_charge_id,
            job_try,
            exc,
        )
        raise Retry(defer=job_try * CALLBACK_RETRY_BACKOFF_SECONDS) from exc

    return outcome.event_type


def _is_retryable(exc: httpx.HTTPError) -> bool:
    """Transport errors and 5xx responses not flagged ``retryable: false``."""
    if not isinstance(exc, httpx.HTTPStatusError):
        return True
    if exc.response.status_code < 500:
        return False
    try:
        body = exc.response.json()
    except ValueError:
        return True
    return not (isinstance(body, dict) and body.get("retryable") is False)


async def report_stale_payments_task(ctx: dict[str, Any]) -> int:
    """Background task: report payments stuck in PENDING.

    Runs every 15 minutes. Report-only: nothing is transitioned, a late
    webhook can still settle any of these payments.
    """
    db = SessionLocal()
    try:
        cutoff = datetime.now(UTC) - timedelta(minutes=settings.STALE_PAYMENT_MINUTES)
        stale = PaymentRepository(db).get_pending_created_before(cutoff)
        for payment in stale:
            logger.warning(
                "Payment %s (charge %s) has been PENDING since %s",
                payment.id,
                payment.processor_charge_id,
                payment.created_at,
            )
        if stale:
            logger.info("Found %d stale pending payments", len(stale))
        return len(stale)
    finally:
        db.close()


class WorkerSettings:
    functions = [
        simulate_processor_callback_task,
        report_stale_payments_task,
    ]
    cron_jobs = [
        cron(report_stale_payments_task, minute={0, 15, 30, 45}),
    ]
    redis_settings = redis_settings
    max_tries = CALLBACK_MAX_TRIES
