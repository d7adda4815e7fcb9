"""Credit-metered lookup workflow: resolve -> pre-flight -> invoke -> record."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from models.officer import Officer
from services.entitlements import resolve
from services.ledger import QueryAudit, record_failure, record_success
from services.lookups.registry import LookupSpec, get_lookup_spec
from services.lookups.types import (
    CapabilityGrant,
    InsufficientCredits,
    LedgerWriteError,
    LookupWorkflowError,
    NotEntitled,
    ResolutionError,
    VendorFailure,
    VendorRequest,
    VendorResult,
)

logger = logging.getLogger(__name__)

_SUMMARY_ERRORS = (AttributeError, KeyError, IndexError, TypeError, ValueError)


async def invoke(
    grant: CapabilityGrant,
    request: VendorRequest,
    client: Optional[httpx.AsyncClient] = None,
) -> VendorResult:
    """Run the grant's vendor adapter once. No retries; a failed attempt is terminal."""
    spec = get_lookup_spec(grant.capability_key)
    if spec is None:
        return VendorResult.failure(f"No adapter registered for {grant.capability_key}")
    if client is not None:
        return await spec.adapter.call(grant.credential, request, client)
    async with httpx.AsyncClient() as owned_client:
        return await spec.adapter.call(grant.credential, request, owned_client)


def _audit(spec: LookupSpec, input_summary: str) -> QueryAudit:
    return QueryAudit(
        category=spec.category,
        query_type=spec.query_type,
        source=spec.source,
        input_data=input_summary,
    )


def _summarize(spec: LookupSpec, parsed: Any, payload: Any) -> str:
    try:
        return spec.summarize(parsed, payload)
    except _SUMMARY_ERRORS:
        logger.info("Unexpected %s payload shape; using generic summary", spec.key)
        return f"{spec.category}: Successful"


async def _audit_rejection(
    db: AsyncSession,
    officer_id: str,
    spec: LookupSpec,
    input_summary: str,
    error: LookupWorkflowError,
) -> None:
    if not settings.AUDIT_REJECTED_LOOKUPS:
        return
    try:
        await record_failure(
            db,
            officer_id,
            _audit(spec, input_summary),
            capability_key=spec.key,
            summary=error.message,
            status="Rejected",
            error_code=getattr(error, "reason", None) or error.code,
        )
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Could not audit rejected %s lookup for officer %s", spec.key, officer_id)


async def run_lookup(
    db: AsyncSession,
    officer_id: str,
    capability_key: str,
    params: Dict[str, Any],
    client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """
    Execute one metered lookup for an officer.

    Raises InvalidLookupRequest before anything is read, NotEntitled or
    InsufficientCredits before the vendor is called, VendorFailure after a
    Failed query log is written, and LedgerWriteError when the vendor answered
    but the charge could not be committed. Returns the Success payload and the
    new balance otherwise.
    """
    spec = get_lookup_spec(capability_key)
    if spec is None:
        raise NotEntitled("not_enabled")
    parsed = spec.parse(params)
    input_summary = spec.describe(parsed)

    try:
        grant = await resolve(db, officer_id, spec.key)
    except NotEntitled as exc:
        await _audit_rejection(db, officer_id, spec, input_summary, exc)
        raise

    try:
        available = (
            await db.execute(select(Officer.credits_remaining).where(Officer.id == officer_id))
        ).scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.exception("Balance read failed for officer %s", officer_id)
        raise ResolutionError("Unable to read entitlements. Please try again.") from exc
    if int(available or 0) < grant.cost:
        error = InsufficientCredits(required=grant.cost, available=int(available or 0))
        await _audit_rejection(db, officer_id, spec, input_summary, error)
        raise error

    request = spec.build_request(parsed, client_reference=officer_id)
    result = await invoke(grant, request, client)
    audit = _audit(spec, input_summary)

    if not result.ok:
        message = result.message or "Vendor request failed"
        entry = await record_failure(
            db,
            officer_id,
            audit,
            capability_key=spec.key,
            summary=f"{spec.category} failed: {message}",
            full_result=result.payload,
            error_code="vendor_failure",
        )
        logger.info("Lookup %s failed for officer %s: %s", spec.key, officer_id, message)
        raise VendorFailure(message, query_id=entry.id)

    summary = _summarize(spec, parsed, result.payload)
    try:
        charge = await record_success(db, grant, audit, payload=result.payload, summary=summary)
    except LedgerWriteError as exc:
        query_id = None
        try:
            entry = await record_failure(
                db,
                officer_id,
                audit,
                capability_key=spec.key,
                summary=f"{spec.category} not charged: {exc.message}",
                full_result=result.payload,
                error_code=LedgerWriteError.code,
            )
            query_id = entry.id
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Could not write reconciliation row for officer %s (%s)", officer_id, spec.key)
        raise LedgerWriteError(exc.message, query_id=query_id) from exc

    logger.info(
        "Lookup %s succeeded for officer %s, charged %s, balance %s",
        spec.key,
        officer_id,
        charge["charged"],
        charge["balance_after"],
    )
    return {
        "query_id": charge["query_id"],
        "capability_key": spec.key,
        "category": spec.category,
        "status": "Success",
        "summary": summary,
        "result": result.payload,
        "credits_used": charge["charged"],
        "balance_after": charge["balance_after"],
    }
