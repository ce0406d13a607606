"""
Quote routes

POST /api/quotes/services/{service_key}/calculate  price one service form
POST /api/quotes/summary                           price an agreement, no save
POST /api/quotes/agreements                        price and save an agreement
GET  /api/quotes/agreements/{agreement_id}         load and re-price a saved agreement
PUT  /api/quotes/agreements/{agreement_id}         re-price and save over an agreement
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_quote_engine
from app.db import get_db
from app.models.orm_models import SavedAgreement
from app.models.quote_schemas import AgreementRequest, CalculateRequest, GlobalChargeIn
from app.services.change_recorder import ChangeRecorder
from app.services.pricing_errors import PersistenceFailure
from app.services.profitability import approval_status
from app.services.quote_engine import AgreementQuote, QuoteEngine

router = APIRouter(prefix="/api/quotes", tags=["Quotes"])
logger = logging.getLogger("cleanquote-quote-routes")


# ── Helpers ─────────────────────────────────────────────────────────────────

def _charge(charge: Optional[GlobalChargeIn]):
    return charge.to_charge() if charge is not None else None


def _price(engine: QuoteEngine, body: AgreementRequest, saved: Dict[str, Any]) -> AgreementQuote:
    try:
        return engine.price_agreement(
            services=body.services,
            contract_months=body.contract_months,
            trip=_charge(body.trip),
            parking=_charge(body.parking),
            primary_frequency=body.primary_frequency,
            saved=saved,
            recorder=ChangeRecorder(),
        )
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"Unknown service: {e.args[0]}")


def _stored_payload(body: AgreementRequest, quote: AgreementQuote) -> Dict[str, Any]:
    return {
        "title": body.title,
        "contractMonths": quote.summary.contract_months,
        "primaryFrequency": body.primary_frequency,
        "trip": body.trip.model_dump() if body.trip else None,
        "parking": body.parking.model_dump() if body.parking else None,
        "services": quote.records,
        "changes": quote.changes,
    }


def _apply(row: SavedAgreement, body: AgreementRequest, quote: AgreementQuote) -> None:
    row.title = body.title
    row.classification = quote.summary.classification
    row.status = approval_status(quote.summary.classification)
    row.contract_months = quote.summary.contract_months
    row.total_agreement_amount = quote.summary.total_agreement_amount
    row.payload = _stored_payload(body, quote)


def _response(row: SavedAgreement, quote: AgreementQuote) -> Dict[str, Any]:
    return {
        "agreementId": row.id,
        "status": approval_status(quote.summary.classification),
        "version": row.version,
        **quote.to_payload(),
    }


async def _persist(db: AsyncSession, row: SavedAgreement, quote: AgreementQuote) -> None:
    try:
        await db.flush()
        await db.commit()
    except SQLAlchemyError as e:
        logger.error(f"Saving agreement failed: {e}", extra={"quote_id": row.id})
        raise PersistenceFailure("Agreement could not be saved", quote=quote.to_payload())


def _request_from_row(row: SavedAgreement) -> AgreementRequest:
    stored = row.payload or {}
    return AgreementRequest(
        title=row.title,
        contract_months=row.contract_months or stored.get("contractMonths") or 12,
        trip=stored.get("trip"),
        parking=stored.get("parking"),
        primary_frequency=stored.get("primaryFrequency"),
    )


async def _load(db: AsyncSession, agreement_id: str) -> SavedAgreement:
    try:
        row = await db.get(SavedAgreement, agreement_id)
    except SQLAlchemyError as e:
        logger.error(f"Loading agreement failed: {e}", extra={"quote_id": agreement_id})
        raise HTTPException(status_code=503, detail="Agreement storage unavailable")
    if row is None:
        raise HTTPException(status_code=404, detail="Agreement not found")
    return row


# ── Endpoints ───────────────────────────────────────────────────────────────

@router.post("/services/{service_key}/calculate")
async def calculate_service(
    service_key: str,
    body: CalculateRequest,
    engine: QuoteEngine = Depends(get_quote_engine),
):
    """Price one service form. Always returns a result; bad numbers are clamped."""
    form = dict(body.form)
    if body.contract_months is not None:
        form["contract_months"] = body.contract_months
    try:
        prior = engine.load_service(service_key, body.prior_saved) if body.prior_saved else None
        recorder = ChangeRecorder()
        result = engine.price_service(service_key, form, prior_saved=prior, recorder=recorder)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown service: {service_key}")
    return {"result": result.to_payload(), "changes": recorder.to_payload()}


@router.post("/summary")
async def agreement_summary(
    body: AgreementRequest,
    engine: QuoteEngine = Depends(get_quote_engine),
):
    """Live agreement totals and Red/Green classification without saving."""
    return _price(engine, body, body.saved).to_payload()


@router.post("/agreements", status_code=201)
async def create_agreement(
    body: AgreementRequest,
    engine: QuoteEngine = Depends(get_quote_engine),
    db: AsyncSession = Depends(get_db),
):
    quote = _price(engine, body, body.saved)
    row = SavedAgreement(version=1)
    _apply(row, body, quote)
    db.add(row)
    await _persist(db, row, quote)
    logger.info(
        f"Agreement saved: {quote.summary.classification}, total {quote.summary.total_agreement_amount}",
        extra={"quote_id": row.id},
    )
    return _response(row, quote)


@router.get("/agreements/{agreement_id}")
async def get_agreement(
    agreement_id: str,
    engine: QuoteEngine = Depends(get_quote_engine),
    db: AsyncSession = Depends(get_db),
):
    """
    Load a saved agreement and price it again from its stored records. The
    returned classification comes from the fresh totals, not the stored one.
    """
    row = await _load(db, agreement_id)
    stored = row.payload or {}
    quote = _price(engine, _request_from_row(row), stored.get("services") or {})
    return {**_response(row, quote), "title": row.title, "storedClassification": row.classification}


@router.put("/agreements/{agreement_id}")
async def update_agreement(
    agreement_id: str,
    body: AgreementRequest,
    engine: QuoteEngine = Depends(get_quote_engine),
    db: AsyncSession = Depends(get_db),
):
    """
    Re-price with the live forms in ``body.services``; stored records act as
    the prior state so earlier manual overrides survive.
    """
    row = await _load(db, agreement_id)
    stored = row.payload or {}
    saved = dict(stored.get("services") or {})
    saved.update(body.saved)
    quote = _price(engine, body, saved)
    _apply(row, body, quote)
    row.version = (row.version or 1) + 1
    await _persist(db, row, quote)
    logger.info(f"Agreement updated to version {row.version}", extra={"quote_id": row.id})
    return _response(row, quote)
