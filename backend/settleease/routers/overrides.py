"""Manual settlement overrides: check a new override against current balances."""
import logging

from fastapi import APIRouter, HTTPException

from settleease.schemas import ManualSettlementOverride, OverrideValidationRequest
from settleease.services.numeric import is_creditor, is_debtor
from settleease.services.settlement_calculator import calculate_net_balances

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/overrides", tags=["overrides"])


def _reject(detail: str):
    logger.info("Rejected manual override: %s", detail)
    raise HTTPException(status_code=400, detail=detail)


@router.post("/validate", response_model=ManualSettlementOverride)
def validate_override(data: OverrideValidationRequest):
    override = data.override
    if not override.debtor_id or not override.creditor_id:
        _reject("Debtor and creditor are required")
    if override.debtor_id == override.creditor_id:
        _reject("Debtor and creditor cannot be the same person")
    # NaN fails this comparison too.
    if not override.amount > 0:
        _reject("Amount must be positive")

    balances = calculate_net_balances(data.people, data.expenses, data.settlement_payments)
    names = {p.id: p.name for p in data.people}
    if not is_debtor(balances.get(override.debtor_id, 0.0)):
        _reject(f"{names.get(override.debtor_id) or override.debtor_id} doesn't owe any money currently")
    if not is_creditor(balances.get(override.creditor_id, 0.0)):
        _reject(f"{names.get(override.creditor_id) or override.creditor_id} isn't owed any money currently")
    return override
