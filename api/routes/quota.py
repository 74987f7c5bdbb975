"""
Endpoint de cuotas del usuario.

- GET /api/quota: cuotas, uso y remanentes
"""

from fastapi import APIRouter, Depends

from scene_ai_core.quota import QuotaLedger

from ..dependencies import get_current_user_id, get_ledger
from ..models.requests import QuotaResponse

router = APIRouter(prefix="/api", tags=["quota"])


@router.get("/quota", response_model=QuotaResponse)
def get_quota(
    user_id: str = Depends(get_current_user_id),
    ledger: QuotaLedger = Depends(get_ledger),
):
    summary = ledger.get_summary(user_id)
    return QuotaResponse(
        images_quota=summary.images_quota,
        models_quota=summary.models_quota,
        images_used=summary.images_used,
        models_used=summary.models_used,
        images_remaining=summary.images_remaining,
        models_remaining=summary.models_remaining,
    )
