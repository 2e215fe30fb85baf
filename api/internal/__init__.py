"""Internal API endpoints for trusted services.

The payment pipeline calls these after a payment has been confirmed. Every
route requires the shared service token in the X-Service-Token header.
"""

from fastapi import APIRouter, Depends
from typing import Optional, Dict, Any
from decimal import Decimal
from pydantic import BaseModel, Field
from uuid import UUID

from licenses import BeatLicenseManager, LicenseError
from auth import require_internal_service
from ..licenses import license_http_error

# Create router with the service-token guard on every route
router = APIRouter(
    prefix="/internal",
    tags=["Internal"],
    dependencies=[Depends(require_internal_service)]
)

class CreateBeatLicensePurchaseRequest(BaseModel):
    """Request model for recording a confirmed beat license payment."""
    beat_id: UUID
    tier_type: str
    tier_name: str
    user_id: str
    store_id: str
    amount: Decimal = Field(..., ge=0)
    buyer_email: str
    currency: Optional[str] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    buyer_name: Optional[str] = None

class ExclusiveSaleRequest(BaseModel):
    """Request model for recording an exclusive sale."""
    user_id: str
    purchase_id: UUID

@router.post("/beat-licenses/purchases")
async def create_beat_license_purchase(request: CreateBeatLicensePurchaseRequest) -> Dict[str, Any]:
    """Create the purchase and license for a confirmed payment."""
    try:
        return await BeatLicenseManager().create_beat_license_purchase(**request.model_dump())
    except LicenseError as e:
        raise license_http_error(e)

@router.post("/beats/{beat_id}/exclusive-sale")
async def mark_exclusive_sale(beat_id: UUID, request: ExclusiveSaleRequest) -> Dict[str, Any]:
    """Withdraw a beat from sale after an exclusive purchase."""
    try:
        await BeatLicenseManager().mark_beat_as_exclusively_sold(
            beat_id,
            request.user_id,
            request.purchase_id
        )
        return {'beat_id': beat_id, 'available': False}
    except LicenseError as e:
        raise license_http_error(e)

__all__ = ['router']
