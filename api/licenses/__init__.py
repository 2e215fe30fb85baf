"""Beat license API endpoints."""

from fastapi import APIRouter, HTTPException, Query, status, Security
from typing import Optional, List, Dict, Any
from uuid import UUID
import logging

from licenses import (
    BeatLicenseManager, LicenseError, NotFoundError, ConflictError,
    UnauthorizedError, get_beat_license_by_purchase, get_user_beat_licenses,
    get_creator_beat_sales, is_beat_available, get_beat_license_tiers,
    check_user_beat_license
)
from auth import get_current_user

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    tags=["Beat Licenses"]
)

def license_http_error(e: Exception) -> HTTPException:
    """Translate a licensing error into the matching HTTP error."""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, UnauthorizedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, LicenseError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    logger.error(f"Unexpected error in beat license endpoint: {e}", exc_info=True)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

# Public endpoints
@router.get("/beats/{beat_id}/availability")
async def beat_availability(beat_id: UUID) -> Dict[str, Any]:
    """Check whether a beat can still be licensed."""
    return await is_beat_available(beat_id)

@router.get("/beats/{beat_id}/tiers")
async def beat_tiers(beat_id: UUID) -> Dict[str, Any]:
    """Get the tiers a beat can currently be licensed under."""
    tiers = await get_beat_license_tiers(beat_id)
    if tiers is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Beat {beat_id} not found"
        )
    return tiers

@router.get("/beats/{beat_id}/licenses/{user_id}")
async def user_beat_license(
    beat_id: UUID,
    user_id: str,
    tier_type: Optional[str] = Query(None, description="Restrict the check to one tier")
) -> Dict[str, Any]:
    """Check which licenses a user holds for a beat."""
    try:
        return await check_user_beat_license(user_id, beat_id, tier_type)
    except LicenseError as e:
        raise license_http_error(e)

@router.get("/licenses/by-purchase/{purchase_id}")
async def license_by_purchase(purchase_id: UUID) -> Dict[str, Any]:
    """Get the license issued for a purchase."""
    license = await get_beat_license_by_purchase(purchase_id)
    if not license:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No beat license for purchase {purchase_id}"
        )
    return license

@router.get("/licenses/user/{user_id}")
async def user_licenses(user_id: str) -> List[Dict[str, Any]]:
    """Get all licenses a user holds, newest first."""
    return await get_user_beat_licenses(user_id)

# Authenticated endpoints
@router.get("/stores/{store_id}/beat-sales")
async def store_beat_sales(
    store_id: UUID,
    limit: Optional[int] = Query(None, ge=1, le=500),
    current_user: str = Security(get_current_user)
) -> List[Dict[str, Any]]:
    """Get the most recent beat sales of a store. Only the store owner may call this."""
    try:
        return await get_creator_beat_sales(store_id, current_user, limit)
    except (LicenseError, UnauthorizedError) as e:
        raise license_http_error(e)

@router.post("/licenses/{license_id}/contract")
async def generate_contract(
    license_id: UUID,
    current_user: str = Security(get_current_user)
) -> Dict[str, Any]:
    """Record that the license holder generated their contract."""
    try:
        generated_at = await BeatLicenseManager().mark_contract_generated(license_id, current_user)
        return {'id': license_id, 'contract_generated_at': generated_at}
    except (LicenseError, UnauthorizedError) as e:
        raise license_http_error(e)

@router.get("/licenses/{license_id}/download/{file_type}")
async def download_license_file(
    license_id: UUID,
    file_type: str,
    current_user: str = Security(get_current_user)
) -> Dict[str, Any]:
    """Get the download location of a licensed file."""
    try:
        return await BeatLicenseManager().record_license_download(license_id, current_user, file_type)
    except (LicenseError, UnauthorizedError) as e:
        raise license_http_error(e)

__all__ = ['router', 'license_http_error']
