"""
Pricing data administration: date overrides and the holiday calendar.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from travelbook.api.dependencies import get_pricing_admin_service
from travelbook.schemas.pricing import HolidayCreate, HolidayResponse, PriceOverrideResponse, PriceOverrideSet
from travelbook.services.pricing_admin_service import PricingAdminService

router = APIRouter(prefix="/pricing", tags=["Pricing"])


@router.put("/overrides", response_model=PriceOverrideResponse)
async def set_price_override(
    override_data: PriceOverrideSet,
    admin: PricingAdminService = Depends(get_pricing_admin_service),
):
    """Pin an absolute price for a route on one date. Wins over every other pricing rule."""
    return await admin.set_price_override(override_data)


@router.delete("/overrides", status_code=status.HTTP_204_NO_CONTENT)
async def delete_price_override(
    route_id: int = Query(..., gt=0),
    travel_date: date = Query(...),
    admin: PricingAdminService = Depends(get_pricing_admin_service),
):
    await admin.delete_price_override(route_id, travel_date)


@router.post("/holidays", response_model=HolidayResponse, status_code=status.HTTP_201_CREATED)
async def create_holiday(
    holiday_data: HolidayCreate,
    admin: PricingAdminService = Depends(get_pricing_admin_service),
):
    return await admin.create_holiday(holiday_data)


@router.get("/holidays", response_model=list[HolidayResponse])
async def list_holidays(
    year: Optional[int] = Query(None, ge=1900, le=2100),
    admin: PricingAdminService = Depends(get_pricing_admin_service),
):
    return await admin.list_holidays(year)
