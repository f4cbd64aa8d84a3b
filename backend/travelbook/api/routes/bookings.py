"""
Booking endpoints: creation through the transaction coordinator, lookups,
and single-booking cancellation.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from travelbook.api.dependencies import get_booking_coordinator, get_booking_service
from travelbook.schemas.booking import BookingCancelResponse, BookingCreate, BookingResponse
from travelbook.services.booking_service import BookingCoordinator, BookingService

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
):
    """
    Book seats on a schedule.

    All-or-nothing: if any requested seat is already booked the response is
    409 with the conflicting seats listed, and nothing is stored.
    """
    return await coordinator.create_booking(booking_data)


@router.get("/", response_model=list[BookingResponse])
async def list_user_bookings(
    user_id: int = Query(..., gt=0),
    bookings: BookingService = Depends(get_booking_service),
):
    return await bookings.list_user_bookings(user_id)


@router.get("/pnr/{pnr}", response_model=BookingResponse)
async def get_booking_by_pnr(pnr: str, bookings: BookingService = Depends(get_booking_service)):
    return await bookings.get_booking_by_pnr(pnr)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: int, bookings: BookingService = Depends(get_booking_service)):
    return await bookings.get_booking(booking_id)


@router.post("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking(
    booking_id: int,
    user_id: Optional[int] = Query(None, gt=0),
    bookings: BookingService = Depends(get_booking_service),
):
    """Cancel a confirmed booking and release its seats."""
    booking, released = await bookings.cancel_booking(booking_id, user_id)
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        status=booking.booking_status,
        released_seats=released,
    )
