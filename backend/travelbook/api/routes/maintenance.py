"""
Maintenance endpoints for operators of the service.
"""

from fastapi import APIRouter, Depends

from travelbook.api.dependencies import get_lifecycle_sweeper
from travelbook.services.lifecycle_service import LifecycleSweeper

router = APIRouter(prefix="/maintenance", tags=["Maintenance"])


@router.post("/auto-complete")
async def auto_complete_past_bookings(sweeper: LifecycleSweeper = Depends(get_lifecycle_sweeper)):
    """Run the lifecycle sweep now, bypassing the throttle."""
    changes = await sweeper.auto_complete_past_bookings()
    return {"completed_bookings": changes}
