"""
Operator and route endpoints, plus price quotes and per-route schedule listings.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from travelbook.api.dependencies import get_pricing_service, get_route_service, get_schedule_service
from travelbook.schemas.route import (
    OperatorCreate,
    OperatorResponse,
    QuoteResponse,
    RouteCreate,
    RouteResponse,
    RouteUpdate,
)
from travelbook.schemas.schedule import ScheduleQuoteResponse, ScheduleResponse
from travelbook.services.pricing_service import PricingService
from travelbook.services.route_service import RouteService
from travelbook.services.schedule_service import ScheduleService

router = APIRouter(prefix="/routes", tags=["Routes"])


@router.post("/operators", response_model=OperatorResponse, status_code=status.HTTP_201_CREATED)
async def create_operator(
    operator_data: OperatorCreate,
    routes: RouteService = Depends(get_route_service),
):
    return await routes.create_operator(operator_data)


@router.post("/", response_model=RouteResponse, status_code=status.HTTP_201_CREATED)
async def create_route(route_data: RouteCreate, routes: RouteService = Depends(get_route_service)):
    """Create a route. 409 if the operator already runs this leg at this departure time."""
    return await routes.create_route(route_data)


@router.get("/{route_id}", response_model=RouteResponse)
async def get_route(route_id: int, routes: RouteService = Depends(get_route_service)):
    return await routes.get_route(route_id)


@router.patch("/{route_id}", response_model=RouteResponse)
async def update_route(
    route_id: int,
    route_data: RouteUpdate,
    routes: RouteService = Depends(get_route_service),
):
    """Edit base price or status. Cached quotes are dropped."""
    return await routes.update_route(route_id, route_data)


@router.get("/{route_id}/quote", response_model=QuoteResponse)
async def quote_price(
    route_id: int,
    travel_date: date = Query(...),
    recurring_schedule_id: Optional[int] = Query(None, gt=0),
    pricing: PricingService = Depends(get_pricing_service),
):
    """Price of one seat on the route for the date. Served from Redis when cached."""
    price = await pricing.quote_price(route_id, travel_date, recurring_schedule_id)
    return QuoteResponse(
        route_id=route_id,
        travel_date=travel_date.isoformat(),
        recurring_schedule_id=recurring_schedule_id,
        price=price,
    )


@router.get("/{route_id}/schedules", response_model=list[ScheduleQuoteResponse])
async def list_route_schedules(
    route_id: int,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    include_cancelled: bool = Query(False),
    schedules: ScheduleService = Depends(get_schedule_service),
):
    quotes = await schedules.list_route_schedules(route_id, start_date, end_date, include_cancelled)
    return [
        ScheduleQuoteResponse(
            **ScheduleResponse.model_validate(q.schedule).model_dump(),
            price=q.price,
        )
        for q in quotes
    ]
