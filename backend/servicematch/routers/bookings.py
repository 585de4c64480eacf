from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Header, HTTPException, Query

from servicematch.auth import assert_actor_authorized
from servicematch.models import Booking, BookingCreateRequest, BookingStatusUpdateRequest
from servicematch.routers.errors import raise_http_error
from servicematch.services.errors import MatchingError
from servicematch.services.matching_engine import matching_engine
from servicematch.services.notification_store import notification_store

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=Booking, status_code=201)
def create_booking(
    request: BookingCreateRequest,
    background_tasks: BackgroundTasks,
    authorization: Optional[str] = Header(default=None),
):
    assert_actor_authorized(actor_user_id=request.client_id, authorization=authorization)
    try:
        booking = matching_engine.create_booking(request)
    except MatchingError as exc:
        raise_http_error(exc)
    background_tasks.add_task(notification_store.notify_booking_created, booking)
    return booking


@router.get("", response_model=list[Booking])
def list_bookings(
    client_id: Optional[str] = Query(default=None),
    provider_id: Optional[str] = Query(default=None),
):
    return matching_engine.store.list_bookings(client_id=client_id, provider_id=provider_id)


@router.get("/{booking_id}", response_model=Booking)
def get_booking(booking_id: str):
    booking = matching_engine.store.get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


@router.post("/{booking_id}/status", response_model=Booking)
def update_booking_status(
    booking_id: str,
    request: BookingStatusUpdateRequest,
    background_tasks: BackgroundTasks,
    authorization: Optional[str] = Header(default=None),
):
    assert_actor_authorized(actor_user_id=request.actor_user_id, authorization=authorization)
    try:
        booking = matching_engine.store.update_booking_status(booking_id=booking_id, update=request)
    except MatchingError as exc:
        raise_http_error(exc)
    background_tasks.add_task(notification_store.notify_status_changed, booking, request.actor_user_id)
    return booking
