import json
import logging
import random
import time
from datetime import datetime, timedelta
from uuid import uuid4

from servicematch.config import MatchingConfig
from servicematch.models import (
    Booking,
    BookingCreateRequest,
    BookingPayment,
    BookingPricing,
    ResolvedAssignment,
)
from servicematch.services.catalog_store import CatalogStore
from servicematch.services.errors import AssignmentIntegrityError, RequestValidationError

logger = logging.getLogger(__name__)


def generate_booking_number() -> str:
    return f"BK{int(time.time() * 1000)}{random.randint(0, 999):03d}"


def calculate_end_time(start: str, duration_minutes: int) -> str:
    try:
        parsed = datetime.strptime(start, "%H:%M")
    except ValueError as exc:
        raise RequestValidationError("Invalid schedule.time; expected HH:MM") from exc
    end = parsed + timedelta(minutes=duration_minutes)
    if end.date() > parsed.date():
        return "23:59"
    return end.strftime("%H:%M")


class BookingAssigner:
    """Persists the resolved provider/service binding as a pending booking."""

    def __init__(self, store: CatalogStore, config: MatchingConfig) -> None:
        self.store = store
        self.config = config

    def commit(self, request: BookingCreateRequest, resolved: ResolvedAssignment) -> Booking:
        listing = self.store.get_listing(resolved.service_id)
        if listing is None or listing.provider_id != resolved.provider_id:
            raise AssignmentIntegrityError("Service does not belong to the assigned provider")

        multiplier = self.config.urgency_multiplier(request.urgency)
        total_amount = request.total_amount or int(round(listing.price * multiplier))
        booking = Booking(
            id=f"bk_{uuid4().hex[:10]}",
            booking_number=generate_booking_number(),
            client_id=request.client_id,
            provider_id=resolved.provider_id,
            service_id=resolved.service_id,
            category=request.category,
            status="pending",
            assignment_method=resolved.assignment_method,
            scheduled_date=request.schedule.date,
            start_time=request.schedule.time,
            end_time=calculate_end_time(request.schedule.time, listing.duration_minutes),
            location=request.location,
            pricing=BookingPricing(
                base_price=listing.price,
                urgency_multiplier=multiplier,
                total_amount=total_amount,
                currency=self.config.currency,
            ),
            payment=BookingPayment(
                method=request.payment_method,
                status="completed" if request.payment_timing == "pay-now" else "pending",
            ),
            description=request.description,
            metadata={
                "urgency": request.urgency,
                "providers_needed": request.providers_needed,
                "category_requested": request.category,
                "location_requested": request.location.area,
                "payment_timing": request.payment_timing,
                "match_type": resolved.match_type,
                "match_score": resolved.score,
                "listing_origin": listing.origin,
            },
            created_at=datetime.utcnow().isoformat(),
        )

        committed = self.store.insert_booking(booking, actor_user_id=request.client_id)
        self._log_telemetry(committed, resolved)
        return committed

    @staticmethod
    def _log_telemetry(booking: Booking, resolved: ResolvedAssignment) -> None:
        payload = {
            "booking_id": booking.id,
            "provider_id": booking.provider_id,
            "service_id": booking.service_id,
            "category": booking.category,
            "assignment_method": booking.assignment_method,
            "match_type": resolved.match_type,
            "score": resolved.score,
        }
        logger.info("assignment_telemetry=%s", json.dumps(payload, sort_keys=True))
