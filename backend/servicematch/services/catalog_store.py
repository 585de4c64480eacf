import json
import logging
import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from servicematch.models import (
    Booking,
    BookingPayment,
    BookingPricing,
    BookingStatusUpdateRequest,
    Location,
    Provider,
    ServiceListing,
)
from servicematch.services.errors import (
    AssignmentIntegrityError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    RequestValidationError,
    SynthesisConflictError,
)

logger = logging.getLogger(__name__)

PROVIDER_STATUSES = {"pending", "approved", "suspended", "rejected"}

BOOKING_TERMINAL_STATUSES = {"completed", "cancelled", "rejected"}

BOOKING_TRANSITIONS: Dict[str, set[str]] = {
    "pending": {"confirmed", "rejected", "cancelled"},
    "confirmed": {"in_progress", "cancelled"},
    "in_progress": {"completed"},
}

# Statuses only the assigned provider may apply; "cancelled" is open to both parties.
PROVIDER_ONLY_STATUSES = {"confirmed", "rejected", "in_progress", "completed"}


def synthesis_key_for(provider_id: str, category: str) -> str:
    return f"{provider_id}:{category.strip().lower()}"


@dataclass
class CatalogStore:
    db_path: str
    seed_demo_data: bool = False

    def __post_init__(self) -> None:
        self._lock = Lock()
        path = Path(self.db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = str(path)
        self._init_db()
        if self.seed_demo_data:
            self._seed_if_needed()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False, timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._lock:
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS providers (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        status TEXT NOT NULL DEFAULT 'pending',
                        skills_json TEXT NOT NULL DEFAULT '[]',
                        service_areas_json TEXT NOT NULL DEFAULT '[]',
                        rating REAL NOT NULL DEFAULT 0,
                        completed_jobs INTEGER NOT NULL DEFAULT 0,
                        default_price INTEGER,
                        default_duration_minutes INTEGER,
                        created_at TEXT NOT NULL
                    )
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS service_listings (
                        id TEXT PRIMARY KEY,
                        provider_id TEXT NOT NULL,
                        category TEXT NOT NULL,
                        title TEXT NOT NULL,
                        description TEXT NOT NULL DEFAULT '',
                        price INTEGER NOT NULL,
                        duration_minutes INTEGER NOT NULL,
                        is_active INTEGER NOT NULL DEFAULT 1,
                        origin TEXT NOT NULL DEFAULT 'onboarding',
                        synthesis_key TEXT UNIQUE,
                        created_at TEXT NOT NULL
                    )
                    """
                )
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_service_listings_provider ON service_listings (provider_id, is_active)"
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS bookings (
                        id TEXT PRIMARY KEY,
                        booking_number TEXT NOT NULL UNIQUE,
                        client_id TEXT NOT NULL,
                        provider_id TEXT NOT NULL,
                        service_id TEXT NOT NULL,
                        category TEXT NOT NULL,
                        status TEXT NOT NULL,
                        assignment_method TEXT NOT NULL,
                        scheduled_date TEXT NOT NULL,
                        start_time TEXT NOT NULL,
                        end_time TEXT NOT NULL,
                        location_json TEXT NOT NULL,
                        pricing_json TEXT NOT NULL,
                        payment_json TEXT NOT NULL,
                        description TEXT NOT NULL DEFAULT '',
                        metadata_json TEXT NOT NULL DEFAULT '{}',
                        created_at TEXT NOT NULL
                    )
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS booking_status_history (
                        id TEXT PRIMARY KEY,
                        booking_id TEXT NOT NULL,
                        actor_user_id TEXT NOT NULL,
                        from_status TEXT NOT NULL,
                        to_status TEXT NOT NULL,
                        note TEXT NOT NULL,
                        created_at TEXT NOT NULL
                    )
                    """
                )
                conn.commit()

    def _seed_if_needed(self) -> None:
        with self._lock:
            with self._connect() as conn:
                existing = conn.execute("SELECT COUNT(*) AS total FROM providers").fetchone()
        if existing and int(existing["total"]) > 0:
            return

        seed_providers = [
            {
                "id": "prov_1",
                "name": "Amani Electricals",
                "status": "approved",
                "skills": ["Electrician", "Wiring", "Lighting installation"],
                "service_areas": ["Kilimani", "Kileleshwa"],
                "rating": 4.8,
                "completed_jobs": 64,
            },
            {
                "id": "prov_2",
                "name": "Sparkle Home Cleaners",
                "status": "approved",
                "skills": ["House cleaning", "Office cleaning"],
                "service_areas": ["Westlands", "Parklands"],
                "rating": 4.6,
                "completed_jobs": 120,
            },
            {
                "id": "prov_3",
                "name": "Mwangi Plumbing Works",
                "status": "approved",
                "skills": ["Plumber", "Pipe repair"],
                "service_areas": ["All Areas"],
                "rating": 4.4,
                "completed_jobs": 38,
            },
            {
                "id": "prov_4",
                "name": "Nyayo Fix-It Crew",
                "status": "approved",
                "skills": ["General maintenance", "Furniture assembly"],
                "service_areas": ["Nyayo"],
                "rating": 4.1,
                "completed_jobs": 12,
            },
            {
                "id": "prov_5",
                "name": "Volt Masters",
                "status": "suspended",
                "skills": ["Electrician", "Wiring"],
                "service_areas": ["Kilimani"],
                "rating": 3.2,
                "completed_jobs": 9,
            },
        ]
        seed_listings = [
            ("prov_1", "electrical", "Home Wiring & Repairs", 3500, 180),
            ("prov_2", "cleaning", "Deep Cleaning", 2500, 240),
            ("prov_2", "cleaning", "Office Cleaning", 3000, 240),
            ("prov_3", "plumbing", "Leak Repair", 3000, 120),
            ("prov_4", "maintenance", "Handyman Visit", 2000, 120),
            ("prov_5", "electrical", "Emergency Electrical Callout", 4500, 120),
        ]

        for provider in seed_providers:
            provider_id = str(provider.pop("id"))
            self.add_provider(provider_id=provider_id, **provider)
        for provider_id, category, title, price, duration in seed_listings:
            self.add_listing(
                provider_id=provider_id,
                category=category,
                title=title,
                price=price,
                duration_minutes=duration,
            )
        logger.info("Seeded demo catalogue with %s providers", len(seed_providers))

    def _row_to_provider(self, row: sqlite3.Row) -> Provider:
        return Provider(
            id=row["id"],
            name=row["name"],
            status=row["status"],
            skills=json.loads(row["skills_json"] or "[]"),
            service_areas=json.loads(row["service_areas_json"] or "[]"),
            rating=float(row["rating"]),
            completed_jobs=int(row["completed_jobs"]),
            default_price=row["default_price"],
            default_duration_minutes=row["default_duration_minutes"],
        )

    def _row_to_listing(self, row: sqlite3.Row) -> ServiceListing:
        return ServiceListing(
            id=row["id"],
            provider_id=row["provider_id"],
            category=row["category"],
            title=row["title"],
            description=row["description"],
            price=int(row["price"]),
            duration_minutes=int(row["duration_minutes"]),
            is_active=bool(row["is_active"]),
            origin=row["origin"],
        )

    def _row_to_booking(self, row: sqlite3.Row) -> Booking:
        return Booking(
            id=row["id"],
            booking_number=row["booking_number"],
            client_id=row["client_id"],
            provider_id=row["provider_id"],
            service_id=row["service_id"],
            category=row["category"],
            status=row["status"],
            assignment_method=row["assignment_method"],
            scheduled_date=row["scheduled_date"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            location=Location.model_validate(json.loads(row["location_json"])),
            pricing=BookingPricing.model_validate(json.loads(row["pricing_json"])),
            payment=BookingPayment.model_validate(json.loads(row["payment_json"])),
            description=row["description"],
            metadata=json.loads(row["metadata_json"] or "{}"),
            created_at=row["created_at"],
        )

    # Providers

    def add_provider(
        self,
        *,
        name: str,
        status: str = "pending",
        skills: Optional[Iterable[str]] = None,
        service_areas: Optional[Iterable[str]] = None,
        rating: float = 0.0,
        completed_jobs: int = 0,
        default_price: Optional[int] = None,
        default_duration_minutes: Optional[int] = None,
        provider_id: Optional[str] = None,
    ) -> Provider:
        if not name.strip():
            raise RequestValidationError("Provider name is required")
        if status not in PROVIDER_STATUSES:
            raise RequestValidationError(f"Invalid provider status: {status}")
        if not 0 <= float(rating) <= 5:
            raise RequestValidationError("rating must be between 0 and 5")

        provider_id = provider_id or f"prov_{uuid4().hex[:8]}"
        clean_skills = [skill.strip() for skill in (skills or []) if skill and skill.strip()]
        clean_areas = [area.strip() for area in (service_areas or []) if area and area.strip()]
        with self._lock:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO providers (
                        id, name, status, skills_json, service_areas_json, rating, completed_jobs,
                        default_price, default_duration_minutes, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        provider_id,
                        name.strip(),
                        status,
                        json.dumps(clean_skills),
                        json.dumps(clean_areas),
                        float(rating),
                        int(completed_jobs),
                        default_price,
                        default_duration_minutes,
                        datetime.utcnow().isoformat(),
                    ),
                )
                conn.commit()
                row = conn.execute("SELECT * FROM providers WHERE id = ?", (provider_id,)).fetchone()
        return self._row_to_provider(row)

    def set_provider_status(self, provider_id: str, status: str) -> Provider:
        if status not in PROVIDER_STATUSES:
            raise RequestValidationError(f"Invalid provider status: {status}")
        with self._lock:
            with self._connect() as conn:
                cursor = conn.execute("UPDATE providers SET status = ? WHERE id = ?", (status, provider_id))
                if cursor.rowcount == 0:
                    raise NotFoundError("Provider not found")
                conn.commit()
                row = conn.execute("SELECT * FROM providers WHERE id = ?", (provider_id,)).fetchone()
        return self._row_to_provider(row)

    def get_provider(self, provider_id: str) -> Optional[Provider]:
        with self._lock:
            with self._connect() as conn:
                row = conn.execute("SELECT * FROM providers WHERE id = ?", (provider_id,)).fetchone()
        return self._row_to_provider(row) if row else None

    def get_providers(self, provider_ids: Iterable[str]) -> Dict[str, Provider]:
        ids = sorted({provider_id for provider_id in provider_ids if provider_id})
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        with self._lock:
            with self._connect() as conn:
                rows = conn.execute(f"SELECT * FROM providers WHERE id IN ({placeholders})", tuple(ids)).fetchall()
        return {row["id"]: self._row_to_provider(row) for row in rows}

    def list_providers(self, status: Optional[str] = None) -> List[Provider]:
        with self._lock:
            with self._connect() as conn:
                if status:
                    rows = conn.execute("SELECT * FROM providers WHERE status = ? ORDER BY name", (status,)).fetchall()
                else:
                    rows = conn.execute("SELECT * FROM providers ORDER BY name").fetchall()
        return [self._row_to_provider(row) for row in rows]

    # Listings

    def add_listing(
        self,
        *,
        provider_id: str,
        category: str,
        title: str,
        price: int,
        description: str = "",
        duration_minutes: int = 120,
        is_active: bool = True,
    ) -> ServiceListing:
        if not category.strip():
            raise RequestValidationError("Listing category is required")
        if not title.strip():
            raise RequestValidationError("Listing title is required")
        if int(price) < 0:
            raise RequestValidationError("price cannot be negative")
        listing_id = f"svc_{uuid4().hex[:10]}"
        with self._lock:
            with self._connect() as conn:
                provider = conn.execute("SELECT id FROM providers WHERE id = ?", (provider_id,)).fetchone()
                if not provider:
                    raise NotFoundError("Provider not found")
                conn.execute(
                    """
                    INSERT INTO service_listings (
                        id, provider_id, category, title, description, price, duration_minutes,
                        is_active, origin, synthesis_key, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 'onboarding', NULL, ?)
                    """,
                    (
                        listing_id,
                        provider_id,
                        category.strip().lower(),
                        title.strip(),
                        description.strip(),
                        int(price),
                        int(duration_minutes),
                        1 if is_active else 0,
                        datetime.utcnow().isoformat(),
                    ),
                )
                conn.commit()
                row = conn.execute("SELECT * FROM service_listings WHERE id = ?", (listing_id,)).fetchone()
        return self._row_to_listing(row)

    def deactivate_listing(self, listing_id: str) -> ServiceListing:
        with self._lock:
            with self._connect() as conn:
                cursor = conn.execute("UPDATE service_listings SET is_active = 0 WHERE id = ?", (listing_id,))
                if cursor.rowcount == 0:
                    raise NotFoundError("Service listing not found")
                conn.commit()
                row = conn.execute("SELECT * FROM service_listings WHERE id = ?", (listing_id,)).fetchone()
        return self._row_to_listing(row)

    def get_listing(self, listing_id: str) -> Optional[ServiceListing]:
        with self._lock:
            with self._connect() as conn:
                row = conn.execute("SELECT * FROM service_listings WHERE id = ?", (listing_id,)).fetchone()
        return self._row_to_listing(row) if row else None

    def list_provider_listings(self, provider_id: str, active_only: bool = True) -> List[ServiceListing]:
        query = "SELECT * FROM service_listings WHERE provider_id = ?"
        if active_only:
            query += " AND is_active = 1"
        query += " ORDER BY created_at, id"
        with self._lock:
            with self._connect() as conn:
                rows = conn.execute(query, (provider_id,)).fetchall()
        return [self._row_to_listing(row) for row in rows]

    def search_active_listings(
        self,
        terms: Iterable[str],
        *,
        match_titles: bool = False,
    ) -> List[Tuple[ServiceListing, Provider]]:
        """Active listings whose category (and optionally title) contains any term, joined to their owner.

        Provider status is not filtered here; eligibility is decided by the caller.
        """
        needles = sorted({term.strip().lower() for term in terms if term and term.strip()})
        if not needles:
            return []
        clauses: List[str] = []
        params: List[Any] = []
        for needle in needles:
            clauses.append("instr(lower(l.category), ?) > 0")
            params.append(needle)
            if match_titles:
                clauses.append("instr(lower(l.title), ?) > 0")
                params.append(needle)
        query = (
            "SELECT l.*, p.id AS p_id, p.name AS p_name, p.status AS p_status, p.skills_json AS p_skills_json, "
            "p.service_areas_json AS p_service_areas_json, p.rating AS p_rating, p.completed_jobs AS p_completed_jobs, "
            "p.default_price AS p_default_price, p.default_duration_minutes AS p_default_duration_minutes "
            "FROM service_listings l JOIN providers p ON p.id = l.provider_id "
            f"WHERE l.is_active = 1 AND ({' OR '.join(clauses)}) "
            "ORDER BY l.created_at, l.id"
        )
        with self._lock:
            with self._connect() as conn:
                rows = conn.execute(query, tuple(params)).fetchall()
        result: List[Tuple[ServiceListing, Provider]] = []
        for row in rows:
            provider = Provider(
                id=row["p_id"],
                name=row["p_name"],
                status=row["p_status"],
                skills=json.loads(row["p_skills_json"] or "[]"),
                service_areas=json.loads(row["p_service_areas_json"] or "[]"),
                rating=float(row["p_rating"]),
                completed_jobs=int(row["p_completed_jobs"]),
                default_price=row["p_default_price"],
                default_duration_minutes=row["p_default_duration_minutes"],
            )
            result.append((self._row_to_listing(row), provider))
        return result

    def find_active_listing_for_category(self, provider_id: str, category: str) -> Optional[ServiceListing]:
        """The provider's active listing that discovery would match for ``category``.

        Matches the same way as ``search_active_listings(match_titles=True)``: the term inside the
        category or the title. Onboarding listings win over synthesized ones, then exact category.
        """
        needle = category.strip().lower()
        with self._lock:
            with self._connect() as conn:
                row = conn.execute(
                    """
                    SELECT * FROM service_listings
                    WHERE provider_id = ? AND is_active = 1
                      AND (instr(lower(category), ?) > 0 OR instr(lower(title), ?) > 0)
                    ORDER BY CASE origin WHEN 'onboarding' THEN 0 ELSE 1 END,
                             CASE WHEN lower(category) = ? THEN 0 ELSE 1 END,
                             created_at, id
                    LIMIT 1
                    """,
                    (provider_id, needle, needle, needle),
                ).fetchone()
        return self._row_to_listing(row) if row else None

    def insert_synthesized_listing(
        self,
        *,
        provider_id: str,
        category: str,
        title: str,
        description: str,
        price: int,
        duration_minutes: int,
    ) -> ServiceListing:
        """Atomic insert keyed on (provider, category); raises SynthesisConflictError if the key exists."""
        key = synthesis_key_for(provider_id, category)
        listing_id = f"svc_{uuid4().hex[:10]}"
        with self._lock:
            with self._connect() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO service_listings (
                        id, provider_id, category, title, description, price, duration_minutes,
                        is_active, origin, synthesis_key, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, 1, 'synthesized', ?, ?)
                    ON CONFLICT(synthesis_key) DO NOTHING
                    """,
                    (
                        listing_id,
                        provider_id,
                        category.strip().lower(),
                        title,
                        description,
                        int(price),
                        int(duration_minutes),
                        key,
                        datetime.utcnow().isoformat(),
                    ),
                )
                conn.commit()
                if cursor.rowcount == 0:
                    raise SynthesisConflictError(key)
                row = conn.execute("SELECT * FROM service_listings WHERE id = ?", (listing_id,)).fetchone()
        return self._row_to_listing(row)

    def get_synthesized_listing(self, provider_id: str, category: str, *, reactivate: bool = True) -> Optional[ServiceListing]:
        key = synthesis_key_for(provider_id, category)
        with self._lock:
            with self._connect() as conn:
                if reactivate:
                    conn.execute("UPDATE service_listings SET is_active = 1 WHERE synthesis_key = ?", (key,))
                    conn.commit()
                row = conn.execute("SELECT * FROM service_listings WHERE synthesis_key = ?", (key,)).fetchone()
        return self._row_to_listing(row) if row else None

    # Bookings

    def insert_booking(self, booking: Booking, *, actor_user_id: str) -> Booking:
        """Re-verifies the provider/listing binding and inserts the booking in one locked transaction."""
        with self._lock:
            with self._connect() as conn:
                listing = conn.execute(
                    "SELECT provider_id, is_active FROM service_listings WHERE id = ?",
                    (booking.service_id,),
                ).fetchone()
                if not listing:
                    raise AssignmentIntegrityError("Service listing disappeared before commit")
                if str(listing["provider_id"]) != booking.provider_id:
                    raise AssignmentIntegrityError("Service does not belong to the assigned provider")
                if not bool(listing["is_active"]):
                    raise AssignmentIntegrityError("Service listing is no longer active")
                provider = conn.execute("SELECT status FROM providers WHERE id = ?", (booking.provider_id,)).fetchone()
                if not provider or provider["status"] != "approved":
                    raise AssignmentIntegrityError("Assigned provider is no longer approved")

                conn.execute(
                    """
                    INSERT INTO bookings (
                        id, booking_number, client_id, provider_id, service_id, category, status,
                        assignment_method, scheduled_date, start_time, end_time, location_json,
                        pricing_json, payment_json, description, metadata_json, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        booking.id,
                        booking.booking_number,
                        booking.client_id,
                        booking.provider_id,
                        booking.service_id,
                        booking.category,
                        booking.status,
                        booking.assignment_method,
                        booking.scheduled_date,
                        booking.start_time,
                        booking.end_time,
                        booking.location.model_dump_json(),
                        booking.pricing.model_dump_json(),
                        booking.payment.model_dump_json(),
                        booking.description,
                        json.dumps(booking.metadata, sort_keys=True),
                        booking.created_at,
                    ),
                )
                conn.execute(
                    """
                    INSERT INTO booking_status_history (id, booking_id, actor_user_id, from_status, to_status, note, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        f"bsh_{uuid4().hex[:10]}",
                        booking.id,
                        actor_user_id,
                        "none",
                        booking.status,
                        f"booking created ({booking.assignment_method})",
                        datetime.utcnow().isoformat(),
                    ),
                )
                conn.commit()
                row = conn.execute("SELECT * FROM bookings WHERE id = ?", (booking.id,)).fetchone()
        return self._row_to_booking(row)

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        with self._lock:
            with self._connect() as conn:
                row = conn.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()
        return self._row_to_booking(row) if row else None

    def list_bookings(self, client_id: Optional[str] = None, provider_id: Optional[str] = None) -> List[Booking]:
        query = "SELECT * FROM bookings"
        clauses: List[str] = []
        params: List[Any] = []
        if client_id:
            clauses.append("client_id = ?")
            params.append(client_id)
        if provider_id:
            clauses.append("provider_id = ?")
            params.append(provider_id)
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY created_at DESC"
        with self._lock:
            with self._connect() as conn:
                rows = conn.execute(query, tuple(params)).fetchall()
        return [self._row_to_booking(row) for row in rows]

    def list_status_history(self, booking_id: str) -> List[Dict[str, str]]:
        with self._lock:
            with self._connect() as conn:
                rows = conn.execute(
                    """
                    SELECT actor_user_id, from_status, to_status, note, created_at
                    FROM booking_status_history WHERE booking_id = ? ORDER BY created_at, rowid
                    """,
                    (booking_id,),
                ).fetchall()
        return [dict(row) for row in rows]

    def update_booking_status(self, booking_id: str, update: BookingStatusUpdateRequest) -> Booking:
        with self._lock:
            with self._connect() as conn:
                row = conn.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()
                if not row:
                    raise NotFoundError("Booking not found")

                current_status = str(row["status"])
                if current_status in BOOKING_TERMINAL_STATUSES:
                    raise ConflictError("Booking is already terminal")

                next_status = update.status
                if next_status not in BOOKING_TRANSITIONS.get(current_status, set()):
                    raise RequestValidationError(f"Invalid status transition: {current_status} -> {next_status}")

                provider_id = str(row["provider_id"])
                client_id = str(row["client_id"])
                if next_status in PROVIDER_ONLY_STATUSES and update.actor_user_id != provider_id:
                    raise PermissionDeniedError("Only the assigned provider can apply this status")
                if next_status == "cancelled" and update.actor_user_id not in {provider_id, client_id}:
                    raise PermissionDeniedError("Only the client or the assigned provider can cancel")

                conn.execute("UPDATE bookings SET status = ? WHERE id = ?", (next_status, booking_id))
                conn.execute(
                    """
                    INSERT INTO booking_status_history (id, booking_id, actor_user_id, from_status, to_status, note, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        f"bsh_{uuid4().hex[:10]}",
                        booking_id,
                        update.actor_user_id,
                        current_status,
                        next_status,
                        update.note,
                        datetime.utcnow().isoformat(),
                    ),
                )
                conn.commit()
                updated = conn.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()
        return self._row_to_booking(updated)


def _read_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


default_db = str(Path(__file__).resolve().parents[2] / "data" / "matching.sqlite3")
catalog_store = CatalogStore(
    db_path=os.getenv("MATCHING_DB_PATH", default_db),
    seed_demo_data=_read_bool_env("SEED_DEMO_DATA", True),
)
