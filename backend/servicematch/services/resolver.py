import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from servicematch.models import (
    BookingCreateRequest,
    MatchCandidate,
    MatchType,
    ResolvedAssignment,
    SelectionRef,
    ServiceListing,
)
from servicematch.services.catalog_store import CatalogStore
from servicematch.services.errors import NoCandidatesAvailable, SelectionInvalidError
from servicematch.services.synthesizer import DynamicServiceSynthesizer
from servicematch.services.validator import is_eligible

logger = logging.getLogger(__name__)

# Upstream clients send the same selection under different field names; first hit wins.
PROVIDER_ID_FIELDS = ("id", "_id")
SERVICE_ID_PATHS = (("serviceId",), ("service", "_id"), ("service",), ("mainServiceId",))


def _lookup(payload: Mapping[str, Any], path: tuple) -> Optional[str]:
    value: Any = payload
    for key in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        text = str(value).strip()
        return text or None
    return None


def normalize_selection(payload: Mapping[str, Any]) -> SelectionRef:
    """Canonical ``{provider_id, service_id}`` for a client-side provider selection.

    A service id equal to the provider id is the legacy "provider only, no listing" value
    and normalizes to ``service_id=None``.
    """
    if not isinstance(payload, Mapping):
        raise SelectionInvalidError("Provider selection must be an object", field="selectedProvider")

    provider_id = next(
        (found for found in (_lookup(payload, (name,)) for name in PROVIDER_ID_FIELDS) if found),
        None,
    )
    if not provider_id:
        raise SelectionInvalidError("Provider selection is missing a provider id", field="id")

    service_id = next(
        (found for found in (_lookup(payload, path) for path in SERVICE_ID_PATHS) if found),
        None,
    )
    if service_id == provider_id:
        service_id = None
    return SelectionRef(provider_id=provider_id, service_id=service_id)


def selected_match_type(listing: ServiceListing, category: str) -> MatchType:
    """How a client-chosen listing relates to the requested category, for telemetry."""
    if listing.origin == "synthesized":
        return "synthesized"
    needle = category.strip().lower()
    if needle in listing.category.lower() or needle in listing.title.lower():
        return "exact-service"
    return "fuzzy-match"


class AssignmentResolver:
    def __init__(
        self,
        store: CatalogStore,
        synthesizer: DynamicServiceSynthesizer,
        discover: Callable[[BookingCreateRequest], List[MatchCandidate]],
    ) -> None:
        self.store = store
        self.synthesizer = synthesizer
        self.discover = discover

    def resolve(self, request: BookingCreateRequest) -> ResolvedAssignment:
        if request.selected_provider is not None:
            return self.resolve_selection(request.selected_provider, request)
        return self.resolve_automatic(request)

    def resolve_selection(self, payload: Dict[str, Any], request: BookingCreateRequest) -> ResolvedAssignment:
        selection = normalize_selection(payload)
        provider = self.store.get_provider(selection.provider_id)
        if provider is None:
            raise SelectionInvalidError("Selected provider not found", field="id")
        if not is_eligible(provider):
            logger.warning("Rejected selection of provider %s with status %s", provider.id, provider.status)
            raise SelectionInvalidError("Selected provider is not available for booking", field="id")

        if selection.service_id:
            listing = self.store.get_listing(selection.service_id)
            if listing is None:
                raise SelectionInvalidError("Selected service not found", field="serviceId")
            if listing.provider_id != provider.id:
                logger.warning(
                    "Rejected selection: service %s belongs to %s, not %s",
                    listing.id,
                    listing.provider_id,
                    provider.id,
                )
                raise SelectionInvalidError("Service does not belong to selected provider", field="serviceId")
            if not listing.is_active:
                raise SelectionInvalidError("Selected service is no longer active", field="serviceId")
            return ResolvedAssignment(
                provider_id=provider.id,
                service_id=listing.id,
                assignment_method="user-selected",
                match_type=selected_match_type(listing, request.category),
            )

        listing = self.synthesizer.ensure_listing(provider, request.category, price=request.total_amount)
        if listing.origin == "onboarding":
            # The provider already lists this category; book that listing rather than a synthesized one.
            return ResolvedAssignment(
                provider_id=provider.id,
                service_id=listing.id,
                assignment_method="user-selected",
                match_type=selected_match_type(listing, request.category),
            )
        return ResolvedAssignment(
            provider_id=provider.id,
            service_id=listing.id,
            assignment_method="synthesized-fallback",
            match_type="synthesized",
        )

    def resolve_automatic(self, request: BookingCreateRequest) -> ResolvedAssignment:
        ranked = self.discover(request)
        providers = self.store.get_providers(candidate.provider_id for candidate in ranked)
        for candidate in ranked:
            provider = providers.get(candidate.provider_id)
            if not is_eligible(provider):
                # Status changed after ranking; fall through to the next candidate.
                logger.info("Skipping ranked provider %s: no longer eligible", candidate.provider_id)
                continue
            service_id = candidate.service_id
            if service_id is None:
                service_id = self.synthesizer.ensure_listing(provider, request.category, price=request.total_amount).id
            return ResolvedAssignment(
                provider_id=candidate.provider_id,
                service_id=service_id,
                assignment_method="auto-assigned",
                match_type=candidate.match_type,
                score=candidate.score,
            )
        raise NoCandidatesAvailable(
            f"No {request.category} providers available in {request.location.area}. "
            "Try a different area or category."
        )
