import logging
from typing import List, Optional

from servicematch.config import MatchingConfig, matching_config
from servicematch.models import (
    Booking,
    BookingCreateRequest,
    DiscoveryRequest,
    DiscoveryResponse,
    MatchCandidate,
)
from servicematch.services.assigner import BookingAssigner
from servicematch.services.catalog_store import CatalogStore, catalog_store
from servicematch.services.finder import CandidateFinder
from servicematch.services.ranker import rank_candidates
from servicematch.services.resolver import AssignmentResolver
from servicematch.services.synthesizer import DynamicServiceSynthesizer

logger = logging.getLogger(__name__)


class MatchingEngine:
    """Discovery, ranking, assignment and booking commit wired over one catalogue store."""

    def __init__(self, store: CatalogStore, config: Optional[MatchingConfig] = None) -> None:
        self.store = store
        self.config = config or MatchingConfig()
        self.finder = CandidateFinder(store, self.config)
        self.synthesizer = DynamicServiceSynthesizer(store, self.config)
        self.resolver = AssignmentResolver(store, self.synthesizer, discover=self.rank)
        self.assigner = BookingAssigner(store, self.config)

    def rank(self, request: DiscoveryRequest) -> List[MatchCandidate]:
        streams = self.finder.find(request)
        providers = self.store.get_providers(streams.provider_ids)
        return rank_candidates(streams.streams, providers)

    def discover(self, request: DiscoveryRequest) -> DiscoveryResponse:
        streams = self.finder.find(request)
        providers = self.store.get_providers(streams.provider_ids)
        ranked = rank_candidates(streams.streams, providers)
        limit = max(request.providers_needed * 3, 10)
        return DiscoveryResponse(
            providers=ranked[:limit],
            total_found=len(ranked),
            search_strategies=streams.counts,
            category=request.category,
            location=request.location.area,
        )

    def create_booking(self, request: BookingCreateRequest) -> Booking:
        resolved = self.resolver.resolve(request)
        booking = self.assigner.commit(request, resolved)
        logger.info(
            "Booking %s committed: provider=%s service=%s method=%s",
            booking.booking_number,
            booking.provider_id,
            booking.service_id,
            booking.assignment_method,
        )
        return booking


matching_engine = MatchingEngine(catalog_store, matching_config)
