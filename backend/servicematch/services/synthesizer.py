import logging
from typing import Optional

from servicematch.config import MatchingConfig
from servicematch.models import Provider, ServiceListing
from servicematch.services.catalog_store import CatalogStore, synthesis_key_for
from servicematch.services.errors import ConflictError, SelectionInvalidError, SynthesisConflictError
from servicematch.services.validator import is_eligible

logger = logging.getLogger(__name__)


class DynamicServiceSynthesizer:
    """Find-or-create a minimal listing so a provider can be bound to a booking.

    Keyed by (provider id, category): an existing active listing for the pair is reused,
    otherwise one synthesized listing is upserted. Concurrent callers for the same pair
    all end up with the same listing id.
    """

    def __init__(self, store: CatalogStore, config: MatchingConfig) -> None:
        self.store = store
        self.config = config

    def ensure_listing(self, provider: Provider, category: str, *, price: Optional[int] = None) -> ServiceListing:
        if not is_eligible(provider):
            raise SelectionInvalidError(f"Provider {provider.id} is not eligible for assignment", field="id")
        category = category.strip().lower()

        existing = self.store.find_active_listing_for_category(provider.id, category)
        if existing:
            return existing

        label = category.replace("-", " ").title()
        try:
            listing = self.store.insert_synthesized_listing(
                provider_id=provider.id,
                category=category,
                title=f"{label} Services by {provider.name}",
                description=f"Professional {category} services provided by {provider.name}",
                price=self._price(provider, category, price),
                duration_minutes=provider.default_duration_minutes or self.config.duration_for(category),
            )
        except SynthesisConflictError as exc:
            logger.info("Synthesis conflict on %s; reusing existing listing", exc.synthesis_key)
            listing = self.store.get_synthesized_listing(provider.id, category)
            if listing is None:
                raise ConflictError(f"Synthesized listing vanished for {synthesis_key_for(provider.id, category)}") from exc
            return listing

        logger.info("Synthesized listing %s for provider %s (%s)", listing.id, provider.id, category)
        return listing

    def _price(self, provider: Provider, category: str, requested: Optional[int]) -> int:
        if requested:
            return int(requested)
        if provider.default_price:
            return int(provider.default_price)
        return self.config.price_for(category)
