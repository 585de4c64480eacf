import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from servicematch.config import MatchingConfig
from servicematch.models import DiscoveryRequest, MatchCandidate, Provider, StrategyCounts
from servicematch.services.catalog_store import CatalogStore
from servicematch.services.validator import filter_eligible, is_eligible

logger = logging.getLogger(__name__)

# None means "no location filter".
AreaSet = Optional[Set[str]]


def serves_location(provider: Provider, areas: AreaSet, wildcard_areas: Iterable[str]) -> bool:
    if areas is None:
        return True
    provider_areas = {area.strip().lower() for area in provider.service_areas if area.strip()}
    if not provider_areas:
        return True
    if provider_areas & {area.lower() for area in wildcard_areas}:
        return True
    return bool(provider_areas & areas)


def _describe_areas(areas: AreaSet) -> str:
    if areas is None:
        return "any area"
    return ", ".join(sorted(areas))


class ExactServiceMatcher:
    """Active listings filed under the category, or titled with it."""

    def __init__(self, store: CatalogStore, config: MatchingConfig) -> None:
        self.store = store
        self.config = config

    def match(self, category: str, areas: AreaSet) -> List[MatchCandidate]:
        candidates: List[MatchCandidate] = []
        for listing, provider in self.store.search_active_listings([category], match_titles=True):
            if not is_eligible(provider):
                continue
            if not serves_location(provider, areas, self.config.wildcard_areas):
                continue
            candidates.append(
                MatchCandidate(
                    provider_id=provider.id,
                    name=provider.name,
                    service_id=listing.id,
                    match_type="exact-service",
                    score=self.config.weights.exact,
                    rationale=f"Active listing '{listing.title}' under {listing.category}",
                )
            )
        return candidates


class SkillKeywordMatcher:
    """Providers whose skills mention a synonym of the category; no listing backs these yet."""

    def __init__(self, store: CatalogStore, config: MatchingConfig) -> None:
        self.store = store
        self.config = config

    def match(self, category: str, areas: AreaSet) -> List[MatchCandidate]:
        keywords = [keyword.lower() for keyword in self.config.keywords_for(category)]
        candidates: List[MatchCandidate] = []
        for provider in filter_eligible(self.store.list_providers()):
            if not serves_location(provider, areas, self.config.wildcard_areas):
                continue
            matched = self._matched_keyword(provider, keywords)
            if not matched:
                continue
            candidates.append(
                MatchCandidate(
                    provider_id=provider.id,
                    name=provider.name,
                    service_id=None,
                    match_type="skill-based",
                    score=self.config.weights.skill,
                    rationale=f"Skill matches '{matched}'",
                )
            )
        return candidates

    @staticmethod
    def _matched_keyword(provider: Provider, keywords: List[str]) -> Optional[str]:
        for skill in provider.skills:
            lowered = skill.lower()
            for keyword in keywords:
                if keyword and keyword in lowered:
                    return keyword
        return None


class FuzzyCategoryMatcher:
    """Listings under neighbouring categories; lower precision than an exact listing."""

    def __init__(self, store: CatalogStore, config: MatchingConfig) -> None:
        self.store = store
        self.config = config

    def match(self, category: str, areas: AreaSet) -> List[MatchCandidate]:
        neighbours = self.config.fuzzy_for(category)
        candidates: List[MatchCandidate] = []
        for listing, provider in self.store.search_active_listings(neighbours):
            if not is_eligible(provider):
                continue
            if not serves_location(provider, areas, self.config.wildcard_areas):
                continue
            candidates.append(
                MatchCandidate(
                    provider_id=provider.id,
                    name=provider.name,
                    service_id=listing.id,
                    match_type="fuzzy-match",
                    score=self.config.weights.fuzzy,
                    rationale=f"Related category {listing.category} ('{listing.title}')",
                )
            )
        return candidates


class LocationExpander:
    """Reruns the exact and skill strategies over progressively wider area sets."""

    def __init__(self, exact: ExactServiceMatcher, skill: SkillKeywordMatcher, config: MatchingConfig) -> None:
        self.exact = exact
        self.skill = skill
        self.config = config

    def tiers(self, area: str) -> List[tuple[int, AreaSet]]:
        tiers: List[tuple[int, AreaSet]] = []
        neighbours = self.config.adjacent_to(area)
        if neighbours:
            tiers.append((1, {area.lower(), *(name.lower() for name in neighbours)}))
        tiers.append((2, None))
        return tiers

    def expand(self, category: str, area: str, seen: Set[str], needed: int) -> List[MatchCandidate]:
        found: List[MatchCandidate] = []
        known = set(seen)
        for tier, areas in self.tiers(area):
            if len(known) >= needed:
                break
            penalty = self.config.weights.expansion_penalty * tier
            for candidate in [*self.exact.match(category, areas), *self.skill.match(category, areas)]:
                if candidate.provider_id in known:
                    continue
                found.append(
                    candidate.model_copy(
                        update={
                            "match_type": "location-expanded",
                            "score": candidate.score - penalty,
                            "tier": tier,
                            "rationale": f"{candidate.rationale}; search widened to {_describe_areas(areas)}",
                        }
                    )
                )
                known.add(candidate.provider_id)
            logger.info("Location expansion tier %s for %s in %s: %s providers", tier, category, area, len(known))
        return found


@dataclass
class DiscoveryStreams:
    streams: List[List[MatchCandidate]] = field(default_factory=list)
    counts: StrategyCounts = field(default_factory=StrategyCounts)

    @property
    def provider_ids(self) -> Set[str]:
        return {candidate.provider_id for stream in self.streams for candidate in stream}


class CandidateFinder:
    def __init__(self, store: CatalogStore, config: MatchingConfig) -> None:
        self.store = store
        self.config = config
        self.exact = ExactServiceMatcher(store, config)
        self.skill = SkillKeywordMatcher(store, config)
        self.fuzzy = FuzzyCategoryMatcher(store, config)
        self.expander = LocationExpander(self.exact, self.skill, config)

    def find(self, request: DiscoveryRequest) -> DiscoveryStreams:
        category = request.category
        area = request.location.area
        base_areas: AreaSet = {area.lower()}
        needed = request.providers_needed

        result = DiscoveryStreams()
        exact = self.exact.match(category, base_areas)
        skill = self.skill.match(category, base_areas)
        result.streams.extend([exact, skill])
        result.counts.exact_services = len(exact)
        result.counts.skill_based = len(skill)

        if len(result.provider_ids) < needed:
            fuzzy = self.fuzzy.match(category, base_areas)
            result.streams.append(fuzzy)
            result.counts.fuzzy_match = len(fuzzy)

        seen = result.provider_ids
        if len(seen) < needed:
            expanded = self.expander.expand(category, area, seen, needed)
            result.streams.append(expanded)
            result.counts.location_expanded = len(expanded)

        logger.info(
            "Discovery for %s in %s: exact=%s skill=%s fuzzy=%s expanded=%s",
            category,
            area,
            result.counts.exact_services,
            result.counts.skill_based,
            result.counts.fuzzy_match,
            result.counts.location_expanded,
        )
        return result
