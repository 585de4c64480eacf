from typing import Dict, Iterable, List, Mapping

from servicematch.models import MatchCandidate, Provider
from servicematch.services.validator import is_eligible


def _keeps_over(candidate: MatchCandidate, incumbent: MatchCandidate) -> bool:
    if candidate.score != incumbent.score:
        return candidate.score > incumbent.score
    # Same score: a concrete listing beats a bare skill match.
    return candidate.service_id is not None and incumbent.service_id is None


def sort_key(candidate: MatchCandidate) -> tuple:
    return (
        -candidate.score,
        candidate.service_id is None,
        candidate.match_type == "synthesized",
        candidate.name.lower(),
        candidate.provider_id,
    )


def rank_candidates(
    streams: Iterable[Iterable[MatchCandidate]],
    providers: Mapping[str, Provider],
) -> List[MatchCandidate]:
    """Merge candidate streams into one list: one entry per eligible provider, best first.

    ``providers`` maps provider ids to their current records; candidates whose provider
    is unknown or fails the eligibility gate are dropped.
    """
    best: Dict[str, MatchCandidate] = {}
    for stream in streams:
        for candidate in stream:
            if not is_eligible(providers.get(candidate.provider_id)):
                continue
            incumbent = best.get(candidate.provider_id)
            if incumbent is None or _keeps_over(candidate, incumbent):
                best[candidate.provider_id] = candidate
    return sorted(best.values(), key=sort_key)
