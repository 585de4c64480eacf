"""Eligibility gate shared by every discovery strategy, the ranker and the resolver."""

from typing import Iterable, List, Optional

from servicematch.models import Provider

ELIGIBLE_STATUS = "approved"


def is_eligible(provider: Optional[Provider]) -> bool:
    return provider is not None and provider.status == ELIGIBLE_STATUS


def filter_eligible(providers: Iterable[Provider]) -> List[Provider]:
    return [provider for provider in providers if is_eligible(provider)]
