from fastapi import APIRouter, HTTPException

from servicematch.models import DiscoveryRequest, DiscoveryResponse, ServiceListing
from servicematch.routers.errors import raise_http_error
from servicematch.services.errors import MatchingError
from servicematch.services.matching_engine import matching_engine

router = APIRouter(tags=["matching"])


@router.post("/matching/discover", response_model=DiscoveryResponse)
def discover_providers(request: DiscoveryRequest):
    # An empty provider list is a successful answer; the client prompts to broaden the search.
    try:
        return matching_engine.discover(request)
    except MatchingError as exc:
        raise_http_error(exc)


@router.get("/providers/{provider_id}/listings", response_model=list[ServiceListing])
def provider_listings(provider_id: str):
    if matching_engine.store.get_provider(provider_id) is None:
        raise HTTPException(status_code=404, detail="Provider not found")
    return matching_engine.store.list_provider_listings(provider_id)
