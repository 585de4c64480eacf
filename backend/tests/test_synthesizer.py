from concurrent.futures import ThreadPoolExecutor

import pytest

from servicematch.services.errors import SelectionInvalidError, SynthesisConflictError


def _approved(store, **overrides):
    fields = {"name": "Otieno Sparks", "status": "approved", "skills": ["Electrician"], "service_areas": ["Kilimani"]}
    fields.update(overrides)
    return store.add_provider(**fields)


def test_synthesis_is_idempotent(engine, store):
    provider = _approved(store)

    first = engine.synthesizer.ensure_listing(provider, "electrical")
    second = engine.synthesizer.ensure_listing(provider, "Electrical")

    assert first.id == second.id
    assert first.origin == "synthesized"
    assert first.provider_id == provider.id
    assert first.title == "Electrical Services by Otieno Sparks"
    assert len(store.list_provider_listings(provider.id)) == 1


def test_existing_listing_is_reused(engine, store):
    provider = _approved(store)
    listing = store.add_listing(provider_id=provider.id, category="electrical", title="Rewiring", price=3500)

    assert engine.synthesizer.ensure_listing(provider, "electrical").id == listing.id
    assert len(store.list_provider_listings(provider.id)) == 1


def test_listing_matched_by_discovery_is_reused(engine, store):
    provider = _approved(store, name="Sparkle Home", skills=[])
    house = store.add_listing(provider_id=provider.id, category="house cleaning", title="Two-bedroom clean", price=2500)
    titled = _approved(store, name="Kazi Bora", skills=[])
    plan = store.add_listing(provider_id=titled.id, category="home", title="Weekly Cleaning Plan", price=2000)

    assert engine.synthesizer.ensure_listing(provider, "cleaning").id == house.id
    assert engine.synthesizer.ensure_listing(titled, "cleaning").id == plan.id
    assert len(store.list_provider_listings(provider.id, active_only=False)) == 1
    assert len(store.list_provider_listings(titled.id, active_only=False)) == 1


def test_onboarding_listing_preferred_over_synthesized(engine, store):
    provider = _approved(store)
    synthesized = engine.synthesizer.ensure_listing(provider, "electrical")
    onboarding = store.add_listing(provider_id=provider.id, category="electrical repair", title="Rewiring", price=3500)

    assert synthesized.origin == "synthesized"
    assert engine.synthesizer.ensure_listing(provider, "electrical").id == onboarding.id


def test_concurrent_synthesis_creates_one_listing(engine, store):
    provider = _approved(store)

    with ThreadPoolExecutor(max_workers=8) as pool:
        listings = list(pool.map(lambda _: engine.synthesizer.ensure_listing(provider, "electrical"), range(16)))

    assert len({listing.id for listing in listings}) == 1
    assert len(store.list_provider_listings(provider.id, active_only=False)) == 1


def test_duplicate_synthesis_key_is_rejected(store):
    provider = _approved(store)
    kwargs = {
        "provider_id": provider.id,
        "category": "electrical",
        "title": "Electrical Services by Otieno Sparks",
        "description": "",
        "price": 3500,
        "duration_minutes": 180,
    }
    store.insert_synthesized_listing(**kwargs)

    with pytest.raises(SynthesisConflictError) as excinfo:
        store.insert_synthesized_listing(**kwargs)
    assert excinfo.value.synthesis_key == f"{provider.id}:electrical"


def test_deactivated_synthesized_listing_is_revived(engine, store):
    provider = _approved(store)
    listing = engine.synthesizer.ensure_listing(provider, "electrical")
    store.deactivate_listing(listing.id)

    revived = engine.synthesizer.ensure_listing(provider, "electrical")

    assert revived.id == listing.id
    assert revived.is_active is True


def test_ineligible_provider_cannot_get_listing(engine, store):
    provider = _approved(store, status="suspended")

    with pytest.raises(SelectionInvalidError):
        engine.synthesizer.ensure_listing(provider, "electrical")
    assert store.list_provider_listings(provider.id, active_only=False) == []


def test_synthesized_price_falls_back_in_order(engine, store):
    priced = _approved(store, name="Priced", default_price=4200)
    plain = _approved(store, name="Plain")

    assert engine.synthesizer.ensure_listing(priced, "electrical", price=5000).price == 5000
    assert engine.synthesizer.ensure_listing(priced, "cleaning").price == 4200
    assert engine.synthesizer.ensure_listing(plain, "cleaning").price == 2500
    assert engine.synthesizer.ensure_listing(plain, "gardening").price == 3000
