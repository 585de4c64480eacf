import os
import sys
import tempfile

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

# The app wires module-level singletons on import; keep them off the real data directory.
os.environ.setdefault("MATCHING_DB_PATH", os.path.join(tempfile.mkdtemp(prefix="servicematch-"), "matching.sqlite3"))
os.environ.setdefault("SEED_DEMO_DATA", "true")

from servicematch.config import MatchingConfig  # noqa: E402
from servicematch.services.catalog_store import CatalogStore  # noqa: E402
from servicematch.services.matching_engine import MatchingEngine  # noqa: E402


@pytest.fixture
def matching_config() -> MatchingConfig:
    return MatchingConfig(
        category_keywords={
            "electrical": ["electrical", "electrician", "wiring", "lighting"],
            "cleaning": ["cleaning", "cleaner"],
            "carpentry": ["carpentry", "carpenter"],
        },
        fuzzy_categories={
            "electrical": ["maintenance", "repair", "installation"],
            "carpentry": ["woodwork"],
        },
        default_fuzzy_categories=[],
        adjacent_areas={"Kilimani": ["Kileleshwa"]},
        wildcard_areas=["All Areas"],
        default_prices={"electrical": 3500, "cleaning": 2500},
        fallback_price=3000,
    )


@pytest.fixture
def store(tmp_path) -> CatalogStore:
    return CatalogStore(db_path=str(tmp_path / "catalog.sqlite3"))


@pytest.fixture
def engine(store, matching_config) -> MatchingEngine:
    return MatchingEngine(store, matching_config)
