import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


DEFAULT_CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    "electrical": ["electrical", "electrician", "wiring", "lighting", "electrical repair"],
    "plumbing": ["plumbing", "plumber", "pipe repair", "water systems"],
    "cleaning": ["cleaning", "cleaner", "house cleaning", "deep cleaning", "office cleaning"],
    "carpentry": ["carpentry", "carpenter", "furniture", "cabinet making"],
    "painting": ["painting", "painter", "interior painting", "exterior painting"],
    "gardening": ["gardening", "gardener", "landscaping", "lawn care"],
    "moving": ["moving", "mover", "relocation", "packing"],
    "movers": ["moving", "mover", "relocation", "packing"],
}

DEFAULT_FUZZY_CATEGORIES: Dict[str, List[str]] = {
    "electrical": ["maintenance", "repair", "installation"],
    "plumbing": ["maintenance", "repair", "installation", "water"],
    "cleaning": ["maintenance", "housekeeping", "janitorial"],
    "carpentry": ["woodwork", "furniture", "construction"],
    "painting": ["decoration", "renovation", "maintenance"],
    "gardening": ["landscaping", "outdoor", "maintenance"],
    "moving": ["transport", "logistics", "relocation"],
}

DEFAULT_ADJACENT_AREAS: Dict[str, List[str]] = {
    "Lavington": ["Kileleshwa", "Westlands"],
    "Kileleshwa": ["Lavington", "Kilimani", "Westlands"],
    "Westlands": ["Kileleshwa", "Parklands"],
    "Kilimani": ["Kileleshwa", "Nyayo"],
    "Parklands": ["Westlands", "Nyayo"],
    "Nyayo": ["Kilimani", "Parklands"],
}

DEFAULT_PRICES: Dict[str, int] = {
    "electrical": 3500,
    "plumbing": 3000,
    "cleaning": 2500,
    "carpentry": 4000,
    "painting": 3000,
    "gardening": 2000,
    "moving": 5000,
}

# minutes
DEFAULT_DURATIONS: Dict[str, int] = {
    "electrical": 180,
    "plumbing": 120,
    "cleaning": 240,
    "carpentry": 360,
    "painting": 480,
    "gardening": 180,
    "moving": 480,
}


class ScoreWeights(BaseModel):
    exact: float = 100
    skill: float = 80
    fuzzy: float = 60
    expansion_penalty: float = 10


class MatchingConfig(BaseModel):
    """Lookup tables and weights injected into discovery, synthesis and booking."""

    category_keywords: Dict[str, List[str]] = Field(default_factory=lambda: dict(DEFAULT_CATEGORY_KEYWORDS))
    fuzzy_categories: Dict[str, List[str]] = Field(default_factory=lambda: dict(DEFAULT_FUZZY_CATEGORIES))
    default_fuzzy_categories: List[str] = Field(default_factory=lambda: ["other"])
    adjacent_areas: Dict[str, List[str]] = Field(default_factory=lambda: dict(DEFAULT_ADJACENT_AREAS))
    wildcard_areas: List[str] = Field(default_factory=lambda: ["All Areas", "Nairobi"])
    default_prices: Dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_PRICES))
    fallback_price: int = 3000
    default_durations: Dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_DURATIONS))
    fallback_duration_minutes: int = 120
    weights: ScoreWeights = Field(default_factory=ScoreWeights)
    urgency_multipliers: Dict[str, float] = Field(
        default_factory=lambda: {"normal": 1.0, "urgent": 1.3, "emergency": 1.8}
    )
    currency: str = "KES"

    def keywords_for(self, category: str) -> List[str]:
        return self.category_keywords.get(category) or [category]

    def fuzzy_for(self, category: str) -> List[str]:
        return self.fuzzy_categories.get(category) or list(self.default_fuzzy_categories)

    def adjacent_to(self, area: str) -> List[str]:
        lowered = area.strip().lower()
        for key, neighbours in self.adjacent_areas.items():
            if key.lower() == lowered:
                return list(neighbours)
        return []

    def price_for(self, category: str) -> int:
        return int(self.default_prices.get(category, self.fallback_price))

    def duration_for(self, category: str) -> int:
        return int(self.default_durations.get(category, self.fallback_duration_minutes))

    def urgency_multiplier(self, urgency: str) -> float:
        return float(self.urgency_multipliers.get(urgency, 1.0))


def load_matching_config(path: Optional[str] = None) -> MatchingConfig:
    raw_path = (path if path is not None else os.getenv("MATCHING_CONFIG_PATH", "")).strip()
    if not raw_path:
        return MatchingConfig()
    try:
        payload = json.loads(Path(raw_path).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("MATCHING_CONFIG_PATH is set but unreadable: %s", raw_path)
        return MatchingConfig()
    if not isinstance(payload, dict):
        logger.warning("Matching config must be a JSON object: %s", raw_path)
        return MatchingConfig()
    try:
        return MatchingConfig.model_validate(payload)
    except ValidationError:
        logger.warning("Matching config is invalid, using defaults: %s", raw_path)
        return MatchingConfig()


matching_config = load_matching_config()
