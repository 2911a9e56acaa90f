"""In-memory feature catalog.

Backs the CLI (loaded from a JSON export of the catalog) and the test suite.
The catalog is built once and only read afterwards, so a single instance can
serve concurrent generations.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Sequence

from starterkit.models import Feature
from starterkit.utils import load_json


class InMemoryCatalog:
    """A ``FeatureCatalog`` over a fixed collection of ``Feature`` records."""

    def __init__(self, features: Iterable[Feature] = ()) -> None:
        self._features: dict[str, Feature] = {}
        for feature in features:
            self._features[feature.slug] = feature

    def __len__(self) -> int:
        return len(self._features)

    async def find_features(self, tier: str, slugs: Sequence[str]) -> list[Feature]:
        """Return active features matching *slugs*, in request order."""
        found: list[Feature] = []
        for slug in dict.fromkeys(slugs):
            feature = self._features.get(slug)
            if feature is not None and feature.is_active:
                found.append(feature)
        return found

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]]) -> "InMemoryCatalog":
        """Build a catalog from raw catalog dicts (snake_case or camelCase)."""
        return cls(Feature.model_validate(record) for record in records)

    @classmethod
    def from_json(cls, path: str | Path) -> "InMemoryCatalog":
        """Load a catalog export: a JSON list, or an object with a ``features`` list."""
        data = load_json(path)
        if isinstance(data, dict):
            data = data.get("features", [])
        return cls.from_records(data)
