"""Feature dependency resolution.

Computes the dependency-closed set of features for an order.  The
``requires`` graph lives in the catalog rather than in memory, so it is
discovered level by level: each frontier of newly-seen slugs costs one
catalog query.  A slug is marked visited the moment it is enqueued, which
makes the walk terminate on cyclic ``requires`` graphs without any explicit
cycle detection.
"""

from __future__ import annotations

import logging
from typing import Sequence

from .catalog.base import FeatureCatalog
from .models import Feature, ResolvedFeatureSet

logger = logging.getLogger(__name__)


class FeatureResolver:
    """Breadth-first resolver over a ``FeatureCatalog``."""

    def __init__(self, catalog: FeatureCatalog) -> None:
        self.catalog = catalog

    async def resolve(
        self,
        selected: Sequence[str],
        tier: str,
        template_included: Sequence[str] = (),
    ) -> ResolvedFeatureSet:
        """Resolve *selected* plus *template_included* and all their requirements.

        Args:
            selected: Feature slugs the buyer picked explicitly.
            tier: Pricing tier, forwarded to the catalog query.
            template_included: Slugs bundled by the order's template.

        Returns:
            A ``ResolvedFeatureSet`` whose features appear in discovery order.
            Slugs without an active catalog entry are dropped and listed in
            ``unresolved``.
        """
        frontier = list(dict.fromkeys([*selected, *template_included]))
        visited: set[str] = set(frontier)

        features: list[Feature] = []
        tree: dict[str, list[str]] = {}
        unresolved: list[str] = []

        while frontier:
            found = await self.catalog.find_features(tier, frontier)
            by_slug = {f.slug: f for f in found if f.is_active}

            next_frontier: list[str] = []
            for slug in frontier:
                feature = by_slug.get(slug)
                if feature is None:
                    unresolved.append(slug)
                    continue

                features.append(feature)
                tree[slug] = list(feature.requires)
                for dep in feature.requires:
                    if dep not in visited:
                        visited.add(dep)
                        next_frontier.append(dep)

            frontier = next_frontier

        if unresolved:
            logger.info(
                "Dropping %d unknown or inactive feature slug(s): %s",
                len(unresolved),
                ", ".join(unresolved),
            )

        return ResolvedFeatureSet(
            features=features,
            all_feature_slugs=[f.slug for f in features],
            dependency_tree=tree,
            unresolved=unresolved,
        )
