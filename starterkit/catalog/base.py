"""Read-only feature catalog interface."""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from starterkit.models import Feature


@runtime_checkable
class FeatureCatalog(Protocol):
    """Read-only access to feature definitions.

    Implementations must be safe for concurrent use by independent
    generation requests and must never write catalog data.
    """

    async def find_features(self, tier: str, slugs: Sequence[str]) -> list[Feature]:
        """Return the *active* features whose slug is in *slugs*.

        Unknown or inactive slugs are simply absent from the result.
        """
        ...
