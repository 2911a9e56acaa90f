"""Async client for a remote feature catalog service.

Queries ``GET {base_url}/features?tier=<tier>&slugs=<a,b,...>`` and expects
either a JSON list of feature records or an object with a ``features`` list.
Records use the catalog's camelCase keys.

Typical usage::

    catalog = HttpFeatureCatalog("https://studio.internal/api/catalog")
    features = await catalog.find_features("pro", ["auth.basic", "payments.stripe"])
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx
from pydantic import ValidationError

from starterkit.errors import CatalogError
from starterkit.models import Feature

logger = logging.getLogger(__name__)


class HttpFeatureCatalog:
    """``FeatureCatalog`` backed by an HTTP endpoint.

    A fresh ``httpx.AsyncClient`` is opened per query so the instance holds
    no connection state and can be shared by concurrent generations.
    """

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and timeout."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self._transport,
        )

    @staticmethod
    def _extract_records(data: Any) -> list[dict[str, Any]]:
        if isinstance(data, dict):
            data = data.get("features", [])
        if not isinstance(data, list):
            raise CatalogError(f"Unexpected catalog payload type: {type(data).__name__}")
        return data

    async def find_features(self, tier: str, slugs: Sequence[str]) -> list[Feature]:
        """Fetch the active features matching *slugs*.

        Raises:
            CatalogError: On connection failures, non-2xx responses, or
                payloads that do not validate as features.
        """
        if not slugs:
            return []

        params = {"tier": tier, "slugs": ",".join(slugs)}
        try:
            async with self._client() as client:
                response = await client.get("/features", params=params)
                response.raise_for_status()
                records = self._extract_records(response.json())
        except httpx.ConnectError as exc:
            raise CatalogError(
                f"Cannot connect to feature catalog at {self.base_url}"
            ) from exc
        except httpx.TimeoutException as exc:
            raise CatalogError(
                f"Feature catalog timed out after {self.timeout}s"
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise CatalogError(
                f"Feature catalog returned HTTP {exc.response.status_code}"
            ) from exc
        except ValueError as exc:
            raise CatalogError(f"Feature catalog returned invalid JSON: {exc}") from exc

        try:
            features = [Feature.model_validate(record) for record in records]
        except ValidationError as exc:
            raise CatalogError(f"Feature catalog returned an invalid record: {exc}") from exc

        wanted = set(slugs)
        active = [f for f in features if f.is_active and f.slug in wanted]
        logger.debug("Catalog returned %d/%d requested features", len(active), len(wanted))
        return active
