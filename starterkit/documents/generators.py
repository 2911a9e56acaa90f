"""Generated project documents: README, LICENSE, descriptor and env template.

Every generator accepts any well-formed ``Order`` (no template, no license,
zero features) and returns text; none of them touch the filesystem.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from starterkit.documents.renderer import TemplateRenderer
from starterkit.models import MergedEnvSpec, Order, ResolvedFeatureSet


CUSTOM_TEMPLATE_TITLE = "Custom Configuration"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(moment: datetime) -> str:
    """ISO-8601 with millisecond precision and a ``Z`` suffix for UTC."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.isoformat(timespec="milliseconds") + "Z"


class DocumentGenerator:
    """Renders the documents shipped at the root of every generated project.

    Args:
        renderer: Template renderer; defaults to the bundled templates.
        brand: Product name printed in headers and footers.
        clock: Returns the timestamp stamped into documents. Injected by
            tests so output is reproducible.
    """

    def __init__(
        self,
        renderer: Optional[TemplateRenderer] = None,
        brand: str = "Xitolaunch",
        clock: Optional[Clock] = None,
    ) -> None:
        self.renderer = renderer or TemplateRenderer()
        self.brand = brand
        self.clock = clock or _utcnow

    # ------------------------------------------------------------------
    # README.md
    # ------------------------------------------------------------------

    def readme(self, order: Order, resolved: ResolvedFeatureSet) -> str:
        """Project README listing included features by module category."""
        context = {
            "brand": self.brand,
            "title": order.template.name if order.template else CUSTOM_TEMPLATE_TITLE,
            "tier": order.tier,
            "order_number": order.order_number,
            "generated_at": _isoformat(self.clock()),
            "categories": resolved.by_category(),
        }
        return self.renderer.render("README.md.j2", context)

    # ------------------------------------------------------------------
    # LICENSE.md
    # ------------------------------------------------------------------

    def license(self, order: Order) -> str:
        """License document; absent license fields render as ``N/A``."""
        lic = order.license
        expires_at = lic.expires_at.date().isoformat() if lic and lic.expires_at else None
        context = {
            "brand": self.brand,
            "license_key": lic.license_key if lic else None,
            "license_status": lic.status if lic else None,
            "expires_at": expires_at,
            "order_number": order.order_number,
            "licensee": order.customer_name or order.customer_email,
            "customer_email": order.customer_email,
            "tier": order.tier,
            "issue_date": self.clock().date().isoformat(),
        }
        return self.renderer.render("LICENSE.md.j2", context)

    # ------------------------------------------------------------------
    # starter-config.json
    # ------------------------------------------------------------------

    def descriptor(self, order: Order, resolved: ResolvedFeatureSet) -> str:
        """Machine-readable record of what was shipped, for audit and regeneration."""
        stamp = _isoformat(self.clock())
        payload: dict[str, Any] = {
            "tier": order.tier,
            "template": order.template.slug if order.template else None,
            "features": list(resolved.all_feature_slugs),
            "license": {
                "key": order.license.license_key if order.license else None,
                "issuedAt": stamp,
                "orderNumber": order.order_number,
                "customerEmail": order.customer_email,
            },
            "generatedAt": stamp,
        }
        return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

    # ------------------------------------------------------------------
    # backend/.env.example
    # ------------------------------------------------------------------

    def env_example(self, env: MergedEnvSpec) -> str:
        """Environment template grouped by the source that introduced each key."""
        groups: dict[str, list[dict[str, str]]] = {}
        for source, variables in env.grouped().items():
            rows = []
            for var in variables:
                comment = var.description
                if var.required:
                    comment = f"{comment} (required)".strip()
                rows.append({"key": var.key, "value": var.default or "", "comment": comment})
            groups[source or "Other"] = rows
        return self.renderer.render("env.example.j2", {"brand": self.brand, "groups": groups})
