"""Shared pytest fixtures for the starterkit test suite.

Provides reusable fixtures for:
- A studio directory holding a base template (``core/``) and feature
  modules (``modules/``), including build output that must be excluded
- Catalog records for a handful of realistic features
- An in-memory catalog and an order factory
- A fixed clock and a ZIP reader for archive assertions
"""

from __future__ import annotations

import io
import json
import textwrap
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable

import pytest

from starterkit.catalog import InMemoryCatalog
from starterkit.config import Config
from starterkit.models import Order


# ---------------------------------------------------------------------------
# Base template & modules on disk
# ---------------------------------------------------------------------------

BASE_BACKEND_MANIFEST: dict[str, Any] = {
    "name": "core-backend",
    "version": "1.0.0",
    "private": True,
    "scripts": {"dev": "tsx watch src/server.ts"},
    "dependencies": {"express": "^4.18.2", "zod": "^3.22.0"},
    "devDependencies": {"typescript": "^5.3.0", "zod": "^3.22.0"},
}

BASE_WEB_MANIFEST: dict[str, Any] = {
    "name": "core-web",
    "version": "1.0.0",
    "dependencies": {"next": "14.0.0", "react": "18.2.0"},
}

BASE_SCHEMA = textwrap.dedent("""\
    // Base schema
    generator client {
      provider = "prisma-client-js"
    }

    datasource db {
      provider = "postgresql"
      url      = env("DATABASE_URL")
    }

    model Session {
      id        String   @id @default(cuid())
      token     String   @unique
      createdAt DateTime @default(now())
    }

    enum Role {
      USER
      ADMIN
    }
""")

BASE_ENV_EXAMPLE = textwrap.dedent("""\
    # ======================
    # Server
    # ======================

    # Runtime environment
    NODE_ENV=development

    # Postgres connection string (required)
    DATABASE_URL=postgresql://localhost:5432/app

    # Token signing secret (required)
    JWT_SECRET=
""")

AUTH_SCHEMA = textwrap.dedent("""\
    /// Application user
    model User {
      id       String @id @default(cuid())
      email    String @unique
      password String
      role     Role   @default(USER)
    }

    enum Role {
      USER
      ADMIN
      OWNER
    }
""")

STRIPE_SCHEMA = textwrap.dedent("""\
    model Payment {
      id       String        @id @default(cuid())
      amount   Int
      status   PaymentStatus @default(PENDING)
      metadata Json          @default("{}")
    }

    enum PaymentStatus {
      PENDING
      SUCCEEDED
      FAILED
    }
""")

S3_SCHEMA = textwrap.dedent("""\
    model Upload {
      id  String @id @default(cuid())
      key String @unique
    }
""")


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def studio_dir(tmp_path: Path) -> Path:
    """Studio root with ``core/`` (base template) and ``modules/`` trees."""
    root = tmp_path / "studio"
    core = root / "core"

    _write(core / "backend" / "package.json", json.dumps(BASE_BACKEND_MANIFEST, indent=2))
    _write(core / "web" / "package.json", json.dumps(BASE_WEB_MANIFEST, indent=2))
    _write(core / "backend" / "prisma" / "schema.prisma", BASE_SCHEMA)
    _write(core / "backend" / ".env.example", BASE_ENV_EXAMPLE)
    _write(core / "backend" / "src" / "app.ts", "export const app = 'base';\n")
    _write(core / "backend" / "src" / "routes" / "index.ts", "export const routes = [];\n")
    _write(core / "web" / "src" / "app" / "page.tsx", "export default function Page() {}\n")

    # Everything below must never reach an archive.
    _write(core / "node_modules" / "leftpad" / "index.js", "module.exports = 1;\n")
    _write(core / "backend" / "node_modules" / "express" / "index.js", "\n")
    _write(core / "backend" / "dist" / "app.js", "compiled\n")
    _write(core / "web" / ".next" / "cache.json", "{}\n")
    _write(core / ".git" / "HEAD", "ref: refs/heads/main\n")
    _write(core / "backend" / ".env", "JWT_SECRET=real-secret\n")
    _write(core / "backend" / "debug.log", "log line\n")
    _write(core / "web" / "src" / "components" / "preview-banner.tsx", "preview\n")

    modules = root / "modules"
    _write(modules / "auth" / "basic" / "schema.prisma", AUTH_SCHEMA)
    _write(modules / "auth" / "basic" / "backend" / "auth.routes.ts", "// auth routes\n")
    _write(modules / "auth" / "basic" / "backend" / "app.ts", "export const app = 'auth';\n")
    _write(modules / "auth" / "basic" / "backend" / "middleware" / "auth.ts", "// guard\n")
    _write(modules / "auth" / "basic" / "backend" / "middleware" / "jwt.ts", "// jwt\n")
    _write(modules / "auth" / "basic" / "backend" / "middleware" / "node_modules" / "x.js", "\n")
    _write(modules / "social" / "google" / "google.strategy.ts", "// google\n")
    _write(modules / "social" / "google" / "app.ts", "export const app = 'google';\n")
    _write(modules / "payments" / "stripe" / "schema.prisma", STRIPE_SCHEMA)
    _write(modules / "payments" / "stripe" / "stripe.service.ts", "// stripe\n")
    _write(modules / "storage" / "s3" / "schema.prisma", S3_SCHEMA)
    _write(modules / "storage" / "s3" / "s3.service.ts", "// s3\n")
    return root


@pytest.fixture
def schemas() -> SimpleNamespace:
    """Prisma sources used by the base template and the feature modules."""
    return SimpleNamespace(base=BASE_SCHEMA, auth=AUTH_SCHEMA, stripe=STRIPE_SCHEMA, s3=S3_SCHEMA)


@pytest.fixture
def base_env_example() -> str:
    return BASE_ENV_EXAMPLE


@pytest.fixture
def template_dir(studio_dir: Path) -> Path:
    return studio_dir / "core"


@pytest.fixture
def config(studio_dir: Path) -> Config:
    """Generator config pointed at the temporary studio."""
    return Config(template_dir=studio_dir / "core", modules_dir=studio_dir)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

def _module(slug: str, name: str, category: str) -> dict[str, str]:
    return {"slug": slug, "name": name, "category": category}


@pytest.fixture
def feature_records() -> list[dict[str, Any]]:
    """Catalog export in the persisted camelCase shape."""
    return [
        {
            "slug": "auth.basic",
            "name": "Email Authentication",
            "description": "Email and password login with JWT sessions",
            "module": _module("auth", "Authentication", "security"),
            "isActive": True,
            "requires": [],
            "fileMappings": [
                {
                    "source": "modules/auth/basic/backend/auth.routes.ts",
                    "destination": "backend/src/routes/auth.routes.ts",
                },
                {
                    "source": "modules/auth/basic/backend/middleware",
                    "destination": "backend/src/middleware",
                },
                {
                    "source": "modules/auth/basic/backend/app.ts",
                    "destination": "backend/src/app.ts",
                },
            ],
            "schemaMappings": [
                {"model": "User", "source": "modules/auth/basic/schema.prisma"},
            ],
            "envVars": [
                {"key": "JWT_SECRET", "description": "Secret used to sign tokens", "required": True},
                {"key": "JWT_EXPIRES_IN", "description": "Access token lifetime", "default": "15m"},
            ],
            "npmPackages": [
                {"name": "jsonwebtoken", "version": "^9.0.2"},
                {"name": "bcryptjs", "version": "^2.4.3"},
                {"name": "@types/jsonwebtoken", "version": "^9.0.5", "dev": True},
                {"name": "zod", "version": "^3.23.0"},
            ],
        },
        {
            "slug": "social-auth.google",
            "name": "Google Login",
            "description": "Sign in with Google",
            "module": _module("social", "Social Login", "security"),
            "isActive": True,
            "requires": ["auth.basic"],
            "fileMappings": [
                {
                    "source": "modules/social/google/google.strategy.ts",
                    "destination": "backend/src/auth/google.strategy.ts",
                },
                {
                    "source": "modules/social/google/app.ts",
                    "destination": "backend/src/app.ts",
                },
            ],
            "schemaMappings": None,
            "envVars": [
                {"key": "GOOGLE_CLIENT_ID", "description": "OAuth client id", "required": True},
                {"key": "GOOGLE_CLIENT_SECRET", "description": "OAuth secret", "required": True},
            ],
            "npmPackages": [{"name": "passport-google-oauth20", "version": "^2.0.0"}],
        },
        {
            "slug": "payments.stripe",
            "name": "Stripe Payments",
            "description": "One-off and subscription billing",
            "module": _module("payments", "Payments", "monetization"),
            "isActive": True,
            "fileMappings": [
                {
                    "source": "modules/payments/stripe/stripe.service.ts",
                    "destination": "backend/src/services/stripe.service.ts",
                },
            ],
            "schemaMappings": [
                {"model": "Payment", "source": "modules/payments/stripe/schema.prisma"},
            ],
            "envVars": [
                {"key": "STRIPE_SECRET_KEY", "description": "Stripe API key", "required": True},
                {"key": "STRIPE_WEBHOOK_SECRET", "description": "Webhook signing secret", "required": True},
                {"key": "STRIPE_PUBLISHABLE_KEY", "description": "Publishable key"},
            ],
            "npmPackages": [
                {"name": "stripe", "version": "^14.0.0"},
                {"name": "@stripe/stripe-js", "version": "^2.2.0", "platform": "web"},
            ],
        },
        {
            "slug": "file-upload.s3",
            "name": "S3 Uploads",
            "description": "Direct uploads to Amazon S3",
            "module": _module("storage", "Storage", "storage"),
            "isActive": True,
            "fileMappings": [
                {
                    "source": "modules/storage/s3/s3.service.ts",
                    "destination": "backend/src/services/s3.service.ts",
                },
            ],
            "schemaMappings": [
                {"model": "Upload", "source": "modules/storage/s3/schema.prisma"},
            ],
            "envVars": [
                {"key": "AWS_REGION", "description": "AWS region", "default": "us-east-1"},
                {"key": "AWS_ACCESS_KEY_ID", "description": "Access key", "required": True},
                {"key": "AWS_SECRET_ACCESS_KEY", "description": "Secret key", "required": True},
                {"key": "S3_BUCKET", "description": "Bucket name", "required": True},
            ],
            "npmPackages": [
                {"name": "@aws-sdk/client-s3", "version": "^3.450.0"},
                {"name": "multer", "version": "^1.4.5-lts.1"},
            ],
        },
        {
            "slug": "analytics.legacy",
            "name": "Legacy Analytics",
            "description": "Retired",
            "module": _module("analytics", "Analytics", "insights"),
            "isActive": False,
            "npmPackages": [{"name": "universal-analytics", "version": "^0.5.3"}],
        },
        {
            "slug": "cycle.a",
            "name": "Cycle A",
            "module": _module("misc", "Misc", "misc"),
            "requires": ["cycle.b"],
        },
        {
            "slug": "cycle.b",
            "name": "Cycle B",
            "module": _module("misc", "Misc", "misc"),
            "requires": ["cycle.a"],
        },
    ]


@pytest.fixture
def catalog(feature_records: list[dict[str, Any]]) -> InMemoryCatalog:
    return InMemoryCatalog.from_records(feature_records)


# ---------------------------------------------------------------------------
# Orders, clock, archives
# ---------------------------------------------------------------------------

@pytest.fixture
def make_order() -> Callable[..., Order]:
    """Factory producing orders; keyword overrides use camelCase catalog keys."""

    def _make(selected: list[str] | None = None, **overrides: Any) -> Order:
        data: dict[str, Any] = {
            "id": "ord_1",
            "orderNumber": "XL-2026-0001",
            "tier": "starter",
            "selectedFeatures": selected or [],
            "customerEmail": "ada@example.com",
            "customerName": "Ada Lovelace",
            "total": 149.0,
        }
        data.update(overrides)
        return Order.model_validate(data)

    return _make


@pytest.fixture
def fixed_now() -> Callable[[], datetime]:
    moment = datetime(2026, 1, 15, 12, 30, 0, tzinfo=timezone.utc)
    return lambda: moment


@pytest.fixture
def read_zip() -> Callable[[bytes], dict[str, bytes]]:
    """Return a helper that maps every archive member name to its content."""

    def _read(data: bytes) -> dict[str, bytes]:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            assert archive.testzip() is None
            return {info.filename: archive.read(info) for info in archive.infolist()}

    return _read
