"""Root conftest — shared test configuration."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SUBSCRIPTION_WEBHOOK_TOKEN", "test-webhook-token")
