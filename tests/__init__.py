"""Test package; pins a throwaway database URL and signing key before the app is imported."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("LOG_LEVEL", "WARNING")
