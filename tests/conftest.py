"""Test environment: settings are read from the environment when app modules are imported."""

import os

os.environ.setdefault("JWT_SECRET", "test-signing-key-with-at-least-32-bytes!!")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REFRESH_TOKEN_COOKIE_SECURE", "false")
os.environ.setdefault("APP_ENV", "dev")
