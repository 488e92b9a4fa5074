"""Test environment defaults; must run before any app module is imported."""

import os

os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("MAX_SESSIONS_PER_USER", "2")
os.environ.setdefault("CLEANUP_ENABLED", "true")
os.environ.pop("SMTP_HOST", None)
