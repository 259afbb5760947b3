"""
Constants and header builders shared by API tests.
"""
from datetime import datetime, timezone

TEST_API_KEY = "sk_test_strength"
TEST_JWT_SECRET = "test-jwt-secret-strength-program-api-0001"
FIXED_NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def auth_headers(user_id: str) -> dict:
    """API key headers acting as a regular user."""
    return {"X-API-Key": f"{TEST_API_KEY}:{user_id}"}


def admin_headers() -> dict:
    """API key headers acting as the admin service caller."""
    return {"X-API-Key": TEST_API_KEY}
