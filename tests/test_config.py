"""
Tests for API settings validation.
"""

import pydantic
import pytest

from app.core.config import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("STORE_BACKEND", "DATABASE_URL", "SUGGESTION_LIMIT"):
        monkeypatch.delenv(key, raising=False)


class TestSettings:
    """Tests for Settings validators."""

    def test_defaults(self):
        config = Settings()
        assert config.STORE_BACKEND == "memory"
        assert config.SUGGESTION_LIMIT == 8
        assert config.SEED_FILE.name == "seed_demo.json"

    def test_backend_is_normalized(self):
        assert Settings(STORE_BACKEND=" Memory ").STORE_BACKEND == "memory"

    def test_backend_from_env(self, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "POSTGRES")
        monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/collab")
        config = Settings()
        assert config.STORE_BACKEND == "postgres"
        assert config.DATABASE_URL == "postgresql://localhost/collab"

    def test_postgres_requires_url(self):
        with pytest.raises(pydantic.ValidationError):
            Settings(STORE_BACKEND="postgres")

    def test_limit_must_be_positive(self):
        with pytest.raises(pydantic.ValidationError):
            Settings(SUGGESTION_LIMIT=0)
