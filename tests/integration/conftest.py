"""Pytest configuration and fixtures for integration tests.

Loads .env from the project root and skips the whole directory when no
GEMINI_API_KEY is configured. These tests call the real Gemini API.
"""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

from recipe_snap.inference.gateway import GeminiInferenceGateway
from recipe_snap.pipeline.machine import RecipePipeline


def pytest_configure(config):
    """Load environment variables before test collection."""
    env_path = Path(__file__).parent.parent.parent / ".env"
    load_dotenv(env_path)

    print("\n" + "=" * 70)
    print("Note: These tests require a valid GEMINI_API_KEY")
    print(f"Environment loaded from: {env_path}")
    print("=" * 70 + "\n")


@pytest.fixture(scope="session", autouse=True)
def check_api_keys():
    """Skip integration tests if the Gemini API key is not configured."""
    if not os.getenv("GEMINI_API_KEY"):
        pytest.skip(
            "Integration tests skipped. Missing API key: GEMINI_API_KEY. Please set it in your .env file.",
            allow_module_level=True,
        )


@pytest.fixture
def gateway(check_api_keys) -> GeminiInferenceGateway:
    # Config was loaded at import, possibly before .env; read the key again
    from recipe_snap.utils.config import Config

    return GeminiInferenceGateway(settings=Config())


@pytest.fixture
def pipeline(gateway) -> RecipePipeline:
    return RecipePipeline(gateway)


@pytest.fixture(scope="session")
def images_dir() -> Path:
    """Directory of sample ingredient photos (optional)."""
    return Path(__file__).parent.parent.parent / "images"
