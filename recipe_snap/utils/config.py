"""Settings for Recipe Snap, read from the environment.

Values come from the process environment first, then a .env file in the
working directory, then the defaults below. Numbers that do not parse raise
ValueError naming the variable.
"""

import os

from dotenv import load_dotenv

# Missing .env is fine
load_dotenv()


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got: {raw!r}") from None


def _env_float(key: str, default: float) -> float:
    raw = os.getenv(key, str(default))
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got: {raw!r}") from None


class Config:
    """Model, generation and image-loading settings."""

    def __init__(self) -> None:
        self.GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")

        # Proposal and expansion are text-only; extraction needs a vision model
        self.GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
        self.IMAGE_DETECTION_MODEL: str = os.getenv("IMAGE_DETECTION_MODEL", "gemini-2.5-flash-lite")

        self.TEMPERATURE: float = _env_float("TEMPERATURE", 0.2)
        # A full recipe with steps fits comfortably in 2048 tokens
        self.MAX_OUTPUT_TOKENS: int = _env_int("MAX_OUTPUT_TOKENS", 2048)
        self.MAX_RECIPE_IDEAS: int = _env_int("MAX_RECIPE_IDEAS", 5)

        # Seconds, for image sources given as http(s) URLs
        self.IMAGE_FETCH_TIMEOUT: int = _env_int("IMAGE_FETCH_TIMEOUT", 10)
        self.DISH_IMAGE_PLACEHOLDER: str = os.getenv("DISH_IMAGE_PLACEHOLDER", "https://placehold.co/600x400.png")

    def validate(self) -> None:
        """Check the settings a Gemini-backed gateway needs.

        Raises:
            ValueError: On a missing API key or an out-of-range value.
        """
        if not self.GEMINI_API_KEY:
            raise ValueError("GEMINI_API_KEY environment variable is required")

        checks = [
            ("TEMPERATURE", 0.0 <= self.TEMPERATURE <= 1.0, "between 0.0 and 1.0", self.TEMPERATURE),
            ("MAX_OUTPUT_TOKENS", self.MAX_OUTPUT_TOKENS >= 512, "at least 512", self.MAX_OUTPUT_TOKENS),
            ("MAX_RECIPE_IDEAS", self.MAX_RECIPE_IDEAS >= 1, "at least 1", self.MAX_RECIPE_IDEAS),
            ("IMAGE_FETCH_TIMEOUT", self.IMAGE_FETCH_TIMEOUT >= 1, "at least 1 second", self.IMAGE_FETCH_TIMEOUT),
        ]
        for key, ok, expected, value in checks:
            if not ok:
                raise ValueError(f"{key} must be {expected}, got: {value}")


# Not validated here: the offline pipeline and its tests run without an API key
config = Config()
