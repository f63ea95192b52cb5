"""Inference gateway: typed boundary to the generative model.

Three operations, each a single request/response with no retries:

1. extract_ingredients(): photo -> ingredient names (vision model)
2. propose_recipes(): ingredient names -> recipe ideas
3. expand_recipe(): recipe name -> full recipe details

Every model answer is parsed leniently (the model sometimes wraps JSON in
prose) and then validated against a Pydantic schema. Transport failures,
unparseable text and schema violations all surface as InferenceError.
Retry policy, if any, belongs to the caller.
"""

import asyncio
import json
import re
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Type, TypeVar

from google import genai
from google.genai import types
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from recipe_snap.models.models import (
    ImageInput,
    IngredientExtractionOutput,
    RecipeDetail,
    RecipeDetailOutput,
    RecipeIdea,
    RecipeProposalOutput,
)
from recipe_snap.prompts.prompts import get_expansion_prompt, get_extraction_prompt, get_proposal_prompt
from recipe_snap.utils.config import Config, config
from recipe_snap.utils.errors import InferenceError, InvalidInputError
from recipe_snap.utils.logger import logger

SchemaT = TypeVar("SchemaT", bound=BaseModel)


# ============================================================================
# Error Handling Helpers
# ============================================================================


def _log_error(operation_name: str, exception: Exception, log_level: str = "warning") -> None:
    """Log error with appropriate level.

    Args:
        operation_name: Description for logging
        exception: Exception that occurred
        log_level: Logging level ("debug", "warning", "error"). Default: "warning".
    """
    msg = f"{operation_name}: {exception}"
    if log_level == "debug":
        logger.debug(msg)
    elif log_level == "error":
        logger.error(msg)
    else:
        logger.warning(msg)


def safe_execute_sync(
    func,
    operation_name: str,
    log_level: str = "warning",
):
    """Safely execute sync operation with consistent error logging.

    Args:
        func: Callable to execute (no args).
        operation_name: Description for logging.
        log_level: Logging level ("debug", "warning", "error"). Default: "warning".

    Returns:
        Result of func if successful, otherwise None.
    """
    try:
        return func()
    except Exception as e:
        _log_error(operation_name, e, log_level)
        return None


def parse_gemini_response(response_text: str) -> Optional[dict]:
    """Parse a JSON object from a Gemini response, tolerating text around it.

    Tries a direct json.loads() first, then extracts the outermost {...} block
    with a regex.

    Args:
        response_text: Raw response text from Gemini API.

    Returns:
        Parsed dict, or None if no JSON object could be parsed.
    """

    def _parse_json_direct():
        return json.loads(response_text)

    def _parse_json_regex():
        json_match = re.search(r"\{.*\}", response_text, re.DOTALL)
        if json_match:
            return json.loads(json_match.group())
        return None

    parsed = safe_execute_sync(_parse_json_direct, "Direct JSON parse", log_level="debug")
    if not isinstance(parsed, dict):
        parsed = safe_execute_sync(_parse_json_regex, "Regex JSON extraction", log_level="debug")

    if not isinstance(parsed, dict):
        logger.warning("Failed to parse JSON object from Gemini response")
        return None
    return parsed


# ============================================================================
# Gateway
# ============================================================================


class InferenceGateway(ABC):
    """Contract of the model service used by the pipeline."""

    @abstractmethod
    async def extract_ingredients(self, image: ImageInput) -> list[str]:
        """Identify ingredient names in a photo.

        Returns:
            Ingredient names as reported by the model; empty if none were found.

        Raises:
            InferenceError: On transport/model failure or malformed output.
        """

    @abstractmethod
    async def propose_recipes(self, ingredients: Sequence[str]) -> list[RecipeIdea]:
        """Propose recipe ideas for a non-empty ingredient list.

        Raises:
            InvalidInputError: If `ingredients` is empty.
            InferenceError: On transport/model failure or malformed output.
        """

    @abstractmethod
    async def expand_recipe(
        self, name: str, context_ingredients: Optional[Sequence[str]] = None
    ) -> RecipeDetail:
        """Expand a recipe name into full details.

        The returned `id` is whatever the model produced; callers must replace it.

        Raises:
            InferenceError: On transport/model failure or malformed output.
        """


class GeminiInferenceGateway(InferenceGateway):
    """InferenceGateway backed by the Gemini API (google-genai)."""

    def __init__(self, client: Optional[genai.Client] = None, settings: Config = config) -> None:
        """Create the gateway.

        Args:
            client: Pre-built genai client. Built from settings.GEMINI_API_KEY if omitted.
            settings: Configuration to read model names and limits from.

        Raises:
            ValueError: If no client is given and the configuration is invalid.
        """
        self.settings = settings
        if client is None:
            settings.validate()
            client = genai.Client(api_key=settings.GEMINI_API_KEY)
        self.client = client

    def _generation_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            response_mime_type="application/json",
            temperature=self.settings.TEMPERATURE,
            max_output_tokens=self.settings.MAX_OUTPUT_TOKENS,
        )

    async def _generate_json(self, operation: str, model: str, contents: list) -> dict:
        """Run one model call and return its JSON object payload."""
        try:
            # Sync client call, kept off the event loop
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=model,
                contents=contents,
                config=self._generation_config(),
            )
        except Exception as e:
            _log_error(f"{operation}: Gemini API call failed", e)
            raise InferenceError(operation, str(e)) from e

        text = getattr(response, "text", None)
        if not text:
            logger.warning(f"{operation}: empty response from Gemini")
            raise InferenceError(operation, "empty response from model")

        payload = parse_gemini_response(text)
        if payload is None:
            raise InferenceError(operation, "response is not a JSON object")
        return payload

    def _validate(self, operation: str, schema: Type[SchemaT], payload: dict) -> SchemaT:
        try:
            return schema.model_validate(payload)
        except SchemaValidationError as e:
            logger.warning(f"{operation}: response does not match {schema.__name__}: {e}")
            raise InferenceError(operation, f"response does not match {schema.__name__}") from e

    async def extract_ingredients(self, image: ImageInput) -> list[str]:
        operation = "Ingredient extraction"
        if not image.data:
            raise InvalidInputError("Image payload is empty.", field="image")

        logger.info(
            f"{operation}: analyzing image {image.identity[:12]} ({image.size_kb:.1f}KB, {image.media_type})",
            extra={"image_id": image.identity},
        )
        payload = await self._generate_json(
            operation,
            self.settings.IMAGE_DETECTION_MODEL,
            [
                get_extraction_prompt(),
                types.Part.from_bytes(data=image.data, mime_type=image.media_type),
            ],
        )
        output = self._validate(operation, IngredientExtractionOutput, payload)
        logger.info(f"{operation}: model identified {len(output.ingredients)} ingredients")
        return list(output.ingredients)

    async def propose_recipes(self, ingredients: Sequence[str]) -> list[RecipeIdea]:
        operation = "Recipe proposal"
        cleaned = [item.strip() for item in ingredients or [] if item and item.strip()]
        if not cleaned:
            raise InvalidInputError("At least one ingredient is required.", field="ingredients")

        logger.info(f"{operation}: requesting ideas for {len(cleaned)} ingredients")
        payload = await self._generate_json(
            operation,
            self.settings.GEMINI_MODEL,
            [get_proposal_prompt(cleaned, self.settings.MAX_RECIPE_IDEAS)],
        )
        output = self._validate(operation, RecipeProposalOutput, payload)

        ideas = output.recipes[: self.settings.MAX_RECIPE_IDEAS]
        if len(ideas) < len(output.recipes):
            logger.debug(f"{operation}: kept {len(ideas)} of {len(output.recipes)} ideas")
        return ideas

    async def expand_recipe(
        self, name: str, context_ingredients: Optional[Sequence[str]] = None
    ) -> RecipeDetail:
        operation = "Recipe expansion"
        if not name or not name.strip():
            raise InvalidInputError("Recipe name is required.", field="recipe_name")

        context = [item.strip() for item in context_ingredients or [] if item and item.strip()]
        logger.info(f"{operation}: expanding '{name.strip()}' (context ingredients: {len(context)})")
        payload = await self._generate_json(
            operation,
            self.settings.GEMINI_MODEL,
            [get_expansion_prompt(name.strip(), context or None)],
        )
        output = self._validate(operation, RecipeDetailOutput, payload)
        try:
            detail = output.to_detail()
        except SchemaValidationError as e:
            logger.warning(f"{operation}: response does not match RecipeDetail: {e}")
            raise InferenceError(operation, "response does not match RecipeDetail") from e

        if not detail.image_url:
            detail = detail.model_copy(update={"image_url": self.settings.DISH_IMAGE_PLACEHOLDER})
        return detail
