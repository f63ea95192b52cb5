"""Saved-recipe collaborator.

The pipeline hands finished RecipeDetail records to a RecipeSink and knows
nothing about where they end up. RecipeBook is a process-local sink keyed by
recipe id; durable storage is someone else's job.
"""

from typing import Protocol

from recipe_snap.models.models import RecipeDetail
from recipe_snap.utils.logger import logger


class RecipeSink(Protocol):
    """Anything that can store a finished recipe."""

    def save(self, detail: RecipeDetail) -> bool:
        """Store `detail`. Returns False if a recipe with the same id is already stored."""
        ...


class RecipeBook:
    """In-memory saved recipes, in the order they were saved."""

    def __init__(self) -> None:
        self._recipes: dict[str, RecipeDetail] = {}

    def save(self, detail: RecipeDetail) -> bool:
        if detail.id in self._recipes:
            logger.debug(f"Recipe '{detail.id}' already saved")
            return False
        self._recipes[detail.id] = detail
        logger.info(f"Saved recipe '{detail.name}' ({detail.id})")
        return True

    def remove(self, recipe_id: str) -> bool:
        return self._recipes.pop(recipe_id, None) is not None

    def is_saved(self, recipe_id: str) -> bool:
        return recipe_id in self._recipes

    def list(self) -> list[RecipeDetail]:
        return list(self._recipes.values())

    def __len__(self) -> int:
        return len(self._recipes)
