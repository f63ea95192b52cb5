"""On-demand expansion of a recipe idea into full details.

The resolver always returns something the user can read: when the model call
fails, a generic templated recipe is built from the name alone and a
non-fatal notice explains that the details are approximate.
"""

from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict

from recipe_snap.inference.gateway import InferenceGateway
from recipe_snap.models.models import ImageInput, Notice, RecipeDetail, RecipeIngredient, Stage
from recipe_snap.pipeline.validators import slugify, validate_recipe_name
from recipe_snap.utils.config import config
from recipe_snap.utils.errors import InferenceError
from recipe_snap.utils.logger import logger


class ResolvedRecipe(BaseModel):
    """Recipe detail plus the notice to show next to it, if any."""

    model_config = ConfigDict(frozen=True)

    detail: RecipeDetail
    notice: Optional[Notice] = None

    @property
    def is_fallback(self) -> bool:
        return self.notice is not None


def fallback_recipe_detail(name: str, source_image: Optional[ImageInput] = None) -> RecipeDetail:
    """Generic beginner recipe parameterized only by its name.

    Deterministic: the same name always yields the same detail.
    """
    dish = name.lower()
    return RecipeDetail(
        id=slugify(name),
        name=name,
        description=f"A simple and tasty {dish}. Easy to make at home.",
        ingredients=[
            RecipeIngredient(name="Main food (like chicken or potato)", quantity="2", unit="medium pieces"),
            RecipeIngredient(name="Vegetable (like onion or tomato)", quantity="1", unit="medium"),
            RecipeIngredient(name="Garlic", quantity="2", unit="cloves"),
            RecipeIngredient(name="Fresh herbs (like coriander or parsley)", quantity="a little", unit="chopped"),
            RecipeIngredient(name="Spice powder (like turmeric or chilli)", quantity="1", unit="teaspoon"),
            RecipeIngredient(name="Cooking oil", quantity="2", unit="tablespoons"),
            RecipeIngredient(name="Salt", quantity="a little", unit="to taste"),
            RecipeIngredient(name="Black pepper", quantity="a little", unit="to taste (optional)"),
        ],
        instructions=[
            f"Get all the food for your {dish} ready. Cut the vegetables into small pieces.",
            "Put a pan on the stove. Turn the heat to medium.",
            "Add the oil to the pan. Wait 1 minute for the oil to get warm.",
            "Add the garlic. Cook for 1 minute until it smells good.",
            "Add the main food. Cook for 5 to 7 minutes and stir sometimes. Chicken is done when it is white inside.",
            "Add the vegetables and the spice powder. Mix well. Cook for 3 to 4 minutes until the vegetables are soft.",
            "Add salt and pepper if you like. Mix well.",
            f"Put the herbs on top. Your {dish} is ready. Eat it while it is hot.",
        ],
        prep_time="About 15 minutes",
        cook_time="About 25 minutes",
        servings="For 2-3 people",
        image_url=config.DISH_IMAGE_PLACEHOLDER,
        source_image=source_image,
    )


class RecipeDetailResolver:
    """Resolve a recipe name into a RecipeDetail through the gateway.

    Each call is independent; nothing is cached.
    """

    def __init__(self, gateway: InferenceGateway) -> None:
        self.gateway = gateway

    async def resolve(
        self,
        name: str,
        context_ingredients: Optional[Sequence[str]] = None,
        source_image: Optional[ImageInput] = None,
    ) -> ResolvedRecipe:
        """Expand `name` into a full recipe.

        Args:
            name: Recipe name picked by the user.
            context_ingredients: Ingredients the idea was generated from.
            source_image: Current ingredient photo, attached for display only.

        Returns:
            ResolvedRecipe whose detail id is always slugify(name). On model
            failure the detail is the templated fallback and `notice` is set.

        Raises:
            ValidationError: If `name` is empty.
        """
        name = validate_recipe_name(name)
        recipe_id = slugify(name)

        try:
            detail = await self.gateway.expand_recipe(name, list(context_ingredients) if context_ingredients else None)
        except InferenceError as e:
            logger.warning(f"Recipe expansion failed for '{name}', using fallback recipe: {e}")
            # The pipeline assigns the real id when it records the notice
            notice = Notice(
                id=0,
                level="warning",
                stage=Stage.RESULTS,
                message=f"We could not get the full recipe for {name} right now. Showing a basic version instead.",
            )
            return ResolvedRecipe(detail=fallback_recipe_detail(name, source_image), notice=notice)

        if detail.id != recipe_id:
            logger.debug(f"Replacing model recipe id '{detail.id}' with '{recipe_id}'")
        detail = detail.model_copy(update={"id": recipe_id, "source_image": source_image})
        return ResolvedRecipe(detail=detail)
