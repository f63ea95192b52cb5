"""Stage validators: input checks that run before any model call.

All functions are pure. Failures raise ValidationError with the name of the
offending field so the caller can show a field-level message.
"""

import re
from typing import Iterable, Optional, Union

from recipe_snap.models.models import ImageInput
from recipe_snap.pipeline.ingredients import IngredientSet
from recipe_snap.utils.errors import ValidationError


def slugify(name: str) -> str:
    """Derive the deterministic recipe identifier from a recipe name.

    Lower-cases, turns whitespace runs into single hyphens, strips everything
    except letters, digits, underscores and hyphens, then collapses repeated
    hyphens.

    Example:
        >>> slugify("Easy Chicken   Stir-fry!")
        'easy-chicken-stir-fry'
    """
    slug = str(name).lower().strip()
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^a-z0-9_-]+", "", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    return slug


def validate_image(image: Union[ImageInput, tuple, None]) -> ImageInput:
    """Check that an image was supplied and has a non-empty payload.

    Args:
        image: An ImageInput, or a (payload, media_type) pair from the upload widget.

    Returns:
        The validated ImageInput.

    Raises:
        ValidationError: If the image is missing, malformed or its payload is empty.
    """
    if image is None:
        raise ValidationError("Please provide a photo of your ingredients.", field="image")

    if isinstance(image, tuple):
        if len(image) != 2:
            raise ValidationError("Expected a (payload, media_type) pair for the photo.", field="image")
        payload, media_type = image
        if not payload:
            raise ValidationError("The uploaded photo is empty.", field="image")
        return ImageInput(data=payload, media_type=media_type or "application/octet-stream")

    if not isinstance(image, ImageInput):
        raise ValidationError(f"Unsupported image value: {type(image).__name__}", field="image")

    if not image.data:
        raise ValidationError("The uploaded photo is empty.", field="image")
    return image


def normalize_ingredients(
    raw: Iterable[str],
    required: bool = False,
    source: Optional[str] = None,
) -> IngredientSet:
    """Trim, drop blanks and de-duplicate ingredient names.

    Duplicates are detected case-insensitively; the first occurrence and its
    casing are kept, in input order.

    Args:
        raw: Ingredient names as typed or as returned by the model.
        required: Fail if the result is empty (used when asking for recipe ideas).
        source: Source tag for the resulting set.

    Raises:
        ValidationError: If `required` and nothing survives normalization.
    """
    ingredients = IngredientSet(source=source)
    for entry in raw or []:
        if entry is None:
            continue
        ingredients.add(str(entry))

    if required and not ingredients:
        raise ValidationError("Add at least one ingredient to get recipe ideas.", field="ingredients")
    return ingredients


def validate_recipe_name(name: Optional[str]) -> str:
    """Return the trimmed recipe name.

    Raises:
        ValidationError: If the name is missing or only whitespace.
    """
    if name is None or not str(name).strip():
        raise ValidationError("Recipe name is required.", field="recipe_name")
    return str(name).strip()


def split_ingredient_text(text: Optional[str]) -> list[str]:
    """Split comma-separated ingredient text into trimmed, non-empty entries."""
    if not text:
        return []
    return [part.strip() for part in text.split(",") if part.strip()]
