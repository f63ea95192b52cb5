"""Data models and schemas for the recipe generation pipeline.

Defines Pydantic models for pipeline values (images, recipe ideas, recipe details,
notices) and the output schemas every model response is validated against.
All models use Pydantic v2 for strict validation.
"""

import base64
import hashlib
from enum import Enum
from typing import Annotated, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Stage(str, Enum):
    """Pipeline stages, in the order a user normally walks through them."""

    CAPTURE = "capture"
    REFINE = "refine"
    RESULTS = "results"


class ImageInput(BaseModel):
    """Captured ingredient photo.

    Treated as opaque content: two inputs with byte-identical payloads are the
    same image, whatever their declared media type.
    """

    model_config = ConfigDict(frozen=True, ser_json_bytes="base64")

    data: Annotated[bytes, Field(repr=False, description="Raw image payload")]
    media_type: Annotated[
        str,
        Field("application/octet-stream", min_length=1, description="Declared media type, e.g. image/jpeg"),
    ]

    @property
    def identity(self) -> str:
        """Content identity (SHA-256 hex digest of the payload)."""
        return hashlib.sha256(self.data).hexdigest()

    @property
    def size_kb(self) -> float:
        return len(self.data) / 1024

    def to_data_uri(self) -> str:
        """Render as a data URI for display."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.media_type};base64,{encoded}"


def _coerce_text(v):
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


class RecipeIdea(BaseModel):
    """A proposed recipe before expansion: a name and a one-sentence description."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: Annotated[str, Field(min_length=1, max_length=200, description="Recipe name (1-200 chars)")]
    description: Annotated[
        str, Field("", max_length=500, description="Short one-sentence description (max 500 chars)")
    ]


class RecipeIngredient(BaseModel):
    """One ingredient line of a recipe: name, quantity and unit in plain words."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: Annotated[str, Field(min_length=1, description="Ingredient name")]
    quantity: Annotated[str, Field("", description="Quantity, e.g. '2', '1/2', 'a pinch'")]
    unit: Annotated[str, Field("", description="Unit, e.g. 'cup', 'small onion', 'grams'")]

    @field_validator("quantity", "unit", mode="before")
    @classmethod
    def coerce_numbers(cls, v):
        """Models sometimes answer quantities as numbers; keep them as text."""
        return _coerce_text(v)


class RecipeDetail(BaseModel):
    """Fully expanded recipe.

    `id` is always the slug of `name` once the detail leaves the resolver.
    `source_image` is the ingredient photo the recipe came from; it is kept for
    display only and never sent back to the model.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, populate_by_name=True)

    id: Annotated[str, Field(description="Slug of the recipe name")]
    name: Annotated[str, Field(min_length=1, max_length=200)]
    description: Annotated[str, Field("", max_length=1000)]
    ingredients: Annotated[List[RecipeIngredient], Field(default_factory=list, max_length=100)]
    instructions: Annotated[List[str], Field(default_factory=list, max_length=100)]
    prep_time: Annotated[str, Field("", validation_alias=AliasChoices("prep_time", "prepTime"))]
    cook_time: Annotated[str, Field("", validation_alias=AliasChoices("cook_time", "cookTime"))]
    servings: Annotated[str, Field("")]
    image_url: Annotated[
        Optional[str],
        Field(None, max_length=500, validation_alias=AliasChoices("image_url", "imageUrl")),
    ]
    source_image: Annotated[Optional[ImageInput], Field(None, description="Ingredient photo, display only")]

    @field_validator("prep_time", "cook_time", "servings", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _coerce_text(v)


class Notice(BaseModel):
    """User-visible message produced by a stage.

    `tag` names the input the notice refers to (an image identity or an
    ingredient snapshot key). A notice whose tag is no longer current is stale
    and is not shown.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    level: Literal["info", "warning", "error"]
    stage: Stage
    message: str
    field: Optional[str] = None
    tag: Optional[str] = None
    dismissible: bool = True


# ---------------------------------------------------------------------------
# Model output schemas
# ---------------------------------------------------------------------------


class IngredientExtractionOutput(BaseModel):
    """Output schema for ingredient extraction from a photo.

    An empty list is valid: the model found nothing it recognized.
    """

    ingredients: Annotated[
        List[str], Field(default_factory=list, max_length=100, description="Identified ingredient names")
    ]

    @field_validator("ingredients", mode="before")
    @classmethod
    def require_strings(cls, v):
        """Reject non-string entries instead of coercing them."""
        if not isinstance(v, list):
            raise ValueError("ingredients must be a list")
        for item in v:
            if not isinstance(item, str):
                raise ValueError(f"ingredient names must be strings, got {type(item).__name__}")
        return v


class RecipeProposalOutput(BaseModel):
    """Output schema for recipe idea proposal."""

    recipes: Annotated[List[RecipeIdea], Field(default_factory=list, description="Recipe ideas")]


class RecipeDetailOutput(BaseModel):
    """Output schema for recipe expansion.

    Every recipe field is required except `id` (untrusted, always replaced by
    the slug of the requested name) and `image_url`.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    id: Annotated[str, Field("", description="Model-proposed identifier (ignored)")]
    name: Annotated[str, Field(min_length=1, max_length=200)]
    description: Annotated[str, Field(max_length=1000)]
    ingredients: Annotated[List[RecipeIngredient], Field(min_length=1, max_length=100)]
    instructions: Annotated[List[str], Field(min_length=1, max_length=100)]
    prep_time: Annotated[str, Field(validation_alias=AliasChoices("prep_time", "prepTime"))]
    cook_time: Annotated[str, Field(validation_alias=AliasChoices("cook_time", "cookTime"))]
    servings: Annotated[str, Field()]
    image_url: Annotated[
        Optional[str],
        Field(None, max_length=500, validation_alias=AliasChoices("image_url", "imageUrl")),
    ]

    @field_validator("prep_time", "cook_time", "servings", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _coerce_text(v)

    def to_detail(self) -> RecipeDetail:
        return RecipeDetail(
            id=self.id,
            name=self.name,
            description=self.description,
            ingredients=self.ingredients,
            instructions=self.instructions,
            prep_time=self.prep_time,
            cook_time=self.cook_time,
            servings=self.servings,
            image_url=self.image_url,
        )
