"""Prompt templates for the three model operations.

Each factory returns the full prompt text for one call. Responses are requested
as bare JSON objects matching the schemas in recipe_snap.models.models.
Language is kept deliberately plain: the target user is new to cooking and
may read only basic English.
"""

from typing import Optional, Sequence


def _bullet_list(items: Sequence[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def get_extraction_prompt() -> str:
    """Prompt for identifying ingredients in a photo."""
    return """You identify food ingredients in photos for people who understand only basic English.

Look at the photo and list every visible food ingredient.
- Use very common, simple names: "apple" not "Granny Smith apple", "chicken" not "boneless skinless chicken thighs", "bell pepper" not "capsicum".
- List each ingredient once.
- If you see no food, return an empty list.

Return ONLY valid JSON in this shape:
{"ingredients": ["tomato", "onion"]}"""


def get_proposal_prompt(ingredients: Sequence[str], max_ideas: int) -> str:
    """Prompt for proposing recipe ideas from an ingredient list.

    Args:
        ingredients: Ingredient names, already normalized.
        max_ideas: Upper bound on the number of ideas requested.
    """
    return f"""You suggest recipes to beginner cooks who understand only basic English.

Ingredients available:
{_bullet_list(ingredients)}

Suggest between 1 and {max_ideas} recipes that make good use of these ingredients.
- Names must be simple and descriptive, e.g. "Easy Chicken Stir-fry", "Simple Tomato Soup", "Basic Potato Curry".
- Give each recipe one short sentence describing the dish in simple words.
- If nothing sensible can be cooked, return an empty list.

Return ONLY valid JSON in this shape:
{{"recipes": [{{"name": "Simple Tomato Soup", "description": "A warm soup made from fresh tomatoes and onion."}}]}}"""


def get_expansion_prompt(name: str, context_ingredients: Optional[Sequence[str]] = None) -> str:
    """Prompt for expanding a recipe name into full step-by-step details.

    Args:
        name: Recipe name chosen by the user.
        context_ingredients: Ingredients the ideas were generated from, if known.
            The model may add common pantry items to complete the recipe.
    """
    context = ""
    if context_ingredients:
        context = (
            "\nMain ingredients available (you may add common items needed for a complete recipe):\n"
            f"{_bullet_list(context_ingredients)}\n"
        )

    return f"""You are a friendly cooking helper for absolute beginners who understand only basic English.

Recipe name: {name}
{context}
Write the complete recipe. Rules:
1. "name": use exactly "{name}".
2. "description": 1-2 short sentences saying what the dish is.
3. "ingredients": every ingredient needed, each with "name", "quantity" and "unit" in household terms
   (e.g. quantity "1", unit "small onion"; quantity "2", unit "spoons"; quantity "1/2", unit "cup";
   quantity "a little bit of", unit "salt").
4. "instructions": numbered-order steps as separate strings. Short sentences. Explain every action,
   say the heat level (low, medium, high) and how long to cook when it matters.
5. "prep_time" and "cook_time": simple estimates, e.g. "About 10 minutes".
6. "servings": e.g. "For 2 people".
7. "image_url": leave empty.

Return ONLY valid JSON with the keys: name, description, ingredients, instructions, prep_time, cook_time, servings, image_url."""
