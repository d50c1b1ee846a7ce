"""LLM prompt templates for ingredient-to-inventory matching."""

from collections.abc import Sequence

INGREDIENT_MATCHING_SYSTEM_PROMPT = """You are a kitchen inventory assistant. You match recipe ingredients to items the user already has at home and estimate how much of each item the recipe uses.

Respond ONLY with a valid JSON object. No markdown, no code blocks, no commentary."""


def get_ingredient_matching_prompt(
    recipe_title: str,
    recipe_ingredients: Sequence[str],
    inventory: Sequence[tuple[str, str, float]],
) -> str:
    """Generate prompt for matching recipe ingredients to inventory items.

    Args:
        recipe_title: Title of the recipe being cooked
        recipe_ingredients: Free-text ingredient lines from the recipe
        inventory: (id, name, quantity) for each inventory item
    """
    ingredients_text = "\n".join(
        f"{idx}. {ingredient}" for idx, ingredient in enumerate(recipe_ingredients, start=1)
    )
    inventory_text = "\n".join(
        f"- {name} (ID: {item_id}, Quantity: {_format_quantity(quantity)})"
        for item_id, name, quantity in inventory
    )

    return f"""Match these recipe ingredients to the user's inventory and suggest deduction amounts.

Recipe: {recipe_title}
Recipe Ingredients:
{ingredients_text}

User's Inventory:
{inventory_text}

For each recipe ingredient, determine:
1. Which inventory item it matches (if any) - use fuzzy matching for similar items
2. How much quantity to deduct from inventory (parse the recipe ingredient amount)
3. If no clear quantity is specified, default to 1

Return ONLY a JSON object with this exact structure:
{{
  "matches": [
    {{
      "recipeIngredient": "2 cups chicken breast",
      "matchedInventoryId": "id-from-inventory",
      "matchedInventoryName": "chicken",
      "currentQuantity": 5,
      "suggestedDeduction": 2,
      "unit": "cups",
      "confidence": "high"
    }}
  ],
  "unmatched": ["garam masala", "cream"]
}}

Rules:
- Copy each recipeIngredient exactly as written in the list above
- Only match if you're reasonably confident (e.g., "chicken breast" matches "chicken")
- matchedInventoryId must be one of the IDs listed in the inventory
- If uncertain about quantity, use 1
- confidence can be "high", "medium", or "low"
- unmatched should contain the recipe ingredients that don't match any inventory item
- Be conservative - round down if uncertain about quantities"""


def _format_quantity(quantity: float) -> str:
    return str(int(quantity)) if float(quantity).is_integer() else str(quantity)
