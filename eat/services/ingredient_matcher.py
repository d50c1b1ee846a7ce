"""Ingredient matching: map free-text recipe ingredients to inventory items.

The LLM is asked first. If that call fails for any upstream reason (network,
missing configuration, unusable reply) a deterministic substring pass is used
instead. Either way every recipe ingredient ends up in exactly one of
``matches`` or ``unmatched``.
"""

import logging
from collections import defaultdict
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from eat.exceptions import LLMResponseError, RequestValidationFailed, UpstreamError
from eat.schemas.cooking import IngredientMatch, InventorySnapshot, MatchResult
from eat.services.llm import LLMService
from eat.services.llm_prompts import (
    INGREDIENT_MATCHING_SYSTEM_PROMPT,
    get_ingredient_matching_prompt,
)

logger = logging.getLogger(__name__)

AI_CONFIDENCE_LEVELS = {"high", "medium", "low"}


class _LLMMatch(BaseModel):
    """One entry of the model's ``matches`` array."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    recipe_ingredient: str = Field(..., min_length=1)
    matched_inventory_id: str | int | None = None
    # json.loads accepts NaN and Infinity
    suggested_deduction: float | None = Field(None, allow_inf_nan=False)
    unit: str | None = None
    confidence: str | None = None

    @field_validator("confidence")
    @classmethod
    def check_confidence(cls, value: str | None) -> str | None:
        if not value:
            return None
        value = value.strip().lower()
        if value not in AI_CONFIDENCE_LEVELS:
            raise ValueError(f"unknown confidence '{value}'")
        return value


class _LLMMatchPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    matches: list[_LLMMatch]
    unmatched: list[str] = []


def _normalize(text: str) -> str:
    return " ".join(text.lower().split())


def parse_llm_matches(
    payload: object,
    recipe_ingredients: Sequence[str],
    inventory: Sequence[InventorySnapshot],
) -> MatchResult:
    """Validate the model's reply and reconcile it with the actual inputs.

    Matches pointing at ids outside ``inventory`` are discarded, ingredients
    the model skipped become unmatched, and entries for ingredients that were
    never asked about are dropped.

    Raises:
        LLMResponseError: the payload does not have the expected shape.
    """
    if not isinstance(payload, dict):
        raise LLMResponseError("LLM response is not a JSON object")
    try:
        parsed = _LLMMatchPayload.model_validate(payload)
    except ValidationError as e:
        raise LLMResponseError(
            f"LLM response has an unexpected shape ({e.error_count()} errors)"
        ) from e

    inventory_by_id = {item.id: item for item in inventory}
    proposals: dict[str, list[IngredientMatch]] = defaultdict(list)

    for proposal in parsed.matches:
        item = None
        if proposal.matched_inventory_id is not None:
            item = inventory_by_id.get(str(proposal.matched_inventory_id))
        if item is None:
            logger.info(
                f"Dropping LLM match for '{proposal.recipe_ingredient}': "
                f"unknown inventory id {proposal.matched_inventory_id!r}"
            )
            continue

        proposals[_normalize(proposal.recipe_ingredient)].append(
            IngredientMatch(
                recipe_ingredient=proposal.recipe_ingredient,
                matched_inventory_id=item.id,
                matched_inventory_name=item.name,
                current_quantity=item.quantity,
                unit=proposal.unit or item.unit,
                suggested_deduction=max(proposal.suggested_deduction or 1, 0),
                confidence=proposal.confidence or "medium",
            )
        )

    matches: list[IngredientMatch] = []
    unmatched: list[str] = []
    for ingredient in recipe_ingredients:
        candidates = proposals.get(_normalize(ingredient))
        if candidates:
            match = candidates.pop(0)
            matches.append(match.model_copy(update={"recipe_ingredient": ingredient}))
        else:
            unmatched.append(ingredient)

    return MatchResult(matches=matches, unmatched=unmatched)


def fallback_match(
    recipe_ingredients: Sequence[str],
    inventory: Sequence[InventorySnapshot],
) -> MatchResult:
    """Case-insensitive substring matching, in either direction.

    The first inventory item whose name contains the ingredient, or is
    contained in it, wins. Quantities can't be inferred here, so every match
    suggests deducting 1 with low confidence.
    """
    matches: list[IngredientMatch] = []
    unmatched: list[str] = []

    for ingredient in recipe_ingredients:
        lowered = ingredient.lower()
        matched_item = None
        if lowered.strip():
            matched_item = next(
                (
                    item
                    for item in inventory
                    if item.name.lower() in lowered or lowered in item.name.lower()
                ),
                None,
            )

        if matched_item:
            matches.append(
                IngredientMatch(
                    recipe_ingredient=ingredient,
                    matched_inventory_id=matched_item.id,
                    matched_inventory_name=matched_item.name,
                    current_quantity=matched_item.quantity,
                    unit=matched_item.unit,
                    suggested_deduction=1,
                    confidence="low",
                )
            )
        else:
            unmatched.append(ingredient)

    return MatchResult(matches=matches, unmatched=unmatched)


def apply_manual_mapping(result: MatchResult, ingredient: str, item) -> MatchResult:
    """Map ``ingredient`` to ``item`` by hand.

    An existing match for the ingredient is replaced in place; otherwise the
    ingredient moves out of ``unmatched``. ``item`` is anything with ``id``,
    ``name``, ``quantity`` and ``unit`` attributes.
    """
    manual = IngredientMatch(
        recipe_ingredient=ingredient,
        matched_inventory_id=str(item.id),
        matched_inventory_name=item.name,
        current_quantity=item.quantity,
        unit=item.unit,
        suggested_deduction=1,
        confidence="manual",
    )

    matches = list(result.matches)
    unmatched = list(result.unmatched)

    existing = next(
        (idx for idx, match in enumerate(matches) if match.recipe_ingredient == ingredient),
        None,
    )
    if existing is not None:
        matches[existing] = manual
    elif ingredient in unmatched:
        unmatched.remove(ingredient)
        matches.append(manual)
    else:
        raise RequestValidationFailed(f"Ingredient '{ingredient}' is not part of this recipe")

    return MatchResult(matches=matches, unmatched=unmatched)


class IngredientMatcher:
    """Match a recipe against the user's inventory."""

    def __init__(self, llm_service: LLMService | None = None):
        self.llm_service = llm_service or LLMService()

    async def match(
        self,
        recipe_title: str,
        recipe_ingredients: Sequence[str],
        inventory: Sequence[InventorySnapshot],
    ) -> tuple[MatchResult, bool]:
        """Return the match result and whether the LLM produced it."""
        if not recipe_ingredients or not inventory:
            return fallback_match(recipe_ingredients, inventory), False

        try:
            result = await self._match_with_llm(recipe_title, recipe_ingredients, inventory)
        except UpstreamError as e:
            logger.warning(f"AI matching failed, falling back to substring matching: {e}")
            return fallback_match(recipe_ingredients, inventory), False

        return result, True

    async def _match_with_llm(
        self,
        recipe_title: str,
        recipe_ingredients: Sequence[str],
        inventory: Sequence[InventorySnapshot],
    ) -> MatchResult:
        prompt = get_ingredient_matching_prompt(
            recipe_title,
            recipe_ingredients,
            [(item.id, item.name, item.quantity) for item in inventory],
        )
        payload = await self.llm_service.generate_json(
            prompt=prompt,
            system_prompt=INGREDIENT_MATCHING_SYSTEM_PROMPT,
            temperature=0.1,
        )
        result = parse_llm_matches(payload, recipe_ingredients, inventory)
        logger.info(
            f"LLM matched {len(result.matches)}/{len(recipe_ingredients)} ingredients "
            f"for '{recipe_title}'"
        )
        return result
