"""Keyword tables for seasonal and nutritional heuristics."""
from __future__ import annotations

import re

_SPRING = ("asparagus", "peas", "spinach", "strawberries")
_SUMMER = ("tomatoes", "corn", "berries", "peaches")
_FALL = ("apples", "pumpkin", "squash", "pears")
_WINTER = ("citrus", "potatoes", "onions", "cabbage")

# calendar month (1-12) -> produce typically in season
SEASONAL_FOODS: dict[int, frozenset[str]] = {
    **{m: frozenset(_SPRING) for m in (3, 4, 5)},
    **{m: frozenset(_SUMMER) for m in (6, 7, 8)},
    **{m: frozenset(_FALL) for m in (9, 10, 11)},
    **{m: frozenset(_WINTER) for m in (12, 1, 2)},
}

FOOD_GROUPS: dict[str, frozenset[str]] = {
    "proteins": frozenset({"meat", "fish", "eggs", "beans", "nuts", "tofu"}),
    "grains": frozenset({"bread", "rice", "pasta", "cereal", "wheat"}),
    "vegetables": frozenset({"vegetable", "salad", "greens", "carrots", "broccoli"}),
    "fruits": frozenset({"fruit", "apple", "banana", "orange", "berry"}),
    "dairy": frozenset({"milk", "cheese", "yogurt", "butter"}),
}

_WORD = re.compile(r"[a-z]+")


def words(text: str | None) -> set[str]:
    """Lower-cased alphabetic tokens of *text*."""
    if not text:
        return set()
    return set(_WORD.findall(text.lower()))


def seasonal_foods(month: int) -> frozenset[str]:
    return SEASONAL_FOODS.get(month, frozenset())


def food_groups(text: str | None) -> set[str]:
    """Names of the food groups mentioned in *text*."""
    tokens = words(text)
    return {group for group, foods in FOOD_GROUPS.items() if tokens & foods}
