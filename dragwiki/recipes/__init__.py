"""Per-franchise extraction recipes and their registry."""

from __future__ import annotations

import logging

from dragwiki.errors import ConfigError
from dragwiki.recipes.default import DEFAULT_RECIPE
from dragwiki.recipes.drag_race_all_stars import DRAG_RACE_ALL_STARS_RECIPE
from dragwiki.recipes.drag_race_brasil import DRAG_RACE_BRASIL_RECIPE
from dragwiki.recipes.drag_race_us import DRAG_RACE_US_RECIPE
from dragwiki.recipes.types import (
    ColumnSpec,
    ExtractionRecipe,
    SeasonLinkSpec,
    TableLayout,
)

logger = logging.getLogger(__name__)

BUILTIN_RECIPES: tuple[ExtractionRecipe, ...] = (
    DRAG_RACE_US_RECIPE,
    DRAG_RACE_BRASIL_RECIPE,
    DRAG_RACE_ALL_STARS_RECIPE,
)

__all__ = [
    "BUILTIN_RECIPES",
    "ColumnSpec",
    "DEFAULT_RECIPE",
    "ExtractionRecipe",
    "RecipeRegistry",
    "SeasonLinkSpec",
    "TableLayout",
    "build_default_registry",
]


class RecipeRegistry:
    """Maps franchise names to extraction recipes.

    Lookup is by exact franchise name. Unregistered names resolve to the
    default recipe unless the registry is strict. Registration is meant for
    startup; the orchestrator freezes the registry when a job starts.
    """

    def __init__(
        self,
        default: ExtractionRecipe = DEFAULT_RECIPE,
        strict: bool = False,
    ) -> None:
        self._recipes: dict[str, ExtractionRecipe] = {}
        self._default = default
        self._strict = strict
        self._frozen = False

    def register(self, recipe: ExtractionRecipe) -> None:
        """Register *recipe* under its franchise name.

        Args:
            recipe: A validated recipe.

        Raises:
            ConfigError: If the registry is frozen or the value is not a recipe.
        """
        if self._frozen:
            raise ConfigError(
                f"Cannot register {recipe.franchise_name!r}: registry is frozen"
            )
        if not isinstance(recipe, ExtractionRecipe):
            raise ConfigError(f"Expected an ExtractionRecipe, got {type(recipe)!r}")
        self._recipes[recipe.franchise_name] = recipe
        logger.debug("Registered recipe for franchise: %s", recipe.franchise_name)

    def resolve(self, franchise_name: str) -> ExtractionRecipe:
        """Return the recipe for *franchise_name*.

        Args:
            franchise_name: Exact franchise name.

        Returns:
            The registered recipe, or the default recipe.

        Raises:
            ConfigError: In strict mode, when no recipe is registered.
        """
        recipe = self._recipes.get(franchise_name)
        if recipe is not None:
            return recipe
        if self._strict:
            raise ConfigError(f"No recipe registered for {franchise_name!r}")
        logger.debug("Using default recipe for franchise: %s", franchise_name)
        return self._default

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def names(self) -> list[str]:
        return sorted(self._recipes)

    def __contains__(self, franchise_name: object) -> bool:
        return franchise_name in self._recipes


def build_default_registry(strict: bool = False) -> RecipeRegistry:
    """Create a registry holding every built-in recipe.

    Args:
        strict: Fail on unregistered franchise names instead of
            falling back to the default recipe.

    Returns:
        A new, unfrozen RecipeRegistry.
    """
    registry = RecipeRegistry(strict=strict)
    for recipe in BUILTIN_RECIPES:
        registry.register(recipe)
    return registry
