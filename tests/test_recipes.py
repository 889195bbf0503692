"""Unit tests for the dragwiki.recipes registry and recipe validation."""

from __future__ import annotations

import pytest

from dragwiki.errors import ConfigError
from dragwiki.recipes import (
    BUILTIN_RECIPES,
    ColumnSpec,
    ExtractionRecipe,
    RecipeRegistry,
    TableLayout,
    build_default_registry,
)
from dragwiki.recipes.default import DEFAULT_RECIPE
from dragwiki.recipes.seeds import SEED_FRANCHISES


def _layout(selector: str = ".wikitable") -> TableLayout:
    return TableLayout(
        table_selector=selector,
        columns={"drag_name": ColumnSpec("th", 0)},
    )


class TestColumnSpec:
    """Tests for column validation."""

    def test_unknown_parser_fails_at_construction(self) -> None:
        with pytest.raises(ConfigError):
            ColumnSpec("td", 1, parser="extractShoeSize")

    def test_unknown_cell_type(self) -> None:
        with pytest.raises(ConfigError):
            ColumnSpec("li", 0)


class TestTableLayout:
    """Tests for layout validation."""

    def test_requires_drag_name(self) -> None:
        with pytest.raises(ConfigError, match="drag_name"):
            TableLayout(".wikitable", {"age": ColumnSpec("td", 0)})

    def test_rejects_unknown_field(self) -> None:
        with pytest.raises(ConfigError, match="shoe_size"):
            TableLayout(
                ".wikitable",
                {"drag_name": ColumnSpec("th", 0), "shoe_size": ColumnSpec("td", 0)},
            )

    def test_rejects_empty_selector(self) -> None:
        with pytest.raises(ConfigError):
            TableLayout("", {"drag_name": ColumnSpec("th", 0)})


class TestRecipe:
    """Tests for recipe layouts."""

    def test_layouts_in_declared_order(self) -> None:
        first, second, third = _layout("#a"), _layout("#b"), _layout("#c")
        recipe = ExtractionRecipe("X", primary=first, alternatives=(second, third))
        assert recipe.layouts == (first, second, third)

    def test_requires_name(self) -> None:
        with pytest.raises(ConfigError):
            ExtractionRecipe("", primary=_layout())


class TestRecipeRegistry:
    """Tests for registration and resolution."""

    def test_resolves_registered(self) -> None:
        registry = RecipeRegistry()
        recipe = ExtractionRecipe("Drag Race Thailand", primary=_layout())
        registry.register(recipe)
        assert registry.resolve("Drag Race Thailand") is recipe
        assert "Drag Race Thailand" in registry

    def test_falls_back_to_default(self) -> None:
        registry = RecipeRegistry()
        assert registry.resolve("Drag Race Thailand") is DEFAULT_RECIPE

    def test_lookup_is_exact(self) -> None:
        registry = build_default_registry()
        assert registry.resolve("RuPaul's Drag Race ") is DEFAULT_RECIPE

    def test_strict_mode_raises(self) -> None:
        registry = RecipeRegistry(strict=True)
        with pytest.raises(ConfigError, match="No recipe"):
            registry.resolve("Drag Race Thailand")

    def test_frozen_rejects_registration(self) -> None:
        registry = RecipeRegistry()
        registry.freeze()
        assert registry.frozen
        with pytest.raises(ConfigError, match="frozen"):
            registry.register(ExtractionRecipe("X", primary=_layout()))

    def test_builtins_registered(self) -> None:
        registry = build_default_registry()
        assert registry.names() == sorted(r.franchise_name for r in BUILTIN_RECIPES)
        assert "RuPaul's Drag Race All Stars" in registry


class TestSeeds:
    """Sanity checks on the static seed catalog."""

    def test_season_names_unique(self) -> None:
        names = [s.name for f in SEED_FRANCHISES for s in f.seasons]
        assert len(names) == len(set(names))

    def test_every_seed_season_has_url(self) -> None:
        assert all(s.source_url for f in SEED_FRANCHISES for s in f.seasons)
