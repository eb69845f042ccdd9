"""Tests for the action registry and alias normalization."""

import pytest

from stocktalk.actions.registry import (
    ACTION_ALIASES,
    ACTION_REGISTRY,
    describe_actions,
    find_action,
    get_actions_by_category,
    is_registered,
    normalize_action_name,
    required_parameters,
)


class TestActionLookup:
    """Test finding actions and categories."""

    def test_find_known_action(self) -> None:
        action = find_action("ADD_STOCK")

        assert action is not None
        assert action.category == "STOCK_MANAGEMENT"
        assert action.required_parameters == ["item", "quantity", "location"]

    def test_find_unknown_action(self) -> None:
        assert find_action("LAUNCH_ROCKET") is None

    def test_find_is_case_sensitive(self) -> None:
        """Only canonical names are looked up; use normalize_action_name first."""
        assert find_action("add_stock") is None

    def test_action_names_unique(self) -> None:
        names = [action.name for action in ACTION_REGISTRY]
        assert len(names) == len(set(names))

    def test_get_actions_by_category(self) -> None:
        stock_actions = {a.name for a in get_actions_by_category("STOCK_MANAGEMENT")}

        assert stock_actions == {
            "ADD_STOCK",
            "REMOVE_STOCK",
            "TRANSFER_STOCK",
            "COUNT_STOCK",
            "SEARCH_STOCK",
            "LOW_STOCK_REPORT",
        }

    def test_get_actions_by_unknown_category(self) -> None:
        assert get_actions_by_category("NOPE") == []

    def test_query_inventory_registered(self) -> None:
        action = find_action("QUERY_INVENTORY")

        assert action is not None
        assert action.required_parameters == []
        assert "search" in action.parameter_names

    def test_required_parameters_through_alias(self) -> None:
        assert required_parameters("receive_stock") == ["item", "quantity", "location"]
        assert required_parameters("NOT_AN_ACTION") == []


class TestNormalizeActionName:
    """Test alias resolution."""

    @pytest.mark.parametrize(
        ("alias", "canonical"),
        [
            ("RECEIVE_STOCK", "ADD_STOCK"),
            ("ADJUST_STOCK", "ADD_STOCK"),
            ("USE_STOCK", "REMOVE_STOCK"),
            ("STOCK_COUNT", "COUNT_STOCK"),
            ("INSTALL_DIRECT_ORDER", "INSTALL_PART"),
            ("CREATE_PURCHASE_ORDER", "CREATE_ORDER"),
            ("CREATE_CATALOGUE_ITEM_AND_ADD_STOCK", "ADD_PRODUCT"),
        ],
    )
    def test_documented_aliases(self, alias: str, canonical: str) -> None:
        assert normalize_action_name(alias) == canonical

    def test_every_alias_targets_registered_action(self) -> None:
        for alias, target in ACTION_ALIASES.items():
            assert find_action(target) is not None, alias
            assert find_action(normalize_action_name(alias)) is not None

    def test_case_insensitive(self) -> None:
        assert normalize_action_name("receive_stock") == "ADD_STOCK"
        assert normalize_action_name("  Search_Stock ") == "SEARCH_STOCK"

    def test_unknown_passes_through_upper_cased(self) -> None:
        assert normalize_action_name("make_coffee") == "MAKE_COFFEE"

    def test_is_registered(self) -> None:
        assert is_registered("ADD_STOCK")
        assert is_registered("use_stock")
        assert not is_registered("MAKE_COFFEE")


class TestDescribeActions:
    """Test the text catalogue used to brief the remote services."""

    def test_describe_contains_every_action(self) -> None:
        text = describe_actions()

        for action in ACTION_REGISTRY:
            assert action.name in text

    def test_describe_subset(self) -> None:
        add_stock = find_action("ADD_STOCK")
        text = describe_actions((add_stock,))

        assert "ADD_STOCK (STOCK_MANAGEMENT)" in text
        assert "item (string, required)" in text
        assert "REMOVE_STOCK" not in text
