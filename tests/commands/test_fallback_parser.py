"""Tests for the regex fallback parser."""

import pytest

from stocktalk.commands.fallback_parser import FallbackParser, try_fallback_parse


@pytest.fixture
def parser() -> FallbackParser:
    """Create a fallback parser."""
    return FallbackParser()


class TestStockPatterns:
    """Test stock movement phrasings."""

    def test_add_stock(self) -> None:
        result = try_fallback_parse("Add 5 M10 nuts to rack 1 bin6")

        assert result is not None
        assert result.action == "ADD_STOCK"
        assert result.confidence == pytest.approx(0.85)
        assert result.parameters["quantity"] == 5
        assert result.parameters["item"] == "m10 nuts"
        assert result.parameters["location"] == "rack 1 bin6"
        assert result.parameters["partNumber"] == "m10 nuts"

    def test_received_into(self, parser: FallbackParser) -> None:
        result = parser.parse("received 20 bearings into warehouse")

        assert result.action == "ADD_STOCK"
        assert result.parameters["quantity"] == 20
        assert result.parameters["location"] == "warehouse"

    def test_quantity_is_integer(self, parser: FallbackParser) -> None:
        result = parser.parse("put 10 lmv37 into van")
        assert isinstance(result.parameters["quantity"], int)

    def test_remove_stock(self, parser: FallbackParser) -> None:
        result = parser.parse("Used 2 filters from van")

        assert result.action == "REMOVE_STOCK"
        assert result.parameters == {
            "quantity": 2,
            "item": "filters",
            "partNumber": "filters",
            "location": "van",
            "reason": "usage",
        }

    def test_transfer_stock(self, parser: FallbackParser) -> None:
        result = parser.parse("Move 10 bolts from warehouse to van")

        assert result.action == "TRANSFER_STOCK"
        assert result.parameters["fromLocation"] == "warehouse"
        assert result.parameters["toLocation"] == "van"
        assert result.parameters["quantity"] == 10

    def test_count_stock(self, parser: FallbackParser) -> None:
        result = parser.parse("I've got 12 sensors on shelf 3")

        assert result.action == "COUNT_STOCK"
        assert result.parameters["countedQuantity"] == 12
        assert result.parameters["quantity"] == 12
        assert result.parameters["location"] == "shelf 3"

    def test_count_stock_there_are(self, parser: FallbackParser) -> None:
        result = parser.parse("there are 4 valves in van 2")

        assert result.action == "COUNT_STOCK"
        assert result.parameters["item"] == "valves"


class TestSearchPatterns:
    """Test search phrasings."""

    def test_what_do_we_have(self, parser: FallbackParser) -> None:
        result = parser.parse("What bearings do we have")

        assert result.action == "SEARCH_STOCK"
        assert result.parameters == {"search": "bearings"}
        assert result.confidence == pytest.approx(0.8)

    def test_short_code_is_catalogue_search(self, parser: FallbackParser) -> None:
        result = parser.parse("search for lmv")

        assert result.action == "SEARCH_CATALOGUE"
        assert result.parameters == {"search": "lmv"}
        assert result.confidence == pytest.approx(0.8)

    def test_search_mentioning_stock(self, parser: FallbackParser) -> None:
        result = parser.parse("find bearings in stock")

        assert result.action == "SEARCH_STOCK"
        assert result.parameters == {"search": "bearings"}
        assert result.confidence == pytest.approx(0.75)

    def test_search_without_stock(self, parser: FallbackParser) -> None:
        result = parser.parse("look for siemens burner controller")

        assert result.action == "SEARCH_CATALOGUE"
        assert result.parameters == {"search": "siemens burner controller"}


class TestRecordPatterns:
    """Test customer, job, product and supplier phrasings."""

    def test_new_customer(self, parser: FallbackParser) -> None:
        result = parser.parse("New customer Acme Heating")

        assert result.action == "ADD_CUSTOMER"
        assert result.parameters == {"name": "acme heating"}

    def test_new_job_with_description(self, parser: FallbackParser) -> None:
        result = parser.parse("new job for acme - boiler service")

        assert result.action == "CREATE_JOB"
        assert result.parameters == {"customerName": "acme", "description": "boiler service"}

    def test_new_job_without_description(self, parser: FallbackParser) -> None:
        result = parser.parse("create job for acme heating")

        assert result.parameters == {"customerName": "acme heating"}

    def test_add_product_with_markup(self, parser: FallbackParser) -> None:
        result = parser.parse("Add new item cable 0.75mm cost 25 markup 35%")

        assert result.action == "ADD_PRODUCT"
        assert result.parameters == {
            "name": "cable 0.75mm",
            "partNumber": "cable",
            "unitCost": 25.0,
            "markup": 35.0,
        }

    def test_add_product_without_markup(self, parser: FallbackParser) -> None:
        result = parser.parse("new part widget cost 3.50")

        assert result.parameters["unitCost"] == pytest.approx(3.5)
        assert "markup" not in result.parameters

    def test_part_number_is_first_word(self, parser: FallbackParser) -> None:
        result = parser.parse("create product siemens lmv37.100 burner controller cost 450")
        assert result.parameters["partNumber"] == "siemens"

    def test_new_supplier(self, parser: FallbackParser) -> None:
        result = parser.parse("new supplier ABC Industries")

        assert result.action == "ADD_SUPPLIER"
        assert result.parameters == {"name": "abc industries"}

    def test_low_stock_report(self, parser: FallbackParser) -> None:
        result = parser.parse("show low stock report")

        assert result.action == "LOW_STOCK_REPORT"
        assert result.parameters == {}
        assert result.confidence == pytest.approx(0.9)


class TestNoMatch:
    """Test inputs the templates do not cover."""

    @pytest.mark.parametrize("command", ["", "   ", "hello there", "add bolts somewhere"])
    def test_returns_none(self, command: str) -> None:
        assert try_fallback_parse(command) is None

    def test_non_string_returns_none(self) -> None:
        assert try_fallback_parse(None) is None  # type: ignore[arg-type]

    def test_to_dict(self) -> None:
        result = try_fallback_parse("low stock")

        assert result.to_dict() == {
            "action": "LOW_STOCK_REPORT",
            "parameters": {},
            "confidence": 0.9,
        }
