"""Local regex fallback parser for common inventory phrasings.

Used when the classification service is unavailable, erroring, or
under-confident. Never touches the network.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

Extractor = Callable[[re.Match[str]], Any] | Any


@dataclass
class FallbackResult:
    """Action and parameters recognised by a regex template."""

    action: str
    parameters: dict[str, Any]
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "action": self.action,
            "parameters": self.parameters,
            "confidence": self.confidence,
        }


def _text(group: int) -> Callable[[re.Match[str]], str]:
    return lambda m: m.group(group).strip()


def _int(group: int) -> Callable[[re.Match[str]], int]:
    return lambda m: int(m.group(group))


def _optional_float(group: int) -> Callable[[re.Match[str]], float | None]:
    return lambda m: float(m.group(group)) if m.group(group) else None


def _first_word(group: int) -> Callable[[re.Match[str]], str]:
    # Known limitation: "siemens lmv37.100 burner controller" yields "siemens"
    def extract(m: re.Match[str]) -> str:
        name = m.group(group).strip()
        words = name.split()
        return words[0] if words else name

    return extract


def _strip_stock_suffix(m: re.Match[str]) -> str:
    return re.sub(r"\s*(?:in\s+)?(?:stock|inventory).*$", "", m.group(1)).strip()


class FallbackParser:
    """Match commands against an ordered list of regex templates."""

    def __init__(self) -> None:
        """Initialize the parser with its pattern table."""
        # Pattern rules: (regex, action, entity_extractors, confidence). First match wins.
        self.patterns: list[tuple[re.Pattern[str], str, dict[str, Extractor], float]] = [
            # Add [qty] [item] to/into [location]
            (
                re.compile(
                    r"^(?:add|put|receive|received)\s+(\d+)\s+(.+?)\s+(?:to|into|at|in)\s+(.+)$"
                ),
                "ADD_STOCK",
                {
                    "quantity": _int(1),
                    "item": _text(2),
                    "partNumber": _text(2),
                    "location": _text(3),
                },
                0.85,
            ),
            # Use/take/remove [qty] [item] from [location]
            (
                re.compile(
                    r"^(?:use|used|take|took|remove|removed)\s+(\d+)\s+(.+?)\s+from\s+(.+)$"
                ),
                "REMOVE_STOCK",
                {
                    "quantity": _int(1),
                    "item": _text(2),
                    "partNumber": _text(2),
                    "location": _text(3),
                    "reason": "usage",
                },
                0.85,
            ),
            # Move/transfer [qty] [item] from [loc1] to [loc2]
            (
                re.compile(r"^(?:move|transfer)\s+(\d+)\s+(.+?)\s+from\s+(.+?)\s+to\s+(.+)$"),
                "TRANSFER_STOCK",
                {
                    "quantity": _int(1),
                    "item": _text(2),
                    "partNumber": _text(2),
                    "fromLocation": _text(3),
                    "toLocation": _text(4),
                },
                0.85,
            ),
            # I've got [qty] [item] at/on/in [location]
            (
                re.compile(
                    r"^(?:i(?:'ve|\s+have)\s+got|there(?:'s|\s+are))\s+(\d+)\s+(.+?)\s+(?:at|on|in)\s+(.+)$"
                ),
                "COUNT_STOCK",
                {
                    "quantity": _int(1),
                    "countedQuantity": _int(1),
                    "item": _text(2),
                    "partNumber": _text(2),
                    "location": _text(3),
                },
                0.85,
            ),
            # What [item] do we have / in stock
            (
                re.compile(r"^(?:what|show|list)\s+(.+?)\s+(?:do we have|in stock|available)"),
                "SEARCH_STOCK",
                {"search": _text(1)},
                0.8,
            ),
            # Short alphanumeric codes that look like part numbers ("search for lmv")
            (
                re.compile(r"^(?:search|find|look)\s+(?:for\s+)?([a-z0-9]{2,5})$"),
                "SEARCH_CATALOGUE",
                {"search": _text(1)},
                0.8,
            ),
            # Search/find [item] ... stock/inventory
            (
                re.compile(
                    r"^(?:search|find|look for)\s+(?:for\s+)?(.*\b(?:stock|inventory)\b.*)$"
                ),
                "SEARCH_STOCK",
                {"search": _strip_stock_suffix},
                0.75,
            ),
            # Search/find [item]
            (
                re.compile(r"^(?:search|find|look for)\s+(?:for\s+)?(.+)$"),
                "SEARCH_CATALOGUE",
                {"search": _text(1)},
                0.75,
            ),
            # New customer [name]
            (
                re.compile(r"^(?:new|add|create)\s+customer\s+(.+)$"),
                "ADD_CUSTOMER",
                {"name": _text(1)},
                0.85,
            ),
            # New job for [customer] - [description]
            (
                re.compile(r"^(?:new|create)\s+job\s+for\s+(.+?)(?:\s+-\s+(.+))?$"),
                "CREATE_JOB",
                {
                    "customerName": _text(1),
                    "description": lambda m: m.group(2).strip() if m.group(2) else None,
                },
                0.85,
            ),
            # Add new item [name] cost [price] markup [%]
            (
                re.compile(
                    r"^(?:add\s+new\s+item|create\s+product|new\s+part)\s+(.+?)\s+cost\s+"
                    r"(\d+(?:\.\d+)?)(?:\s+markup\s+(\d+(?:\.\d+)?)%?)?"
                ),
                "ADD_PRODUCT",
                {
                    "name": _text(1),
                    "partNumber": _first_word(1),
                    "unitCost": lambda m: float(m.group(2)),
                    "markup": _optional_float(3),
                },
                0.8,
            ),
            # New supplier [name]
            (
                re.compile(r"^(?:new|add|create)\s+supplier\s+(.+)$"),
                "ADD_SUPPLIER",
                {"name": _text(1)},
                0.85,
            ),
            # Low stock report
            (
                re.compile(r"^(?:show\s+)?low\s+stock(?:\s+report)?"),
                "LOW_STOCK_REPORT",
                {},
                0.9,
            ),
        ]

    def parse(self, command: str) -> FallbackResult | None:
        """Parse a command against the pattern table.

        Args:
            command: Raw user command

        Returns:
            FallbackResult for the first matching pattern, or None
        """
        if not isinstance(command, str):
            return None

        text = command.lower().strip()
        if not text:
            return None

        try:
            for pattern, action, entity_extractors, confidence in self.patterns:
                match = pattern.search(text)
                if not match:
                    continue

                parameters: dict[str, Any] = {}
                for key, extractor in entity_extractors.items():
                    if callable(extractor):
                        value = extractor(match)
                        if value is not None:
                            parameters[key] = value
                    else:
                        parameters[key] = extractor

                return FallbackResult(action=action, parameters=parameters, confidence=confidence)
        except (ValueError, IndexError) as e:
            logger.warning("Fallback pattern extraction failed: %s", e)
            return None

        return None


_default_parser = FallbackParser()


def try_fallback_parse(command: str) -> FallbackResult | None:
    """Try to parse a command with the default regex templates.

    Returns None if no pattern matches.
    """
    return _default_parser.parse(command)
