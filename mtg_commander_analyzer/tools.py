"""
The analyze and build operations, shared by the CLI and the MCP server.

Requests arrive as plain JSON-style dicts with camelCase keys and are
validated into input dataclasses before being handed to the core.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from .analyzer import DeckAnalyzer
from .context import ServiceContext
from .deck_builder import DeckBuilder
from .deck_parser import parse_deck_text
from .models import AnalyzeDeckInput, AnalyzeDeckResult, BuildDeckInput, BuildDeckResult


logger = logging.getLogger(__name__)


class InputValidationError(ValueError):
    """Raised when a tool request is malformed."""
    pass


def _required_string(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise InputValidationError(f"'{key}' is required and must be a non-empty string")
    return value


def _optional_string(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InputValidationError(f"'{key}' must be a string")
    return value or None


def _optional_bool(data: Mapping[str, Any], key: str, default: Optional[bool] = False) -> Optional[bool]:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise InputValidationError(f"'{key}' must be a boolean")
    return value


def _string_list(data: Mapping[str, Any], key: str) -> List[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise InputValidationError(f"'{key}' must be a list of strings")
    return list(value)


def analyze_input_from_dict(data: Mapping[str, Any]) -> AnalyzeDeckInput:
    """
    Validate an analyze_deck request.

    Raises:
        InputValidationError: If ``deckText`` is missing or a field has the wrong type
    """
    if not isinstance(data, Mapping):
        raise InputValidationError("Request must be an object")

    deck_text = data.get('deckText')
    if not isinstance(deck_text, str):
        raise InputValidationError("'deckText' is required and must be a string")

    options = data.get('options') or {}
    if not isinstance(options, Mapping):
        raise InputValidationError("'options' must be an object")

    return AnalyzeDeckInput(
        deck_text=deck_text,
        template_id=_optional_string(data, 'templateId'),
        banlist_id=_optional_string(data, 'banlistId'),
        bracket_id=_optional_string(data, 'bracketId'),
        edhrec_urls=_string_list(data, 'edhrecUrls'),
        infer_commander=_optional_bool(options, 'inferCommander', default=None),
        language=_optional_string(options, 'language'),
    )


def build_input_from_dict(data: Mapping[str, Any]) -> BuildDeckInput:
    """
    Validate a build_deck_from_commander request.

    Raises:
        InputValidationError: If ``commanderName`` is missing or a field has the wrong type
    """
    if not isinstance(data, Mapping):
        raise InputValidationError("Request must be an object")

    return BuildDeckInput(
        commander_name=_required_string(data, 'commanderName').strip(),
        template_id=_optional_string(data, 'templateId'),
        banlist_id=_optional_string(data, 'banlistId'),
        bracket_id=_optional_string(data, 'bracketId'),
        preferred_strategy=_optional_string(data, 'preferredStrategy'),
        seed_cards=_string_list(data, 'seedCards'),
        use_edhrec=_optional_bool(data, 'useEdhrec'),
        use_edhrec_autofill=_optional_bool(data, 'useEdhrecAutofill'),
    )


def run_analyze_deck(analyze_input: AnalyzeDeckInput, context: ServiceContext) -> AnalyzeDeckResult:
    """Parse the decklist text and analyze it."""
    parsed_deck = parse_deck_text(analyze_input.deck_text)
    logger.info(f"Analyzing decklist with {len(parsed_deck.cards)} entries")
    return DeckAnalyzer(context).analyze(analyze_input, parsed_deck)


async def run_build_deck(build_input: BuildDeckInput, context: ServiceContext) -> BuildDeckResult:
    """Build a deck from a commander."""
    return await DeckBuilder(context).build_deck(build_input)


def analyze_deck(request: Dict[str, Any], context: ServiceContext) -> Dict[str, Any]:
    """Handle a raw analyze_deck request and return the JSON result."""
    return run_analyze_deck(analyze_input_from_dict(request), context).to_dict()


async def build_deck_from_commander(request: Dict[str, Any], context: ServiceContext) -> Dict[str, Any]:
    """Handle a raw build_deck_from_commander request and return the JSON result."""
    result = await run_build_deck(build_input_from_dict(request), context)
    return result.to_dict()
