"""
Model Context Protocol server exposing the analyzer tools over stdio.

Tool parameters keep the camelCase names of the JSON protocol. Results are
returned as pretty-printed JSON text; raised errors are reported by the SDK
as error results.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from . import __version__
from .config import ConfigManager, apply_env_overrides
from .context import ServiceContext, create_default_context
from .tools import analyze_deck as analyze_deck_request
from .tools import build_deck_from_commander as build_deck_request


logger = logging.getLogger(__name__)

mcp = FastMCP("mtg-commander-analyzer")

_context: Optional[ServiceContext] = None


def get_context() -> ServiceContext:
    """Create the shared service context on first use."""
    global _context
    if _context is None:
        config_manager = ConfigManager()
        config = apply_env_overrides(config_manager.get_config())
        _context = create_default_context(config, config_manager)
    return _context


def set_context(context: Optional[ServiceContext]) -> None:
    """Replace the shared service context (None resets it)."""
    global _context
    _context = context


def _drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


@mcp.tool()
def analyze_deck(
    deckText: str,
    templateId: Optional[str] = None,
    banlistId: Optional[str] = None,
    edhrecUrls: Optional[List[str]] = None,
    bracketId: Optional[str] = None,
    options: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Analyze a Commander (EDH) decklist against a deck template and bracket rules.

    Counts cards per role category (lands, ramp, draw, removal, wipes, ...),
    compares them with the template's recommended ranges and checks bracket
    constraints (Game Changers, mass land denial, extra turns).

    Args:
        deckText: Raw decklist text, one card per line with quantity (e.g. "1 Sol Ring")
        templateId: Template ID for deck analysis (defaults to "bracket3")
        banlistId: Banlist ID (reserved for future use)
        edhrecUrls: EDHREC URLs for additional context (reserved for future use)
        bracketId: Bracket ID for rule checks (defaults to the template ID)
        options: Optional {"inferCommander": bool, "language": str} (reserved)
    """
    request = _drop_none({
        'deckText': deckText,
        'templateId': templateId,
        'banlistId': banlistId,
        'edhrecUrls': edhrecUrls,
        'bracketId': bracketId,
        'options': options,
    })
    return json.dumps(analyze_deck_request(request, get_context()), indent=2, ensure_ascii=False)


@mcp.tool()
async def build_deck_from_commander(
    commanderName: str,
    templateId: Optional[str] = None,
    banlistId: Optional[str] = None,
    bracketId: Optional[str] = None,
    preferredStrategy: Optional[str] = None,
    seedCards: Optional[List[str]] = None,
    useEdhrec: Optional[bool] = None,
    useEdhrecAutofill: Optional[bool] = None,
) -> str:
    """
    Build a Commander deck skeleton from a commander name.

    Resolves the commander, fills basic lands for its color identity,
    optionally fetches EDHREC suggestions and can autofill missing ramp,
    card draw, removal and board wipe slots within bracket constraints.

    Args:
        commanderName: Commander card name (e.g. "Atraxa, Praetors' Voice")
        templateId: Template ID for deck building (defaults to "bracket3")
        banlistId: Banlist ID (reserved for future use)
        bracketId: Bracket ID for rule enforcement (defaults to "bracket3")
        preferredStrategy: Preferred strategy or theme (reserved for future use)
        seedCards: Cards to include in the deck
        useEdhrec: Fetch EDHREC suggestions
        useEdhrecAutofill: Autofill category deficits from EDHREC suggestions
    """
    request = _drop_none({
        'commanderName': commanderName,
        'templateId': templateId,
        'banlistId': banlistId,
        'bracketId': bracketId,
        'preferredStrategy': preferredStrategy,
        'seedCards': seedCards,
        'useEdhrec': useEdhrec,
        'useEdhrecAutofill': useEdhrecAutofill,
    })
    result = await build_deck_request(request, get_context())
    return json.dumps(result, indent=2, ensure_ascii=False)


def run_server() -> None:
    """Run the MCP server on stdio."""
    logger.info(f"MTG Commander Analyzer MCP server v{__version__} listening on stdio")
    mcp.run()


if __name__ == "__main__":
    run_server()
