"""
Service context shared by the analyzer and the deck builder.

The context owns the process-lifetime caches (card database, templates,
bracket data) and the recommendation source, and is passed explicitly to
the components that need them.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Protocol

from .brackets import BracketRepository
from .config import AnalyzerConfig, ConfigManager
from .edhrec_service import DEFAULT_SUGGESTION_LIMIT, EDHRECService
from .models import CardSuggestion
from .scryfall_service import CardDatabase
from .templates import TemplateLoader


class RecommendationSource(Protocol):
    """Provides ranked card suggestions for a color identity."""

    def top_cards_for_colors(self, colors: Iterable[str], limit: int = ...) -> List[CardSuggestion]:
        ...

    def top_lands_for_colors(self, colors: Iterable[str], limit: int = ...) -> List[CardSuggestion]:
        ...

    def sources_for_colors(self, colors: Iterable[str]) -> List[str]:
        ...


@dataclass
class ServiceContext:
    """Collaborators and defaults used to serve analyze and build requests."""
    cards: CardDatabase
    templates: TemplateLoader
    brackets: BracketRepository
    recommendations: Optional[RecommendationSource] = None
    default_template_id: str = "bracket3"
    default_bracket_id: str = "bracket3"
    suggestion_limit: int = DEFAULT_SUGGESTION_LIMIT


def create_default_context(config: AnalyzerConfig, config_manager: Optional[ConfigManager] = None) -> ServiceContext:
    """
    Build a context from configuration.

    Args:
        config: Effective configuration (file values plus environment overrides)
        config_manager: Manager used to resolve the cache and card file paths

    Returns:
        ServiceContext with lazily loading caches
    """
    config_manager = config_manager or ConfigManager()

    if config.oracle_cards_path:
        oracle_cards_path = Path(config.oracle_cards_path).expanduser()
    else:
        oracle_cards_path = config_manager.get_oracle_cards_path()

    data_dir = Path(config.data_dir).expanduser() if config.data_dir else None

    recommendations = EDHRECService(
        cache_dir=str(config_manager.get_cache_dir() / "edhrec"),
        cache_enabled=config.edhrec_cache_enabled,
        cache_duration_hours=config.edhrec_cache_duration_hours,
        timeout=config.api_timeout_seconds,
    )

    return ServiceContext(
        cards=CardDatabase(oracle_cards_path),
        templates=TemplateLoader(data_dir),
        brackets=BracketRepository(data_dir),
        recommendations=recommendations,
        default_template_id=config.default_template_id,
        default_bracket_id=config.default_bracket_id,
        suggestion_limit=config.suggestion_limit,
    )
