"""
Data models for MTG Commander Analyzer.

This module contains the core data structures used throughout the application:
parsed decklists, templates, bracket rules, analysis results and built decks.
Results expose ``to_dict()`` producing the JSON shape returned by the tools.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Set, Any
import re


# Category status values
STATUS_BELOW = "below"
STATUS_WITHIN = "within"
STATUS_ABOVE = "above"
STATUS_UNKNOWN = "unknown"


def normalize_card_name(name: str) -> str:
    """Normalize a card name for case-insensitive comparisons."""
    return re.sub(r'\s+', ' ', name.strip().lower())


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


@dataclass
class ParsedCardEntry:
    """Represents a single line of a parsed decklist."""
    raw_line: str
    quantity: int
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {'rawLine': self.raw_line, 'quantity': self.quantity, 'name': self.name}


@dataclass
class ParsedDeck:
    """A decklist parsed into entries (order is irrelevant to analysis)."""
    cards: List[ParsedCardEntry] = field(default_factory=list)
    commander_name: Optional[str] = None

    @property
    def total_cards(self) -> int:
        """Sum of quantities across all entries."""
        return sum(entry.quantity for entry in self.cards)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'commanderName': self.commander_name,
            'cards': [entry.to_dict() for entry in self.cards],
        }


@dataclass
class TemplateCategory:
    """Recommended count range for a single category in a template."""
    name: str
    min: Optional[int] = None
    max: Optional[int] = None


@dataclass
class DeckTemplate:
    """Deck template defining category expectations."""
    id: str
    categories: List[TemplateCategory] = field(default_factory=list)
    label: Optional[str] = None
    # Set when this template was served in place of a missing one
    fallback_from: Optional[str] = None

    def get_category(self, name: str) -> Optional[TemplateCategory]:
        for category in self.categories:
            if category.name == name:
                return category
        return None

    @property
    def category_names(self) -> List[str]:
        return [category.name for category in self.categories]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeckTemplate':
        """Create a DeckTemplate from the JSON template file structure."""
        categories = [
            TemplateCategory(
                name=item['name'],
                min=item.get('min'),
                max=item.get('max'),
            )
            for item in data.get('categories', [])
        ]
        return cls(id=data['id'], categories=categories, label=data.get('label'))


@dataclass
class BracketRules:
    """Play restrictions for a Commander power bracket."""
    id: str
    label: str
    max_game_changers: int
    allow_mass_land_destruction: bool = False
    allow_infinite_two_card_combos_before_turn_six: bool = False
    max_extra_turn_cards: Optional[int] = None

    @classmethod
    def from_dict(cls, bracket_id: str, data: Dict[str, Any]) -> 'BracketRules':
        """Create BracketRules from an entry of bracket-rules.json."""
        return cls(
            id=data.get('id', bracket_id),
            label=data.get('label', bracket_id),
            max_game_changers=int(data.get('maxGameChangers', 0)),
            allow_mass_land_destruction=bool(data.get('allowMassLandDestruction', False)),
            allow_infinite_two_card_combos_before_turn_six=bool(
                data.get('allowInfiniteTwoCardCombosBeforeTurnSix', False)
            ),
            max_extra_turn_cards=data.get('maxExtraTurnCards'),
        )


@dataclass
class BracketCardLists:
    """Named card lists for a bracket, stored as normalized names."""
    game_changers: Set[str] = field(default_factory=set)
    mass_land_denial: Set[str] = field(default_factory=set)
    extra_turns: Set[str] = field(default_factory=set)

    @classmethod
    def from_names(
        cls,
        game_changers: List[str],
        mass_land_denial: List[str],
        extra_turns: List[str]
    ) -> 'BracketCardLists':
        return cls(
            game_changers={normalize_card_name(name) for name in game_changers},
            mass_land_denial={normalize_card_name(name) for name in mass_land_denial},
            extra_turns={normalize_card_name(name) for name in extra_turns},
        )


@dataclass
class CategorySummary:
    """Count and status of a single template category."""
    name: str
    count: int
    min: Optional[int] = None
    max: Optional[int] = None
    status: str = STATUS_UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'name': self.name,
            'count': self.count,
            'min': self.min,
            'max': self.max,
            'status': self.status,
        })


@dataclass
class CategoryDeficit:
    """How far a category is below its recommended minimum."""
    name: str
    current: int
    min: Optional[int] = None
    max: Optional[int] = None
    deficit: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'name': self.name,
            'current': self.current,
            'min': self.min,
            'max': self.max,
            'deficit': self.deficit,
        })


@dataclass
class DeckAnalysis:
    """Complete deck analysis result."""
    commander_name: Optional[str]
    total_cards: int
    unique_cards: int
    categories: List[CategorySummary] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    bracket_id: Optional[str] = None
    bracket_label: Optional[str] = None
    bracket_warnings: List[str] = field(default_factory=list)

    def get_category(self, name: str) -> Optional[CategorySummary]:
        for category in self.categories:
            if category.name == name:
                return category
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'commanderName': self.commander_name,
            'totalCards': self.total_cards,
            'uniqueCards': self.unique_cards,
            'categories': [category.to_dict() for category in self.categories],
            'notes': list(self.notes),
        }
        if self.bracket_id is not None:
            data['bracketId'] = self.bracket_id
            data['bracketLabel'] = self.bracket_label
            data['bracketWarnings'] = list(self.bracket_warnings)
        return data


@dataclass
class AnalyzeDeckInput:
    """Input for the analyze_deck tool."""
    deck_text: str
    template_id: Optional[str] = None
    banlist_id: Optional[str] = None
    bracket_id: Optional[str] = None
    edhrec_urls: List[str] = field(default_factory=list)
    infer_commander: Optional[bool] = None
    language: Optional[str] = None


@dataclass
class AnalyzeDeckResult:
    """Complete result from the analyze_deck tool."""
    input: AnalyzeDeckInput
    analysis: DeckAnalysis
    parsed_deck: ParsedDeck

    def to_dict(self) -> Dict[str, Any]:
        return {
            'input': _drop_none({
                'templateId': self.input.template_id,
                'banlistId': self.input.banlist_id,
                'bracketId': self.input.bracket_id,
            }),
            'analysis': self.analysis.to_dict(),
            'parsedDeck': self.parsed_deck.to_dict(),
        }


@dataclass
class BuildDeckInput:
    """Input for the build_deck_from_commander tool."""
    commander_name: str
    template_id: Optional[str] = None
    banlist_id: Optional[str] = None
    bracket_id: Optional[str] = None
    preferred_strategy: Optional[str] = None
    seed_cards: List[str] = field(default_factory=list)
    use_edhrec: bool = False
    use_edhrec_autofill: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'commanderName': self.commander_name,
            'templateId': self.template_id,
            'banlistId': self.banlist_id,
            'bracketId': self.bracket_id,
            'preferredStrategy': self.preferred_strategy,
            'seedCards': list(self.seed_cards) if self.seed_cards else None,
            'useEdhrec': self.use_edhrec,
            'useEdhrecAutofill': self.use_edhrec_autofill,
        })


@dataclass
class BuiltCardEntry:
    """A single entry of a built deck."""
    name: str
    quantity: int = 1
    roles: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'name': self.name,
            'quantity': self.quantity,
            'roles': list(self.roles) if self.roles is not None else None,
        })


@dataclass
class BuiltDeck:
    """A built deck: commander plus the non-commander entries."""
    commander_name: str
    cards: List[BuiltCardEntry] = field(default_factory=list)

    @property
    def total_cards(self) -> int:
        """Total quantity of non-commander cards."""
        return sum(entry.quantity for entry in self.cards)

    def add_card(self, name: str, quantity: int = 1, roles: Optional[List[str]] = None) -> BuiltCardEntry:
        """Append an entry to the deck and return it."""
        entry = BuiltCardEntry(name=name, quantity=quantity, roles=roles)
        self.cards.append(entry)
        return entry

    def to_dict(self) -> Dict[str, Any]:
        return {
            'commanderName': self.commander_name,
            'cards': [entry.to_dict() for entry in self.cards],
        }


@dataclass
class CardSuggestion:
    """A card suggestion from EDHREC JSON pages."""
    name: str
    category: str
    url: Optional[str] = None
    rank: Optional[float] = None
    salt_score: Optional[float] = None
    synergy_score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'name': self.name,
            'url': self.url,
            'rank': self.rank,
            'saltScore': self.salt_score,
            'synergyScore': self.synergy_score,
            'category': self.category,
        })


@dataclass
class RecommendationContext:
    """Recommendation data consulted while building a deck."""
    sources_used: List[str] = field(default_factory=list)
    suggestions: List[CardSuggestion] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sourcesUsed': list(self.sources_used),
            'suggestions': [suggestion.to_dict() for suggestion in self.suggestions],
        }


@dataclass
class BuildDeckResult:
    """Complete result from the build_deck_from_commander tool."""
    input: BuildDeckInput
    template_id: str
    bracket_id: str
    deck: BuiltDeck
    analysis: DeckAnalysis
    notes: List[str] = field(default_factory=list)
    bracket_label: Optional[str] = None
    edhrec_context: Optional[RecommendationContext] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'input': self.input.to_dict(),
            'templateId': self.template_id,
            'bracketId': self.bracket_id,
            'bracketLabel': self.bracket_label,
            'deck': self.deck.to_dict(),
            'analysis': self.analysis.to_dict(),
            'notes': list(self.notes),
            'edhrecContext': self.edhrec_context.to_dict() if self.edhrec_context else None,
        })
