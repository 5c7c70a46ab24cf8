"""
Deck builder that generates a skeleton Commander deck from a commander.

The builder resolves the commander, adds any seed cards and a basic land base
sized from the template, analyzes the result, and can optionally fetch EDHREC
suggestions and use them to fill ramp, draw, removal and wipe deficits while
respecting the bracket's card lists.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from .analyzer import COMMANDER_DECK_SIZE, DeckAnalyzer
from .brackets import BracketNotFoundError
from .category_utils import compute_category_deficits
from .context import ServiceContext
from .deck_parser import deck_text_from_entries, parse_deck_text
from .edhrec_service import normalize_color_identity
from .models import (
    AnalyzeDeckInput, BracketRules, BuildDeckInput, BuildDeckResult, BuiltDeck,
    CardSuggestion, DeckAnalysis, DeckTemplate, RecommendationContext, normalize_card_name
)
from .roles import ROLE_LAND, autofill_categories, classify_card_roles
from .scryfall_service import CardData


COLOR_TO_BASIC_LAND = {
    'W': 'Plains',
    'U': 'Island',
    'B': 'Swamp',
    'R': 'Mountain',
    'G': 'Forest',
}
COLORLESS_BASIC_LAND = 'Wastes'

DEFAULT_LANDS_MIN = 35
DEFAULT_LANDS_MAX = 38
DEFAULT_MAX_GAME_CHANGERS = 3

# Fill priority: earlier categories are completed before later ones start
AUTOFILL_PRIORITY = ('ramp', 'card_draw', 'target_removal', 'board_wipes')
AUTOFILL_SUMMARY_LABELS = {
    'ramp': 'ramp',
    'card_draw': 'draw',
    'target_removal': 'removal',
    'board_wipes': 'wipes',
}


class CommanderNotFoundError(Exception):
    """Raised when the commander name cannot be resolved."""
    pass


@dataclass
class AutofillState:
    """Bookkeeping for a single autofill run."""
    commander_colors: Set[str]
    bracket_id: str
    max_game_changers: int
    game_changer_count: int = 0
    cards_in_deck: Set[str] = field(default_factory=set)
    added: Dict[str, int] = field(default_factory=lambda: {name: 0 for name in AUTOFILL_PRIORITY})

    @property
    def total_added(self) -> int:
        return sum(self.added.values())


def target_land_count(template: DeckTemplate) -> Tuple[int, int, int]:
    """
    Compute the land target from the template's lands category.

    Returns:
        Tuple of (min, max, target) where target is the average rounded half up
    """
    lands = template.get_category('lands')
    lands_min = lands.min if lands and lands.min is not None else DEFAULT_LANDS_MIN
    lands_max = lands.max if lands and lands.max is not None else DEFAULT_LANDS_MAX
    return lands_min, lands_max, (lands_min + lands_max + 1) // 2


def distribute_basic_lands(colors: List[str], total: int) -> List[Tuple[str, int]]:
    """
    Split a land count across the basic lands of a color identity.

    Colors are taken in WUBRG order and the remainder goes one per color from
    the first. A colorless identity gets all lands as Wastes.
    """
    basics = [COLOR_TO_BASIC_LAND[color] for color in normalize_color_identity(colors)]
    if not basics:
        return [(COLORLESS_BASIC_LAND, total)]

    per_color, remainder = divmod(total, len(basics))
    return [
        (basic, per_color + (1 if index < remainder else 0))
        for index, basic in enumerate(basics)
    ]


def merge_suggestions(*suggestion_lists: List[CardSuggestion]) -> List[CardSuggestion]:
    """Concatenate suggestion lists, keeping the first suggestion for each name."""
    merged = []
    seen = set()
    for suggestions in suggestion_lists:
        for suggestion in suggestions:
            key = normalize_card_name(suggestion.name)
            if key not in seen:
                seen.add(key)
                merged.append(suggestion)
    return merged


class DeckBuilder:
    """Builds skeleton Commander decks using the collaborators of a ServiceContext."""

    def __init__(self, context: ServiceContext):
        """
        Initialize the deck builder.

        Args:
            context: Card database, reference data and recommendation source
        """
        self.context = context
        self.analyzer = DeckAnalyzer(context)
        self.logger = logging.getLogger(__name__)

    async def build_deck(self, build_input: BuildDeckInput) -> BuildDeckResult:
        """
        Build a deck for a commander.

        Args:
            build_input: Commander name, template and bracket ids, seed cards
                and recommendation flags

        Returns:
            BuildDeckResult with the built deck, its analysis and notes

        Raises:
            CommanderNotFoundError: If the commander cannot be resolved
            ReferenceDataError: If the template or bracket data cannot be loaded
            CardDatabaseError: If the card database cannot be loaded
        """
        notes: List[str] = []

        commander = self.context.cards.get_card_by_name(build_input.commander_name)
        if commander is None:
            raise CommanderNotFoundError(
                f'Commander "{build_input.commander_name}" could not be resolved from the card database. '
                f'Please check the card name spelling.'
            )

        colors = normalize_color_identity(commander.color_identity)
        notes.append(f"Commander: {commander.name} (Color Identity: {''.join(colors) or 'Colorless'})")
        self.logger.info(f"Building deck for {commander.name} ({''.join(colors) or 'colorless'})")

        template_id = build_input.template_id or self.context.default_template_id
        bracket_id = build_input.bracket_id or self.context.default_bracket_id

        template = self.context.templates.load_template(template_id)
        if template.fallback_from:
            notes.append(f'Template "{template.fallback_from}" not found; using "{template.id}" template instead.')

        bracket_rules = self._load_bracket_rules(bracket_id, notes)

        lands_min, lands_max, target_lands = target_land_count(template)
        notes.append(f'Template "{template.id}" recommends {lands_min}-{lands_max} lands. Target: {target_lands}.')

        deck = BuiltDeck(commander_name=commander.name)
        self._add_seed_cards(deck, build_input.seed_cards, notes)
        self._add_land_base(deck, colors, target_lands, notes)
        notes.extend(self._skeleton_size_notes(deck.total_cards))

        analysis = self._analyze(deck, template.id, bracket_id, build_input.banlist_id)

        recommendation_context = None
        if build_input.use_edhrec or build_input.use_edhrec_autofill:
            recommendation_context = await self._fetch_recommendations(colors, notes)

        if build_input.use_edhrec_autofill:
            if recommendation_context and recommendation_context.suggestions:
                analysis = self._autofill(
                    deck, template.id, template, analysis, recommendation_context.suggestions,
                    colors, bracket_id, bracket_rules, build_input.banlist_id, notes
                )
            else:
                notes.append("EDHREC Autofill skipped: no suggestions available.")

        bracket_label = bracket_rules.label if bracket_rules else None
        notes.extend([
            '---',
            'Deck Builder Info:',
            f'- This is a skeleton {bracket_label or bracket_id} deck generated from commander "{commander.name}".',
            '- Only ramp, card draw, removal and board wipes are auto-filled; manual tuning required.',
            '- Use EDHREC or other resources to complete the deck with appropriate cards.',
            '---',
            'Analysis Notes:',
        ])
        notes.extend(analysis.notes)

        return BuildDeckResult(
            input=build_input,
            template_id=template_id,
            bracket_id=bracket_id,
            bracket_label=bracket_label,
            deck=deck,
            analysis=analysis,
            notes=notes,
            edhrec_context=recommendation_context,
        )

    def _load_bracket_rules(self, bracket_id: str, notes: List[str]) -> Optional[BracketRules]:
        try:
            return self.context.brackets.load_bracket_rules(bracket_id)
        except BracketNotFoundError as e:
            self.logger.warning(str(e))
            notes.append(f'Warning: Could not load bracket rules for "{bracket_id}".')
            return None

    def _add_seed_cards(self, deck: BuiltDeck, seed_cards: List[str], notes: List[str]) -> None:
        seeds = [name.strip() for name in seed_cards if name and name.strip()]
        if not seeds:
            return

        notes.append(f"Including {len(seeds)} seed cards.")
        for name in seeds:
            card = self.context.cards.get_card_by_name(name)
            if card is None:
                self.logger.warning(f"Seed card not found in database: {name}")
                deck.add_card(name)
            else:
                deck.add_card(card.name, roles=classify_card_roles(card))

    def _add_land_base(self, deck: BuiltDeck, colors: List[str], target_lands: int, notes: List[str]) -> None:
        distribution = distribute_basic_lands(colors, target_lands)
        if colors:
            notes.append(f"Distributing {target_lands} basic lands among {len(distribution)} colors.")
        else:
            notes.append(
                f"Colorless commander detected. Adding {target_lands} {COLORLESS_BASIC_LAND} (or generic basics)."
            )

        for land_name, quantity in distribution:
            if quantity > 0:
                deck.add_card(land_name, quantity=quantity, roles=[ROLE_LAND])

    def _skeleton_size_notes(self, total_cards: int) -> List[str]:
        if total_cards < COMMANDER_DECK_SIZE:
            missing = COMMANDER_DECK_SIZE - total_cards
            return [
                f"⚠️  Skeleton deck: {total_cards}/{COMMANDER_DECK_SIZE} cards. Missing {missing} nonland cards.",
                "This is a basic land shell. Add creatures, ramp, removal, and other nonlands to complete the deck.",
            ]
        if total_cards > COMMANDER_DECK_SIZE:
            return [
                f"⚠️  Deck exceeds {COMMANDER_DECK_SIZE} cards by {total_cards - COMMANDER_DECK_SIZE}. "
                f"Manual trimming required."
            ]
        return [f"✓ Deck size: {total_cards} cards (correct for Commander format, excluding commander)."]

    def _final_size_note(self, total_cards: int) -> str:
        if total_cards < COMMANDER_DECK_SIZE:
            return (f"Deck has {total_cards}/{COMMANDER_DECK_SIZE} cards. "
                    f"{COMMANDER_DECK_SIZE - total_cards} more cards needed.")
        if total_cards > COMMANDER_DECK_SIZE:
            return (f"⚠️  Deck exceeds {COMMANDER_DECK_SIZE} cards by {total_cards - COMMANDER_DECK_SIZE}. "
                    f"Manual trimming required.")
        return f"✓ Deck size: {total_cards} cards (correct for Commander format)."

    def _analyze(self, deck: BuiltDeck, template_id: str, bracket_id: str, banlist_id: Optional[str]) -> DeckAnalysis:
        deck_text = deck_text_from_entries(deck.cards)
        parsed = parse_deck_text(deck_text)
        parsed.commander_name = deck.commander_name

        analyze_input = AnalyzeDeckInput(
            deck_text=deck_text,
            template_id=template_id,
            banlist_id=banlist_id,
            bracket_id=bracket_id,
            infer_commander=False,
        )
        return self.analyzer.analyze(analyze_input, parsed).analysis

    async def _fetch_recommendations(self, colors: List[str], notes: List[str]) -> Optional[RecommendationContext]:
        source = self.context.recommendations
        notes.append("Fetching EDHREC suggestions...")
        if source is None:
            notes.append("⚠️  EDHREC: Could not fetch suggestions. No recommendation source is configured.")
            return None

        limit = self.context.suggestion_limit
        try:
            top_cards, top_lands = await asyncio.gather(
                asyncio.to_thread(source.top_cards_for_colors, colors, limit),
                asyncio.to_thread(source.top_lands_for_colors, colors, limit),
            )
        except Exception as e:  # recommendation failures never fail the build
            self.logger.warning(f"EDHREC fetch failed: {e}")
            notes.append(f"⚠️  EDHREC: Could not fetch suggestions. {e}")
            return None

        suggestions = merge_suggestions(top_cards, top_lands)
        notes.append(
            f"✓ EDHREC: Fetched {len(top_cards)} top cards and {len(top_lands)} lands "
            f"({len(suggestions)} total suggestions)."
        )
        return RecommendationContext(
            sources_used=source.sources_for_colors(colors),
            suggestions=suggestions,
        )

    def _autofill(
        self,
        deck: BuiltDeck,
        template_id: str,
        template: DeckTemplate,
        analysis: DeckAnalysis,
        suggestions: List[CardSuggestion],
        colors: List[str],
        bracket_id: str,
        bracket_rules: Optional[BracketRules],
        banlist_id: Optional[str],
        notes: List[str]
    ) -> DeckAnalysis:
        """
        Add suggested cards to close category deficits, then re-analyze.

        Returns:
            The analysis of the deck after autofill
        """
        notes.append('---')
        notes.append('EDHREC Autofill enabled. Attempting to fill category deficits...')

        brackets = self.context.brackets
        state = AutofillState(
            commander_colors=set(colors),
            bracket_id=bracket_id,
            max_game_changers=bracket_rules.max_game_changers if bracket_rules else DEFAULT_MAX_GAME_CHANGERS,
            game_changer_count=sum(
                entry.quantity for entry in deck.cards if brackets.is_game_changer(entry.name, bracket_id)
            ),
            cards_in_deck={normalize_card_name(entry.name) for entry in deck.cards},
        )

        for deficit in compute_category_deficits(analysis, template, AUTOFILL_PRIORITY):
            if deficit.deficit <= 0:
                continue

            notes.append(f"  → {deficit.name}: deficit of {deficit.deficit}")
            remaining = self._fill_category(deck, deficit.name, deficit.deficit, suggestions, state)
            if remaining > 0:
                notes.append(f"    ⚠️  Could not fill all {deficit.name} slots ({remaining} remaining)")
            else:
                notes.append(f"    ✓ Filled {state.added[deficit.name]} {deficit.name} slots")

        summary = ', '.join(
            f"{state.added[name]} {AUTOFILL_SUMMARY_LABELS[name]}" for name in AUTOFILL_PRIORITY
        )
        notes.append(f"✓ EDHREC Autofill complete: added {state.total_added} cards ({summary})")
        notes.append('---')
        self.logger.info(f"Autofill added {state.total_added} cards")

        updated = self._analyze(deck, template_id, bracket_id, banlist_id)
        notes.append(self._final_size_note(deck.total_cards))
        return updated

    def _fill_category(
        self,
        deck: BuiltDeck,
        category: str,
        deficit: int,
        suggestions: List[CardSuggestion],
        state: AutofillState
    ) -> int:
        """Scan suggestions in order, adding matching cards; returns the unfilled remainder."""
        remaining = deficit
        for suggestion in suggestions:
            if remaining <= 0:
                break
            if normalize_card_name(suggestion.name) in state.cards_in_deck:
                continue

            card = self.context.cards.get_card_by_name(suggestion.name)
            if card is None or normalize_card_name(card.name) in state.cards_in_deck:
                continue
            if not self._is_autofill_candidate(card, state):
                continue

            roles = classify_card_roles(card)
            if category not in autofill_categories(roles):
                continue

            deck.add_card(card.name, roles=roles)
            state.cards_in_deck.add(normalize_card_name(card.name))
            state.added[category] += 1
            remaining -= 1
            if self.context.brackets.is_game_changer(card.name, state.bracket_id):
                state.game_changer_count += 1
            self.logger.debug(f"Autofill added {card.name} for {category}")

        return remaining

    def _is_autofill_candidate(self, card: CardData, state: AutofillState) -> bool:
        if not set(card.color_identity) <= state.commander_colors:
            return False

        brackets = self.context.brackets
        # Mass land denial and extra turns are never autofilled
        if brackets.is_mass_land_denial(card.name, state.bracket_id):
            return False
        if brackets.is_extra_turn_card(card.name, state.bracket_id):
            return False
        if (brackets.is_game_changer(card.name, state.bracket_id)
                and state.game_changer_count >= state.max_game_changers):
            return False
        return True
