"""
Deck analysis against a template and bracket rules.

The analyzer counts cards per template category using the role classifier,
derives a status for every category, adds notes for the key categories that
fall outside their recommended range, and checks the deck against the
bracket's Game Changer, mass land denial and extra-turn card lists.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .brackets import BracketNotFoundError
from .context import ServiceContext
from .models import (
    AnalyzeDeckInput, AnalyzeDeckResult, BracketRules, CategorySummary, DeckAnalysis,
    DeckTemplate, ParsedDeck, STATUS_ABOVE, STATUS_BELOW, STATUS_UNKNOWN, STATUS_WITHIN
)
from .roles import classify_card_roles, roles_to_categories


# Non-commander cards in a Commander deck
COMMANDER_DECK_SIZE = 99

# Categories that get a note when outside their recommended range
KEY_CATEGORIES = ('lands', 'ramp', 'target_removal', 'board_wipes', 'card_draw')


def calculate_category_status(count: int, min_count: Optional[int] = None, max_count: Optional[int] = None) -> str:
    """
    Derive the status of a category count against its bounds.

    Returns:
        "unknown" when neither bound is set, "below" when under the minimum,
        "above" when over the maximum, otherwise "within"
    """
    if min_count is None and max_count is None:
        return STATUS_UNKNOWN
    if min_count is not None and count < min_count:
        return STATUS_BELOW
    if max_count is not None and count > max_count:
        return STATUS_ABOVE
    return STATUS_WITHIN


def deck_size_note(total_cards: int) -> str:
    """Informational note comparing the deck size with the 99-card target."""
    if total_cards < COMMANDER_DECK_SIZE:
        return (f"Deck has fewer than {COMMANDER_DECK_SIZE} cards (excluding commander). "
                f"Current: {total_cards} cards.")
    if total_cards > COMMANDER_DECK_SIZE:
        return (f"Deck has more than {COMMANDER_DECK_SIZE} cards (excluding commander). "
                f"Current: {total_cards} cards.")
    return f"Deck size is correct: {total_cards} cards (excluding commander)."


def _format_range(min_count: Optional[int], max_count: Optional[int]) -> str:
    if min_count is not None and max_count is not None:
        return f"{min_count}-{max_count}"
    if min_count is not None:
        return f"at least {min_count}"
    return f"at most {max_count}"


class DeckAnalyzer:
    """Analyzes parsed decklists using the collaborators of a ServiceContext."""

    def __init__(self, context: ServiceContext):
        """
        Initialize the analyzer.

        Args:
            context: Card database, template loader and bracket repository to use
        """
        self.context = context
        self.logger = logging.getLogger(__name__)

    def analyze(self, analyze_input: AnalyzeDeckInput, parsed_deck: ParsedDeck) -> AnalyzeDeckResult:
        """
        Analyze a parsed deck.

        The template defaults to the context's default template. Bracket rules
        are looked up for the bracket id (or the template id when no bracket
        is given); an unknown bracket only disables the bracket checks.

        Args:
            analyze_input: Request options (template, bracket, banlist)
            parsed_deck: Parsed decklist

        Returns:
            AnalyzeDeckResult with the analysis and the parsed deck

        Raises:
            ReferenceDataError: If the template or bracket data cannot be loaded
            CardDatabaseError: If the card database cannot be loaded
        """
        notes: List[str] = []

        template_id = analyze_input.template_id or self.context.default_template_id
        template = self.context.templates.load_template(template_id)
        if template.fallback_from:
            notes.append(
                f'Template "{template.fallback_from}" not found; using "{template.id}" template instead.'
            )

        bracket_id = (analyze_input.bracket_id or analyze_input.template_id
                      or self.context.default_bracket_id)
        bracket_rules = self._load_bracket_rules(bracket_id, notes)

        total_cards = parsed_deck.total_cards
        unique_cards = len(parsed_deck.cards)
        notes.append(deck_size_note(total_cards))

        counts = self._count_categories(template, parsed_deck)
        categories = [
            CategorySummary(
                name=category.name,
                count=counts[category.name],
                min=category.min,
                max=category.max,
                status=calculate_category_status(counts[category.name], category.min, category.max),
            )
            for category in template.categories
        ]
        notes.extend(self._category_notes(categories))

        analysis = DeckAnalysis(
            commander_name=parsed_deck.commander_name,
            total_cards=total_cards,
            unique_cards=unique_cards,
            categories=categories,
            notes=notes,
        )

        if bracket_rules is not None:
            analysis.bracket_id = bracket_rules.id
            analysis.bracket_label = bracket_rules.label
            analysis.bracket_warnings = self._bracket_warnings(bracket_rules, parsed_deck)

        self.logger.debug(
            f"Analyzed deck: {total_cards} cards, {unique_cards} unique, "
            f"{len(analysis.bracket_warnings)} bracket warnings"
        )
        return AnalyzeDeckResult(input=analyze_input, analysis=analysis, parsed_deck=parsed_deck)

    def _load_bracket_rules(self, bracket_id: str, notes: List[str]) -> Optional[BracketRules]:
        try:
            return self.context.brackets.load_bracket_rules(bracket_id)
        except BracketNotFoundError as e:
            self.logger.warning(str(e))
            notes.append(f'Bracket rules for "{bracket_id}" not found; bracket checks were skipped.')
            return None

    def _count_categories(self, template: DeckTemplate, parsed_deck: ParsedDeck) -> Dict[str, int]:
        counts = {name: 0 for name in template.category_names}
        for entry in parsed_deck.cards:
            card = self.context.cards.get_card_by_name(entry.name)
            if card is None:
                self.logger.debug(f"Card not found in database: {entry.name}")

            for category in roles_to_categories(classify_card_roles(card)):
                if category in counts:
                    counts[category] += entry.quantity
        return counts

    def _category_notes(self, categories: List[CategorySummary]) -> List[str]:
        notes = []
        for category in categories:
            if category.name not in KEY_CATEGORIES:
                continue
            if category.status == STATUS_BELOW:
                direction = "below"
            elif category.status == STATUS_ABOVE:
                direction = "above"
            else:
                continue
            notes.append(
                f"Category '{category.name}' is {direction} recommended range: {category.count} "
                f"(recommended {_format_range(category.min, category.max)})."
            )
        return notes

    def _count_bracket_cards(self, bracket_id: str, parsed_deck: ParsedDeck) -> Tuple[int, int, bool]:
        brackets = self.context.brackets
        game_changers = 0
        extra_turns = 0
        has_mass_land_denial = False

        for entry in parsed_deck.cards:
            if brackets.is_game_changer(entry.name, bracket_id):
                game_changers += entry.quantity
            if brackets.is_extra_turn_card(entry.name, bracket_id):
                extra_turns += entry.quantity
            if brackets.is_mass_land_denial(entry.name, bracket_id):
                has_mass_land_denial = True

        return game_changers, extra_turns, has_mass_land_denial

    def _bracket_warnings(self, rules: BracketRules, parsed_deck: ParsedDeck) -> List[str]:
        game_changers, extra_turns, has_mass_land_denial = self._count_bracket_cards(rules.id, parsed_deck)
        warnings = []

        if game_changers > rules.max_game_changers:
            warnings.append(
                f"This deck uses {game_changers} Game Changers, but Bracket {rules.id} "
                f"allows a maximum of {rules.max_game_changers}."
            )
        elif game_changers > 0:
            warnings.append(
                f"This deck uses {game_changers} Game Changers "
                f"(max allowed for Bracket {rules.id}: {rules.max_game_changers})."
            )

        if has_mass_land_denial and not rules.allow_mass_land_destruction:
            warnings.append(
                f"This deck includes mass land destruction or denial effects, "
                f"which are NOT allowed in Bracket {rules.id}."
            )

        if extra_turns > 0:
            if rules.max_extra_turn_cards is None:
                warnings.append(
                    f"This deck uses {extra_turns} extra-turn cards. Consider whether this "
                    f"matches the intended Bracket {rules.id} experience."
                )
            elif extra_turns > rules.max_extra_turn_cards:
                warnings.append(
                    f"This deck uses {extra_turns} extra-turn cards, which may exceed the "
                    f"intended Bracket {rules.id} limit of {rules.max_extra_turn_cards}."
                )
            else:
                warnings.append(
                    f"This deck uses {extra_turns} extra-turn cards "
                    f"(soft limit for Bracket {rules.id}: {rules.max_extra_turn_cards})."
                )

        return warnings
