"""
Card role classification.

Roles are assigned by keyword heuristics over a card's type line and oracle
text. Each role is an entry of ``ROLE_RULES``: a predicate evaluated against
the lower-cased text of the card. Lands are handled before the table is
consulted and never carry another role.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Protocol, Tuple


ROLE_LAND = "land"
ROLE_RAMP = "ramp"
ROLE_TARGET_REMOVAL = "target_removal"
ROLE_BOARD_WIPE = "board_wipe"
ROLE_CARD_DRAW = "card_draw"
ROLE_PROTECTION = "protection"
ROLE_TUTOR = "tutor"
ROLE_WINCON = "wincon"
ROLE_OTHER = "other"

ALL_ROLES = (
    ROLE_LAND,
    ROLE_RAMP,
    ROLE_TARGET_REMOVAL,
    ROLE_BOARD_WIPE,
    ROLE_CARD_DRAW,
    ROLE_PROTECTION,
    ROLE_TUTOR,
    ROLE_WINCON,
    ROLE_OTHER,
)

# Singular role name -> template category name
ROLE_TO_CATEGORY = {
    ROLE_LAND: "lands",
    ROLE_RAMP: "ramp",
    ROLE_TARGET_REMOVAL: "target_removal",
    ROLE_BOARD_WIPE: "board_wipes",
    ROLE_CARD_DRAW: "card_draw",
    ROLE_PROTECTION: "protection",
    ROLE_TUTOR: "tutor",
    ROLE_WINCON: "wincon",
}

# Roles that autofill is allowed to fill
AUTOFILL_ROLES = (ROLE_RAMP, ROLE_CARD_DRAW, ROLE_TARGET_REMOVAL, ROLE_BOARD_WIPE)


class CardLike(Protocol):
    """Anything exposing the text fields the classifier reads."""
    type_line: str
    oracle_text: str


@dataclass(frozen=True)
class CardText:
    """Lower-cased card text used by role predicates."""
    type_line: str
    oracle_text: str

    @classmethod
    def from_card(cls, card: CardLike) -> 'CardText':
        return cls(
            type_line=(card.type_line or '').lower(),
            oracle_text=(card.oracle_text or '').lower(),
        )

    def has(self, *phrases: str) -> bool:
        """True when the oracle text contains any of the phrases."""
        return any(phrase in self.oracle_text for phrase in phrases)


def _is_ramp(text: CardText) -> bool:
    return (
        ('artifact' in text.type_line and text.has('add {'))
        or text.has('search your library for a land', 'search your library for a basic land')
        or (text.has('search your library for up to') and text.has('land'))
        or ('creature' in text.type_line and text.has('{t}: add'))
        or text.has(
            'put a land card from your hand onto the battlefield',
            'you may put a land card',
        )
    )


def _is_target_removal(text: CardText) -> bool:
    targeted = (
        (text.has('destroy target') and not text.has('destroy all'))
        or (text.has('exile target') and not text.has('exile all'))
        or text.has('damage to target', 'damage to any target')
        or (text.has('return target') and text.has('to its owner'))
        or (text.has('target') and text.has('gets -'))
    )
    # Mass removal phrasing disqualifies the card
    return targeted and not text.has('destroy all', 'each creature')


def _is_board_wipe(text: CardText) -> bool:
    return (
        text.has(
            'destroy all creatures',
            'destroy all nonland permanents',
            'destroy all permanents',
            'each creature gets -',
            'all creatures get -',
            'exile all creatures',
        )
        or (text.has('each creature') and text.has('destroy'))
    )


def _is_card_draw(text: CardText) -> bool:
    return (
        text.has(
            'draw a card',
            'draw two cards',
            'draw three cards',
            'draw cards equal to',
            'draw that many cards',
        )
        or (text.has('draw') and text.has('card'))
    )


def _is_protection(text: CardText) -> bool:
    return (
        text.has(
            'hexproof',
            'indestructible',
            'protection from',
            'shroud',
            'ward',
            'prevent all damage',
        )
        or (text.has('counter target') and text.has('spell'))
    )


def _is_tutor(text: CardText) -> bool:
    return (
        text.has('search your library for a card')
        or (text.has('search your library for an') and not text.has('land'))
        or (
            text.has('search your library')
            and text.has('creature', 'artifact', 'enchantment', 'instant', 'sorcery')
        )
    )


def _is_wincon(text: CardText) -> bool:
    return (
        text.has('you win the game')
        or (text.has('deals damage to any target') and text.has('50'))
        or text.has('infinite')
        or ('planeswalker' in text.type_line and text.has('emblem'))
    )


# Evaluated in order; every matching rule contributes its role
ROLE_RULES: Tuple[Tuple[str, Callable[[CardText], bool]], ...] = (
    (ROLE_RAMP, _is_ramp),
    (ROLE_TARGET_REMOVAL, _is_target_removal),
    (ROLE_BOARD_WIPE, _is_board_wipe),
    (ROLE_CARD_DRAW, _is_card_draw),
    (ROLE_PROTECTION, _is_protection),
    (ROLE_TUTOR, _is_tutor),
    (ROLE_WINCON, _is_wincon),
)


def classify_card_roles(card: Optional[CardLike]) -> List[str]:
    """
    Classify a card into its functional roles.

    Args:
        card: Resolved card, or None when the card lookup failed

    Returns:
        Non-empty list of role names in rule order. Unknown cards and cards
        matching no rule are ``["other"]``; lands are exactly ``["land"]``.
    """
    if card is None:
        return [ROLE_OTHER]

    text = CardText.from_card(card)

    if 'land' in text.type_line:
        return [ROLE_LAND]

    roles = [role for role, predicate in ROLE_RULES if predicate(text)]
    return roles or [ROLE_OTHER]


def roles_to_categories(roles: Iterable[str]) -> List[str]:
    """Map roles to template category names; ``other`` maps to nothing."""
    categories = []
    for role in roles:
        category = ROLE_TO_CATEGORY.get(role)
        if category and category not in categories:
            categories.append(category)
    return categories


def autofill_categories(roles: Iterable[str]) -> List[str]:
    """Map roles to the categories autofill can close (ramp, draw, removal, wipes)."""
    return roles_to_categories(role for role in roles if role in AUTOFILL_ROLES)
