"""
Shared fixtures for the test suite.

Cards are Scryfall-style dicts fed to an in-memory CardDatabase; reference
data comes from the bundled data directory unless a test builds its own.
"""

import json
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from mtg_commander_analyzer.brackets import BracketRepository
from mtg_commander_analyzer.context import ServiceContext
from mtg_commander_analyzer.edhrec_service import EDHRECAPIError
from mtg_commander_analyzer.models import CardSuggestion
from mtg_commander_analyzer.scryfall_service import CardDatabase
from mtg_commander_analyzer.templates import DEFAULT_DATA_DIR, TemplateLoader


def card(name: str, type_line: str, oracle_text: str = "", colors: Optional[List[str]] = None, **extra) -> Dict[str, Any]:
    data = {
        'object': 'card',
        'name': name,
        'lang': 'en',
        'type_line': type_line,
        'oracle_text': oracle_text,
        'color_identity': colors or [],
    }
    data.update(extra)
    return data


FIXTURE_CARDS = [
    # Commanders
    card("Kozilek, the Great Distortion", "Legendary Creature — Eldrazi",
         "When you cast this spell, if you have fewer than seven cards in hand, draw cards equal to "
         "the difference.\nMenace"),
    card("Lazav, Dimir Mastermind", "Legendary Creature — Shapeshifter",
         "Hexproof\nWhenever a creature card is put into an opponent's graveyard from anywhere, "
         "you may have Lazav become a copy of that card.", ["U", "B"]),
    card("Atraxa, Praetors' Voice", "Legendary Creature — Phyrexian Angel Horror",
         "Flying, vigilance, deathtouch, lifelink\nAt the beginning of your end step, proliferate.",
         ["B", "G", "U", "W"]),

    # Lands
    card("Island", "Basic Land — Island", "({T}: Add {U}.)", []),
    card("Swamp", "Basic Land — Swamp", "({T}: Add {B}.)", []),
    card("Plains", "Basic Land — Plains", "({T}: Add {W}.)", []),
    card("Forest", "Basic Land — Forest", "({T}: Add {G}.)", []),
    card("Wastes", "Basic Land", "{T}: Add {C}.", []),
    card("Ancient Tomb", "Land", "{T}: Add {C}{C}. Ancient Tomb deals 2 damage to you."),

    # Ramp
    card("Sol Ring", "Artifact", "{T}: Add {C}{C}."),
    card("Mind Stone", "Artifact", "{T}: Add {C}.\n{1}, {T}, Sacrifice Mind Stone: Draw a card."),
    card("Grim Monolith", "Artifact",
         "Grim Monolith doesn't untap during your untap step.\n{T}: Add {C}{C}{C}.\n{4}: Untap Grim Monolith."),
    card("Dimir Signet", "Artifact", "{1}, {T}: Add {U}{B}.", ["U", "B"]),
    card("Talisman of Dominance", "Artifact",
         "{T}: Add {C}.\n{T}: Add {U} or {B}. Talisman of Dominance deals 1 damage to you.", ["U", "B"]),
    card("Cultivate", "Sorcery",
         "Search your library for up to two basic land cards, reveal those cards, put one onto the "
         "battlefield tapped and the other into your hand, then shuffle.", ["G"]),
    card("Rampant Growth", "Sorcery",
         "Search your library for a basic land card, put that card onto the battlefield tapped, "
         "then shuffle.", ["G"]),
    card("Llanowar Elves", "Creature — Elf Druid", "{T}: Add {G}.", ["G"]),
    card("Arcane Signet", "Artifact", "{T}: Add one mana of any color in your commander's color identity."),

    # Card draw
    card("Rhystic Study", "Enchantment",
         "Whenever an opponent casts a spell, you may draw a card unless that player pays {1}.", ["U"]),
    card("Harmonize", "Sorcery", "Draw three cards.", ["G"]),
    card("Night's Whisper", "Sorcery", "You draw two cards and you lose 2 life.", ["B"]),
    card("Smothering Tithe", "Enchantment",
         "Whenever an opponent draws a card, that player may pay {2}. If they don't, you create a "
         "Treasure token.", ["W"]),

    # Removal and wipes
    card("Swords to Plowshares", "Instant",
         "Exile target creature. Its controller gains life equal to its power.", ["W"]),
    card("Doom Blade", "Instant", "Destroy target nonblack creature.", ["B"]),
    card("Beast Within", "Instant",
         "Destroy target permanent. Its controller creates a 3/3 green Beast creature token.", ["G"]),
    card("Cyclonic Rift", "Instant",
         "Return target nonland permanent you don't control to its owner's hand.\nOverload {6}{U}", ["U"]),
    card("Wrath of God", "Sorcery", "Destroy all creatures. They can't be regenerated.", ["W"]),
    card("Damnation", "Sorcery", "Destroy all creatures. They can't be regenerated.", ["B"]),

    # Protection, tutors, others
    card("Counterspell", "Instant", "Counter target spell.", ["U"]),
    card("Lightning Greaves", "Artifact — Equipment",
         "Equipped creature has haste and shroud.\nEquip {0}"),
    card("Demonic Tutor", "Sorcery",
         "Search your library for a card, put that card into your hand, then shuffle.", ["B"]),
    card("Armageddon", "Sorcery", "Destroy all lands.", ["W"]),
    card("Time Warp", "Sorcery", "Target player takes an extra turn after this one.", ["U"]),
    card("Laboratory Maniac", "Creature — Human Wizard",
         "If you would draw a card while your library has no cards in it, you win the game instead.", ["U"]),
]


def make_card_database(extra_cards: Optional[List[Dict[str, Any]]] = None) -> CardDatabase:
    return CardDatabase.from_cards(FIXTURE_CARDS + list(extra_cards or []))


def make_data_dir(root: Path) -> Path:
    """Copy the bundled reference data into ``root/data`` so a test can extend it."""
    data_dir = Path(root) / "data"
    shutil.copytree(DEFAULT_DATA_DIR, data_dir)
    return data_dir


def write_json(path: Path, data: Any) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding='utf-8')
    return path


def suggestion(name: str, category: str = "top/multicolor", rank: Optional[float] = None) -> CardSuggestion:
    return CardSuggestion(name=name, category=category, rank=rank)


class FakeRecommendationSource:
    """Recommendation source returning canned suggestions."""

    def __init__(self, top_cards=None, top_lands=None, error: Optional[Exception] = None):
        self.top_cards = list(top_cards or [])
        self.top_lands = list(top_lands or [])
        self.error = error
        self.calls = []

    def top_cards_for_colors(self, colors, limit=50):
        self.calls.append(('top_cards', list(colors), limit))
        if self.error:
            raise self.error
        return self.top_cards[:limit]

    def top_lands_for_colors(self, colors, limit=50):
        self.calls.append(('top_lands', list(colors), limit))
        if self.error:
            raise self.error
        return self.top_lands[:limit]

    def sources_for_colors(self, colors):
        return ['top/test', 'lands/test']


def make_context(
    recommendations=None,
    data_dir: Optional[Path] = None,
    extra_cards: Optional[List[Dict[str, Any]]] = None,
    suggestion_limit: int = 50
) -> ServiceContext:
    return ServiceContext(
        cards=make_card_database(extra_cards),
        templates=TemplateLoader(data_dir),
        brackets=BracketRepository(data_dir),
        recommendations=recommendations,
        suggestion_limit=suggestion_limit,
    )


__all__ = [
    'EDHRECAPIError', 'FIXTURE_CARDS', 'FakeRecommendationSource', 'card', 'make_card_database',
    'make_context', 'make_data_dir', 'suggestion', 'write_json',
]
