"""Decklist text parsing."""

import re
from typing import Iterable

from .models import ParsedCardEntry, ParsedDeck, BuiltCardEntry


# "<quantity> <card name>", e.g. "1 Sol Ring" or "10 Forest"
CARD_LINE_PATTERN = re.compile(r'^\s*(\d+)\s+(.+?)\s*$')


def parse_deck_text(deck_text: str) -> ParsedDeck:
    """
    Parse decklist text into entries.

    Each non-blank line of the form ``<quantity> <name>`` becomes an entry.
    Lines that do not match (comments, section headers) and entries with a
    quantity of zero are ignored. The commander is not inferred.

    Args:
        deck_text: Decklist text, one entry per line

    Returns:
        ParsedDeck with one entry per matching line
    """
    cards = []
    for line in deck_text.splitlines():
        if not line.strip():
            continue

        match = CARD_LINE_PATTERN.match(line)
        if not match:
            continue

        quantity = int(match.group(1))
        if quantity <= 0:
            continue

        cards.append(ParsedCardEntry(raw_line=line, quantity=quantity, name=match.group(2).strip()))

    return ParsedDeck(cards=cards, commander_name=None)


def deck_text_from_entries(entries: Iterable[BuiltCardEntry]) -> str:
    """Render built deck entries as flat decklist text, one ``1 <name>`` line per copy."""
    lines = []
    for entry in entries:
        lines.extend(f"1 {entry.name}" for _ in range(entry.quantity))
    return "\n".join(lines)
