"""
Tests for decklist text parsing.
"""

import unittest

from mtg_commander_analyzer.deck_parser import deck_text_from_entries, parse_deck_text
from mtg_commander_analyzer.models import BuiltCardEntry


class TestParseDeckText(unittest.TestCase):
    """Test cases for parse_deck_text."""

    def test_parses_quantity_and_name(self):
        parsed = parse_deck_text("1 Sol Ring\n10 Island")

        self.assertEqual(len(parsed.cards), 2)
        self.assertEqual(parsed.cards[0].quantity, 1)
        self.assertEqual(parsed.cards[0].name, "Sol Ring")
        self.assertEqual(parsed.cards[0].raw_line, "1 Sol Ring")
        self.assertEqual(parsed.cards[1].quantity, 10)
        self.assertEqual(parsed.total_cards, 11)

    def test_trims_surrounding_whitespace(self):
        parsed = parse_deck_text("   2   Lightning Greaves   ")
        self.assertEqual(parsed.cards[0].name, "Lightning Greaves")
        self.assertEqual(parsed.cards[0].quantity, 2)

    def test_skips_blank_and_unmatched_lines(self):
        text = "\n// Commander\nCommander: Lazav\n1 Counterspell\n\nSideboard\n"
        parsed = parse_deck_text(text)
        self.assertEqual([entry.name for entry in parsed.cards], ["Counterspell"])

    def test_skips_zero_quantity(self):
        parsed = parse_deck_text("0 Sol Ring\n1 Mind Stone")
        self.assertEqual([entry.name for entry in parsed.cards], ["Mind Stone"])

    def test_keeps_duplicate_lines_separately(self):
        parsed = parse_deck_text("1 Island\n1 Island")
        self.assertEqual(len(parsed.cards), 2)
        self.assertEqual(parsed.total_cards, 2)

    def test_handles_windows_line_endings(self):
        parsed = parse_deck_text("1 Sol Ring\r\n1 Island\r\n")
        self.assertEqual([entry.name for entry in parsed.cards], ["Sol Ring", "Island"])

    def test_commander_is_not_inferred(self):
        self.assertIsNone(parse_deck_text("1 Lazav, Dimir Mastermind").commander_name)

    def test_empty_text(self):
        parsed = parse_deck_text("")
        self.assertEqual(parsed.cards, [])
        self.assertEqual(parsed.total_cards, 0)


class TestDeckTextFromEntries(unittest.TestCase):
    """Test cases for rendering built entries as decklist text."""

    def test_one_line_per_copy(self):
        entries = [BuiltCardEntry(name="Island", quantity=3), BuiltCardEntry(name="Sol Ring")]
        self.assertEqual(deck_text_from_entries(entries), "1 Island\n1 Island\n1 Island\n1 Sol Ring")

    def test_total_survives_reparsing(self):
        entries = [BuiltCardEntry(name="Swamp", quantity=18), BuiltCardEntry(name="Island", quantity=19)]
        self.assertEqual(parse_deck_text(deck_text_from_entries(entries)).total_cards, 37)


if __name__ == '__main__':
    unittest.main()
