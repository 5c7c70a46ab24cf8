"""
Tests for the Scryfall card database and bulk downloader.
"""

import json
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, Mock

import requests

from mtg_commander_analyzer.scryfall_service import (
    BULK_DATA_URL, CardData, CardDatabase, CardDatabaseError, ScryfallAPIError, download_oracle_cards
)

from helpers import card, write_json


class TestCardData(unittest.TestCase):
    """Test cases for CardData."""

    def test_from_scryfall_data(self):
        data = card("Counterspell", "Instant", "Counter target spell.", ["U"], mana_cost="{U}{U}",
                    oracle_id="abc")
        result = CardData.from_scryfall_data(data)

        self.assertEqual(result.name, "Counterspell")
        self.assertEqual(result.color_identity, ["U"])
        self.assertEqual(result.mana_cost, "{U}{U}")
        self.assertEqual(result.oracle_id, "abc")
        self.assertFalse(result.is_land)

    def test_double_faced_card_joins_face_text(self):
        data = {
            'name': "Valki, God of Lies // Tibalt, Cosmic Impostor",
            'lang': 'en',
            'type_line': "Legendary Creature — God // Legendary Planeswalker — Tibalt",
            'color_identity': ['B', 'R'],
            'card_faces': [
                {'name': "Valki, God of Lies", 'oracle_text': "When Valki enters, each opponent reveals their hand."},
                {'name': "Tibalt, Cosmic Impostor", 'oracle_text': "−8: You get an emblem."},
            ],
        }
        result = CardData.from_scryfall_data(data)

        self.assertIn("each opponent reveals", result.oracle_text)
        self.assertIn("emblem", result.oracle_text)
        self.assertEqual(result.face_names, ["Valki, God of Lies", "Tibalt, Cosmic Impostor"])


class TestCardDatabase(unittest.TestCase):
    """Test cases for CardDatabase."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_requires_a_source(self):
        with self.assertRaises(ValueError):
            CardDatabase()

    def test_lookup_is_case_and_whitespace_insensitive(self):
        database = CardDatabase.from_cards([card("Sol Ring", "Artifact", "{T}: Add {C}{C}.")])

        self.assertEqual(database.get_card_by_name("  sol   RING ").name, "Sol Ring")
        self.assertIsNone(database.get_card_by_name("Mana Crypt"))
        self.assertIsNone(database.get_card_by_name("   "))

    def test_prefers_english_printing(self):
        database = CardDatabase.from_cards([
            card("Sol Ring", "Artefact", "", lang="fr"),
            card("Sol Ring", "Artifact", "{T}: Add {C}{C}.", lang="en"),
            card("Sol Ring", "Artefakt", "", lang="de"),
        ])
        self.assertEqual(database.get_card_by_name("Sol Ring").type_line, "Artifact")
        self.assertEqual(len(database), 1)

    def test_first_printing_wins_without_english(self):
        database = CardDatabase.from_cards([
            card("Sol Ring", "Artefact", "", lang="fr"),
            card("Sol Ring", "Artefakt", "", lang="de"),
        ])
        self.assertEqual(database.get_card_by_name("Sol Ring").type_line, "Artefact")

    def test_front_face_name_resolves(self):
        database = CardDatabase.from_cards([{
            'name': "Fable of the Mirror-Breaker // Reflection of Kiki-Jiki",
            'lang': 'en',
            'type_line': "Enchantment — Saga // Enchantment Creature — Goblin Shaman",
            'color_identity': ['R'],
            'card_faces': [
                {'name': "Fable of the Mirror-Breaker", 'oracle_text': "I — Create a 2/2 red Goblin Shaman token."},
                {'name': "Reflection of Kiki-Jiki", 'oracle_text': "{1}, {T}: Create a token copy."},
            ],
        }])
        result = database.get_card_by_name("fable of the mirror-breaker")
        self.assertEqual(result.name, "Fable of the Mirror-Breaker // Reflection of Kiki-Jiki")

    def test_loads_from_file_lazily(self):
        path = write_json(Path(self.temp_dir) / "oracle-cards.json", [card("Island", "Basic Land — Island")])
        database = CardDatabase(path)

        self.assertIsNone(database._index)
        self.assertTrue(database.get_card_by_name("Island").is_land)

    def test_missing_file(self):
        database = CardDatabase(Path(self.temp_dir) / "missing.json")
        with self.assertRaises(CardDatabaseError) as ctx:
            database.get_card_by_name("Island")
        self.assertIn("download-cards", str(ctx.exception))

    def test_invalid_file(self):
        path = Path(self.temp_dir) / "oracle-cards.json"
        path.write_text("{broken", encoding='utf-8')
        with self.assertRaises(CardDatabaseError):
            CardDatabase(path).get_card_by_name("Island")

    def test_file_must_hold_a_list(self):
        path = write_json(Path(self.temp_dir) / "oracle-cards.json", {"data": []})
        with self.assertRaises(CardDatabaseError):
            CardDatabase(path).get_card_by_name("Island")


class TestDownloadOracleCards(unittest.TestCase):
    """Test cases for download_oracle_cards."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.destination = Path(self.temp_dir) / "cards" / "oracle-cards.json"

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def make_session(self, metadata):
        session = MagicMock()
        session.headers = {}

        metadata_response = Mock()
        metadata_response.json.return_value = metadata

        download_response = MagicMock()
        download_response.__enter__.return_value = download_response
        download_response.iter_content.return_value = [b'[{"name": ', b'"Island"}]']

        session.get.side_effect = [metadata_response, download_response]
        return session

    def test_downloads_bulk_file(self):
        session = self.make_session({'download_uri': 'https://data.scryfall.io/oracle-cards.json'})
        result = download_oracle_cards(self.destination, timeout=5, session=session)

        self.assertEqual(result, self.destination)
        self.assertEqual(json.loads(self.destination.read_text(encoding='utf-8')), [{"name": "Island"}])
        self.assertFalse(self.destination.with_suffix('.json.part').exists())
        self.assertEqual(session.get.call_args_list[0].args[0], BULK_DATA_URL)
        self.assertIn('User-Agent', session.headers)

    def test_missing_download_uri(self):
        session = self.make_session({})
        with self.assertRaises(ScryfallAPIError):
            download_oracle_cards(self.destination, session=session)

    def test_metadata_request_failure(self):
        session = MagicMock()
        session.headers = {}
        session.get.side_effect = requests.ConnectionError("offline")

        with self.assertRaises(ScryfallAPIError):
            download_oracle_cards(self.destination, session=session)
        self.assertFalse(self.destination.exists())


if __name__ == '__main__':
    unittest.main()
