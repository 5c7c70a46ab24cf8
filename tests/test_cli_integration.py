"""
Integration tests for the command-line interface.

These run ``main`` end to end against a temporary configuration directory
and a small oracle card file.
"""

import io
import json
import logging
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from mtg_commander_analyzer.cli import handle_user_friendly_errors, main, parse_arguments
from mtg_commander_analyzer.deck_builder import CommanderNotFoundError
from mtg_commander_analyzer.scryfall_service import CardDatabaseError

from helpers import FIXTURE_CARDS, write_json


class TestParseArguments(unittest.TestCase):
    """Test cases for argument parsing."""

    def test_analyze_arguments(self):
        args = parse_arguments(['analyze', 'deck.txt', '--template', 'default', '--bracket', 'bracket3'])
        self.assertEqual(args.command, 'analyze')
        self.assertEqual(args.deck_file, 'deck.txt')
        self.assertEqual(args.template, 'default')
        self.assertEqual(args.bracket, 'bracket3')
        self.assertIsNone(args.output)

    def test_build_arguments(self):
        args = parse_arguments(['build', 'Lazav, Dimir Mastermind', '-s', 'Sol Ring', '-s', 'Counterspell',
                                '--autofill', '--no-cache'])
        self.assertEqual(args.seed, ['Sol Ring', 'Counterspell'])
        self.assertTrue(args.autofill)
        self.assertFalse(args.edhrec)
        self.assertTrue(args.no_cache)

    def test_command_is_required(self):
        with patch('sys.stderr', new_callable=io.StringIO):
            with self.assertRaises(SystemExit):
                parse_arguments([])


class TestErrorMessages(unittest.TestCase):

    def test_user_friendly_errors(self):
        self.assertTrue(handle_user_friendly_errors(CommanderNotFoundError("x")).startswith("Commander issue"))
        self.assertTrue(handle_user_friendly_errors(CardDatabaseError("x")).startswith("Card database error"))
        self.assertIn("--verbose", handle_user_friendly_errors(RuntimeError("x")))
        self.assertEqual(handle_user_friendly_errors(RuntimeError("x"), verbose=True), "Unexpected error: x")


class TestCLIIntegration(unittest.TestCase):
    """End-to-end CLI runs."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.cards_path = write_json(self.temp_dir / "oracle-cards.json", FIXTURE_CARDS)
        self.base_args = ['--quiet', '--config-dir', str(self.temp_dir / "config"),
                          '--oracle-cards', str(self.cards_path)]

    def tearDown(self):
        logging.getLogger('mtg_commander_analyzer').setLevel(logging.NOTSET)
        shutil.rmtree(self.temp_dir)

    def run_main(self, *argv):
        """Run main and return (exit code, stdout, stderr)."""
        stdout, stderr = io.StringIO(), io.StringIO()
        code = 0
        with patch('sys.stdout', stdout), patch('sys.stderr', stderr):
            try:
                main(self.base_args + list(argv))
            except SystemExit as e:
                code = e.code
        return code, stdout.getvalue(), stderr.getvalue()

    def test_analyze_file(self):
        deck_path = self.temp_dir / "deck.txt"
        deck_path.write_text("1 Sol Ring\n1 Island\n1 Swords to Plowshares\n", encoding='utf-8')

        code, out, _ = self.run_main('analyze', str(deck_path), '--template', 'bracket3')

        self.assertEqual(code, 0)
        result = json.loads(out)
        self.assertEqual(result['analysis']['totalCards'], 3)
        self.assertEqual(result['analysis']['bracketId'], 'bracket3')
        self.assertEqual(result['input'], {'templateId': 'bracket3'})

    def test_analyze_stdin(self):
        with patch('sys.stdin', io.StringIO("99 Island\n")):
            code, out, _ = self.run_main('analyze', '-')

        self.assertEqual(code, 0)
        self.assertIn("Deck size is correct: 99 cards (excluding commander).", json.loads(out)['analysis']['notes'])

    def test_analyze_writes_output_file(self):
        deck_path = self.temp_dir / "deck.txt"
        deck_path.write_text("1 Sol Ring\n", encoding='utf-8')
        output_path = self.temp_dir / "out" / "analysis.json"

        code, out, _ = self.run_main('analyze', str(deck_path), '--output', str(output_path))

        self.assertEqual(code, 0)
        self.assertEqual(out, '')
        self.assertEqual(json.loads(output_path.read_text(encoding='utf-8'))['analysis']['totalCards'], 1)

    def test_analyze_missing_file(self):
        code, _, err = self.run_main('analyze', str(self.temp_dir / "missing.txt"))
        self.assertEqual(code, 1)
        self.assertIn("File not found", err)

    def test_build(self):
        code, out, _ = self.run_main('build', 'Lazav, Dimir Mastermind', '--seed', 'Counterspell')

        self.assertEqual(code, 0)
        result = json.loads(out)
        self.assertEqual(result['deck']['commanderName'], 'Lazav, Dimir Mastermind')
        self.assertEqual(
            [(card['name'], card['quantity']) for card in result['deck']['cards']],
            [('Counterspell', 1), ('Island', 19), ('Swamp', 18)]
        )

    def test_build_unknown_commander(self):
        code, out, err = self.run_main('build', 'Nobody In Particular')
        self.assertEqual(code, 1)
        self.assertEqual(out, '')
        self.assertIn("Commander issue", err)

    def test_missing_card_database(self):
        self.base_args[-1] = str(self.temp_dir / "no-cards.json")
        code, _, err = self.run_main('build', 'Lazav, Dimir Mastermind')
        self.assertEqual(code, 1)
        self.assertIn("Card database error", err)

    def test_download_cards_uses_destination(self):
        destination = self.temp_dir / "downloaded.json"
        with patch('mtg_commander_analyzer.cli.download_oracle_cards') as mock_download:
            code, _, _ = self.run_main('download-cards', '--destination', str(destination))

        self.assertEqual(code, 0)
        mock_download.assert_called_once_with(destination, timeout=30)

    def test_serve_starts_server_with_context(self):
        from mtg_commander_analyzer import server

        with patch.object(server, 'run_server') as mock_run:
            code, _, _ = self.run_main('serve')

        self.assertEqual(code, 0)
        mock_run.assert_called_once_with()
        self.assertIsNotNone(server._context)
        server.set_context(None)


if __name__ == '__main__':
    unittest.main()
