"""
Bracket rules and bracket card lists.

Rules live in ``bracket-rules.json`` (a ``brackets`` object keyed by id). Each
bracket may ship three card lists, ``<id>-game-changers.json``,
``<id>-mass-land-denial.json`` and ``<id>-extra-turns.json``, each a JSON array
of card names. Name checks ignore case and surrounding whitespace.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import BracketRules, BracketCardLists, normalize_card_name
from .templates import DEFAULT_DATA_DIR, ReferenceDataError


RULES_FILE = "bracket-rules.json"

LIST_GAME_CHANGERS = "game-changers"
LIST_MASS_LAND_DENIAL = "mass-land-denial"
LIST_EXTRA_TURNS = "extra-turns"


class BracketNotFoundError(ReferenceDataError):
    """Raised when a bracket identifier is not configured."""
    pass


class BracketRepository:
    """Read-only access to bracket rules and card lists, cached per process."""

    def __init__(self, data_dir: Optional[Path] = None):
        """
        Initialize the bracket repository.

        Args:
            data_dir: Directory holding bracket files (defaults to the bundled data)
        """
        self.logger = logging.getLogger(__name__)
        self.data_dir = Path(data_dir) if data_dir else DEFAULT_DATA_DIR
        self._rules: Optional[Dict[str, BracketRules]] = None
        self._card_lists: Dict[str, BracketCardLists] = {}
        self._lock = threading.Lock()

    def load_bracket_rules(self, bracket_id: str) -> BracketRules:
        """
        Get the rules for a bracket.

        Args:
            bracket_id: Bracket identifier, e.g. "bracket3"

        Returns:
            BracketRules for the bracket

        Raises:
            BracketNotFoundError: If the bracket is not configured
            ReferenceDataError: If bracket-rules.json is missing or invalid
        """
        rules = self._load_rules()
        if bracket_id not in rules:
            available = ', '.join(sorted(rules)) or 'none'
            raise BracketNotFoundError(
                f'Bracket "{bracket_id}" not found in {RULES_FILE}. Available brackets: {available}'
            )
        return rules[bracket_id]

    def available_brackets(self) -> List[str]:
        return sorted(self._load_rules())

    def card_lists(self, bracket_id: str) -> BracketCardLists:
        """
        Get the normalized card lists for a bracket.

        A bracket without list files gets empty lists and a logged warning.

        Raises:
            ReferenceDataError: If a list file exists but is not a JSON array of names
        """
        cached = self._card_lists.get(bracket_id)
        if cached is not None:
            return cached

        lists = BracketCardLists.from_names(
            game_changers=self._read_card_list(bracket_id, LIST_GAME_CHANGERS),
            mass_land_denial=self._read_card_list(bracket_id, LIST_MASS_LAND_DENIAL),
            extra_turns=self._read_card_list(bracket_id, LIST_EXTRA_TURNS),
        )
        with self._lock:
            self._card_lists.setdefault(bracket_id, lists)
        return self._card_lists[bracket_id]

    def is_game_changer(self, name: str, bracket_id: str) -> bool:
        return normalize_card_name(name) in self.card_lists(bracket_id).game_changers

    def is_mass_land_denial(self, name: str, bracket_id: str) -> bool:
        return normalize_card_name(name) in self.card_lists(bracket_id).mass_land_denial

    def is_extra_turn_card(self, name: str, bracket_id: str) -> bool:
        return normalize_card_name(name) in self.card_lists(bracket_id).extra_turns

    def clear_cache(self) -> None:
        with self._lock:
            self._rules = None
            self._card_lists.clear()

    def _load_rules(self) -> Dict[str, BracketRules]:
        if self._rules is not None:
            return self._rules

        path = self.data_dir / RULES_FILE
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ReferenceDataError(f"Failed to load bracket rules from {path}: {e}")

        brackets = data.get('brackets') if isinstance(data, dict) else None
        if not isinstance(brackets, dict):
            raise ReferenceDataError(f'Invalid {RULES_FILE} structure: missing "brackets" object')

        try:
            rules = {
                bracket_id: BracketRules.from_dict(bracket_id, entry)
                for bracket_id, entry in brackets.items()
            }
        except (AttributeError, TypeError, ValueError) as e:
            raise ReferenceDataError(f"Invalid bracket entry in {RULES_FILE}: {e}")

        self.logger.info(f"Loaded rules for {len(rules)} brackets")
        with self._lock:
            if self._rules is None:
                self._rules = rules
        return self._rules

    def _read_card_list(self, bracket_id: str, list_name: str) -> List[str]:
        path = self.data_dir / f"{bracket_id}-{list_name}.json"
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data: Any = json.load(f)
        except FileNotFoundError:
            self.logger.warning(f'No {list_name} list for bracket "{bracket_id}" ({path.name}); treating it as empty')
            return []
        except (OSError, json.JSONDecodeError) as e:
            raise ReferenceDataError(f"Failed to load {path.name}: {e}")

        if not isinstance(data, list) or not all(isinstance(name, str) for name in data):
            raise ReferenceDataError(f"Invalid card list format in {path.name}. Expected an array of names.")

        self.logger.debug(f"Loaded {len(data)} names from {path.name}")
        return data
