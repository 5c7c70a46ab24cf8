"""
Scryfall card database for resolving card names.

This module loads the Scryfall "Oracle Cards" bulk data file into a local,
process-lifetime index and answers exact (case-insensitive) name lookups.
It also provides the downloader that fetches the bulk file from the
Scryfall API.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional, Any, Iterable
from dataclasses import dataclass, field

import requests

from .models import normalize_card_name


BULK_DATA_URL = "https://api.scryfall.com/bulk-data/oracle-cards"
USER_AGENT = "MTG-Commander-Analyzer/0.1.0"
DEFAULT_LANGUAGE = "en"

logger = logging.getLogger(__name__)


class ScryfallAPIError(Exception):
    """Raised when Scryfall API calls fail."""
    pass


class CardDatabaseError(Exception):
    """Raised when the oracle card database cannot be loaded."""
    pass


@dataclass
class CardData:
    """Represents a card from the Scryfall oracle bulk data."""
    name: str
    type_line: str = ""
    oracle_text: str = ""
    color_identity: List[str] = field(default_factory=list)
    mana_cost: str = ""
    lang: Optional[str] = None
    oracle_id: Optional[str] = None
    face_names: List[str] = field(default_factory=list)

    @classmethod
    def from_scryfall_data(cls, data: Dict[str, Any]) -> 'CardData':
        """Create CardData from a Scryfall card object."""
        faces = data.get('card_faces') or []
        oracle_text = data.get('oracle_text')
        if oracle_text is None and faces:
            # Double-faced cards keep rules text on each face
            oracle_text = "\n//\n".join(face.get('oracle_text', '') for face in faces)

        return cls(
            name=data.get('name', ''),
            type_line=data.get('type_line') or ' // '.join(
                face.get('type_line', '') for face in faces
            ),
            oracle_text=oracle_text or '',
            color_identity=list(data.get('color_identity') or []),
            mana_cost=data.get('mana_cost', ''),
            lang=data.get('lang'),
            oracle_id=data.get('oracle_id'),
            face_names=[face['name'] for face in faces if face.get('name')],
        )

    @property
    def is_land(self) -> bool:
        return 'land' in self.type_line.lower()


class CardDatabase:
    """
    Lazy, read-only index over the Scryfall oracle cards file.

    The file is read on the first lookup and kept for the lifetime of the
    object. Rebuilding the index from the same file always yields the same
    result, so a lock only guards against loading the file twice.
    """

    def __init__(self, oracle_cards_path: Optional[Path] = None, cards: Optional[Iterable[Dict[str, Any]]] = None):
        """
        Initialize the card database.

        Args:
            oracle_cards_path: Path to the Scryfall oracle-cards.json bulk file
            cards: Pre-loaded Scryfall card objects; used instead of the file
        """
        self.logger = logging.getLogger(__name__)
        self.oracle_cards_path = Path(oracle_cards_path) if oracle_cards_path else None
        self._raw_cards = list(cards) if cards is not None else None
        self._index: Optional[Dict[str, CardData]] = None
        self._lock = threading.Lock()

        if self.oracle_cards_path is None and self._raw_cards is None:
            raise ValueError("Either oracle_cards_path or cards must be provided")

    @classmethod
    def from_cards(cls, cards: Iterable[Dict[str, Any]]) -> 'CardDatabase':
        """Build a database from in-memory Scryfall card objects."""
        return cls(cards=cards)

    def get_card_by_name(self, name: str) -> Optional[CardData]:
        """
        Look up a card by exact name, ignoring case and surrounding whitespace.

        When several printings share a name, the English one is preferred,
        otherwise the first one in the file.

        Args:
            name: Card name to resolve

        Returns:
            CardData if found, None otherwise

        Raises:
            CardDatabaseError: If the oracle card file cannot be loaded
        """
        if not name or not name.strip():
            return None
        return self._get_index().get(normalize_card_name(name))

    def __len__(self) -> int:
        return len(self._get_index())

    def _get_index(self) -> Dict[str, CardData]:
        if self._index is None:
            with self._lock:
                if self._index is None:
                    self._index = self._build_index(self._load_raw_cards())
        return self._index

    def _load_raw_cards(self) -> List[Dict[str, Any]]:
        if self._raw_cards is not None:
            return self._raw_cards

        self.logger.info(f"Loading oracle cards from {self.oracle_cards_path}")
        try:
            with open(self.oracle_cards_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            raise CardDatabaseError(
                f"Oracle card file not found: {self.oracle_cards_path}. "
                f"Run 'mtg-commander-analyzer download-cards' to fetch it."
            )
        except (OSError, json.JSONDecodeError) as e:
            raise CardDatabaseError(f"Failed to load oracle cards from {self.oracle_cards_path}: {e}")

        if not isinstance(data, list):
            raise CardDatabaseError(
                f"Oracle card file {self.oracle_cards_path} does not contain a list of cards"
            )
        return data

    def _build_index(self, raw_cards: List[Dict[str, Any]]) -> Dict[str, CardData]:
        index: Dict[str, CardData] = {}
        face_index: Dict[str, CardData] = {}

        for raw in raw_cards:
            if not isinstance(raw, dict) or not raw.get('name'):
                continue

            card = CardData.from_scryfall_data(raw)
            key = normalize_card_name(card.name)
            existing = index.get(key)
            if existing is None or (existing.lang != DEFAULT_LANGUAGE and card.lang == DEFAULT_LANGUAGE):
                index[key] = card

            for face_name in card.face_names:
                face_index.setdefault(normalize_card_name(face_name), card)

        # Front-face names resolve only when no card carries that full name
        for key, card in face_index.items():
            index.setdefault(key, card)

        self.logger.info(f"Indexed {len(index)} card names")
        return index


def download_oracle_cards(destination: Path, timeout: int = 30, session: Optional[requests.Session] = None) -> Path:
    """
    Download the latest Scryfall "Oracle Cards" bulk data file.

    Args:
        destination: File path where the JSON bulk file is written
        timeout: Request timeout in seconds
        session: Optional requests session (a new one is created if None)

    Returns:
        Path of the written file

    Raises:
        ScryfallAPIError: If the bulk data metadata or file cannot be fetched
    """
    session = session or requests.Session()
    session.headers.update({'User-Agent': USER_AGENT, 'Accept': 'application/json'})

    try:
        response = session.get(BULK_DATA_URL, timeout=timeout)
        response.raise_for_status()
        download_uri = response.json().get('download_uri')
    except (requests.RequestException, ValueError) as e:
        raise ScryfallAPIError(f"Could not fetch bulk data info from Scryfall: {e}")

    if not download_uri:
        raise ScryfallAPIError("Scryfall bulk data response did not include a download_uri")

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.with_suffix(destination.suffix + '.part')

    logger.info(f"Downloading oracle cards from {download_uri}")
    try:
        with session.get(download_uri, stream=True, timeout=timeout) as download:
            download.raise_for_status()
            with open(partial, 'wb') as f:
                for chunk in download.iter_content(chunk_size=1024 * 1024):
                    if chunk:
                        f.write(chunk)
    except requests.RequestException as e:
        partial.unlink(missing_ok=True)
        raise ScryfallAPIError(f"Failed to download oracle cards: {e}")

    partial.replace(destination)
    logger.info(f"Oracle cards saved to {destination} ({destination.stat().st_size // (1024 * 1024)} MB)")
    return destination
