"""EDHREC service module for fetching card recommendations by color identity."""

import enum
import hashlib
import json
import logging
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import requests

from .models import CardSuggestion


EDHREC_BASE_URL = "https://json.edhrec.com/pages"
USER_AGENT = "MTG-Commander-Analyzer/0.1.0"
DEFAULT_SUGGESTION_LIMIT = 50

WUBRG_ORDER = ('W', 'U', 'B', 'R', 'G')

COLOR_NAMES = {
    'W': 'white',
    'U': 'blue',
    'B': 'black',
    'R': 'red',
    'G': 'green',
}


class EDHRECAPIError(Exception):
    """Raised when EDHREC API calls fail."""
    pass


class DocumentVariant(enum.Enum):
    """Known layouts of EDHREC JSON pages."""
    CONTAINER_CARDLISTS = "container.json_dict.cardlists"
    CARDLISTS = "cardlists"
    CARDVIEWS = "cardviews"
    CARDS = "cards"


@dataclass
class RecommendationDocument:
    """An EDHREC page reduced to its card entries."""
    variant: DocumentVariant
    entries: List[Dict[str, Any]]

    def to_suggestions(self, source_tag: str) -> List[CardSuggestion]:
        """
        Convert the entries into suggestions tagged with their source page.

        Rank prefers the entry's ``rank``, then ``inclusion``, then its
        1-based position on the page. Entries without a name are skipped.
        """
        suggestions = []
        for position, entry in enumerate(self.entries, start=1):
            name = entry.get('name') if isinstance(entry, dict) else None
            if not name:
                continue

            rank = entry.get('rank')
            if rank is None:
                rank = entry.get('inclusion')
            if rank is None:
                rank = position

            suggestions.append(CardSuggestion(
                name=name,
                category=source_tag,
                url=entry.get('url') or None,
                rank=rank,
                salt_score=entry.get('salt_score') or entry.get('salt') or None,
                synergy_score=entry.get('synergy_score') or entry.get('synergy') or None,
            ))
        return suggestions


def _cardviews_of(cardlists: Any) -> Optional[List[Dict[str, Any]]]:
    if not isinstance(cardlists, list):
        return None
    entries = []
    for cardlist in cardlists:
        if isinstance(cardlist, dict) and isinstance(cardlist.get('cardviews'), list):
            entries.extend(cardlist['cardviews'])
    return entries


def _container_cardlists(data: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
    container = data.get('container')
    json_dict = container.get('json_dict') if isinstance(container, dict) else None
    if not isinstance(json_dict, dict):
        return None
    return _cardviews_of(json_dict.get('cardlists'))


def _list_field(key: str) -> Callable[[Dict[str, Any]], Optional[List[Dict[str, Any]]]]:
    def extract(data: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
        value = data.get(key)
        return value if isinstance(value, list) else None
    return extract


# Tried in order; the first variant whose extractor matches wins
DOCUMENT_EXTRACTORS: Tuple[Tuple[DocumentVariant, Callable[[Dict[str, Any]], Optional[List[Dict[str, Any]]]]], ...] = (
    (DocumentVariant.CONTAINER_CARDLISTS, _container_cardlists),
    (DocumentVariant.CARDLISTS, lambda data: _cardviews_of(data.get('cardlists'))),
    (DocumentVariant.CARDVIEWS, _list_field('cardviews')),
    (DocumentVariant.CARDS, _list_field('cards')),
)


def parse_recommendation_document(data: Any) -> RecommendationDocument:
    """
    Identify the layout of an EDHREC JSON page and extract its card entries.

    Raises:
        EDHRECAPIError: If the page matches none of the known layouts
    """
    if isinstance(data, dict):
        for variant, extract in DOCUMENT_EXTRACTORS:
            entries = extract(data)
            if entries is not None:
                return RecommendationDocument(variant=variant, entries=entries)

    keys = ', '.join(sorted(data)) if isinstance(data, dict) else type(data).__name__
    raise EDHRECAPIError(f"Unrecognized EDHREC document layout (top-level: {keys})")


def normalize_color_identity(colors: Iterable[str]) -> List[str]:
    """Return the WUBRG letters of a color identity in canonical order."""
    present = {color.upper() for color in colors}
    return [color for color in WUBRG_ORDER if color in present]


class EDHRECService:
    """Service for fetching EDHREC top-card and land pages as JSON."""

    def __init__(
        self,
        cache_dir: Optional[str] = None,
        cache_enabled: bool = True,
        cache_duration_hours: int = 24,
        timeout: int = 30,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize EDHREC service.

        Args:
            cache_dir: Directory for caching API responses. If None, uses default.
            cache_enabled: Whether responses are cached on disk
            cache_duration_hours: How long disk cache entries stay valid
            timeout: HTTP timeout in seconds
            session: Optional requests session (a new one is created if None)
        """
        self.logger = logging.getLogger(__name__)

        if cache_dir is None:
            cache_dir = os.path.join(os.path.expanduser("~"), ".mtg_commander_analyzer", "cache", "edhrec")
        self.cache_dir = Path(cache_dir)
        self.cache_enabled = cache_enabled
        if self.cache_enabled:
            self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.cache_ttl = 3600 * cache_duration_hours
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': USER_AGENT,
            'Accept': 'application/json'
        })

        # Per-URL responses for the lifetime of this service
        self._memory_cache: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def top_cards_for_colors(self, colors: Iterable[str], limit: int = DEFAULT_SUGGESTION_LIMIT) -> List[CardSuggestion]:
        """
        Get the most played cards for a color identity.

        Colorless identities use the colorless page, a single color its color
        page, and multicolor identities the multicolor page followed by each
        color's page. Pages that fail to load are skipped with a warning.

        Args:
            colors: Color identity letters
            limit: Maximum number of suggestions returned

        Returns:
            Suggestions deduplicated by name, first occurrence kept
        """
        suggestions = self._collect(self.top_card_pages(colors))
        return suggestions[:limit]

    def top_lands_for_colors(self, colors: Iterable[str], limit: int = DEFAULT_SUGGESTION_LIMIT) -> List[CardSuggestion]:
        """
        Get popular lands for a color identity, sorted by rank.

        Colorless identities use the colorless land page; otherwise each
        color's mono-color land page plus the generic lands page.

        Args:
            colors: Color identity letters
            limit: Maximum number of suggestions returned

        Returns:
            Suggestions deduplicated by name and sorted by ascending rank
        """
        suggestions = self._collect(self.land_pages(colors))
        # Stable sort keeps page order among entries without a rank
        suggestions.sort(key=lambda suggestion: (suggestion.rank is None, suggestion.rank or 0))
        return suggestions[:limit]

    def top_card_pages(self, colors: Iterable[str]) -> List[str]:
        normalized = normalize_color_identity(colors)
        if not normalized:
            return ['top/colorless']
        color_pages = [f"top/{COLOR_NAMES[color]}" for color in normalized]
        if len(normalized) == 1:
            return color_pages
        return ['top/multicolor'] + color_pages

    def land_pages(self, colors: Iterable[str]) -> List[str]:
        normalized = normalize_color_identity(colors)
        if not normalized:
            return ['lands/colorless']
        return [f"lands/mono-{COLOR_NAMES[color]}" for color in normalized] + ['lands/lands']

    def sources_for_colors(self, colors: Iterable[str]) -> List[str]:
        """Page paths consulted for a color identity (top cards, then lands)."""
        colors = list(colors)
        return self.top_card_pages(colors) + self.land_pages(colors)

    def fetch_json(self, path_or_url: str) -> Any:
        """
        Fetch an EDHREC JSON page, using the memory and disk caches.

        Args:
            path_or_url: Full URL, or a page path relative to the EDHREC JSON base

        Returns:
            Decoded JSON document

        Raises:
            EDHRECAPIError: If the request fails or the response is not JSON
        """
        url = self.page_url(path_or_url)

        cached = self._memory_cache.get(url)
        if cached is not None:
            self.logger.debug(f"Memory cache hit for {url}")
            return cached

        data = self._get_from_cache(url)
        if data is None:
            data = self._fetch(url)
            self._save_to_cache(url, data)

        with self._lock:
            self._memory_cache[url] = data
        return data

    @staticmethod
    def page_url(path_or_url: str) -> str:
        if path_or_url.startswith('http'):
            return path_or_url
        path = path_or_url if path_or_url.endswith('.json') else f"{path_or_url}.json"
        return f"{EDHREC_BASE_URL}/{path}"

    def clear_cache(self) -> None:
        """Clear the memory cache and all cached files."""
        with self._lock:
            self._memory_cache.clear()
        try:
            for cache_file in self.cache_dir.glob("*.json"):
                cache_file.unlink()
            self.logger.info("EDHREC cache cleared")
        except OSError as e:
            self.logger.warning(f"Error clearing cache: {e}")

    def _collect(self, pages: List[str]) -> List[CardSuggestion]:
        suggestions: List[CardSuggestion] = []
        seen = set()

        for page in pages:
            try:
                document = parse_recommendation_document(self.fetch_json(page))
            except EDHRECAPIError as e:
                self.logger.warning(f"Skipping EDHREC page {page}: {e}")
                continue

            self.logger.debug(f"EDHREC page {page}: {len(document.entries)} entries ({document.variant.value})")
            for suggestion in document.to_suggestions(page):
                if suggestion.name not in seen:
                    seen.add(suggestion.name)
                    suggestions.append(suggestion)

        return suggestions

    def _fetch(self, url: str) -> Any:
        self.logger.debug(f"Fetching EDHREC data: {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise EDHRECAPIError(f"Failed to fetch EDHREC data from {url}: {e}")
        except ValueError as e:
            raise EDHRECAPIError(f"EDHREC returned invalid JSON from {url}: {e}")

    def _get_cache_path(self, url: str) -> Path:
        """Get the file path for a cached URL."""
        return self.cache_dir / f"{hashlib.md5(url.encode('utf-8')).hexdigest()}.json"

    def _get_from_cache(self, url: str) -> Optional[Any]:
        """
        Retrieve a page from the disk cache if it exists and is not expired.

        Args:
            url: Page URL

        Returns:
            Cached data if valid, None otherwise
        """
        if not self.cache_enabled:
            return None

        cache_path = self._get_cache_path(url)
        try:
            if not cache_path.exists():
                return None

            cache_age = time.time() - cache_path.stat().st_mtime
            if cache_age > self.cache_ttl:
                self.logger.debug(f"Cache expired for {url}")
                cache_path.unlink()
                return None

            with open(cache_path, 'r', encoding='utf-8') as f:
                self.logger.debug(f"Disk cache hit for {url}")
                return json.load(f)

        except (OSError, json.JSONDecodeError) as e:
            self.logger.warning(f"Error reading cache for {url}: {e}")
            return None

    def _save_to_cache(self, url: str, data: Any) -> None:
        if not self.cache_enabled:
            return

        cache_path = self._get_cache_path(url)
        try:
            with open(cache_path, 'w', encoding='utf-8') as f:
                json.dump(data, f)
            self.logger.debug(f"Cached data for {url}")
        except OSError as e:
            self.logger.warning(f"Error saving cache for {url}: {e}")
