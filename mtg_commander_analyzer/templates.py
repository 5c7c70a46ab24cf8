"""Deck template loading."""

import dataclasses
import json
import logging
import threading
from pathlib import Path
from typing import Dict, Optional

from .models import DeckTemplate


DEFAULT_DATA_DIR = Path(__file__).parent / "data"
FALLBACK_TEMPLATE_ID = "default"


class ReferenceDataError(Exception):
    """Raised when a bundled reference data file cannot be read or is invalid."""
    pass


class TemplateNotFoundError(ReferenceDataError):
    """Raised when no template file exists for the requested identifier."""
    pass


class TemplateLoader:
    """Loads ``deck-template-<id>.json`` files and caches them per identifier."""

    def __init__(self, data_dir: Optional[Path] = None):
        """
        Initialize the template loader.

        Args:
            data_dir: Directory holding template files (defaults to the bundled data)
        """
        self.logger = logging.getLogger(__name__)
        self.data_dir = Path(data_dir) if data_dir else DEFAULT_DATA_DIR
        self._cache: Dict[str, DeckTemplate] = {}
        self._lock = threading.Lock()

    def template_path(self, template_id: str) -> Path:
        return self.data_dir / f"deck-template-{template_id}.json"

    def load_template(self, template_id: Optional[str]) -> DeckTemplate:
        """
        Load a deck template, falling back to the default template when missing.

        The fallback only applies when the template file does not exist. The
        returned template then has ``fallback_from`` set to the requested id.

        Args:
            template_id: Template identifier (None means the default template)

        Returns:
            The loaded DeckTemplate

        Raises:
            ReferenceDataError: If the template (or the fallback) cannot be loaded
        """
        template_id = template_id or FALLBACK_TEMPLATE_ID
        try:
            return self._load_cached(template_id)
        except TemplateNotFoundError:
            if template_id == FALLBACK_TEMPLATE_ID:
                raise
            self.logger.warning(
                f'Template "{template_id}" not found, falling back to "{FALLBACK_TEMPLATE_ID}"'
            )
            fallback = self._load_cached(FALLBACK_TEMPLATE_ID)
            return dataclasses.replace(fallback, fallback_from=template_id)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def _load_cached(self, template_id: str) -> DeckTemplate:
        cached = self._cache.get(template_id)
        if cached is not None:
            self.logger.debug(f"Template cache hit for {template_id}")
            return cached

        template = self._read_template(template_id)
        with self._lock:
            self._cache.setdefault(template_id, template)
        return self._cache[template_id]

    def _read_template(self, template_id: str) -> DeckTemplate:
        path = self.template_path(template_id)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            raise TemplateNotFoundError(
                f'Deck template "{template_id}" not found. Expected file: {path}'
            )
        except (OSError, json.JSONDecodeError) as e:
            raise ReferenceDataError(f'Failed to load deck template "{template_id}": {e}')

        if not isinstance(data, dict) or not data.get('id') or not isinstance(data.get('categories'), list):
            raise ReferenceDataError(f"Invalid template structure in {path.name}")

        try:
            template = DeckTemplate.from_dict(data)
        except (KeyError, TypeError) as e:
            raise ReferenceDataError(f"Invalid category entry in {path.name}: {e}")

        self.logger.info(f'Loaded deck template "{template.id}" with {len(template.categories)} categories')
        return template
