"""
GCI Catalog -- static cross-reference of scientific names to reference pages.

Loaded once at startup from a JSON list of {"name", "url"} entries and never
mutated afterwards. Lookups are exact matches on the case-folded scientific
name; there is no fuzzy matching.

Usage:
    catalog = GCICatalog.get_instance()
    catalog.load()
    catalog.lookup("rosa CHINENSIS")  # -> "https://..."
"""

import json
import logging
from typing import Dict, Iterable, Optional

from plantscan.config import GCI_PAGES_PATH
from plantscan.models import GCIPage

logger = logging.getLogger(__name__)


class GCICatalog:
    _instance: Optional["GCICatalog"] = None

    def __init__(self, pages: Optional[Iterable[GCIPage]] = None):
        self._urls: Dict[str, str] = {}
        if pages is not None:
            self._index(pages)

    @classmethod
    def get_instance(cls) -> "GCICatalog":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def loaded(self) -> bool:
        return bool(self._urls)

    def __len__(self) -> int:
        return len(self._urls)

    def _index(self, pages: Iterable[GCIPage]):
        urls = {}
        for page in pages:
            key = page.name.lower()
            # First entry wins on duplicate names
            urls.setdefault(key, page.url)
        self._urls = urls

    def load(self, path: str = GCI_PAGES_PATH) -> int:
        """Read the catalog file; a missing or broken file leaves the catalog empty"""
        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
            self._index(GCIPage(**entry) for entry in raw)
            logger.info(f"✓ GCI catalog loaded: {len(self._urls)} pages")
        except FileNotFoundError:
            logger.warning(f"GCI catalog not found at {path} - cross-references disabled")
        except (ValueError, TypeError) as e:
            logger.error(f"Failed to load GCI catalog from {path}: {e}")
        if not self.loaded:
            logger.warning("GCI catalog is empty - set GCI_PAGES_PATH to enable gci_url links")
        return len(self._urls)

    def lookup(self, scientific_name: Optional[str]) -> Optional[str]:
        if not scientific_name:
            return None
        return self._urls.get(scientific_name.lower())
