"""
Module Catalog Loader

Loads the curated module catalog from disk and indexes it.
The catalog file is one flat list of entries tagged with a category;
this module builds the exact-match name index, the alias index and the
per-category index once, at load time.

Input: catalog_path (str) — path to module_catalog.json
Output: ModuleCatalog with O(1) name and alias lookups

Deterministic. No network calls.
"""

import json
import os
from functools import lru_cache
from types import MappingProxyType

from blueprint_engine.config import CATALOG_PATH
from blueprint_engine.logger import log
from blueprint_engine.models import ModuleCatalogEntry

REQUIRED_ENTRY_FIELDS = [
    "name", "platform", "category", "description", "trigger", "branching", "aliases",
]

VALID_PLATFORMS = {"make", "n8n", "canonical", "zapier"}


class ModuleCatalog:
    """Read-only view over the loaded catalog entries and their indexes."""

    def __init__(self, version, entries):
        self.version = version
        self.entries = tuple(entries)

        by_name = {}
        aliases = {}
        by_category = {}
        for entry in self.entries:
            by_name[entry.canonical_name] = entry
            by_category.setdefault(entry.category, []).append(entry)
            for alias in sorted(entry.known_aliases):
                aliases[alias] = entry.canonical_name

        self.by_name = MappingProxyType(by_name)
        self.aliases = MappingProxyType(aliases)
        self.by_category = MappingProxyType(
            {cat: tuple(items) for cat, items in by_category.items()}
        )

    def __len__(self):
        return len(self.entries)


def load_module_catalog(catalog_path=None):
    """Load the module catalog and return an indexed ModuleCatalog.

    Args:
        catalog_path: Path to module_catalog.json.
                      Defaults to BLUEPRINT_CATALOG_PATH or the bundled file.

    Returns:
        ModuleCatalog

    Raises:
        FileNotFoundError: If catalog file does not exist.
        ValueError: If catalog is malformed, has duplicate names, or an
                    alias that collides with a canonical name.
    """
    if catalog_path is None:
        catalog_path = CATALOG_PATH

    if not os.path.exists(catalog_path):
        raise FileNotFoundError(f"Module catalog not found at: {catalog_path}")

    with open(catalog_path, "r") as f:
        raw = json.load(f)

    if "catalog_version" not in raw:
        raise ValueError("Catalog missing 'catalog_version' field")
    if "modules" not in raw or not isinstance(raw["modules"], list):
        raise ValueError("Catalog missing 'modules' list")

    entries = []
    seen_names = set()
    for index, item in enumerate(raw["modules"]):
        missing = [f for f in REQUIRED_ENTRY_FIELDS if f not in item]
        if missing:
            raise ValueError(f"Catalog entry {index} missing required fields: {missing}")

        name = item["name"]
        if name in seen_names:
            raise ValueError(f"Duplicate catalog entry: '{name}'")
        if item["platform"] not in VALID_PLATFORMS:
            raise ValueError(f"Catalog entry '{name}' has invalid platform: '{item['platform']}'")
        seen_names.add(name)

        entries.append(ModuleCatalogEntry(
            canonical_name=name,
            category=item["category"],
            description=item["description"],
            platform=item["platform"],
            trigger=bool(item["trigger"]),
            branching=bool(item["branching"]),
            known_aliases=frozenset(item["aliases"]),
        ))

    for entry in entries:
        clash = entry.known_aliases & seen_names
        if clash:
            raise ValueError(
                f"Catalog entry '{entry.canonical_name}' lists canonical names as aliases: {sorted(clash)}"
            )

    catalog = ModuleCatalog(raw["catalog_version"], entries)
    log("catalog.loaded", level="debug", path=catalog_path,
        version=catalog.version, module_count=len(catalog))
    return catalog


@lru_cache(maxsize=1)
def get_default_catalog():
    """The process-wide catalog, loaded on first use."""
    return load_module_catalog()
