"""
Module Name Resolver

Canonical/alias lookup for platform building-block identifiers.

  resolve("openai-gpt-3") → valid, category "ai"
  resolve("openai")       → invalid, suggests "openai-gpt-3"
  resolve("acme:Thing")   → invalid, no suggestion (tolerated, not rejected)

Passing a platform scopes the lookup: an entry tagged for another platform
counts as unknown there. Canonical blueprints accept the service-token
vocabulary the converter reads (see node_type_mappings.py).

The catalog is passed in explicitly; get_default_resolver() wires the
bundled catalog for callers that do not care.
"""

from functools import lru_cache

from blueprint_engine.models import Resolution
from blueprint_engine.module_catalog_loader import get_default_catalog
from blueprint_engine.node_type_mappings import CANONICAL_SERVICES


class ModuleResolver:

    def __init__(self, catalog):
        self.catalog = catalog

    def resolve(self, name, platform=None):
        """Resolve a module name against the catalog.

        Args:
            name: Module identifier as written in a blueprint.
            platform: Platform the blueprint targets. None matches entries
                      of every platform.

        Returns:
            Resolution. Exact match → valid with category. Known alias →
            not valid, canonical_name carries the suggested replacement.
            Unknown, or known only on another platform → not valid, no
            suggestion.
        """
        entry = self.catalog.by_name.get(name)
        if entry is not None and self.in_scope(entry, platform):
            return Resolution(valid=True, canonical_name=entry.canonical_name, category=entry.category)

        canonical = self.suggest(name, platform)
        if canonical is not None:
            return Resolution(
                valid=False,
                canonical_name=canonical,
                category=self.catalog.by_name[canonical].category,
            )

        return Resolution(valid=False)

    def suggest(self, name, platform=None):
        """Canonical replacement for a known alias on platform, else None."""
        canonical = self.catalog.aliases.get(name)
        if canonical is None or not self.in_scope(self.catalog.by_name[canonical], platform):
            return None
        return canonical

    @staticmethod
    def in_scope(entry, platform):
        if platform is None:
            return True
        if platform == "canonical":
            return entry.canonical_name in CANONICAL_SERVICES
        return entry.platform == platform

    def get_entry(self, name):
        """Catalog entry for a canonical name or one of its aliases."""
        entry = self.catalog.by_name.get(name)
        if entry is None and name in self.catalog.aliases:
            entry = self.catalog.by_name[self.catalog.aliases[name]]
        return entry

    def is_trigger(self, name):
        entry = self.get_entry(name)
        return bool(entry and entry.trigger)

    def is_branching(self, name):
        entry = self.get_entry(name)
        return bool(entry and entry.branching)

    def search(self, keyword):
        """Yield catalog entries whose name or description contains keyword.

        Case-insensitive substring match, in catalog order.
        """
        needle = keyword.lower()
        for entry in self.catalog.entries:
            if needle in entry.canonical_name.lower() or needle in entry.description.lower():
                yield entry

    def list_by_category(self, category):
        return list(self.catalog.by_category.get(category, ()))

    def categories(self):
        return sorted(self.catalog.by_category.keys())


@lru_cache(maxsize=1)
def get_default_resolver():
    return ModuleResolver(get_default_catalog())
