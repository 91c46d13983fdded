# services/locale.py
"""Resolución de variantes traducidas a su entidad canónica.

Una variante traducida es la misma oferta real que su original, por lo que debe
tener el mismo precio y compartir las entradas de caché.
"""

from abc import ABC, abstractmethod

from ..models import ProductTranslation


class LocaleResolver(ABC):
    @abstractmethod
    def canonical_id(self, entity_id):
        """Return the language-neutral id for `entity_id` (itself if untranslated)."""
        ...


class IdentityLocaleResolver(LocaleResolver):
    """Sin capa de traducción activa."""

    def canonical_id(self, entity_id):
        return entity_id


class MappingLocaleResolver(LocaleResolver):
    def __init__(self, mapping: dict | None = None):
        self._mapping = dict(mapping or {})

    def canonical_id(self, entity_id):
        return self._mapping.get(entity_id, entity_id)


class SqlLocaleResolver(LocaleResolver):
    def canonical_id(self, entity_id):
        if not entity_id:
            return entity_id
        link = ProductTranslation.query.filter_by(entity_id=entity_id).first()
        if link is None or not link.canonical_id:
            return entity_id
        return link.canonical_id
