"""
Store in memoria con aggiornamento ottimistico
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Modello "applica in locale, conferma sul database, ripristina in caso di
errore", parametrico sul tipo di entità. Le viste in lettura (read model)
lo usano per riflettere subito una modifica e tornare allo snapshot
precedente se il commit fallisce.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Generic, Hashable, Iterable, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

_MISSING = object()


class OptimisticStore(Generic[K, T]):
    """
    Collezione ordinata di snapshot indicizzati per chiave.

    Usage:
        store = OptimisticStore(key=lambda o: o.numero_ordine)
        async with store.optimistic("12/25", nuovo_snapshot):
            await db.commit()   # se solleva, lo snapshot precedente torna al suo posto
    """

    def __init__(self, key: Callable[[T], K]) -> None:
        self._key = key
        self._items: dict[K, T] = {}

    def replace_all(self, items: Iterable[T]) -> None:
        """Sostituisce l'intero contenuto mantenendo l'ordine ricevuto."""
        self._items = {self._key(item): item for item in items}

    def get(self, key: K) -> Optional[T]:
        return self._items.get(key)

    def values(self) -> list[T]:
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    @asynccontextmanager
    async def optimistic(self, key: K, value: T) -> AsyncIterator[T]:
        """
        Applica `value` in locale per la durata del blocco.

        Se il blocco solleva un'eccezione, lo stato precedente della chiave
        (incluso "assente") viene ripristinato e l'eccezione rilanciata.
        """
        previous = self._items.get(key, _MISSING)
        self._items[key] = value
        try:
            yield value
        except BaseException:
            self._restore(key, previous)
            logger.warning("Rollback ottimistico per la chiave %s", key)
            raise

    @asynccontextmanager
    async def optimistic_remove(self, key: K) -> AsyncIterator[None]:
        """Rimuove la chiave in locale, ripristinandola se il blocco fallisce."""
        snapshot = dict(self._items)
        self._items.pop(key, None)
        try:
            yield
        except BaseException:
            self._items = snapshot
            logger.warning("Rollback ottimistico della rimozione di %s", key)
            raise

    def _restore(self, key: K, previous: object) -> None:
        if previous is _MISSING:
            self._items.pop(key, None)
        else:
            self._items[key] = previous  # type: ignore[assignment]
