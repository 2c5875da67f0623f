"""
Bus eventi e notifiche
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Canale di invalidazione esplicito per aggregato: ogni mutazione persistita
pubblica un evento tipizzato con le chiavi coinvolte, e gli osservatori
decidono se ricaricare tutto o applicare una patch incrementale.

Le notifiche per l'utente (successo/errore in italiano) viaggiano sullo
stesso bus come eventi di tipo `notification`.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Tipi di evento pubblicati dal sistema."""

    ORDINI_ACQUISTO_CHANGED = "ordini_acquisto_changed"
    CARTONI_CHANGED = "cartoni_changed"
    FUSTELLE_CHANGED = "fustelle_changed"
    ANAGRAFICA_CHANGED = "anagrafica_changed"
    NOTIFICATION = "notification"


class NotificationLevel(str, Enum):
    """Livello della notifica mostrata all'utente."""

    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Event:
    """Evento condiviso fra publisher e osservatori."""

    event_type: str
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


EventHandler = Callable[[Event], Awaitable[None]]


def _is_async_handler(handler: Any) -> bool:
    """Accetta funzioni async e oggetti con `async def __call__`."""
    return inspect.iscoroutinefunction(handler) or inspect.iscoroutinefunction(
        getattr(handler, "__call__", None)
    )


@dataclass(slots=True)
class HandlerFailure:
    """Dettagli sul fallimento di un handler."""

    handler: Callable[[Event], Any]
    event: Event
    exception: Exception

    def __str__(self) -> str:
        return f"Handler {self.handler} fallito per evento {self.event.event_type}: {self.exception}"


class HandlerExecutionError(Exception):
    """Sollevata quando uno o più handler falliscono."""

    def __init__(self, failures: Sequence[HandlerFailure]):
        self.failures: List[HandlerFailure] = list(failures)
        super().__init__(", ".join(str(failure) for failure in self.failures))


class EventBus:
    """Bus eventi asincrono con isolamento dei fallimenti degli handler."""

    def __init__(self) -> None:
        self._handlers: Dict[str, list[EventHandler]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def subscribe(self, event_type: EventType | str, handler: EventHandler) -> None:
        """Registra un handler per il tipo di evento indicato."""
        if not _is_async_handler(handler):
            raise TypeError("L'handler di un evento deve essere una funzione async")

        key = EventType(event_type).value
        async with self._lock:
            if handler not in self._handlers[key]:
                self._handlers[key].append(handler)
        logger.debug("Handler %s registrato per '%s'", handler, key)

    async def unsubscribe(self, event_type: EventType | str, handler: EventHandler) -> None:
        """Rimuove un handler registrato."""
        key = EventType(event_type).value
        async with self._lock:
            handlers = self._handlers.get(key)
            if handlers and handler in handlers:
                handlers.remove(handler)
            if not handlers:
                self._handlers.pop(key, None)

    async def publish(self, event: Event) -> None:
        """
        Invia l'evento a tutti gli handler registrati.

        Raises:
            HandlerExecutionError: Se almeno un handler fallisce
                (gli altri vengono comunque eseguiti)
        """
        async with self._lock:
            handlers: Iterable[EventHandler] = tuple(self._handlers.get(event.event_type, ()))

        if not handlers:
            return

        results = await asyncio.gather(
            *(handler(event) for handler in handlers),
            return_exceptions=True,
        )

        failures = [
            HandlerFailure(handler=handler, event=event, exception=result)
            for handler, result in zip(handlers, results)
            if isinstance(result, Exception)
        ]
        if failures:
            raise HandlerExecutionError(failures)

    async def emit(self, event_type: EventType, **data: Any) -> None:
        """
        Pubblica un evento senza propagare i fallimenti degli osservatori.

        Un osservatore che fallisce non deve annullare un'operazione
        di business già persistita.
        """
        try:
            await self.publish(Event(event_type=event_type.value, data=data))
        except HandlerExecutionError as exc:
            for failure in exc.failures:
                logger.error(
                    "Errore nell'osservatore %s per l'evento '%s'",
                    failure.handler,
                    event_type.value,
                    exc_info=failure.exception,
                )


class Notifier:
    """
    Canale laterale per i messaggi all'utente.

    Ogni notifica viene loggata e pubblicata sul bus come evento
    `notification` con livello e messaggio.
    """

    def __init__(self, bus: Optional[EventBus] = None) -> None:
        self._bus = bus

    def bind(self, bus: EventBus) -> None:
        """Collega il notifier a un bus (usato anche dai test)."""
        self._bus = bus

    async def _notify(self, level: NotificationLevel, message: str) -> None:
        log_level = {
            NotificationLevel.ERROR: logging.ERROR,
            NotificationLevel.WARNING: logging.WARNING,
        }.get(level, logging.INFO)
        logger.log(log_level, "[notifica %s] %s", level.value, message)
        if self._bus is not None:
            await self._bus.emit(EventType.NOTIFICATION, level=level.value, message=message)

    async def success(self, message: str) -> None:
        await self._notify(NotificationLevel.SUCCESS, message)

    async def info(self, message: str) -> None:
        await self._notify(NotificationLevel.INFO, message)

    async def warning(self, message: str) -> None:
        await self._notify(NotificationLevel.WARNING, message)

    async def error(self, message: str) -> None:
        await self._notify(NotificationLevel.ERROR, message)


# Istanze singleton usate dai service
event_bus = EventBus()
notifier = Notifier(event_bus)
