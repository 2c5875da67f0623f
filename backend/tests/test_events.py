"""
Unit tests per EventBus, Notifier e OptimisticStore.
"""

import pytest

from app.core.events import Event, EventBus, EventType, HandlerExecutionError, Notifier
from app.core.optimistic import OptimisticStore


# ============================================================
# EventBus
# ============================================================


class TestEventBus:
    """Test per la pubblicazione degli eventi."""

    @pytest.mark.asyncio
    async def test_emit_raggiunge_gli_handler(self):
        """Test un handler registrato riceve l'evento con i dati."""
        bus = EventBus()
        ricevuti = []

        async def handler(event: Event) -> None:
            ricevuti.append(event)

        await bus.subscribe(EventType.CARTONI_CHANGED, handler)
        await bus.emit(EventType.CARTONI_CHANGED, codici=["CTN-001"])

        assert len(ricevuti) == 1
        assert ricevuti[0].event_type == "cartoni_changed"
        assert ricevuti[0].data == {"codici": ["CTN-001"]}

    @pytest.mark.asyncio
    async def test_handler_sincrono_rifiutato(self):
        """Test solo funzioni async come handler."""
        bus = EventBus()
        with pytest.raises(TypeError):
            await bus.subscribe(EventType.CARTONI_CHANGED, lambda event: None)

    @pytest.mark.asyncio
    async def test_handler_oggetto_chiamabile(self):
        """Test un oggetto con __call__ async è un handler valido."""
        bus = EventBus()

        class Registro:
            def __init__(self) -> None:
                self.eventi = []

            async def __call__(self, event: Event) -> None:
                self.eventi.append(event)

        registro = Registro()
        await bus.subscribe(EventType.ORDINI_ACQUISTO_CHANGED, registro)
        await bus.emit(EventType.ORDINI_ACQUISTO_CHANGED, numero_ordine="1/25")

        assert [e.data for e in registro.eventi] == [{"numero_ordine": "1/25"}]

    @pytest.mark.asyncio
    async def test_fallimento_isolato(self):
        """Test un handler che fallisce non blocca gli altri."""
        bus = EventBus()
        ricevuti = []

        async def rotto(event: Event) -> None:
            raise RuntimeError("boom")

        async def sano(event: Event) -> None:
            ricevuti.append(event)

        await bus.subscribe(EventType.FUSTELLE_CHANGED, rotto)
        await bus.subscribe(EventType.FUSTELLE_CHANGED, sano)

        with pytest.raises(HandlerExecutionError):
            await bus.publish(Event(event_type=EventType.FUSTELLE_CHANGED.value))
        assert len(ricevuti) == 1

        # emit non propaga il fallimento
        await bus.emit(EventType.FUSTELLE_CHANGED)
        assert len(ricevuti) == 2

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        """Test un handler rimosso non riceve più eventi."""
        bus = EventBus()
        ricevuti = []

        async def handler(event: Event) -> None:
            ricevuti.append(event)

        await bus.subscribe(EventType.ANAGRAFICA_CHANGED, handler)
        await bus.unsubscribe(EventType.ANAGRAFICA_CHANGED, handler)
        await bus.emit(EventType.ANAGRAFICA_CHANGED)

        assert ricevuti == []


class TestNotifier:
    """Test per le notifiche all'utente."""

    @pytest.mark.asyncio
    async def test_notifica_pubblicata(self):
        """Test livello e messaggio arrivano sul bus."""
        bus = EventBus()
        notifier = Notifier(bus)
        ricevuti = []

        async def handler(event: Event) -> None:
            ricevuti.append(event.data)

        await bus.subscribe(EventType.NOTIFICATION, handler)
        await notifier.warning("Sincronizzazione con errori")

        assert ricevuti == [{"level": "warning", "message": "Sincronizzazione con errori"}]

    @pytest.mark.asyncio
    async def test_senza_bus(self):
        """Test un notifier non collegato si limita a loggare."""
        await Notifier().error("solo log")


# ============================================================
# OptimisticStore
# ============================================================


class TestOptimisticStore:
    """Test per l'aggiornamento ottimistico."""

    def _store(self):
        store = OptimisticStore(key=lambda item: item["id"])
        store.replace_all([{"id": "a", "v": 1}, {"id": "b", "v": 2}])
        return store

    @pytest.mark.asyncio
    async def test_conferma(self):
        """Test il valore resta applicato se il blocco termina."""
        store = self._store()
        async with store.optimistic("a", {"id": "a", "v": 10}):
            assert store.get("a")["v"] == 10
        assert store.get("a")["v"] == 10

    @pytest.mark.asyncio
    async def test_rollback(self):
        """Test il valore precedente torna se il blocco solleva."""
        store = self._store()
        with pytest.raises(RuntimeError):
            async with store.optimistic("a", {"id": "a", "v": 10}):
                raise RuntimeError("commit fallito")
        assert store.get("a")["v"] == 1

    @pytest.mark.asyncio
    async def test_rollback_chiave_nuova(self):
        """Test una chiave prima assente torna assente."""
        store = self._store()
        with pytest.raises(RuntimeError):
            async with store.optimistic("c", {"id": "c", "v": 3}):
                raise RuntimeError("commit fallito")
        assert "c" not in store
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_rimozione_ripristinata(self):
        """Test una rimozione fallita rimette l'elemento al suo posto."""
        store = self._store()
        with pytest.raises(RuntimeError):
            async with store.optimistic_remove("a"):
                assert "a" not in store
                raise RuntimeError("commit fallito")
        assert [item["id"] for item in store.values()] == ["a", "b"]
