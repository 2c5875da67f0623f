"""
Pytest configuration and fixtures.

I test usano un database SQLite in memoria (driver aiosqlite) con
SAVEPOINT abilitati, una sessione nuova per ogni test e un registro
degli eventi pubblicati sul bus.
"""

import os

# Prima di importare app.*: l'engine di modulo viene creato all'import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENV", "testing")

import datetime
from typing import Any, AsyncGenerator, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import get_db
from app.core.events import Event, EventType, event_bus
from app.models import Base, Fornitore, OrdineAcquisto
from app.services.read_models import cardboard_inventory_read_model, purchase_order_read_model


# ============================================================
# Database
# ============================================================


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Database SQLite in memoria condiviso da tutte le sessioni del test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # SAVEPOINT con pysqlite/aiosqlite: transazioni gestite da SQLAlchemy
    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db():
    """Crea un mock di AsyncSession."""
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.delete = AsyncMock()
    return db


# ============================================================
# Stato condiviso
# ============================================================


@pytest.fixture(autouse=True)
def reset_read_models():
    """Le viste in lettura sono singleton: svuotarle fra un test e l'altro."""
    purchase_order_read_model.replace_all([])
    cardboard_inventory_read_model.ordini.replace_all([])
    cardboard_inventory_read_model.giacenza.replace_all([])
    cardboard_inventory_read_model.esauriti.replace_all([])
    cardboard_inventory_read_model.storico = []
    yield


class EventBusSpy:
    """Registra gli eventi pubblicati sul bus condiviso."""

    def __init__(self) -> None:
        self.events: List[Event] = []

    async def __call__(self, event: Event) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> List[Event]:
        return [e for e in self.events if e.event_type == event_type.value]

    def notifications(self, level: str) -> List[str]:
        return [e.data["message"] for e in self.of_type(EventType.NOTIFICATION) if e.data["level"] == level]


@pytest_asyncio.fixture
async def event_spy() -> AsyncGenerator[EventBusSpy, None]:
    spy = EventBusSpy()
    for event_type in EventType:
        await event_bus.subscribe(event_type, spy)
    yield spy
    for event_type in EventType:
        await event_bus.unsubscribe(event_type, spy)


# ============================================================
# Dati di base
# ============================================================


async def _crea_fornitore(db: AsyncSession, codice: str, nome: str, tipo: str, **kwargs: Any) -> Fornitore:
    fornitore = Fornitore(codice_anagrafica=codice, nome=nome, tipo_fornitore=tipo, **kwargs)
    db.add(fornitore)
    await db.commit()
    return fornitore


@pytest_asyncio.fixture
async def fornitore_cartone(db) -> Fornitore:
    return await _crea_fornitore(db, "FOR-001", "Cartiera Rossi Srl", "Cartone")


@pytest_asyncio.fixture
async def fornitore_fustelle(db) -> Fornitore:
    return await _crea_fornitore(db, "FOR-002", "Fustellificio Bianchi", "Fustelle")


@pytest_asyncio.fixture
async def fornitore_inchiostro(db) -> Fornitore:
    return await _crea_fornitore(db, "FOR-003", "Inchiostri Verdi Spa", "Inchiostro", considera_iva=False)


def articolo_cartone(codice: str, stato: str = "in_attesa", **kwargs: Any) -> Dict[str, Any]:
    """Riga cartone in formato JSON come salvata nella colonna articoli."""
    riga = {
        "item_type": "cartone",
        "codice_ctn": codice,
        "tipologia_cartone": "Teso",
        "formato": "70x100",
        "grammatura": "300 g/m²",
        "numero_fogli": 1000,
        "quantita": "210",
        "prezzo_unitario": "1.50",
        "stato": stato,
        "cliente": "Pasticceria Dolce",
        "lavoro": "Scatola torta",
    }
    riga.update(kwargs)
    return riga


async def crea_ordine(
    db: AsyncSession,
    fornitore: Fornitore,
    articoli: List[Dict[str, Any]],
    numero: str = "1/25",
    stato: str = "in_attesa",
    **kwargs: Any,
) -> OrdineAcquisto:
    """Inserisce un ordine direttamente, senza passare dal service."""
    ordine = OrdineAcquisto(
        numero_ordine=numero,
        fornitore_id=fornitore.id,
        data_ordine=kwargs.pop("data_ordine", datetime.date(2025, 3, 1)),
        stato=stato,
        importo_totale=kwargs.pop("importo_totale", 0),
        articoli=articoli,
        **kwargs,
    )
    ordine.fornitore = fornitore
    db.add(ordine)
    await db.commit()
    return ordine


# ============================================================
# HTTP
# ============================================================


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Client HTTP sull'app FastAPI con get_db sul database di test."""
    from app.main import app

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()
