"""
Modelli Database SQLAlchemy
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Import centralizzato di tutti i modelli per Alembic e usage generico.

Tabelle:
- fornitori / clienti: Anagrafiche
- ordini_acquisto: Ordini d'acquisto con articoli in colonna JSON
- ordini / giacenza / esauriti: Magazzino cartoni (in arrivo, disponibile, esaurito)
- fustelle: Magazzino fustelle (con eventuale pulitore associato)
- storico: Movimenti di magazzino (append-only)
"""

# SQLAlchemy 2.0 Base declarativa
# Importato qui per essere disponibile per tutti i modelli
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""

    # Recupera subito i default lato server (created_at, ...) dopo INSERT/UPDATE:
    # con AsyncSession un attributo scaduto non può essere caricato in modo lazy
    __mapper_args__ = {"eager_defaults": True}


# Import modelli implementati
from app.models.anagrafica import Cliente, Fornitore
from app.models.ordine_acquisto import OrdineAcquisto
from app.models.cartone import CartoneEsaurito, CartoneGiacenza, CartoneOrdine
from app.models.fustella import Fustella
from app.models.storico import StoricoMovimento

# Esportazione di tutti i modelli per Alembic
__all__ = [
    "Base",
    "Cliente",
    "Fornitore",
    "OrdineAcquisto",
    "CartoneOrdine",
    "CartoneGiacenza",
    "CartoneEsaurito",
    "Fustella",
    "StoricoMovimento",
]
