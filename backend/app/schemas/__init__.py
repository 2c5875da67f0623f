"""
Schemas Pydantic per il Gestionale Cartotecnica

Questo modulo contiene tutti gli schemi Pydantic utilizzati per la validazione
e serializzazione delle risposte API.
"""

# Import degli schemi per renderli disponibili tramite import diretto
# es: from app.schemas import OrdineAcquistoRead, FustellaRead, etc.

from app.schemas.common import MessageResponse, OperationResult
from app.schemas.articolo import (
    ArticleStatus,
    ArticoloCartone,
    ArticoloFustella,
    ArticoloGenerico,
    ArticoloOrdine,
    ArticoloPulitore,
    ItemType,
    TipoFornitore,
)
from app.schemas.ordine_acquisto import (
    ArticleStatusUpdate,
    OrdineAcquistoCreate,
    OrdineAcquistoList,
    OrdineAcquistoRead,
    OrdineAcquistoStatusUpdate,
    OrdineAcquistoUpdate,
)
from app.schemas.cartone import (
    CartoneGiacenzaRead,
    CartoneOrdineRead,
    CartoneOrdineUpdate,
    ConfermaOrdineRequest,
    MagazzinoCartoniRead,
    RiportaInGiacenzaRequest,
    ScaricoFogliRequest,
    SpostaInGiacenzaRequest,
)
from app.schemas.storico import StoricoMovimentoRead, TipoMovimento
from app.schemas.fustella import FustellaCreate, FustellaDisponibilitaUpdate, FustellaRead, FustellaUpdate
from app.schemas.anagrafica import (
    ClienteCreate,
    ClienteRead,
    ClienteUpdate,
    FornitoreCreate,
    FornitoreRead,
    FornitoreUpdate,
)

__all__ = [
    # Common
    "MessageResponse",
    "OperationResult",
    # Articoli
    "ArticleStatus",
    "ArticoloCartone",
    "ArticoloFustella",
    "ArticoloGenerico",
    "ArticoloOrdine",
    "ArticoloPulitore",
    "ItemType",
    "TipoFornitore",
    # Ordini d'acquisto
    "ArticleStatusUpdate",
    "OrdineAcquistoCreate",
    "OrdineAcquistoList",
    "OrdineAcquistoRead",
    "OrdineAcquistoStatusUpdate",
    "OrdineAcquistoUpdate",
    # Cartoni
    "CartoneGiacenzaRead",
    "CartoneOrdineRead",
    "CartoneOrdineUpdate",
    "ConfermaOrdineRequest",
    "MagazzinoCartoniRead",
    "RiportaInGiacenzaRequest",
    "ScaricoFogliRequest",
    "SpostaInGiacenzaRequest",
    # Storico
    "StoricoMovimentoRead",
    "TipoMovimento",
    # Fustelle
    "FustellaCreate",
    "FustellaDisponibilitaUpdate",
    "FustellaRead",
    "FustellaUpdate",
    # Anagrafiche
    "ClienteCreate",
    "ClienteRead",
    "ClienteUpdate",
    "FornitoreCreate",
    "FornitoreRead",
    "FornitoreUpdate",
]
