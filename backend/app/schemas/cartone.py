"""
Schemas Pydantic per il Magazzino Cartoni
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Contiene gli schemi di lettura delle tabelle ordini/giacenza/esauriti
e i payload delle azioni di magazzino (carico, scarico, ripristini).
"""

import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.storico import StoricoMovimentoRead


# ------------------------------------------------------------
# Schemas di lettura
# ------------------------------------------------------------

class CartoneRead(BaseModel):
    """Campi comuni alle tre tabelle del magazzino cartoni."""
    model_config = ConfigDict(from_attributes=True)

    codice: str
    fornitore: Optional[str] = None
    ordine: Optional[str] = None
    tipologia: Optional[str] = None
    formato: Optional[str] = None
    grammatura: Optional[str] = None
    fogli: int = 0
    cliente: Optional[str] = None
    lavoro: Optional[str] = None
    prezzo: Decimal = Decimal("0")
    data_consegna: Optional[datetime.date] = None
    note: Optional[str] = None
    fsc: bool = False
    alimentare: bool = False
    rif_commessa_fsc: Optional[str] = None
    created_at: Optional[datetime.datetime] = None


class CartoneOrdineRead(CartoneRead):
    """Cartone in arrivo."""
    confermato: bool = False


class CartoneGiacenzaRead(CartoneRead):
    """Cartone a magazzino (o esaurito)."""
    ddt: Optional[str] = None
    data_arrivo: Optional[datetime.date] = None
    magazzino: Optional[str] = None


class MagazzinoCartoniRead(BaseModel):
    """Fotografia completa del magazzino cartoni."""
    ordini: List[CartoneOrdineRead] = Field(default_factory=list)
    giacenza: List[CartoneGiacenzaRead] = Field(default_factory=list)
    esauriti: List[CartoneGiacenzaRead] = Field(default_factory=list)
    storico: List[StoricoMovimentoRead] = Field(default_factory=list)


# ------------------------------------------------------------
# Payload delle azioni
# ------------------------------------------------------------

class SpostaInGiacenzaRequest(BaseModel):
    """Carico a magazzino di un cartone in arrivo."""
    ddt: str = Field(..., min_length=1, max_length=50, description="Numero DDT")
    data_arrivo: datetime.date = Field(default_factory=datetime.date.today, description="Data di arrivo")
    magazzino: Optional[str] = Field(None, max_length=50, description="Ubicazione a magazzino")
    fogli_effettivi: Optional[int] = Field(
        None, ge=0, description="Fogli effettivamente arrivati (default: fogli ordinati)"
    )


class ScaricoFogliRequest(BaseModel):
    """Scarico di fogli dalla giacenza."""
    quantita: int = Field(..., gt=0, description="Fogli da scaricare")
    note: Optional[str] = Field(None, description="Causale dello scarico")


class RiportaInGiacenzaRequest(BaseModel):
    """Ripristino in giacenza di un cartone esaurito."""
    fogli: Optional[int] = Field(None, ge=0, description="Fogli da ripristinare (minimo 1)")


class ConfermaOrdineRequest(BaseModel):
    """Conferma/annulla conferma di un cartone in arrivo."""
    confermato: bool


class CartoneOrdineUpdate(BaseModel):
    """Modifica diretta di una riga della tabella ordini."""
    tipologia: Optional[str] = Field(None, max_length=100)
    formato: Optional[str] = Field(None, max_length=50)
    grammatura: Optional[str] = Field(None, max_length=30)
    fogli: Optional[int] = Field(None, ge=0)
    cliente: Optional[str] = Field(None, max_length=255)
    lavoro: Optional[str] = Field(None, max_length=255)
    prezzo: Optional[Decimal] = Field(None, ge=0)
    data_consegna: Optional[datetime.date] = None
    note: Optional[str] = None
