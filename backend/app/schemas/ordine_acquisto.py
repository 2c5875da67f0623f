"""
Schemas Pydantic per gli Ordini d'Acquisto
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)
"""

import datetime
import re
import uuid
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.articolo import ArticleStatus, ArticoloOrdine, infer_item_type

NUMERO_ORDINE_PATTERN = re.compile(r"^\d+/\d{2}$")


def _normalize_raw_articoli(value: Any) -> Any:
    """Scarta le righe nulle e deduce la variante delle righe legacy."""
    if not isinstance(value, list):
        return value
    normalized = []
    for raw in value:
        if raw is None:
            continue
        if isinstance(raw, dict) and not raw.get("item_type"):
            raw = {**raw, "item_type": infer_item_type(raw)}
        normalized.append(raw)
    return normalized


# ------------------------------------------------------------
# Schemas Ordine d'Acquisto
# ------------------------------------------------------------

class OrdineAcquistoBase(BaseModel):
    """Campi comuni a creazione e lettura."""
    fornitore_id: uuid.UUID = Field(..., description="UUID del fornitore")
    data_ordine: datetime.date = Field(default_factory=datetime.date.today, description="Data dell'ordine")
    note: Optional[str] = Field(None, description="Note dell'ordine")


class OrdineAcquistoCreate(OrdineAcquistoBase):
    """
    Schema per la creazione di un ordine d'acquisto.

    Il numero ordine e i codici articolo mancanti vengono assegnati
    automaticamente; tutti gli articoli partono in stato in_attesa.
    """
    numero_ordine: Optional[str] = Field(None, max_length=20, description="Numero ordine (<n>/<YY>)")
    articoli: List[ArticoloOrdine] = Field(default_factory=list, description="Righe dell'ordine")

    @field_validator("numero_ordine")
    @classmethod
    def validate_numero_ordine(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            v = v.strip()
            if not NUMERO_ORDINE_PATTERN.match(v):
                raise ValueError("Il numero ordine deve avere formato <numero>/<anno a 2 cifre>")
        return v

    @field_validator("articoli", mode="before")
    @classmethod
    def normalize_articoli(cls, v: Any) -> Any:
        return _normalize_raw_articoli(v)


class OrdineAcquistoUpdate(BaseModel):
    """
    Schema per l'aggiornamento parziale di un ordine.

    Se `articoli` è presente sostituisce interamente le righe esistenti.
    Il numero ordine non è modificabile: se inviato deve coincidere.
    """
    numero_ordine: Optional[str] = None
    fornitore_id: Optional[uuid.UUID] = None
    data_ordine: Optional[datetime.date] = None
    note: Optional[str] = None
    articoli: Optional[List[ArticoloOrdine]] = None

    @field_validator("articoli", mode="before")
    @classmethod
    def normalize_articoli(cls, v: Any) -> Any:
        return _normalize_raw_articoli(v)


class OrdineAcquistoRead(OrdineAcquistoBase):
    """Schema di lettura con i dati del fornitore risolti."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    numero_ordine: str
    stato: ArticleStatus
    importo_totale: Decimal
    fornitore_nome: str = "N/A"
    fornitore_tipo: str = "N/A"
    articoli: List[ArticoloOrdine] = Field(default_factory=list)
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None

    @field_validator("articoli", mode="before")
    @classmethod
    def normalize_articoli(cls, v: Any) -> Any:
        if v is None:
            return []
        return _normalize_raw_articoli(v)


class OrdineAcquistoList(BaseModel):
    """Lista ordini d'acquisto."""
    items: List[OrdineAcquistoRead]
    total: int


class OrdineAcquistoStatusUpdate(BaseModel):
    """Cambio di stato dell'intero ordine."""
    stato: ArticleStatus = Field(..., description="Nuovo stato dell'ordine")


class ArticleStatusUpdate(BaseModel):
    """Cambio di stato di un singolo articolo."""
    identificativo: str = Field(
        ..., min_length=1,
        description="Codice CTN/FST/PU dell'articolo o descrizione per gli articoli generici",
    )
    stato: ArticleStatus = Field(..., description="Nuovo stato dell'articolo")
