"""
Schemas Pydantic per lo Storico Movimenti
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)
"""

import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class TipoMovimento(str, Enum):
    """Tipi di movimento di magazzino."""
    CARICO = "carico"
    SCARICO = "scarico"
    MODIFICA = "modifica"


class StoricoMovimentoRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    codice: str
    tipo: TipoMovimento
    quantita: int
    data: datetime.datetime
    note: Optional[str] = None
    user_id: Optional[uuid.UUID] = None
    numero_ordine_acquisto: Optional[str] = None
