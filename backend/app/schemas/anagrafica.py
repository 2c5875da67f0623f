"""
Schemas Pydantic per le Anagrafiche (Fornitori e Clienti)
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)
"""

import datetime
import logging
import re
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.schemas.articolo import TipoFornitore

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------
# Funzioni di normalizzazione e validazione
# -------------------------------------------------------------------

def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalizza il numero di telefono.

    Rimuove gli spazi e accetta solo un "+" iniziale seguito da cifre.

    Raises:
        ValueError: Se il formato non è valido
    """
    if phone is None:
        return None
    normalized = phone.strip().replace(" ", "")
    if not normalized:
        return None
    if not re.match(r"^\+?\d+$", normalized):
        raise ValueError("Numero di telefono non valido")
    return normalized


def normalize_province(province: Optional[str]) -> Optional[str]:
    """Sigla provincia in maiuscolo (2 lettere)."""
    if province is None:
        return None
    normalized = province.strip().upper()
    if not normalized:
        return None
    if not re.match(r"^[A-Z]{2}$", normalized):
        raise ValueError("La provincia deve essere composta da 2 lettere")
    return normalized


def _check_partita_iva(piva: str) -> bool:
    """
    Valida la Partita IVA italiana con la cifra di controllo.

    L'algoritmo usa modulo 10 con pesi alternati.
    """
    if len(piva) != 11 or not piva.isdigit():
        return False

    s = 0
    for i in range(0, 10, 2):
        s += int(piva[i])
    for i in range(1, 10, 2):
        c = 2 * int(piva[i])
        if c > 9:
            c -= 9
        s += c

    check = (10 - (s % 10)) % 10
    return check == int(piva[10])


def normalize_partita_iva(piva: Optional[str]) -> Optional[str]:
    if piva is None:
        return None
    normalized = piva.strip().upper().removeprefix("IT").replace(" ", "")
    if not normalized:
        return None
    if not _check_partita_iva(normalized):
        raise ValueError("Partita IVA non valida")
    return normalized


# ------------------------------------------------------------
# Schemas comuni
# ------------------------------------------------------------

class AnagraficaBase(BaseModel):
    """Campi comuni a clienti e fornitori."""
    nome: str = Field(..., min_length=1, max_length=255, description="Ragione sociale")
    indirizzo: Optional[str] = Field(None, max_length=255)
    citta: Optional[str] = Field(None, max_length=100)
    cap: Optional[str] = Field(None, max_length=10)
    provincia: Optional[str] = Field(None, max_length=2)
    partita_iva: Optional[str] = Field(None, max_length=16)
    codice_fiscale: Optional[str] = Field(None, max_length=16)
    telefono: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    pec: Optional[EmailStr] = None
    sdi: Optional[str] = Field(None, max_length=7)
    note: Optional[str] = None
    condizione_pagamento: Optional[str] = Field(None, max_length=100)
    considera_iva: bool = Field(default=True, description="Includi IVA nei documenti")

    @field_validator("telefono")
    @classmethod
    def validate_telefono(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)

    @field_validator("provincia")
    @classmethod
    def validate_provincia(cls, v: Optional[str]) -> Optional[str]:
        return normalize_province(v)

    @field_validator("partita_iva")
    @classmethod
    def validate_partita_iva(cls, v: Optional[str]) -> Optional[str]:
        return normalize_partita_iva(v)

    @field_validator("codice_fiscale", "sdi", mode="before")
    @classmethod
    def upper_codes(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str):
            v = v.strip().upper() or None
        return v

    @field_validator("email", "pec", mode="before")
    @classmethod
    def empty_email_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class AnagraficaUpdate(BaseModel):
    """Aggiornamento parziale: tutti i campi opzionali."""
    nome: Optional[str] = Field(None, min_length=1, max_length=255)
    indirizzo: Optional[str] = Field(None, max_length=255)
    citta: Optional[str] = Field(None, max_length=100)
    cap: Optional[str] = Field(None, max_length=10)
    provincia: Optional[str] = Field(None, max_length=2)
    partita_iva: Optional[str] = Field(None, max_length=16)
    codice_fiscale: Optional[str] = Field(None, max_length=16)
    telefono: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    pec: Optional[EmailStr] = None
    sdi: Optional[str] = Field(None, max_length=7)
    note: Optional[str] = None
    condizione_pagamento: Optional[str] = Field(None, max_length=100)
    considera_iva: Optional[bool] = None

    @field_validator("telefono")
    @classmethod
    def validate_telefono(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)

    @field_validator("provincia")
    @classmethod
    def validate_provincia(cls, v: Optional[str]) -> Optional[str]:
        return normalize_province(v)

    @field_validator("partita_iva")
    @classmethod
    def validate_partita_iva(cls, v: Optional[str]) -> Optional[str]:
        return normalize_partita_iva(v)


# ------------------------------------------------------------
# Schemas di lettura
# ------------------------------------------------------------

class AnagraficaRead(BaseModel):
    """I dati salvati vengono restituiti senza rivalidazione."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    codice_anagrafica: str
    nome: str
    indirizzo: Optional[str] = None
    citta: Optional[str] = None
    cap: Optional[str] = None
    provincia: Optional[str] = None
    partita_iva: Optional[str] = None
    codice_fiscale: Optional[str] = None
    telefono: Optional[str] = None
    email: Optional[str] = None
    pec: Optional[str] = None
    sdi: Optional[str] = None
    note: Optional[str] = None
    condizione_pagamento: Optional[str] = None
    considera_iva: bool = True
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None


# ------------------------------------------------------------
# Schemas Fornitore
# ------------------------------------------------------------

class FornitoreCreate(AnagraficaBase):
    tipo_fornitore: TipoFornitore = Field(default=TipoFornitore.ALTRO, description="Categoria merceologica")
    banca: Optional[str] = Field(None, max_length=255)


class FornitoreUpdate(AnagraficaUpdate):
    tipo_fornitore: Optional[TipoFornitore] = None
    banca: Optional[str] = Field(None, max_length=255)


class FornitoreRead(AnagraficaRead):
    tipo_fornitore: TipoFornitore
    banca: Optional[str] = None


# ------------------------------------------------------------
# Schemas Cliente
# ------------------------------------------------------------

class ClienteCreate(AnagraficaBase):
    pass


class ClienteUpdate(AnagraficaUpdate):
    pass


class ClienteRead(AnagraficaRead):
    pass
