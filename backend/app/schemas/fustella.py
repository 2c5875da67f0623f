"""
Schemas Pydantic per il Magazzino Fustelle
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)
"""

import datetime
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

CODICE_FUSTELLA_PATTERN = re.compile(r"^FST-\d{3,}$")


class FustellaBase(BaseModel):
    """Campi modificabili di una fustella."""
    fornitore: Optional[str] = Field(None, max_length=255)
    codice_fornitore: Optional[str] = Field(None, max_length=100, description="Codice fustella del fornitore")
    cliente: Optional[str] = Field(None, max_length=255)
    lavoro: Optional[str] = Field(None, max_length=255)
    fustellatrice: Optional[str] = Field(None, max_length=100)
    resa: Optional[str] = Field(None, max_length=50)
    pulitore_codice: Optional[str] = Field(None, max_length=20, description="Codice pulitore PU-###")
    pinza_tagliata: bool = False
    tasselli_intercambiabili: bool = False
    nr_tasselli: Optional[int] = Field(None, ge=0)
    incollatura: bool = False
    incollatrice: Optional[str] = Field(None, max_length=100)
    tipo_incollatura: Optional[str] = Field(None, max_length=100)
    note: Optional[str] = None
    disponibile: bool = True


class FustellaCreate(FustellaBase):
    """
    Schema per l'inserimento manuale di una fustella.

    Se il codice non è indicato viene assegnato il primo FST libero.
    """
    codice: Optional[str] = Field(None, max_length=20)

    @field_validator("codice", mode="before")
    @classmethod
    def normalize_codice(cls, v: Optional[str]) -> Optional[str]:
        if v:
            v = v.strip().upper()
            if not CODICE_FUSTELLA_PATTERN.match(v):
                raise ValueError("Il codice fustella deve avere formato FST-###")
        return v or None


class FustellaUpdate(BaseModel):
    """Aggiornamento parziale: tutti i campi opzionali."""
    fornitore: Optional[str] = Field(None, max_length=255)
    codice_fornitore: Optional[str] = Field(None, max_length=100)
    cliente: Optional[str] = Field(None, max_length=255)
    lavoro: Optional[str] = Field(None, max_length=255)
    fustellatrice: Optional[str] = Field(None, max_length=100)
    resa: Optional[str] = Field(None, max_length=50)
    pulitore_codice: Optional[str] = Field(None, max_length=20)
    pinza_tagliata: Optional[bool] = None
    tasselli_intercambiabili: Optional[bool] = None
    nr_tasselli: Optional[int] = Field(None, ge=0)
    incollatura: Optional[bool] = None
    incollatrice: Optional[str] = Field(None, max_length=100)
    tipo_incollatura: Optional[str] = Field(None, max_length=100)
    note: Optional[str] = None


class FustellaDisponibilitaUpdate(BaseModel):
    disponibile: bool


class FustellaRead(FustellaBase):
    model_config = ConfigDict(from_attributes=True)

    codice: str
    pulitore_incorporato: bool = False
    data_creazione: Optional[datetime.datetime] = None
    ultima_modifica: Optional[datetime.datetime] = None
    ordine_acquisto_numero: Optional[str] = None
