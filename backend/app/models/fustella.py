"""
Modello SQLAlchemy per il Magazzino Fustelle
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)
"""

import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.models import Base


class Fustella(Base):
    """
    Modello per le fustelle (utensili di taglio).

    Attributes:
        codice: Codice interno FST-### (chiave primaria)
        codice_fornitore: Codice assegnato dal fornitore, usato per
            collegare un pulitore ordinato separatamente
        disponibile: True solo quando la riga d'ordine è ricevuta
        pulitore_codice: Codice PU-### del pulitore associato
        pulitore_incorporato: True se il pulitore viene dalla riga della
            fustella stessa, False se collegato da una riga separata
        ordine_acquisto_numero: Numero dell'ordine d'acquisto di provenienza
    """

    __tablename__ = "fustelle"

    # ------------------------------------------------------------
    # Colonne
    # ------------------------------------------------------------
    codice: Mapped[str] = mapped_column(
        String(20),
        primary_key=True,
        doc="Codice fustella (FST-###)",
    )

    data_creazione: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    ultima_modifica: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    disponibile: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        index=True,
    )

    fornitore: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    codice_fornitore: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        doc="Codice fustella del fornitore",
    )

    cliente: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    lavoro: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    fustellatrice: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    resa: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    pulitore_codice: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        doc="Codice pulitore associato (PU-###)",
    )

    pulitore_incorporato: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Pulitore ordinato insieme alla fustella",
    )

    pinza_tagliata: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tasselli_intercambiabili: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    nr_tasselli: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    incollatura: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    incollatrice: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    tipo_incollatura: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    ordine_acquisto_numero: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        index=True,
        doc="Numero ordine d'acquisto di provenienza",
    )

    def __repr__(self) -> str:
        return f"Fustella(codice={self.codice!r}, disponibile={self.disponibile}, pulitore={self.pulitore_codice!r})"
