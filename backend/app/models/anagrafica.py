"""
Modelli SQLAlchemy per le Anagrafiche
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Contiene:
- Fornitore: Anagrafica fornitori, con categoria merceologica
- Cliente: Anagrafica clienti finali
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, CheckConstraint, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.ordine_acquisto import OrdineAcquisto


TIPI_FORNITORE = ("Cartone", "Inchiostro", "Colla", "Fustelle", "Altro")


class AnagraficaMixin:
    """Colonne comuni a clienti e fornitori."""

    codice_anagrafica: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        index=True,
        doc="Codice progressivo leggibile (CLI-### / FOR-###)",
    )

    nome: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        doc="Ragione sociale o nominativo",
    )

    indirizzo: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    citta: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    cap: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    provincia: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    partita_iva: Mapped[Optional[str]] = mapped_column(String(11), nullable=True, index=True)
    codice_fiscale: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    telefono: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    pec: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sdi: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    condizione_pagamento: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    considera_iva: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        doc="Se True i documenti generati includono l'IVA",
    )


class Fornitore(Base, UUIDMixin, TimestampMixin, AnagraficaMixin):
    """
    Modello per l'anagrafica fornitori.

    La categoria `tipo_fornitore` determina quale tipo di articolo è
    ammesso negli ordini d'acquisto verso il fornitore:
    - Cartone → articoli cartone
    - Fustelle → articoli fustella e pulitore
    - Inchiostro / Colla / Altro → articoli generici
    """

    __tablename__ = "fornitori"

    tipo_fornitore: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="Altro",
        index=True,
        doc="Categoria: Cartone, Inchiostro, Colla, Fustelle, Altro",
    )

    banca: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    ordini_acquisto: Mapped[List["OrdineAcquisto"]] = relationship(
        "OrdineAcquisto",
        back_populates="fornitore",
        lazy="noload",
    )

    __table_args__ = (
        CheckConstraint(
            "tipo_fornitore IN ('Cartone', 'Inchiostro', 'Colla', 'Fustelle', 'Altro')",
            name="ck_fornitori_tipo",
        ),
    )

    def __repr__(self) -> str:
        return f"Fornitore(codice={self.codice_anagrafica!r}, nome={self.nome!r}, tipo={self.tipo_fornitore!r})"


class Cliente(Base, UUIDMixin, TimestampMixin, AnagraficaMixin):
    """Modello per l'anagrafica clienti."""

    __tablename__ = "clienti"

    def __repr__(self) -> str:
        return f"Cliente(codice={self.codice_anagrafica!r}, nome={self.nome!r})"
