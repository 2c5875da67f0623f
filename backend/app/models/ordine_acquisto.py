"""
Modello SQLAlchemy per gli Ordini d'Acquisto
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

L'ordine d'acquisto è l'unica fonte scrivibile dello stato degli articoli:
le tabelle di magazzino (ordini, giacenza, esauriti, fustelle) sono una
proiezione derivata, ricalcolata dalla riconciliazione.
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import JSON, CheckConstraint, Date, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.anagrafica import Fornitore


class OrdineAcquisto(Base, UUIDMixin, TimestampMixin):
    """
    Modello per gli ordini d'acquisto verso i fornitori.

    Attributes:
        id: UUID primary key
        numero_ordine: Numero progressivo annuale "<n>/<YY>", immutabile
        fornitore_id: UUID del fornitore
        data_ordine: Data dell'ordine
        stato: in_attesa, inviato, confermato, ricevuto, annullato
        importo_totale: Somma delle righe non annullate (derivato)
        note: Note libere
        articoli: Righe dell'ordine (JSON, una per articolo)

    Relationships:
        fornitore: Fornitore dell'ordine (caricato sempre, serve nome e categoria)
    """

    __tablename__ = "ordini_acquisto"

    # ------------------------------------------------------------
    # Colonne
    # ------------------------------------------------------------
    numero_ordine: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        index=True,
        doc="Numero ordine progressivo per anno (es. 12/25)",
    )

    fornitore_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("fornitori.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="UUID del fornitore",
    )

    data_ordine: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        doc="Data dell'ordine",
    )

    stato: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="in_attesa",
        index=True,
        doc="Stato dell'ordine",
    )

    importo_totale: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Totale delle righe non annullate",
    )

    note: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Note dell'ordine",
    )

    articoli: Mapped[Any] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Righe dell'ordine serializzate (lista di oggetti)",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    fornitore: Mapped["Fornitore"] = relationship(
        "Fornitore",
        back_populates="ordini_acquisto",
        lazy="joined",
        doc="Fornitore dell'ordine",
    )

    # ------------------------------------------------------------
    # Indici e Vincoli
    # ------------------------------------------------------------
    __table_args__ = (
        CheckConstraint(
            "stato IN ('in_attesa', 'inviato', 'confermato', 'ricevuto', 'annullato')",
            name="ck_ordini_acquisto_stato",
        ),
        Index("ix_ordini_acquisto_fornitore_data", "fornitore_id", "data_ordine"),
    )

    # ------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------
    @property
    def fornitore_nome(self) -> str:
        return self.fornitore.nome if self.fornitore else "N/A"

    @property
    def fornitore_tipo(self) -> str:
        return self.fornitore.tipo_fornitore if self.fornitore else "N/A"

    def __repr__(self) -> str:
        return f"OrdineAcquisto(numero_ordine={self.numero_ordine!r}, stato={self.stato!r})"
