"""
Modelli SQLAlchemy per il Magazzino Cartoni
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Un cartone vive in esattamente una delle tre tabelle:
- ordini: in arrivo (ordinato al fornitore, eventualmente confermato)
- giacenza: disponibile a magazzino
- esauriti: fogli terminati

Lo spostamento fra tabelle avviene per cancellazione + inserimento.
"""

import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.models import Base


class CartoneMixin:
    """
    Colonne comuni alle tre tabelle del ciclo di vita del cartone.

    `codice` (CTN-###) è chiave primaria in ciascuna tabella; l'unicità
    fra le tre tabelle è garantita dalla riconciliazione.
    """

    codice: Mapped[str] = mapped_column(
        String(20),
        primary_key=True,
        doc="Codice cartone (CTN-###)",
    )

    fornitore: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        doc="Nome del fornitore",
    )

    ordine: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        index=True,
        doc="Numero dell'ordine d'acquisto di provenienza",
    )

    tipologia: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    formato: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    grammatura: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    fogli: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Numero di fogli",
    )

    cliente: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    lavoro: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    prezzo: Mapped[Decimal] = mapped_column(
        Numeric(12, 4),
        nullable=False,
        default=Decimal("0"),
        doc="Prezzo unitario (per foglio)",
    )

    data_consegna: Mapped[Optional[datetime.date]] = mapped_column(Date, nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    fsc: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    alimentare: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rif_commessa_fsc: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        doc="Riferimento commessa FSC (<seq>/<YY>)",
    )

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class MagazzinoMixin:
    """Dati di arrivo a magazzino (giacenza ed esauriti)."""

    ddt: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        doc="Numero documento di trasporto",
    )

    data_arrivo: Mapped[Optional[datetime.date]] = mapped_column(Date, nullable=True)

    magazzino: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        doc="Ubicazione a magazzino",
    )


class CartoneOrdine(Base, CartoneMixin):
    """Cartone in arrivo (tabella `ordini`)."""

    __tablename__ = "ordini"

    confermato: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="True se il fornitore ha confermato la riga",
    )

    def __repr__(self) -> str:
        return f"CartoneOrdine(codice={self.codice!r}, ordine={self.ordine!r}, confermato={self.confermato})"


class CartoneGiacenza(Base, CartoneMixin, MagazzinoMixin):
    """Cartone disponibile a magazzino (tabella `giacenza`)."""

    __tablename__ = "giacenza"

    def __repr__(self) -> str:
        return f"CartoneGiacenza(codice={self.codice!r}, fogli={self.fogli})"


class CartoneEsaurito(Base, CartoneMixin, MagazzinoMixin):
    """Cartone esaurito (tabella `esauriti`)."""

    __tablename__ = "esauriti"

    def __repr__(self) -> str:
        return f"CartoneEsaurito(codice={self.codice!r})"
