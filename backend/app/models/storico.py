"""
Modello SQLAlchemy per lo Storico Movimenti
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Registro append-only dei movimenti di magazzino cartoni.
"""

import datetime
import uuid
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.models import Base
from app.models.mixins import UUIDMixin


class StoricoMovimento(Base, UUIDMixin):
    """
    Movimento di magazzino.

    Attributes:
        codice: Codice del cartone movimentato
        tipo: carico, scarico, modifica
        quantita: Numero di fogli movimentati
        data: Data/ora del movimento
        note: Descrizione leggibile del movimento
        user_id: Utente che ha eseguito il movimento (opzionale)
        numero_ordine_acquisto: Ordine collegato, se presente
    """

    __tablename__ = "storico"

    codice: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
    )

    tipo: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    quantita: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    data: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    numero_ordine_acquisto: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "tipo IN ('carico', 'scarico', 'modifica')",
            name="ck_storico_tipo",
        ),
    )

    def __repr__(self) -> str:
        return f"StoricoMovimento(codice={self.codice!r}, tipo={self.tipo!r}, quantita={self.quantita})"
