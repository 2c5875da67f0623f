"""
Viste in lettura (read model) degli aggregati
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

- PurchaseOrderReadModel: lista ordini d'acquisto ordinata per la UI
- CardboardInventoryReadModel: fotografia di ordini/giacenza/esauriti/storico

Entrambe si appoggiano a OptimisticStore per gli aggiornamenti
"applica in locale, conferma sul database, ripristina in caso di errore".
"""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.optimistic import OptimisticStore
from app.models import CartoneEsaurito, CartoneGiacenza, CartoneOrdine, StoricoMovimento
from app.schemas.cartone import CartoneGiacenzaRead, CartoneOrdineRead, MagazzinoCartoniRead
from app.schemas.ordine_acquisto import OrdineAcquistoRead
from app.schemas.storico import StoricoMovimentoRead

logger = logging.getLogger(__name__)


class PurchaseOrderReadModel:
    """Ordini d'acquisto indicizzati per numero ordine."""

    def __init__(self) -> None:
        self.store: OptimisticStore[str, OrdineAcquistoRead] = OptimisticStore(
            key=lambda ordine: ordine.numero_ordine
        )

    def replace_all(self, ordini: List[OrdineAcquistoRead]) -> None:
        self.store.replace_all(ordini)

    def all(self) -> List[OrdineAcquistoRead]:
        return self.store.values()


class CardboardInventoryReadModel:
    """
    Fotografia del magazzino cartoni.

    Ogni tabella ha il proprio store indicizzato per codice, così le
    azioni di magazzino possono applicare spostamenti ottimistici.
    """

    def __init__(self) -> None:
        self.ordini: OptimisticStore[str, CartoneOrdineRead] = OptimisticStore(key=lambda c: c.codice)
        self.giacenza: OptimisticStore[str, CartoneGiacenzaRead] = OptimisticStore(key=lambda c: c.codice)
        self.esauriti: OptimisticStore[str, CartoneGiacenzaRead] = OptimisticStore(key=lambda c: c.codice)
        self.storico: List[StoricoMovimentoRead] = []

    async def refresh(self, db: AsyncSession) -> MagazzinoCartoniRead:
        """Ricarica tutte le tabelle dal database (storico dal più recente)."""
        ordini = (await db.execute(select(CartoneOrdine).order_by(CartoneOrdine.codice))).scalars().all()
        giacenza = (await db.execute(select(CartoneGiacenza).order_by(CartoneGiacenza.codice))).scalars().all()
        esauriti = (await db.execute(select(CartoneEsaurito).order_by(CartoneEsaurito.codice))).scalars().all()
        storico = (
            await db.execute(select(StoricoMovimento).order_by(StoricoMovimento.data.desc()))
        ).scalars().all()

        self.ordini.replace_all(CartoneOrdineRead.model_validate(c) for c in ordini)
        self.giacenza.replace_all(CartoneGiacenzaRead.model_validate(c) for c in giacenza)
        self.esauriti.replace_all(CartoneGiacenzaRead.model_validate(c) for c in esauriti)
        self.storico = [StoricoMovimentoRead.model_validate(m) for m in storico]

        logger.debug(
            "Magazzino cartoni ricaricato: %d in arrivo, %d in giacenza, %d esauriti",
            len(self.ordini), len(self.giacenza), len(self.esauriti),
        )
        return self.snapshot()

    def snapshot(self) -> MagazzinoCartoniRead:
        return MagazzinoCartoniRead(
            ordini=self.ordini.values(),
            giacenza=self.giacenza.values(),
            esauriti=self.esauriti.values(),
            storico=list(self.storico),
        )

    def locate(self, codice: str) -> str:
        """Nome della tabella che contiene il codice ('' se assente)."""
        for nome, store in (("ordini", self.ordini), ("giacenza", self.giacenza), ("esauriti", self.esauriti)):
            if codice in store:
                return nome
        return ""


# Istanze singleton condivise dai service
purchase_order_read_model = PurchaseOrderReadModel()
cardboard_inventory_read_model = CardboardInventoryReadModel()
