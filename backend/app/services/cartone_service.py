"""
Servizi per il Magazzino Cartoni
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Azioni dirette sulle tabelle ordini / giacenza / esauriti:
- Carico a magazzino (ordini → giacenza)
- Scarico fogli (giacenza → esauriti quando i fogli finiscono)
- Ripristini (esauriti → giacenza, giacenza → ordini)
- Conferma/annulla conferma di un cartone in arrivo

Ogni azione scrive un movimento nello storico e, dove previsto,
riporta il nuovo stato sull'articolo dell'ordine d'acquisto.
"""

import datetime
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.events import EventType, event_bus, notifier
from app.core.exceptions import AppException, NotFoundError, PersistenceError
from app.models import CartoneEsaurito, CartoneGiacenza, CartoneOrdine, OrdineAcquisto, StoricoMovimento
from app.schemas.articolo import ArticleStatus
from app.schemas.cartone import (
    CartoneGiacenzaRead,
    CartoneOrdineRead,
    CartoneOrdineUpdate,
    MagazzinoCartoniRead,
    RiportaInGiacenzaRequest,
    ScaricoFogliRequest,
    SpostaInGiacenzaRequest,
)
from app.schemas.common import OperationResult
from app.schemas.storico import StoricoMovimentoRead, TipoMovimento
from app.services.ordine_acquisto_service import ordine_acquisto_service
from app.services.read_models import cardboard_inventory_read_model

logger = logging.getLogger(__name__)

# Colonne copiate quando un cartone passa da una tabella all'altra
CAMPI_CARTONE = (
    "codice", "fornitore", "ordine", "tipologia", "formato", "grammatura", "fogli",
    "cliente", "lavoro", "prezzo", "data_consegna", "note", "fsc", "alimentare",
    "rif_commessa_fsc",
)


def _campi_comuni(cartone: Any, **override: Any) -> Dict[str, Any]:
    dati = {campo: getattr(cartone, campo) for campo in CAMPI_CARTONE}
    dati.update(override)
    return dati


class CartoneService:
    """
    Service per le azioni sul magazzino cartoni.

    Le azioni confermano le proprie modifiche e poi aggiornano lo stato
    dell'articolo sull'ordine (che a sua volta riconcilia il magazzino).
    """

    def __init__(self) -> None:
        self.read_model = cardboard_inventory_read_model

    # ------------------------------------------------------------
    # Lettura
    # ------------------------------------------------------------

    async def load_data(self, db: AsyncSession) -> MagazzinoCartoniRead:
        """Ricarica ordini, giacenza, esauriti e storico."""
        return await self.read_model.refresh(db)

    async def get_storico(self, db: AsyncSession, codice: Optional[str] = None) -> List[StoricoMovimentoRead]:
        """Movimenti dal più recente, eventualmente filtrati per codice."""
        query = select(StoricoMovimento).order_by(StoricoMovimento.data.desc())
        if codice:
            query = query.where(StoricoMovimento.codice == codice)
        result = await db.execute(query)
        return [StoricoMovimentoRead.model_validate(m) for m in result.scalars().all()]

    async def _get(self, db: AsyncSession, model: Any, codice: str) -> Any:
        cartone = await db.get(model, codice)
        if cartone is None:
            logger.warning("Cartone %s non trovato in '%s'", codice, model.__tablename__)
            raise NotFoundError(f"Cartone {codice} non trovato in {model.__tablename__}")
        return cartone

    # ------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------

    def _append_storico(
        self,
        db: AsyncSession,
        cartone: Any,
        tipo: TipoMovimento,
        quantita: int,
        note: str,
    ) -> StoricoMovimento:
        movimento = StoricoMovimento(
            codice=cartone.codice,
            tipo=tipo.value,
            quantita=quantita,
            note=note,
            numero_ordine_acquisto=cartone.ordine,
        )
        db.add(movimento)
        return movimento

    async def _fail(self, db: AsyncSession, exc: AppException, azione: str) -> OperationResult:
        await db.rollback()
        await notifier.error(f"Errore {azione}: {exc.detail}")
        return OperationResult.fail(exc)

    async def _fail_db(self, db: AsyncSession, codice: str, azione: str) -> OperationResult:
        await db.rollback()
        logger.error("Errore database (%s) per il cartone %s", azione, codice, exc_info=True)
        exc = PersistenceError(f"Errore {azione} del cartone {codice}")
        await notifier.error(exc.detail)
        return OperationResult.fail(exc)

    async def _propaga(self, db: AsyncSession, numero_ordine: Optional[str], codice: str, stato: ArticleStatus) -> Dict[str, Any]:
        """Riporta il nuovo stato sull'articolo dell'ordine di provenienza."""
        if not numero_ordine:
            logger.info("Cartone %s senza ordine di provenienza: nessuna propagazione", codice)
            return {}
        esito = await ordine_acquisto_service.update_article_status_in_order(db, numero_ordine, codice, stato)
        if not esito.success:
            logger.warning(
                "Propagazione stato %s per %s nell'ordine %s non riuscita: %s",
                stato.value, codice, numero_ordine, esito.error,
            )
        return esito.model_dump(include={"success", "error", "error_code"})

    async def _concludi(self, db: AsyncSession, codice: str, messaggio: str, **data: Any) -> OperationResult:
        snapshot = await self.read_model.refresh(db)
        await event_bus.emit(EventType.CARTONI_CHANGED, codici=[codice], tabella=self.read_model.locate(codice))
        await notifier.success(messaggio)
        return OperationResult.ok(codice=codice, magazzino=snapshot, **data)

    # ------------------------------------------------------------
    # Azioni di magazzino
    # ------------------------------------------------------------

    async def sposta_in_giacenza(
        self,
        db: AsyncSession,
        codice: str,
        data: SpostaInGiacenzaRequest,
    ) -> OperationResult:
        """
        Carica a magazzino un cartone in arrivo.

        Se `fogli_effettivi` non è indicato si assumono arrivati i fogli
        ordinati; con zero fogli il cartone finisce direttamente negli
        esauriti. L'articolo dell'ordine passa a ricevuto.
        """
        try:
            in_arrivo = await self._get(db, CartoneOrdine, codice)
            numero_ordine = in_arrivo.ordine
            ordinati = in_arrivo.fogli
            arrivati = data.fogli_effettivi if data.fogli_effettivi is not None else ordinati

            model = CartoneGiacenza if arrivati > 0 else CartoneEsaurito
            caricato = model(
                **_campi_comuni(in_arrivo, fogli=arrivati),
                ddt=data.ddt,
                data_arrivo=data.data_arrivo,
                magazzino=data.magazzino,
            )
            self._append_storico(
                db, in_arrivo, TipoMovimento.CARICO, arrivati,
                f"Caricato da ordine {numero_ordine or '-'} - Ordinati: {ordinati}, Arrivati: {arrivati}",
            )
            await db.delete(in_arrivo)
            await db.flush()
            db.add(caricato)
            await db.flush()

            destinazione = self.read_model.giacenza if arrivati > 0 else self.read_model.esauriti
            async with self.read_model.ordini.optimistic_remove(codice), \
                    destinazione.optimistic(codice, CartoneGiacenzaRead.model_validate(caricato)):
                await db.commit()
        except AppException as exc:
            return await self._fail(db, exc, "carico a magazzino")
        except SQLAlchemyError:
            return await self._fail_db(db, codice, "carico a magazzino")

        logger.info("Cartone %s caricato a magazzino: ordinati %d, arrivati %d", codice, ordinati, arrivati)
        propagazione = await self._propaga(db, numero_ordine, codice, ArticleStatus.RICEVUTO)
        return await self._concludi(
            db, codice, f"Cartone {codice} caricato a magazzino", propagazione=propagazione,
        )

    async def scarico_fogli(
        self,
        db: AsyncSession,
        codice: str,
        data: ScaricoFogliRequest,
    ) -> OperationResult:
        """
        Scarica fogli dalla giacenza.

        Quando i fogli residui arrivano a zero il cartone passa negli
        esauriti. L'esaurimento è un evento di magazzino: lo stato
        dell'articolo sull'ordine non cambia.
        """
        try:
            giacenza = await self._get(db, CartoneGiacenza, codice)
            rimanenti = giacenza.fogli - data.quantita
            self._append_storico(
                db, giacenza, TipoMovimento.SCARICO, data.quantita,
                data.note or f"Scarico di {data.quantita} fogli",
            )

            if rimanenti <= 0:
                esaurito = CartoneEsaurito(
                    **_campi_comuni(giacenza, fogli=0),
                    ddt=giacenza.ddt,
                    data_arrivo=giacenza.data_arrivo,
                    magazzino=giacenza.magazzino,
                )
                await db.delete(giacenza)
                await db.flush()
                db.add(esaurito)
                await db.flush()
                async with self.read_model.giacenza.optimistic_remove(codice), \
                        self.read_model.esauriti.optimistic(codice, CartoneGiacenzaRead.model_validate(esaurito)):
                    await db.commit()
            else:
                giacenza.fogli = rimanenti
                await db.flush()
                async with self.read_model.giacenza.optimistic(codice, CartoneGiacenzaRead.model_validate(giacenza)):
                    await db.commit()
        except AppException as exc:
            return await self._fail(db, exc, "scarico fogli")
        except SQLAlchemyError:
            return await self._fail_db(db, codice, "scarico fogli")

        if rimanenti <= 0:
            logger.info("Cartone %s esaurito dopo lo scarico di %d fogli", codice, data.quantita)
            messaggio = f"Cartone {codice} esaurito"
        else:
            logger.info("Scaricati %d fogli dal cartone %s (residui %d)", data.quantita, codice, rimanenti)
            messaggio = f"Scaricati {data.quantita} fogli dal cartone {codice}"
        return await self._concludi(db, codice, messaggio, fogli_residui=max(rimanenti, 0))

    async def riporta_in_giacenza(
        self,
        db: AsyncSession,
        codice: str,
        data: Optional[RiportaInGiacenzaRequest] = None,
    ) -> OperationResult:
        """
        Riporta in giacenza un cartone esaurito (almeno 1 foglio).

        Scelta voluta: la riga d'ordine passa a ricevuto e non a confermato,
        perché con confermato la riconciliazione rimetterebbe il cartone
        negli ordini in arrivo invece che in giacenza.
        """
        try:
            esaurito = await self._get(db, CartoneEsaurito, codice)
            numero_ordine = esaurito.ordine
            richiesti = data.fogli if data is not None and data.fogli is not None else esaurito.fogli
            fogli = max(1, richiesti)

            giacenza = CartoneGiacenza(
                **_campi_comuni(esaurito, fogli=fogli),
                ddt=esaurito.ddt,
                data_arrivo=esaurito.data_arrivo,
                magazzino=esaurito.magazzino,
            )
            self._append_storico(db, esaurito, TipoMovimento.CARICO, fogli, "Riportato in giacenza da esauriti")
            await db.delete(esaurito)
            await db.flush()
            db.add(giacenza)
            await db.flush()
            async with self.read_model.esauriti.optimistic_remove(codice), \
                    self.read_model.giacenza.optimistic(codice, CartoneGiacenzaRead.model_validate(giacenza)):
                await db.commit()
        except AppException as exc:
            return await self._fail(db, exc, "ripristino in giacenza")
        except SQLAlchemyError:
            return await self._fail_db(db, codice, "ripristino in giacenza")

        logger.info("Cartone %s riportato in giacenza con %d fogli", codice, fogli)
        propagazione = await self._propaga(db, numero_ordine, codice, ArticleStatus.RICEVUTO)
        return await self._concludi(
            db, codice, f"Cartone {codice} riportato in giacenza", propagazione=propagazione,
        )

    async def riporta_in_ordini(self, db: AsyncSession, codice: str) -> OperationResult:
        """Riporta negli ordini in arrivo (già confermato) un cartone in giacenza."""
        try:
            giacenza = await self._get(db, CartoneGiacenza, codice)
            numero_ordine = giacenza.ordine
            in_arrivo = CartoneOrdine(**_campi_comuni(giacenza), confermato=True)
            self._append_storico(
                db, giacenza, TipoMovimento.MODIFICA, giacenza.fogli, "Riportato negli ordini in arrivo",
            )
            await db.delete(giacenza)
            await db.flush()
            db.add(in_arrivo)
            await db.flush()
            async with self.read_model.giacenza.optimistic_remove(codice), \
                    self.read_model.ordini.optimistic(codice, CartoneOrdineRead.model_validate(in_arrivo)):
                await db.commit()
        except AppException as exc:
            return await self._fail(db, exc, "ripristino negli ordini")
        except SQLAlchemyError:
            return await self._fail_db(db, codice, "ripristino negli ordini")

        logger.info("Cartone %s riportato negli ordini in arrivo", codice)
        propagazione = await self._propaga(db, numero_ordine, codice, ArticleStatus.CONFERMATO)
        return await self._concludi(
            db, codice, f"Cartone {codice} riportato negli ordini", propagazione=propagazione,
        )

    async def conferma_ordine(self, db: AsyncSession, codice: str, confermato: bool) -> OperationResult:
        """
        Conferma o annulla la conferma di un cartone in arrivo.

        Alla conferma l'articolo passa a confermato; annullando la conferma
        torna allo stato dell'ordine (in_attesa o inviato).
        """
        try:
            in_arrivo = await self._get(db, CartoneOrdine, codice)
            numero_ordine = in_arrivo.ordine
            in_arrivo.confermato = confermato
            self._append_storico(
                db, in_arrivo, TipoMovimento.MODIFICA, 0,
                "Ordine confermato" if confermato else "Conferma ordine annullata",
            )
            await db.flush()
            async with self.read_model.ordini.optimistic(codice, CartoneOrdineRead.model_validate(in_arrivo)):
                await db.commit()
        except AppException as exc:
            return await self._fail(db, exc, "conferma ordine")
        except SQLAlchemyError:
            return await self._fail_db(db, codice, "conferma ordine")

        if confermato:
            stato = ArticleStatus.CONFERMATO
        else:
            stato = await self._stato_ordine(db, numero_ordine)

        logger.info("Cartone %s: confermato=%s, articolo → %s", codice, confermato, stato.value)
        propagazione = await self._propaga(db, numero_ordine, codice, stato)
        messaggio = f"Cartone {codice} confermato" if confermato else f"Conferma del cartone {codice} annullata"
        return await self._concludi(db, codice, messaggio, propagazione=propagazione)

    async def _stato_ordine(self, db: AsyncSession, numero_ordine: Optional[str]) -> ArticleStatus:
        """Stato a cui torna un articolo quando se ne annulla la conferma."""
        if not numero_ordine:
            return ArticleStatus.INVIATO
        result = await db.execute(
            select(OrdineAcquisto.stato).where(OrdineAcquisto.numero_ordine == numero_ordine)
        )
        stato = result.scalar_one_or_none()
        if stato in (ArticleStatus.IN_ATTESA.value, ArticleStatus.INVIATO.value):
            return ArticleStatus(stato)
        return ArticleStatus.INVIATO

    # ------------------------------------------------------------
    # Manutenzione ordini in arrivo
    # ------------------------------------------------------------

    async def elimina_ordine(self, db: AsyncSession, codice: str) -> OperationResult:
        """Elimina un cartone dalla tabella degli ordini in arrivo."""
        try:
            in_arrivo = await self._get(db, CartoneOrdine, codice)
            self._append_storico(db, in_arrivo, TipoMovimento.MODIFICA, in_arrivo.fogli, "Eliminato dagli ordini")
            await db.delete(in_arrivo)
            await db.flush()
            async with self.read_model.ordini.optimistic_remove(codice):
                await db.commit()
        except AppException as exc:
            return await self._fail(db, exc, "eliminazione ordine")
        except SQLAlchemyError:
            return await self._fail_db(db, codice, "eliminazione ordine")

        logger.info("Cartone %s eliminato dagli ordini in arrivo", codice)
        return await self._concludi(db, codice, f"Cartone {codice} eliminato dagli ordini")

    async def modifica_ordine(self, db: AsyncSession, codice: str, data: CartoneOrdineUpdate) -> OperationResult:
        """Aggiorna i campi di un cartone in arrivo."""
        try:
            in_arrivo = await self._get(db, CartoneOrdine, codice)
            update_data = data.model_dump(exclude_unset=True)
            for field, value in update_data.items():
                setattr(in_arrivo, field, value)
            self._append_storico(
                db, in_arrivo, TipoMovimento.MODIFICA, in_arrivo.fogli,
                "Modificati: " + ", ".join(sorted(update_data)) if update_data else "Nessuna modifica",
            )
            await db.flush()
            async with self.read_model.ordini.optimistic(codice, CartoneOrdineRead.model_validate(in_arrivo)):
                await db.commit()
        except AppException as exc:
            return await self._fail(db, exc, "modifica ordine")
        except SQLAlchemyError:
            return await self._fail_db(db, codice, "modifica ordine")

        logger.info("Cartone %s modificato negli ordini in arrivo", codice)
        return await self._concludi(db, codice, f"Cartone {codice} modificato")


# Istanza singleton del service
cartone_service = CartoneService()
