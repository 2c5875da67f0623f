"""
Servizi per la gestione degli Ordini d'Acquisto
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Contiene le funzioni di business logic per:
- Caricamento e ordinamento della lista ordini (con correzione dei totali)
- Creazione e modifica degli ordini (assegnazione codici, kg derivati)
- Propagazione dello stato ordine → articoli → magazzino
- Annullamento ed eliminazione definitiva

Le procedure pubbliche restituiscono un OperationResult: i fallimenti
attesi non vengono sollevati ma notificati all'utente.
"""

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.events import EventType, event_bus, notifier
from app.core.exceptions import (
    AppException,
    BusinessValidationError,
    DuplicateError,
    NotFoundError,
    PersistenceError,
)
from app.core.formati import calcola_kg
from app.models import Fornitore, OrdineAcquisto
from app.schemas.articolo import (
    PRIORITA_STATO,
    STATI_CONTAGIOSI,
    ArticleStatus,
    ArticoloBase,
    ArticoloCartone,
    ArticoloFustella,
    ArticoloPulitore,
    calcola_importo_totale,
    matches_identifier,
    parse_articoli,
    parse_articolo,
    tutti_annullati,
    valida_articoli_per_fornitore,
)
from app.schemas.common import OperationResult
from app.schemas.ordine_acquisto import (
    OrdineAcquistoCreate,
    OrdineAcquistoRead,
    OrdineAcquistoUpdate,
)
from app.services.code_generators import CodiciOrdineSession, code_generator_service
from app.services.read_models import cardboard_inventory_read_model, purchase_order_read_model
from app.services.sync_service import inventory_sync_service

logger = logging.getLogger(__name__)

TOLLERANZA_TOTALE = Decimal("0.001")


def _sort_timestamp(value: Optional[datetime.datetime]) -> float:
    if value is None:
        return 0.0
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return value.timestamp()


def sort_key(ordine: OrdineAcquistoRead) -> Tuple[float, int, int]:
    """
    Chiave di ordinamento della lista ordini:
    ultima modifica (più recente prima), priorità dello stato,
    data ordine (più recente prima).
    """
    ultima_modifica = ordine.updated_at or ordine.created_at
    return (
        -_sort_timestamp(ultima_modifica),
        PRIORITA_STATO.get(ArticleStatus(ordine.stato).value, 99),
        -ordine.data_ordine.toordinal(),
    )


class OrdineAcquistoService:
    """
    Service per la gestione degli ordini d'acquisto.

    Mantiene la vista in lettura degli ordini e ne orchestra la
    sincronizzazione con il magazzino.
    """

    def __init__(self) -> None:
        self.read_model = purchase_order_read_model

    # ------------------------------------------------------------
    # Lettura
    # ------------------------------------------------------------

    async def get_by_id(self, db: AsyncSession, ordine_id: uuid.UUID) -> OrdineAcquisto:
        """
        Recupera un ordine per ID.

        Raises:
            NotFoundError: Se l'ordine non esiste
        """
        result = await db.execute(select(OrdineAcquisto).where(OrdineAcquisto.id == ordine_id))
        ordine = result.unique().scalar_one_or_none()
        if not ordine:
            logger.warning("Ordine d'acquisto non trovato: %s", ordine_id)
            raise NotFoundError(f"Ordine d'acquisto non trovato: {ordine_id}")
        return ordine

    async def get_by_numero(self, db: AsyncSession, numero_ordine: str) -> OrdineAcquisto:
        """
        Recupera un ordine per numero.

        Raises:
            NotFoundError: Se l'ordine non esiste
        """
        result = await db.execute(
            select(OrdineAcquisto).where(OrdineAcquisto.numero_ordine == numero_ordine)
        )
        ordine = result.unique().scalar_one_or_none()
        if not ordine:
            logger.warning("Ordine d'acquisto non trovato: %s", numero_ordine)
            raise NotFoundError(f"Ordine d'acquisto non trovato: {numero_ordine}")
        return ordine

    def to_read(self, ordine: OrdineAcquisto) -> OrdineAcquistoRead:
        """Converte l'ordine, scartando (con warning) le righe illeggibili."""
        articoli, _ = self._parse_best_effort(ordine)
        return OrdineAcquistoRead(
            id=ordine.id,
            numero_ordine=ordine.numero_ordine,
            fornitore_id=ordine.fornitore_id,
            fornitore_nome=ordine.fornitore_nome,
            fornitore_tipo=ordine.fornitore_tipo,
            data_ordine=ordine.data_ordine,
            stato=ordine.stato,
            importo_totale=ordine.importo_totale,
            note=ordine.note,
            articoli=articoli,
            created_at=ordine.created_at,
            updated_at=ordine.updated_at,
        )

    def _parse_best_effort(self, ordine: OrdineAcquisto) -> Tuple[List[Any], int]:
        if not isinstance(ordine.articoli, list):
            logger.error("Ordine %s: colonna articoli non è un elenco", ordine.numero_ordine)
            return [], 0
        articoli, scartati = [], 0
        for raw in ordine.articoli:
            if raw is None:
                continue
            try:
                articoli.append(parse_articolo(raw))
            except PydanticValidationError:
                scartati += 1
                logger.warning("Ordine %s: riga articolo illeggibile ignorata", ordine.numero_ordine)
        return articoli, scartati

    def _parse_strict(self, ordine: OrdineAcquisto) -> List[Any]:
        """
        Interpreta tutte le righe dell'ordine.

        Raises:
            BusinessValidationError: Se la colonna non è un elenco o una riga non è valida
        """
        if not isinstance(ordine.articoli, list):
            raise BusinessValidationError(
                f"Articoli dell'ordine {ordine.numero_ordine} non validi: atteso un elenco",
                error_code="ARTICOLI_NON_VALIDI",
            )
        try:
            return parse_articoli(ordine.articoli)
        except PydanticValidationError as exc:
            logger.error("Ordine %s: righe articolo non valide: %s", ordine.numero_ordine, exc.errors())
            raise BusinessValidationError(
                f"Articoli dell'ordine {ordine.numero_ordine} non validi",
                error_code="ARTICOLI_NON_VALIDI",
            ) from exc

    async def load_ordini_acquisto(self, db: AsyncSession) -> List[OrdineAcquistoRead]:
        """
        Carica tutti gli ordini con il fornitore e aggiorna la vista in lettura.

        I totali salvati che differiscono dal ricalcolo oltre la tolleranza
        vengono corretti sul database in un unico commit.
        """
        result = await db.execute(select(OrdineAcquisto).order_by(OrdineAcquisto.created_at.desc()))
        ordini = list(result.unique().scalars().all())

        da_correggere = []
        for ordine in ordini:
            articoli, _ = self._parse_best_effort(ordine)
            ricalcolato = calcola_importo_totale(articoli)
            if abs((ordine.importo_totale or Decimal("0")) - ricalcolato) > TOLLERANZA_TOTALE:
                logger.info(
                    "Importo totale non corrispondente per l'ordine %s: salvato %s, ricalcolato %s",
                    ordine.numero_ordine, ordine.importo_totale, ricalcolato,
                )
                ordine.importo_totale = ricalcolato
                da_correggere.append(ordine.numero_ordine)

        if da_correggere:
            try:
                await db.commit()
                logger.info("Corretti gli importi totali di %d ordini", len(da_correggere))
            except SQLAlchemyError:
                await db.rollback()
                logger.error("Errore durante la correzione degli importi totali", exc_info=True)
                await notifier.error("Errore durante la correzione degli importi totali degli ordini.")
                result = await db.execute(select(OrdineAcquisto))
                ordini = list(result.unique().scalars().all())

        letti = sorted((self.to_read(ordine) for ordine in ordini), key=sort_key)
        self.read_model.replace_all(letti)
        logger.debug("Caricati %d ordini d'acquisto", len(letti))
        return letti

    # ------------------------------------------------------------
    # Creazione e modifica
    # ------------------------------------------------------------

    async def _get_fornitore(self, db: AsyncSession, fornitore_id: uuid.UUID) -> Fornitore:
        fornitore = await db.get(Fornitore, fornitore_id)
        if not fornitore:
            logger.warning("Fornitore non trovato: %s", fornitore_id)
            raise NotFoundError(f"Fornitore non trovato: {fornitore_id}")
        return fornitore

    def _prepare_articolo(
        self,
        articolo: ArticoloBase,
        codici: CodiciOrdineSession,
        anno_ordine: int,
        stato: Optional[ArticleStatus] = None,
    ) -> ArticoloBase:
        """Assegna i codici mancanti e deriva i kg dei cartoni."""
        update: Dict[str, Any] = {}
        if stato is not None:
            update["stato"] = stato

        if isinstance(articolo, ArticoloCartone):
            if not articolo.codice_ctn:
                update["codice_ctn"] = codici.cartoni.next()
            if articolo.fsc and not articolo.rif_commessa_fsc:
                update["rif_commessa_fsc"] = codici.next_rif_commessa_fsc(anno_ordine)
            kg = calcola_kg(articolo.numero_fogli, articolo.formato, articolo.grammatura)
            if kg > 0:
                update["quantita"] = kg
        elif isinstance(articolo, ArticoloFustella):
            if not articolo.fustella_codice:
                update["fustella_codice"] = codici.fustelle.next()
            if articolo.has_pulitore and not articolo.pulitore_codice_fustella:
                update["pulitore_codice_fustella"] = codici.pulitori.next()
        elif isinstance(articolo, ArticoloPulitore):
            if not articolo.pulitore_codice_fustella:
                update["pulitore_codice_fustella"] = codici.pulitori.next()

        return articolo.model_copy(update=update) if update else articolo

    async def add_ordine_acquisto(self, db: AsyncSession, data: OrdineAcquistoCreate) -> OperationResult:
        """
        Crea un ordine d'acquisto.

        Tutti gli articoli partono in stato in_attesa; codici, riferimenti
        FSC e kg vengono derivati. Dopo il salvataggio il magazzino viene
        sincronizzato e la lista ricaricata.
        """
        try:
            fornitore = await self._get_fornitore(db, data.fornitore_id)
            valida_articoli_per_fornitore(data.articoli, fornitore.tipo_fornitore)

            anno_ordine = data.data_ordine.year
            codici = await code_generator_service.open_ordine_session(
                db, year=datetime.date.today().year, fsc_years=[anno_ordine]
            )
            numero = data.numero_ordine or codici.next_numero_ordine()
            existing = await db.execute(
                select(OrdineAcquisto.id).where(OrdineAcquisto.numero_ordine == numero)
            )
            if existing.scalar_one_or_none():
                logger.warning("Numero ordine duplicato: %s", numero)
                raise DuplicateError(f"Numero ordine già esistente: {numero}")

            articoli = [
                self._prepare_articolo(a, codici, anno_ordine, stato=ArticleStatus.IN_ATTESA)
                for a in data.articoli
            ]
            ordine = OrdineAcquisto(
                numero_ordine=numero,
                fornitore_id=fornitore.id,
                data_ordine=data.data_ordine,
                stato=ArticleStatus.IN_ATTESA.value,
                importo_totale=calcola_importo_totale(articoli),
                note=data.note,
                articoli=[a.to_json() for a in articoli],
            )
            ordine.fornitore = fornitore
            db.add(ordine)
            await db.flush()
            await db.commit()
        except AppException as exc:
            await db.rollback()
            await notifier.error(f"Errore aggiunta ordine: {exc.detail}")
            return OperationResult.fail(exc)
        except SQLAlchemyError:
            await db.rollback()
            logger.error("Errore database durante la creazione dell'ordine", exc_info=True)
            exc = PersistenceError("Errore aggiunta ordine: salvataggio non riuscito")
            await notifier.error(exc.detail)
            return OperationResult.fail(exc)

        logger.info("Creato ordine d'acquisto %s (%d articoli)", numero, len(articoli))
        sync = await inventory_sync_service.sync_article_inventory_status(db, ordine)
        await self.load_ordini_acquisto(db)
        await event_bus.emit(EventType.ORDINI_ACQUISTO_CHANGED, numero_ordine=numero, azione="creato")
        await notifier.success(f"Ordine d'acquisto '{numero}' aggiunto con successo!")
        return OperationResult.ok(ordine=self.to_read(ordine), sincronizzazione=sync.model_dump())

    async def update_ordine_acquisto(
        self,
        db: AsyncSession,
        ordine_id: uuid.UUID,
        data: OrdineAcquistoUpdate,
    ) -> OperationResult:
        """
        Aggiorna l'intestazione e/o sostituisce gli articoli di un ordine.

        Il numero ordine non è modificabile.
        """
        try:
            ordine = await self.get_by_id(db, ordine_id)
            numero = ordine.numero_ordine
            if data.numero_ordine is not None and data.numero_ordine != numero:
                raise BusinessValidationError("Il numero ordine non può essere modificato")

            update_data = data.model_dump(exclude_unset=True, exclude={"numero_ordine", "articoli"})
            if "fornitore_id" in update_data and update_data["fornitore_id"] is not None:
                ordine.fornitore = await self._get_fornitore(db, update_data["fornitore_id"])
            for field, value in update_data.items():
                if value is not None or field == "note":
                    setattr(ordine, field, value)

            if data.articoli is not None:
                valida_articoli_per_fornitore(data.articoli, ordine.fornitore.tipo_fornitore)
                anno_ordine = ordine.data_ordine.year
                codici = await code_generator_service.open_ordine_session(db, fsc_years=[anno_ordine])
                articoli = [self._prepare_articolo(a, codici, anno_ordine) for a in data.articoli]
                ordine.articoli = [a.to_json() for a in articoli]
            else:
                articoli = self._parse_strict(ordine)
                valida_articoli_per_fornitore(articoli, ordine.fornitore.tipo_fornitore)

            ordine.importo_totale = calcola_importo_totale(articoli)
            if tutti_annullati(articoli) and ordine.stato != ArticleStatus.ANNULLATO.value:
                logger.info("Tutti gli articoli dell'ordine %s sono annullati: ordine annullato", numero)
                ordine.stato = ArticleStatus.ANNULLATO.value
            await db.flush()
            await db.commit()
        except AppException as exc:
            await db.rollback()
            await notifier.error(f"Errore modifica ordine: {exc.detail}")
            return OperationResult.fail(exc)
        except SQLAlchemyError:
            await db.rollback()
            logger.error("Errore database durante la modifica dell'ordine %s", ordine_id, exc_info=True)
            exc = PersistenceError("Errore modifica ordine: salvataggio non riuscito")
            await notifier.error(exc.detail)
            return OperationResult.fail(exc)

        logger.info("Modificato ordine d'acquisto %s", numero)
        sync = await inventory_sync_service.sync_article_inventory_status(db, ordine)
        await self.load_ordini_acquisto(db)
        await event_bus.emit(EventType.ORDINI_ACQUISTO_CHANGED, numero_ordine=numero, azione="modificato")
        await notifier.success(f"Ordine d'acquisto '{numero}' modificato con successo!")
        return OperationResult.ok(ordine=self.to_read(ordine), sincronizzazione=sync.model_dump())

    # ------------------------------------------------------------
    # Propagazione dello stato
    # ------------------------------------------------------------

    async def _commit_optimistic(self, db: AsyncSession, ordine: OrdineAcquisto) -> None:
        """
        Applica l'ordine modificato alla vista in lettura e conferma sul database.

        Se il commit fallisce la vista torna allo snapshot precedente.
        """
        async with self.read_model.store.optimistic(ordine.numero_ordine, self.to_read(ordine)):
            await db.flush()
            await db.commit()

    async def _after_status_change(self, db: AsyncSession, ordine: OrdineAcquisto, azione: str) -> OperationResult:
        numero = ordine.numero_ordine
        sync = await inventory_sync_service.sync_article_inventory_status(db, ordine)
        await self.load_ordini_acquisto(db)
        await event_bus.emit(EventType.ORDINI_ACQUISTO_CHANGED, numero_ordine=numero, azione=azione)
        return OperationResult.ok(ordine=self.to_read(ordine), sincronizzazione=sync.model_dump())

    async def update_ordine_acquisto_status(
        self,
        db: AsyncSession,
        ordine_id: uuid.UUID,
        stato: ArticleStatus,
    ) -> OperationResult:
        """
        Cambia lo stato dell'intero ordine.

        Gli stati annullato, inviato e in_attesa vengono estesi a tutti gli
        articoli; confermato e ricevuto si raggiungono articolo per articolo
        tramite le azioni di magazzino.
        """
        stato = ArticleStatus(stato)
        numero = str(ordine_id)
        try:
            ordine = await self.get_by_id(db, ordine_id)
            numero = ordine.numero_ordine
            articoli = self._parse_strict(ordine)
            if stato in STATI_CONTAGIOSI:
                articoli = [a.model_copy(update={"stato": stato}) for a in articoli]

            ordine.stato = stato.value
            ordine.articoli = [a.to_json() for a in articoli]
            ordine.importo_totale = calcola_importo_totale(articoli)
            await self._commit_optimistic(db, ordine)
        except AppException as exc:
            await db.rollback()
            await notifier.error(f"Errore aggiornamento stato ordine: {exc.detail}")
            return OperationResult.fail(exc)
        except SQLAlchemyError:
            await db.rollback()
            logger.error("Errore aggiornamento stato ordine %s", numero, exc_info=True)
            exc = PersistenceError(f"Errore aggiornamento stato ordine {numero}")
            await notifier.error(exc.detail)
            return OperationResult.fail(exc)

        logger.info("Stato ordine %s aggiornato a %s", numero, stato.value)
        return await self._after_status_change(db, ordine, azione="stato")

    async def update_article_status_in_order(
        self,
        db: AsyncSession,
        numero_ordine: str,
        identificativo: str,
        stato: ArticleStatus,
    ) -> OperationResult:
        """
        Cambia lo stato di un singolo articolo.

        L'articolo è individuato dal codice della variante (CTN, FST, PU)
        o dalla descrizione per gli articoli generici. Il totale viene
        ricalcolato e, se tutti gli articoli risultano annullati, anche
        l'ordine passa ad annullato.
        """
        stato = ArticleStatus(stato)
        try:
            ordine = await self.get_by_numero(db, numero_ordine)
            articoli = self._parse_strict(ordine)

            trovato = False
            aggiornati = []
            for articolo in articoli:
                if matches_identifier(articolo, identificativo):
                    trovato = True
                    articolo = articolo.model_copy(update={"stato": stato})
                aggiornati.append(articolo)

            if not trovato:
                logger.warning("Articolo '%s' non trovato nell'ordine %s", identificativo, numero_ordine)
                raise NotFoundError(
                    f"Articolo '{identificativo}' non trovato nell'ordine {numero_ordine}",
                    error_code="ARTICOLO_NON_TROVATO",
                )

            ordine.articoli = [a.to_json() for a in aggiornati]
            ordine.importo_totale = calcola_importo_totale(aggiornati)
            if tutti_annullati(aggiornati) and ordine.stato != ArticleStatus.ANNULLATO.value:
                logger.info("Tutti gli articoli dell'ordine %s sono annullati: ordine annullato", numero_ordine)
                ordine.stato = ArticleStatus.ANNULLATO.value
            await self._commit_optimistic(db, ordine)
        except AppException as exc:
            await db.rollback()
            await notifier.error(f"Errore aggiornamento stato articolo: {exc.detail}")
            return OperationResult.fail(exc)
        except SQLAlchemyError:
            await db.rollback()
            logger.error("Errore aggiornamento articoli per l'ordine %s", numero_ordine, exc_info=True)
            exc = PersistenceError(f"Errore aggiornamento stato articolo nell'ordine {numero_ordine}")
            await notifier.error(exc.detail)
            return OperationResult.fail(exc)

        logger.info(
            "Stato articolo '%s' aggiornato a %s per l'ordine %s (totale %s)",
            identificativo, stato.value, numero_ordine, ordine.importo_totale,
        )
        return await self._after_status_change(db, ordine, azione="stato_articolo")

    # ------------------------------------------------------------
    # Annullamento ed eliminazione
    # ------------------------------------------------------------

    async def cancel_ordine_acquisto(self, db: AsyncSession, ordine_id: uuid.UUID) -> OperationResult:
        """Annulla un ordine (nessuna operazione se è già annullato)."""
        try:
            ordine = await self.get_by_id(db, ordine_id)
        except NotFoundError as exc:
            await notifier.error(f"Errore recupero ordine per annullamento: {exc.detail}")
            return OperationResult.fail(exc)

        if ordine.stato == ArticleStatus.ANNULLATO.value:
            await notifier.info(f"L'ordine '{ordine.numero_ordine}' è già annullato.")
            return OperationResult.ok(ordine=self.to_read(ordine), gia_annullato=True)

        esito = await self.update_ordine_acquisto_status(db, ordine_id, ArticleStatus.ANNULLATO)
        if esito.success:
            await notifier.success(f"Ordine d'acquisto '{ordine.numero_ordine}' annullato con successo!")
        return esito

    async def delete_ordine_acquisto_permanently(self, db: AsyncSession, ordine_id: uuid.UUID) -> OperationResult:
        """
        Elimina definitivamente un ordine e tutte le righe di magazzino derivate.

        La rimozione dalla vista in lettura è ottimistica.
        """
        numero = str(ordine_id)
        try:
            ordine = await self.get_by_id(db, ordine_id)
            numero = ordine.numero_ordine
            async with self.read_model.store.optimistic_remove(numero):
                await inventory_sync_service.delete_derived_rows(db, numero)
                await db.delete(ordine)
                await db.flush()
                await db.commit()
        except AppException as exc:
            await db.rollback()
            await notifier.error(f"Errore eliminazione definitiva ordine: {exc.detail}")
            return OperationResult.fail(exc)
        except SQLAlchemyError:
            await db.rollback()
            logger.error("Errore eliminazione definitiva dell'ordine %s", numero, exc_info=True)
            exc = PersistenceError(f"Errore eliminazione definitiva ordine {numero}")
            await notifier.error(exc.detail)
            return OperationResult.fail(exc)

        logger.info("Ordine d'acquisto %s eliminato definitivamente", numero)
        await cardboard_inventory_read_model.refresh(db)
        await self.load_ordini_acquisto(db)
        await event_bus.emit(EventType.ORDINI_ACQUISTO_CHANGED, numero_ordine=numero, azione="eliminato")
        await event_bus.emit(EventType.CARTONI_CHANGED, numero_ordine=numero)
        await event_bus.emit(EventType.FUSTELLE_CHANGED, numero_ordine=numero)
        await notifier.success(f"Ordine d'acquisto '{numero}' eliminato definitivamente!")
        return OperationResult.ok(numero_ordine=numero)


# Istanza singleton del service
ordine_acquisto_service = OrdineAcquistoService()
