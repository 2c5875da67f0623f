"""
Servizio di riconciliazione ordini d'acquisto → magazzino
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

L'ordine d'acquisto è l'unica fonte scrivibile dello stato degli articoli.
Le righe di magazzino attribuibili a un ordine (tabelle ordini, giacenza,
esauriti e fustelle) vengono cancellate e ricalcolate integralmente ad
ogni cambio di stato.

Regole di instradamento di un cartone:
- in_attesa / inviato / confermato → ordini (in arrivo)
- ricevuto con fogli > 0 → giacenza
- ricevuto con fogli == 0 → esauriti
- annullato → nessuna tabella

Cancellazioni e reinserimenti avvengono nella stessa transazione; ogni
riga è scritta in un SAVEPOINT, così l'errore su un articolo non blocca
gli altri.
"""

import datetime
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.events import EventType, event_bus, notifier
from app.core.exceptions import AppException, BusinessValidationError, NotFoundError, PersistenceError
from app.models import CartoneEsaurito, CartoneGiacenza, CartoneOrdine, Fustella, OrdineAcquisto
from app.schemas.articolo import (
    STATI_IN_ARRIVO,
    ArticleStatus,
    ArticoloCartone,
    ArticoloFustella,
    ArticoloPulitore,
    TipoFornitore,
    parse_articolo,
)
from app.schemas.common import OperationResult
from app.services.read_models import cardboard_inventory_read_model

logger = logging.getLogger(__name__)


@dataclass
class _StatoMagazzino:
    """Dati di magazzino da preservare attraverso la ricostruzione."""

    fogli: int
    ddt: Optional[str]
    data_arrivo: Optional[datetime.date]
    magazzino: Optional[str]


@dataclass
class _EsitoSync:
    inseriti: Dict[str, int] = field(
        default_factory=lambda: {"ordini": 0, "giacenza": 0, "esauriti": 0, "fustelle": 0, "pulitori": 0}
    )
    saltati: List[str] = field(default_factory=list)
    non_trovati: List[str] = field(default_factory=list)
    errori: List[Dict[str, str]] = field(default_factory=list)
    codici_cartone: List[str] = field(default_factory=list)
    codici_fustella: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "inseriti": self.inseriti,
            "saltati": self.saltati,
            "non_trovati": self.non_trovati,
            "errori": self.errori,
        }


def route_cartone(stato: ArticleStatus, fogli: int) -> Optional[str]:
    """
    Tabella di destinazione di un cartone.

    Returns:
        "ordini", "giacenza", "esauriti" oppure None se annullato
    """
    if stato == ArticleStatus.ANNULLATO:
        return None
    if stato in STATI_IN_ARRIVO:
        return "ordini"
    return "giacenza" if fogli > 0 else "esauriti"


class InventorySyncService:
    """
    Service per la riconciliazione del magazzino con gli ordini d'acquisto.

    Non solleva eccezioni per i fallimenti attesi: restituisce un
    OperationResult e pubblica una notifica.
    """

    # ------------------------------------------------------------
    # API pubblica
    # ------------------------------------------------------------

    async def sync_article_inventory_status(
        self,
        db: AsyncSession,
        ordine: OrdineAcquisto,
    ) -> OperationResult:
        """
        Ricalcola le righe di magazzino derivate dall'ordine.

        Args:
            db: Sessione database
            ordine: Ordine con il fornitore caricato

        Returns:
            OperationResult con conteggi per tabella, righe saltate,
            pulitori senza fustella e errori per riga in data["errori"]
        """
        numero = ordine.numero_ordine
        logger.info("Sincronizzazione magazzino per l'ordine %s", numero)

        try:
            articoli_raw = self._validate_articoli(ordine)
            categoria = self._resolve_categoria(ordine)
        except AppException as exc:
            logger.error("Sincronizzazione ordine %s interrotta: %s", numero, exc.detail)
            await notifier.error(exc.detail)
            return OperationResult.fail(exc, numero_ordine=numero)

        if categoria not in (TipoFornitore.CARTONE, TipoFornitore.FUSTELLE):
            logger.info(
                "Fornitore '%s' senza magazzino, nessuna sincronizzazione per l'ordine %s",
                categoria.value, numero,
            )
            return OperationResult.ok(numero_ordine=numero, **_EsitoSync().as_dict())

        esito = _EsitoSync()
        articoli = self._parse_articoli(numero, articoli_raw, esito)

        try:
            if categoria == TipoFornitore.CARTONE:
                await self._sync_cartoni(db, ordine, articoli, esito)
            else:
                await self._sync_fustelle(db, ordine, articoli, esito)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.error("Errore database durante la sincronizzazione dell'ordine %s", numero, exc_info=True)
            exc = PersistenceError(f"Errore durante la sincronizzazione del magazzino per l'ordine {numero}")
            await notifier.error(exc.detail)
            return OperationResult.fail(exc, numero_ordine=numero)

        await cardboard_inventory_read_model.refresh(db)

        if categoria == TipoFornitore.CARTONE:
            await event_bus.emit(EventType.CARTONI_CHANGED, numero_ordine=numero, codici=esito.codici_cartone)
        else:
            await event_bus.emit(EventType.FUSTELLE_CHANGED, numero_ordine=numero, codici=esito.codici_fustella)

        if esito.errori:
            await notifier.warning(
                f"Sincronizzazione ordine {numero} completata con {len(esito.errori)} errori"
            )

        logger.info(
            "Sincronizzazione ordine %s completata: %s (saltati %d, errori %d)",
            numero, esito.inseriti, len(esito.saltati), len(esito.errori),
        )
        return OperationResult.ok(numero_ordine=numero, **esito.as_dict())

    async def sync_by_numero(self, db: AsyncSession, numero_ordine: str) -> OperationResult:
        """Carica l'ordine per numero e lo riconcilia."""
        result = await db.execute(
            select(OrdineAcquisto).where(OrdineAcquisto.numero_ordine == numero_ordine)
        )
        ordine = result.unique().scalar_one_or_none()
        if ordine is None:
            exc = NotFoundError(f"Ordine d'acquisto non trovato: {numero_ordine}")
            logger.warning(exc.detail)
            await notifier.error(exc.detail)
            return OperationResult.fail(exc, numero_ordine=numero_ordine)
        return await self.sync_article_inventory_status(db, ordine)

    # ------------------------------------------------------------
    # Validazione
    # ------------------------------------------------------------

    def _validate_articoli(self, ordine: OrdineAcquisto) -> List[Any]:
        if not isinstance(ordine.articoli, list):
            raise BusinessValidationError(
                f"Articoli dell'ordine {ordine.numero_ordine} non validi: atteso un elenco",
                error_code="ARTICOLI_NON_VALIDI",
            )
        return [raw for raw in ordine.articoli if raw is not None]

    def _resolve_categoria(self, ordine: OrdineAcquisto) -> TipoFornitore:
        if ordine.fornitore is None:
            raise NotFoundError(f"Fornitore non trovato per l'ordine {ordine.numero_ordine}")
        try:
            return TipoFornitore(ordine.fornitore.tipo_fornitore)
        except ValueError as exc:
            raise BusinessValidationError(
                f"Categoria fornitore non valida per l'ordine {ordine.numero_ordine}: "
                f"{ordine.fornitore.tipo_fornitore}"
            ) from exc

    def _parse_articoli(self, numero: str, articoli_raw: List[Any], esito: _EsitoSync) -> List[Any]:
        articoli = []
        for indice, raw in enumerate(articoli_raw, start=1):
            try:
                articoli.append(parse_articolo(raw))
            except PydanticValidationError as exc:
                logger.warning("Ordine %s: articolo %d non valido, saltato (%s)", numero, indice, exc.errors())
                esito.saltati.append(f"articolo {indice}")
        return articoli

    # ------------------------------------------------------------
    # Cartoni
    # ------------------------------------------------------------

    async def _snapshot_magazzino(
        self, db: AsyncSession, numero: str
    ) -> Tuple[Dict[str, _StatoMagazzino], Dict[str, _StatoMagazzino]]:
        """Legge fogli e dati di arrivo attuali prima della cancellazione."""
        snapshots = []
        for model in (CartoneGiacenza, CartoneEsaurito):
            rows = await db.execute(
                select(model.codice, model.fogli, model.ddt, model.data_arrivo, model.magazzino)
                .where(model.ordine == numero)
            )
            snapshots.append({
                row.codice: _StatoMagazzino(row.fogli, row.ddt, row.data_arrivo, row.magazzino)
                for row in rows
            })
        return snapshots[0], snapshots[1]

    async def _sync_cartoni(
        self,
        db: AsyncSession,
        ordine: OrdineAcquisto,
        articoli: List[Any],
        esito: _EsitoSync,
    ) -> None:
        numero = ordine.numero_ordine
        giacenza_prev, esauriti_prev = await self._snapshot_magazzino(db, numero)
        await self.delete_derived_rows(db, numero)

        for articolo in articoli:
            if not isinstance(articolo, ArticoloCartone):
                logger.warning("Ordine %s: articolo '%s' non è un cartone, saltato", numero, articolo.item_type)
                esito.saltati.append(articolo.identificativo or articolo.item_type)
                continue
            if articolo.annullato:
                continue
            if not articolo.codice_ctn or articolo.numero_fogli <= 0:
                logger.warning(
                    "Ordine %s: cartone senza codice o senza fogli, saltato (codice=%s, fogli=%s)",
                    numero, articolo.codice_ctn, articolo.numero_fogli,
                )
                esito.saltati.append(articolo.codice_ctn or "cartone senza codice")
                continue

            codice = articolo.codice_ctn
            fogli = articolo.numero_fogli
            precedente = giacenza_prev.get(codice)
            if articolo.stato == ArticleStatus.RICEVUTO:
                if precedente is not None:
                    fogli = precedente.fogli
                elif codice in esauriti_prev:
                    precedente = esauriti_prev[codice]
                    fogli = 0

            tabella = route_cartone(articolo.stato, fogli)
            try:
                async with db.begin_nested():
                    db.add(self._build_cartone(tabella, ordine, articolo, fogli, precedente))
                    await db.flush()
            except SQLAlchemyError as exc:
                logger.error("Ordine %s: errore scrittura cartone %s in '%s'", numero, codice, tabella, exc_info=True)
                esito.errori.append({"codice": codice, "tabella": tabella, "errore": str(exc.__cause__ or exc)})
                continue

            esito.inseriti[tabella] += 1
            esito.codici_cartone.append(codice)
            logger.debug("Ordine %s: cartone %s → %s (fogli %d)", numero, codice, tabella, fogli)

    def _build_cartone(
        self,
        tabella: str,
        ordine: OrdineAcquisto,
        articolo: ArticoloCartone,
        fogli: int,
        precedente: Optional[_StatoMagazzino],
    ):
        dati = dict(
            codice=articolo.codice_ctn,
            fornitore=ordine.fornitore_nome,
            ordine=ordine.numero_ordine,
            tipologia=articolo.tipologia_cartone or "N/A",
            formato=articolo.formato or "N/A",
            grammatura=articolo.grammatura or "N/A",
            fogli=fogli,
            cliente=articolo.cliente or "N/A",
            lavoro=articolo.lavoro or "N/A",
            prezzo=articolo.prezzo_unitario,
            data_consegna=articolo.data_consegna_prevista,
            note=ordine.note or "-",
            fsc=articolo.fsc,
            alimentare=articolo.alimentare,
            rif_commessa_fsc=articolo.rif_commessa_fsc,
        )
        if tabella == "ordini":
            return CartoneOrdine(**dati, confermato=articolo.stato == ArticleStatus.CONFERMATO)

        placeholder = settings.auto_sync_placeholder
        arrivo = dict(
            ddt=(precedente.ddt if precedente else None) or placeholder,
            data_arrivo=(precedente.data_arrivo if precedente else None) or datetime.date.today(),
            magazzino=(precedente.magazzino if precedente else None) or placeholder,
        )
        model = CartoneGiacenza if tabella == "giacenza" else CartoneEsaurito
        return model(**dati, **arrivo)

    async def delete_derived_rows(self, db: AsyncSession, numero_ordine: str) -> None:
        """Cancella tutte le righe di magazzino derivate dall'ordine."""
        for model in (CartoneOrdine, CartoneGiacenza, CartoneEsaurito):
            await db.execute(delete(model).where(model.ordine == numero_ordine))
        await db.execute(delete(Fustella).where(Fustella.ordine_acquisto_numero == numero_ordine))

    # ------------------------------------------------------------
    # Fustelle e pulitori
    # ------------------------------------------------------------

    async def _sync_fustelle(
        self,
        db: AsyncSession,
        ordine: OrdineAcquisto,
        articoli: List[Any],
        esito: _EsitoSync,
    ) -> None:
        numero = ordine.numero_ordine
        rows = await db.execute(
            select(
                Fustella.codice,
                Fustella.pulitore_codice,
                Fustella.pulitore_incorporato,
                Fustella.data_creazione,
                Fustella.note,
            )
            .where(Fustella.ordine_acquisto_numero == numero)
        )
        precedenti = {row.codice: row for row in rows}
        await self.delete_derived_rows(db, numero)

        fustelle = [a for a in articoli if isinstance(a, ArticoloFustella)]
        pulitori = [a for a in articoli if isinstance(a, ArticoloPulitore)]
        altri = [a for a in articoli if not isinstance(a, (ArticoloFustella, ArticoloPulitore))]
        for articolo in altri:
            logger.warning("Ordine %s: articolo '%s' non ammesso per fornitori Fustelle", numero, articolo.item_type)
            esito.saltati.append(articolo.identificativo or articolo.item_type)

        # Le fustelle prima dei pulitori: un pulitore può riferirsi a una fustella dello stesso ordine
        for articolo in fustelle:
            if articolo.annullato:
                continue
            if not articolo.fustella_codice:
                logger.warning("Ordine %s: fustella senza codice, saltata", numero)
                esito.saltati.append("fustella senza codice")
                continue
            try:
                async with db.begin_nested():
                    await self._upsert_fustella(db, ordine, articolo, precedenti.get(articolo.fustella_codice))
                    await db.flush()
            except SQLAlchemyError as exc:
                logger.error("Ordine %s: errore scrittura fustella %s", numero, articolo.fustella_codice, exc_info=True)
                esito.errori.append({
                    "codice": articolo.fustella_codice, "tabella": "fustelle", "errore": str(exc.__cause__ or exc),
                })
                continue
            esito.inseriti["fustelle"] += 1
            esito.codici_fustella.append(articolo.fustella_codice)

        for articolo in pulitori:
            try:
                async with db.begin_nested():
                    await self._link_pulitore(db, numero, articolo, esito)
                    await db.flush()
            except SQLAlchemyError as exc:
                logger.error(
                    "Ordine %s: errore aggiornamento pulitore %s", numero, articolo.pulitore_codice_fustella,
                    exc_info=True,
                )
                esito.errori.append({
                    "codice": articolo.pulitore_codice_fustella or "",
                    "tabella": "fustelle",
                    "errore": str(exc.__cause__ or exc),
                })

    async def _upsert_fustella(
        self,
        db: AsyncSession,
        ordine: OrdineAcquisto,
        articolo: ArticoloFustella,
        precedente: Optional[Any],
    ) -> Fustella:
        fustella = await db.get(Fustella, articolo.fustella_codice)
        if fustella is None:
            fustella = Fustella(codice=articolo.fustella_codice)
            if precedente is not None and precedente.data_creazione is not None:
                fustella.data_creazione = precedente.data_creazione
            db.add(fustella)

        incorporato = bool(articolo.has_pulitore and articolo.pulitore_codice_fustella)
        if incorporato:
            pulitore_codice = articolo.pulitore_codice_fustella
        elif precedente is not None:
            # resta solo un pulitore collegato da una riga separata
            pulitore_codice = None if precedente.pulitore_incorporato else precedente.pulitore_codice
        elif fustella.pulitore_incorporato:
            pulitore_codice = None
        else:
            pulitore_codice = fustella.pulitore_codice

        fustella.fornitore = ordine.fornitore_nome
        fustella.codice_fornitore = articolo.codice_fornitore_fustella
        fustella.cliente = articolo.cliente
        fustella.lavoro = articolo.lavoro
        fustella.fustellatrice = articolo.fustellatrice
        fustella.resa = articolo.resa_fustella
        fustella.pulitore_codice = pulitore_codice
        fustella.pulitore_incorporato = incorporato
        fustella.pinza_tagliata = articolo.pinza_tagliata
        fustella.tasselli_intercambiabili = articolo.tasselli_intercambiabili
        fustella.nr_tasselli = articolo.nr_tasselli
        fustella.incollatura = articolo.incollatura
        fustella.incollatrice = articolo.incollatrice
        fustella.tipo_incollatura = articolo.tipo_incollatura
        fustella.note = precedente.note if precedente is not None else fustella.note
        fustella.disponibile = articolo.stato == ArticleStatus.RICEVUTO
        fustella.ordine_acquisto_numero = ordine.numero_ordine
        fustella.ultima_modifica = datetime.datetime.now(datetime.timezone.utc)
        return fustella

    async def _link_pulitore(
        self,
        db: AsyncSession,
        numero: str,
        articolo: ArticoloPulitore,
        esito: _EsitoSync,
    ) -> None:
        """
        Collega (o scollega, se annullato) un pulitore alla fustella padre.

        La fustella è cercata per codice fornitore; il pulitore non crea
        mai una riga propria.
        """
        codice = articolo.pulitore_codice_fustella
        riferimento = articolo.codice_fornitore_fustella
        if not codice or not riferimento:
            logger.warning("Ordine %s: pulitore senza codice o senza fustella di riferimento, saltato", numero)
            esito.saltati.append(codice or "pulitore senza codice")
            return

        result = await db.execute(
            select(Fustella).where(Fustella.codice_fornitore == riferimento).order_by(Fustella.codice)
        )
        fustella = result.scalars().first()
        if fustella is None:
            logger.warning(
                "Ordine %s: fustella con codice fornitore '%s' non trovata per il pulitore %s",
                numero, riferimento, codice,
            )
            esito.non_trovati.append(codice)
            return

        if articolo.annullato:
            if fustella.pulitore_codice == codice:
                fustella.pulitore_codice = None
                fustella.pulitore_incorporato = False
                fustella.ultima_modifica = datetime.datetime.now(datetime.timezone.utc)
                esito.codici_fustella.append(fustella.codice)
                logger.info("Ordine %s: pulitore %s scollegato dalla fustella %s", numero, codice, fustella.codice)
            return

        if fustella.pulitore_codice != codice or fustella.pulitore_incorporato:
            fustella.pulitore_codice = codice
            fustella.pulitore_incorporato = False
            fustella.ultima_modifica = datetime.datetime.now(datetime.timezone.utc)
            logger.info("Ordine %s: pulitore %s collegato alla fustella %s", numero, codice, fustella.codice)
        esito.inseriti["pulitori"] += 1
        esito.codici_fustella.append(fustella.codice)


# Istanza singleton del service
inventory_sync_service = InventorySyncService()
