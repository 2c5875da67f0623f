"""
Service Layer per il Magazzino Fustelle
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Gestione diretta della tabella fustelle (inserimento manuale, modifica,
eliminazione, disponibilità). Le fustelle provenienti da ordini
d'acquisto sono create dalla riconciliazione.
"""

import datetime
import logging
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.events import EventType, event_bus, notifier
from app.core.exceptions import ConflictError, DuplicateError, NotFoundError
from app.models import Fustella
from app.schemas.fustella import FustellaCreate, FustellaUpdate
from app.services.code_generators import fustella_code_generator

logger = logging.getLogger(__name__)


def _normalizza_campi_dipendenti(fustella: Fustella) -> None:
    """Azzera i campi che dipendono da flag disattivati."""
    if not fustella.tasselli_intercambiabili:
        fustella.nr_tasselli = None
    if not fustella.incollatura:
        fustella.incollatrice = None
        fustella.tipo_incollatura = None


class FustellaService:
    """
    Service per le operazioni CRUD sulle fustelle.

    I metodi eseguono flush; il commit è a carico del chiamante.
    """

    async def get_all(
        self,
        db: AsyncSession,
        disponibile: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> List[Fustella]:
        """
        Recupera le fustelle ordinate per codice.

        Args:
            db: Sessione database
            disponibile: Filtro opzionale sulla disponibilità
            search: Ricerca su codice, codice fornitore, cliente e lavoro
        """
        query = select(Fustella).order_by(Fustella.codice.asc())
        if disponibile is not None:
            query = query.where(Fustella.disponibile == disponibile)
        if search:
            search_term = f"%{search}%"
            query = query.where(or_(
                Fustella.codice.ilike(search_term),
                Fustella.codice_fornitore.ilike(search_term),
                Fustella.cliente.ilike(search_term),
                Fustella.lavoro.ilike(search_term),
            ))

        result = await db.execute(query)
        fustelle = list(result.scalars().all())
        logger.info("Recuperate %s fustelle (disponibile=%s)", len(fustelle), disponibile)
        return fustelle

    async def get_by_codice(self, db: AsyncSession, codice: str) -> Fustella:
        """
        Raises:
            NotFoundError: Se la fustella non esiste
        """
        fustella = await db.get(Fustella, codice)
        if fustella is None:
            logger.warning("Fustella non trovata: %s", codice)
            raise NotFoundError(f"Fustella {codice} non trovata")
        return fustella

    async def aggiungi_fustella(self, db: AsyncSession, data: FustellaCreate) -> Fustella:
        """
        Inserisce una fustella.

        Senza codice esplicito viene assegnato il primo FST libero.

        Raises:
            DuplicateError: Se il codice è già in uso
            ConflictError: Per errori imprevisti del database
        """
        codice = data.codice
        if codice is None:
            generatore = fustella_code_generator()
            await generatore.reset_from_db(db)
            codice = generatore.next()
        elif await db.get(Fustella, codice) is not None:
            logger.warning("Tentativo di inserire una fustella con codice duplicato: %s", codice)
            raise DuplicateError(f"Codice fustella '{codice}' già esistente")

        fustella = Fustella(codice=codice, **data.model_dump(exclude={"codice"}))
        _normalizza_campi_dipendenti(fustella)

        try:
            db.add(fustella)
            await db.flush()
            await db.refresh(fustella)
        except IntegrityError as e:
            logger.error("Errore IntegrityError inserimento fustella: %s - %s", e.__class__.__name__, e.orig)
            await db.rollback()
            raise DuplicateError(f"Codice fustella '{codice}' già esistente")
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy inserimento fustella: %s - %s", e.__class__.__name__, e)
            await db.rollback()
            raise ConflictError("Errore del database durante l'inserimento della fustella")

        logger.info("Inserita fustella %s (fornitore: %s)", codice, fustella.fornitore or "N/A")
        await event_bus.emit(EventType.FUSTELLE_CHANGED, codici=[codice], azione="creata")
        await notifier.success(f"Fustella {codice} aggiunta con successo!")
        return fustella

    async def modifica_fustella(self, db: AsyncSession, codice: str, data: FustellaUpdate) -> Fustella:
        """
        Aggiorna i campi inviati di una fustella.

        Raises:
            NotFoundError: Se la fustella non esiste
        """
        fustella = await self.get_by_codice(db, codice)
        update_data = data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(fustella, field, value)
        if "pulitore_codice" in update_data:
            fustella.pulitore_incorporato = False
        _normalizza_campi_dipendenti(fustella)
        fustella.ultima_modifica = datetime.datetime.now(datetime.timezone.utc)

        try:
            await db.flush()
            await db.refresh(fustella)
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy modifica fustella: %s - %s", e.__class__.__name__, e)
            await db.rollback()
            raise ConflictError("Errore del database durante la modifica della fustella")

        logger.info("Modificata fustella %s: %s", codice, ", ".join(sorted(update_data)) or "nessun campo")
        await event_bus.emit(EventType.FUSTELLE_CHANGED, codici=[codice], azione="modificata")
        await notifier.success(f"Fustella {codice} modificata con successo!")
        return fustella

    async def elimina_fustella(self, db: AsyncSession, codice: str) -> None:
        """
        Raises:
            NotFoundError: Se la fustella non esiste
        """
        fustella = await self.get_by_codice(db, codice)
        if fustella.ordine_acquisto_numero:
            logger.info(
                "Eliminazione della fustella %s proveniente dall'ordine %s",
                codice, fustella.ordine_acquisto_numero,
            )
        await db.delete(fustella)
        await db.flush()

        logger.info("Eliminata fustella %s", codice)
        await event_bus.emit(EventType.FUSTELLE_CHANGED, codici=[codice], azione="eliminata")
        await notifier.success(f"Fustella {codice} eliminata")

    async def cambia_disponibilita_fustella(self, db: AsyncSession, codice: str, disponibile: bool) -> Fustella:
        """
        Raises:
            NotFoundError: Se la fustella non esiste
        """
        fustella = await self.get_by_codice(db, codice)
        fustella.disponibile = disponibile
        fustella.ultima_modifica = datetime.datetime.now(datetime.timezone.utc)
        await db.flush()
        await db.refresh(fustella)

        logger.info("Fustella %s: disponibile=%s", codice, disponibile)
        await event_bus.emit(EventType.FUSTELLE_CHANGED, codici=[codice], azione="disponibilita")
        await notifier.success(
            f"Fustella {codice} segnata come {'disponibile' if disponibile else 'non disponibile'}"
        )
        return fustella


# Istanza singleton del service
fustella_service = FustellaService()
