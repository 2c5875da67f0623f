"""
Service Layer per le Anagrafiche (Fornitori e Clienti)
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

CRUD con codice progressivo automatico (FOR-### / CLI-###).
Un fornitore referenziato da ordini d'acquisto non può essere eliminato.
"""

import logging
import uuid
from typing import Callable, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.events import EventType, event_bus, notifier
from app.core.exceptions import ConflictError, DuplicateError, NotFoundError
from app.models import Cliente, Fornitore, OrdineAcquisto
from app.services.code_generators import (
    SequentialCodeGenerator,
    cliente_code_generator,
    fornitore_code_generator,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", Fornitore, Cliente)


class AnagraficaService(Generic[ModelT]):
    """
    Service per le operazioni CRUD su un'anagrafica.

    I metodi eseguono flush; il commit è a carico del chiamante.

    Usage:
        fornitore = await fornitore_service.create(db, FornitoreCreate(nome="Cartiera Srl"))
        await db.commit()
    """

    def __init__(
        self,
        model: Type[ModelT],
        generator_factory: Callable[[], SequentialCodeGenerator],
        label: str,
    ) -> None:
        self.model = model
        self.generator_factory = generator_factory
        self.label = label

    async def get_all(self, db: AsyncSession, search: Optional[str] = None) -> List[ModelT]:
        """Elenco ordinato per nome, con ricerca opzionale."""
        query = select(self.model).order_by(self.model.nome.asc())
        if search:
            search_term = f"%{search}%"
            query = query.where(or_(
                self.model.nome.ilike(search_term),
                self.model.codice_anagrafica.ilike(search_term),
                self.model.partita_iva.ilike(search_term),
                self.model.citta.ilike(search_term),
            ))
        result = await db.execute(query)
        items = list(result.scalars().all())
        logger.info("Recuperati %s %s", len(items), self.model.__tablename__)
        return items

    async def get_by_id(self, db: AsyncSession, item_id: uuid.UUID) -> ModelT:
        """
        Raises:
            NotFoundError: Se il record non esiste
        """
        item = await db.get(self.model, item_id)
        if item is None:
            logger.warning("%s non trovato: %s", self.label, item_id)
            raise NotFoundError(f"{self.label} con ID {item_id} non trovato")
        return item

    async def _check_partita_iva(
        self,
        db: AsyncSession,
        partita_iva: Optional[str],
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        if not partita_iva:
            return
        query = select(self.model.id).where(self.model.partita_iva == partita_iva)
        if exclude_id is not None:
            query = query.where(self.model.id != exclude_id)
        if (await db.execute(query)).first() is not None:
            logger.warning("Partita IVA duplicata per %s: %s", self.label, partita_iva)
            raise DuplicateError(f"Partita IVA '{partita_iva}' già registrata")

    async def create(self, db: AsyncSession, data: BaseModel) -> ModelT:
        """
        Crea il record assegnando il prossimo codice progressivo.

        Raises:
            DuplicateError: Se la partita IVA è già registrata
            ConflictError: Per errori imprevisti del database
        """
        payload = data.model_dump(mode="json")
        await self._check_partita_iva(db, payload.get("partita_iva"))

        generatore = self.generator_factory()
        await generatore.reset_from_db(db)
        codice = generatore.next()
        item = self.model(codice_anagrafica=codice, **payload)

        try:
            db.add(item)
            await db.flush()
            await db.refresh(item)
        except IntegrityError as e:
            logger.error("Errore IntegrityError creazione %s: %s - %s", self.label, e.__class__.__name__, e.orig)
            await db.rollback()
            raise DuplicateError(f"Codice {codice} già assegnato: riprovare")
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy creazione %s: %s - %s", self.label, e.__class__.__name__, e)
            await db.rollback()
            raise ConflictError(f"Errore del database durante la creazione del {self.label.lower()}")

        logger.info("Creato %s %s - %s", self.label.lower(), item.codice_anagrafica, item.nome)
        await event_bus.emit(
            EventType.ANAGRAFICA_CHANGED, tabella=self.model.__tablename__, id=str(item.id), azione="creato",
        )
        await notifier.success(f"{self.label} '{item.nome}' aggiunto con successo!")
        return item

    async def update(self, db: AsyncSession, item_id: uuid.UUID, data: BaseModel) -> ModelT:
        """
        Raises:
            NotFoundError: Se il record non esiste
            DuplicateError: Se la partita IVA è già registrata
        """
        item = await self.get_by_id(db, item_id)
        update_data = data.model_dump(mode="json", exclude_unset=True)
        if update_data.get("partita_iva") and update_data["partita_iva"] != item.partita_iva:
            await self._check_partita_iva(db, update_data["partita_iva"], exclude_id=item_id)

        for field, value in update_data.items():
            if field == "nome" and value is None:
                continue
            setattr(item, field, value)

        try:
            await db.flush()
            await db.refresh(item)
        except SQLAlchemyError as e:
            logger.error("Errore SQLAlchemy aggiornamento %s: %s - %s", self.label, e.__class__.__name__, e)
            await db.rollback()
            raise ConflictError(f"Errore del database durante l'aggiornamento del {self.label.lower()}")

        logger.info("Aggiornato %s %s - %s", self.label.lower(), item.codice_anagrafica, item.nome)
        await event_bus.emit(
            EventType.ANAGRAFICA_CHANGED, tabella=self.model.__tablename__, id=str(item.id), azione="modificato",
        )
        await notifier.success(f"{self.label} '{item.nome}' modificato con successo!")
        return item

    async def delete(self, db: AsyncSession, item_id: uuid.UUID) -> None:
        """
        Raises:
            NotFoundError: Se il record non esiste
            ConflictError: Se il fornitore è referenziato da ordini d'acquisto
        """
        item = await self.get_by_id(db, item_id)

        if self.model is Fornitore:
            count = await db.execute(
                select(func.count()).select_from(OrdineAcquisto).where(OrdineAcquisto.fornitore_id == item_id)
            )
            ordini = count.scalar() or 0
            if ordini:
                logger.warning("Eliminazione bloccata: fornitore %s usato da %s ordini", item_id, ordini)
                raise ConflictError(
                    f"Impossibile eliminare il fornitore '{item.nome}': "
                    f"è presente in {ordini} ordini d'acquisto"
                )

        await db.delete(item)
        await db.flush()

        logger.info("Eliminato %s %s - %s", self.label.lower(), item.codice_anagrafica, item.nome)
        await event_bus.emit(
            EventType.ANAGRAFICA_CHANGED, tabella=self.model.__tablename__, id=str(item_id), azione="eliminato",
        )
        await notifier.success(f"{self.label} '{item.nome}' eliminato")


# Istanze singleton dei service
fornitore_service: AnagraficaService[Fornitore] = AnagraficaService(Fornitore, fornitore_code_generator, "Fornitore")
cliente_service: AnagraficaService[Cliente] = AnagraficaService(Cliente, cliente_code_generator, "Cliente")
