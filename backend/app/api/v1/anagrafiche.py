"""
Router FastAPI per le Anagrafiche (Fornitori e Clienti)
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.anagrafica import (
    ClienteCreate,
    ClienteRead,
    ClienteUpdate,
    FornitoreCreate,
    FornitoreRead,
    FornitoreUpdate,
)
from app.services.anagrafica_service import cliente_service, fornitore_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/anagrafiche",
    tags=["Anagrafiche"],
)


# -------------------------------------------------------------------
# Fornitori
# -------------------------------------------------------------------

@router.get(
    "/fornitori",
    name="fornitori_lista",
    summary="Lista fornitori",
    response_model=List[FornitoreRead],
)
async def get_fornitori(
    search: Optional[str] = Query(None, description="Termine di ricerca"),
    db: AsyncSession = Depends(get_db),
) -> List[FornitoreRead]:
    fornitori = await fornitore_service.get_all(db, search=search)
    return [FornitoreRead.model_validate(f) for f in fornitori]


@router.get(
    "/fornitori/{fornitore_id}",
    name="fornitore_dettaglio",
    summary="Dettaglio fornitore",
    response_model=FornitoreRead,
)
async def get_fornitore(
    fornitore_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> FornitoreRead:
    fornitore = await fornitore_service.get_by_id(db, fornitore_id)
    return FornitoreRead.model_validate(fornitore)


@router.post(
    "/fornitori",
    name="fornitore_crea",
    summary="Crea fornitore",
    description="Il codice FOR-### viene assegnato automaticamente.",
    response_model=FornitoreRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_fornitore(
    data: FornitoreCreate,
    db: AsyncSession = Depends(get_db),
) -> FornitoreRead:
    fornitore = await fornitore_service.create(db, data)
    await db.commit()
    return FornitoreRead.model_validate(fornitore)


@router.put(
    "/fornitori/{fornitore_id}",
    name="fornitore_aggiorna",
    summary="Aggiorna fornitore",
    response_model=FornitoreRead,
)
async def update_fornitore(
    fornitore_id: uuid.UUID,
    data: FornitoreUpdate,
    db: AsyncSession = Depends(get_db),
) -> FornitoreRead:
    fornitore = await fornitore_service.update(db, fornitore_id, data)
    await db.commit()
    return FornitoreRead.model_validate(fornitore)


@router.delete(
    "/fornitori/{fornitore_id}",
    name="fornitore_elimina",
    summary="Elimina fornitore",
    description="Non consentito se il fornitore è presente in ordini d'acquisto.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_fornitore(
    fornitore_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    await fornitore_service.delete(db, fornitore_id)
    await db.commit()


# -------------------------------------------------------------------
# Clienti
# -------------------------------------------------------------------

@router.get(
    "/clienti",
    name="clienti_lista",
    summary="Lista clienti",
    response_model=List[ClienteRead],
)
async def get_clienti(
    search: Optional[str] = Query(None, description="Termine di ricerca"),
    db: AsyncSession = Depends(get_db),
) -> List[ClienteRead]:
    clienti = await cliente_service.get_all(db, search=search)
    return [ClienteRead.model_validate(c) for c in clienti]


@router.get(
    "/clienti/{cliente_id}",
    name="cliente_dettaglio",
    summary="Dettaglio cliente",
    response_model=ClienteRead,
)
async def get_cliente(
    cliente_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> ClienteRead:
    cliente = await cliente_service.get_by_id(db, cliente_id)
    return ClienteRead.model_validate(cliente)


@router.post(
    "/clienti",
    name="cliente_crea",
    summary="Crea cliente",
    description="Il codice CLI-### viene assegnato automaticamente.",
    response_model=ClienteRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_cliente(
    data: ClienteCreate,
    db: AsyncSession = Depends(get_db),
) -> ClienteRead:
    cliente = await cliente_service.create(db, data)
    await db.commit()
    return ClienteRead.model_validate(cliente)


@router.put(
    "/clienti/{cliente_id}",
    name="cliente_aggiorna",
    summary="Aggiorna cliente",
    response_model=ClienteRead,
)
async def update_cliente(
    cliente_id: uuid.UUID,
    data: ClienteUpdate,
    db: AsyncSession = Depends(get_db),
) -> ClienteRead:
    cliente = await cliente_service.update(db, cliente_id, data)
    await db.commit()
    return ClienteRead.model_validate(cliente)


@router.delete(
    "/clienti/{cliente_id}",
    name="cliente_elimina",
    summary="Elimina cliente",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_cliente(
    cliente_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    await cliente_service.delete(db, cliente_id)
    await db.commit()
