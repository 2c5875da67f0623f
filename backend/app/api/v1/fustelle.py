"""
Router FastAPI per il Magazzino Fustelle
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.fustella import (
    FustellaCreate,
    FustellaDisponibilitaUpdate,
    FustellaRead,
    FustellaUpdate,
)
from app.services.fustella_service import FustellaService, fustella_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/fustelle",
    tags=["Magazzino Fustelle"],
)


def get_fustella_service() -> FustellaService:
    return fustella_service


@router.get(
    "/",
    name="fustelle_lista",
    summary="Lista fustelle",
    response_model=List[FustellaRead],
)
async def get_fustelle(
    disponibile: Optional[bool] = Query(None, description="Filtra per disponibilità"),
    search: Optional[str] = Query(None, description="Termine di ricerca"),
    db: AsyncSession = Depends(get_db),
    service: FustellaService = Depends(get_fustella_service),
) -> List[FustellaRead]:
    fustelle = await service.get_all(db, disponibile=disponibile, search=search)
    return [FustellaRead.model_validate(f) for f in fustelle]


@router.get(
    "/{codice}",
    name="fustella_dettaglio",
    summary="Dettaglio fustella",
    response_model=FustellaRead,
)
async def get_fustella(
    codice: str,
    db: AsyncSession = Depends(get_db),
    service: FustellaService = Depends(get_fustella_service),
) -> FustellaRead:
    fustella = await service.get_by_codice(db, codice)
    return FustellaRead.model_validate(fustella)


@router.post(
    "/",
    name="fustella_crea",
    summary="Inserisci fustella",
    description="Senza codice esplicito viene assegnato il primo FST libero.",
    response_model=FustellaRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_fustella(
    data: FustellaCreate,
    db: AsyncSession = Depends(get_db),
    service: FustellaService = Depends(get_fustella_service),
) -> FustellaRead:
    fustella = await service.aggiungi_fustella(db, data)
    await db.commit()
    return FustellaRead.model_validate(fustella)


@router.put(
    "/{codice}",
    name="fustella_aggiorna",
    summary="Modifica fustella",
    response_model=FustellaRead,
)
async def update_fustella(
    codice: str,
    data: FustellaUpdate,
    db: AsyncSession = Depends(get_db),
    service: FustellaService = Depends(get_fustella_service),
) -> FustellaRead:
    fustella = await service.modifica_fustella(db, codice, data)
    await db.commit()
    return FustellaRead.model_validate(fustella)


@router.patch(
    "/{codice}/disponibilita",
    name="fustella_disponibilita",
    summary="Cambia disponibilità",
    response_model=FustellaRead,
)
async def update_disponibilita(
    codice: str,
    data: FustellaDisponibilitaUpdate,
    db: AsyncSession = Depends(get_db),
    service: FustellaService = Depends(get_fustella_service),
) -> FustellaRead:
    fustella = await service.cambia_disponibilita_fustella(db, codice, data.disponibile)
    await db.commit()
    return FustellaRead.model_validate(fustella)


@router.delete(
    "/{codice}",
    name="fustella_elimina",
    summary="Elimina fustella",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_fustella(
    codice: str,
    db: AsyncSession = Depends(get_db),
    service: FustellaService = Depends(get_fustella_service),
) -> None:
    await service.elimina_fustella(db, codice)
    await db.commit()
