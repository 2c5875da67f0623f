"""
Router FastAPI per il Magazzino Cartoni
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Endpoint per le azioni di magazzino: ogni azione aggiorna le tabelle,
scrive lo storico e riporta lo stato sull'ordine d'acquisto.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.cartone import (
    CartoneOrdineUpdate,
    ConfermaOrdineRequest,
    MagazzinoCartoniRead,
    RiportaInGiacenzaRequest,
    ScaricoFogliRequest,
    SpostaInGiacenzaRequest,
)
from app.schemas.common import OperationResult
from app.schemas.storico import StoricoMovimentoRead
from app.services.cartone_service import CartoneService, cartone_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cartoni",
    tags=["Magazzino Cartoni"],
)


def get_cartone_service() -> CartoneService:
    return cartone_service


@router.get(
    "/",
    name="magazzino_cartoni",
    summary="Magazzino cartoni",
    description="Ordini in arrivo, giacenza, esauriti e storico (dal più recente).",
    response_model=MagazzinoCartoniRead,
)
async def get_magazzino(
    db: AsyncSession = Depends(get_db),
    service: CartoneService = Depends(get_cartone_service),
) -> MagazzinoCartoniRead:
    return await service.load_data(db)


@router.get(
    "/storico",
    name="storico_movimenti",
    summary="Storico movimenti",
    response_model=List[StoricoMovimentoRead],
)
async def get_storico(
    codice: Optional[str] = Query(None, description="Filtra per codice cartone"),
    db: AsyncSession = Depends(get_db),
    service: CartoneService = Depends(get_cartone_service),
) -> List[StoricoMovimentoRead]:
    return await service.get_storico(db, codice)


@router.post(
    "/{codice}/giacenza",
    name="cartone_carico",
    summary="Carica a magazzino",
    description="Sposta un cartone in arrivo in giacenza; l'articolo dell'ordine passa a ricevuto.",
    response_model=OperationResult,
)
async def sposta_in_giacenza(
    codice: str,
    data: SpostaInGiacenzaRequest,
    db: AsyncSession = Depends(get_db),
    service: CartoneService = Depends(get_cartone_service),
) -> OperationResult:
    result = await service.sposta_in_giacenza(db, codice, data)
    return result.raise_for_error()


@router.post(
    "/{codice}/scarico",
    name="cartone_scarico",
    summary="Scarico fogli",
    description="Scarica fogli dalla giacenza; a zero fogli il cartone passa negli esauriti.",
    response_model=OperationResult,
)
async def scarico_fogli(
    codice: str,
    data: ScaricoFogliRequest,
    db: AsyncSession = Depends(get_db),
    service: CartoneService = Depends(get_cartone_service),
) -> OperationResult:
    result = await service.scarico_fogli(db, codice, data)
    return result.raise_for_error()


@router.post(
    "/{codice}/riporta-in-giacenza",
    name="cartone_riporta_in_giacenza",
    summary="Riporta in giacenza",
    response_model=OperationResult,
)
async def riporta_in_giacenza(
    codice: str,
    data: Optional[RiportaInGiacenzaRequest] = None,
    db: AsyncSession = Depends(get_db),
    service: CartoneService = Depends(get_cartone_service),
) -> OperationResult:
    result = await service.riporta_in_giacenza(db, codice, data)
    return result.raise_for_error()


@router.post(
    "/{codice}/riporta-in-ordini",
    name="cartone_riporta_in_ordini",
    summary="Riporta negli ordini in arrivo",
    response_model=OperationResult,
)
async def riporta_in_ordini(
    codice: str,
    db: AsyncSession = Depends(get_db),
    service: CartoneService = Depends(get_cartone_service),
) -> OperationResult:
    result = await service.riporta_in_ordini(db, codice)
    return result.raise_for_error()


@router.patch(
    "/{codice}/conferma",
    name="cartone_conferma",
    summary="Conferma / annulla conferma",
    response_model=OperationResult,
)
async def conferma_ordine(
    codice: str,
    data: ConfermaOrdineRequest,
    db: AsyncSession = Depends(get_db),
    service: CartoneService = Depends(get_cartone_service),
) -> OperationResult:
    result = await service.conferma_ordine(db, codice, data.confermato)
    return result.raise_for_error()


@router.put(
    "/ordini/{codice}",
    name="cartone_ordine_modifica",
    summary="Modifica cartone in arrivo",
    response_model=OperationResult,
)
async def modifica_ordine(
    codice: str,
    data: CartoneOrdineUpdate,
    db: AsyncSession = Depends(get_db),
    service: CartoneService = Depends(get_cartone_service),
) -> OperationResult:
    result = await service.modifica_ordine(db, codice, data)
    return result.raise_for_error()


@router.delete(
    "/ordini/{codice}",
    name="cartone_ordine_elimina",
    summary="Elimina cartone in arrivo",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def elimina_ordine(
    codice: str,
    db: AsyncSession = Depends(get_db),
    service: CartoneService = Depends(get_cartone_service),
) -> None:
    result = await service.elimina_ordine(db, codice)
    result.raise_for_error()
