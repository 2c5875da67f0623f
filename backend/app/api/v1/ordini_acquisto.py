"""
Router FastAPI per gli Ordini d'Acquisto
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Definisce gli endpoint API per la gestione degli ordini d'acquisto
e per la propagazione dello stato verso il magazzino.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.common import OperationResult
from app.schemas.ordine_acquisto import (
    ArticleStatusUpdate,
    OrdineAcquistoCreate,
    OrdineAcquistoList,
    OrdineAcquistoRead,
    OrdineAcquistoStatusUpdate,
    OrdineAcquistoUpdate,
)
from app.services.anagrafica_service import cliente_service
from app.services.ordine_acquisto_service import OrdineAcquistoService, ordine_acquisto_service
from app.services.pdf_service import build_documento_ordine, pdf_service
from app.services.sync_service import inventory_sync_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/ordini-acquisto",
    tags=["Ordini d'Acquisto"],
)


# -------------------------------------------------------------------
# Dependency Injection
# -------------------------------------------------------------------

def get_ordine_acquisto_service() -> OrdineAcquistoService:
    """
    Dependency per ottenere il service degli ordini d'acquisto.

    Restituisce l'istanza condivisa, che mantiene la vista in lettura.
    """
    return ordine_acquisto_service


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.get(
    "/",
    name="ordini_acquisto_lista",
    summary="Lista ordini d'acquisto",
    description="Carica tutti gli ordini con il fornitore, correggendo i totali non allineati.",
    response_model=OrdineAcquistoList,
    status_code=status.HTTP_200_OK,
)
async def get_ordini_acquisto(
    db: AsyncSession = Depends(get_db),
    service: OrdineAcquistoService = Depends(get_ordine_acquisto_service),
) -> OrdineAcquistoList:
    ordini = await service.load_ordini_acquisto(db)
    return OrdineAcquistoList(items=ordini, total=len(ordini))


@router.get(
    "/{ordine_id}",
    name="ordine_acquisto_dettaglio",
    summary="Dettaglio ordine d'acquisto",
    response_model=OrdineAcquistoRead,
    status_code=status.HTTP_200_OK,
)
async def get_ordine_acquisto(
    ordine_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: OrdineAcquistoService = Depends(get_ordine_acquisto_service),
) -> OrdineAcquistoRead:
    """
    Raises:
        NotFoundError: Se l'ordine non esiste
    """
    ordine = await service.get_by_id(db, ordine_id)
    return service.to_read(ordine)


@router.post(
    "/",
    name="ordine_acquisto_crea",
    summary="Crea ordine d'acquisto",
    description="Crea l'ordine assegnando numero e codici mancanti, poi sincronizza il magazzino.",
    response_model=OrdineAcquistoRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_ordine_acquisto(
    ordine_data: OrdineAcquistoCreate,
    db: AsyncSession = Depends(get_db),
    service: OrdineAcquistoService = Depends(get_ordine_acquisto_service),
) -> OrdineAcquistoRead:
    result = await service.add_ordine_acquisto(db, ordine_data)
    return result.raise_for_error().data["ordine"]


@router.put(
    "/{ordine_id}",
    name="ordine_acquisto_aggiorna",
    summary="Aggiorna ordine d'acquisto",
    description="Aggiorna l'intestazione e/o sostituisce gli articoli. Il numero ordine non è modificabile.",
    response_model=OrdineAcquistoRead,
    status_code=status.HTTP_200_OK,
)
async def update_ordine_acquisto(
    ordine_id: uuid.UUID,
    ordine_data: OrdineAcquistoUpdate,
    db: AsyncSession = Depends(get_db),
    service: OrdineAcquistoService = Depends(get_ordine_acquisto_service),
) -> OrdineAcquistoRead:
    result = await service.update_ordine_acquisto(db, ordine_id, ordine_data)
    return result.raise_for_error().data["ordine"]


@router.patch(
    "/{ordine_id}/stato",
    name="ordine_acquisto_stato",
    summary="Cambia stato ordine",
    description="Gli stati annullato, inviato e in_attesa vengono estesi a tutti gli articoli.",
    response_model=OperationResult,
    status_code=status.HTTP_200_OK,
)
async def update_ordine_acquisto_status(
    ordine_id: uuid.UUID,
    status_data: OrdineAcquistoStatusUpdate,
    db: AsyncSession = Depends(get_db),
    service: OrdineAcquistoService = Depends(get_ordine_acquisto_service),
) -> OperationResult:
    result = await service.update_ordine_acquisto_status(db, ordine_id, status_data.stato)
    return result.raise_for_error()


@router.patch(
    "/{ordine_id}/articoli/stato",
    name="ordine_acquisto_stato_articolo",
    summary="Cambia stato di un articolo",
    description="Individua l'articolo per codice (CTN/FST/PU) o descrizione e ne aggiorna lo stato.",
    response_model=OperationResult,
    status_code=status.HTTP_200_OK,
)
async def update_article_status(
    ordine_id: uuid.UUID,
    status_data: ArticleStatusUpdate,
    db: AsyncSession = Depends(get_db),
    service: OrdineAcquistoService = Depends(get_ordine_acquisto_service),
) -> OperationResult:
    ordine = await service.get_by_id(db, ordine_id)
    result = await service.update_article_status_in_order(
        db, ordine.numero_ordine, status_data.identificativo, status_data.stato,
    )
    return result.raise_for_error()


@router.post(
    "/{ordine_id}/annulla",
    name="ordine_acquisto_annulla",
    summary="Annulla ordine d'acquisto",
    response_model=OperationResult,
    status_code=status.HTTP_200_OK,
)
async def cancel_ordine_acquisto(
    ordine_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: OrdineAcquistoService = Depends(get_ordine_acquisto_service),
) -> OperationResult:
    result = await service.cancel_ordine_acquisto(db, ordine_id)
    return result.raise_for_error()


@router.delete(
    "/{ordine_id}",
    name="ordine_acquisto_elimina",
    summary="Elimina definitivamente ordine d'acquisto",
    description="Elimina l'ordine e tutte le righe di magazzino derivate.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_ordine_acquisto(
    ordine_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: OrdineAcquistoService = Depends(get_ordine_acquisto_service),
) -> None:
    result = await service.delete_ordine_acquisto_permanently(db, ordine_id)
    result.raise_for_error()


@router.post(
    "/{ordine_id}/sync",
    name="ordine_acquisto_sync",
    summary="Sincronizza magazzino",
    description="Ricalcola le righe di magazzino derivate dall'ordine.",
    response_model=OperationResult,
    status_code=status.HTTP_200_OK,
)
async def sync_ordine_acquisto(
    ordine_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: OrdineAcquistoService = Depends(get_ordine_acquisto_service),
) -> OperationResult:
    ordine = await service.get_by_id(db, ordine_id)
    result = await inventory_sync_service.sync_article_inventory_status(db, ordine)
    return result.raise_for_error()


@router.get(
    "/{ordine_id}/pdf",
    name="ordine_acquisto_pdf",
    summary="PDF ordine d'acquisto",
    response_class=Response,
    status_code=status.HTTP_200_OK,
)
async def get_ordine_acquisto_pdf(
    ordine_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: OrdineAcquistoService = Depends(get_ordine_acquisto_service),
) -> Response:
    """Genera il documento d'ordine con i soli articoli non annullati."""
    ordine = await service.get_by_id(db, ordine_id)
    clienti = await cliente_service.get_all(db)
    context = build_documento_ordine(ordine, ordine.fornitore, clienti)
    pdf_bytes = pdf_service.render_ordine_pdf(context)

    filename = f"ordine_{ordine.numero_ordine.replace('/', '-')}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
