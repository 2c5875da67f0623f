"""
Router FastAPI per l'anteprima dei codici
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Restituisce il prossimo codice di ogni famiglia, calcolato dal database
all'apertura di un modulo. L'anteprima non riserva il codice.
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.services.code_generators import code_generator_service

router = APIRouter(
    prefix="/codici",
    tags=["Codici"],
)


@router.get(
    "/prossimi",
    name="codici_prossimi",
    summary="Prossimi codici",
    response_model=Dict[str, str],
)
async def get_prossimi_codici(
    anno: Optional[int] = Query(None, ge=2000, le=2099, description="Anno (default: anno corrente)"),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, str]:
    return await code_generator_service.preview(db, anno)
