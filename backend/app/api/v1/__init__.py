"""
API v1 Routes
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Router versione 1 dell'API.
"""

from fastapi import APIRouter

from app.api.v1 import anagrafiche, cartoni, codici, fustelle, ordini_acquisto

# Router aggregato per v1
api_v1_router = APIRouter(prefix="/api/v1")

# Includi i router dei moduli
api_v1_router.include_router(ordini_acquisto.router)
api_v1_router.include_router(cartoni.router)
api_v1_router.include_router(fustelle.router)
api_v1_router.include_router(anagrafiche.router)
api_v1_router.include_router(codici.router)

# Esportazione
__all__ = ["api_v1_router"]
