"""
Reset del database del Gestionale Cartotecnica.

Elimina e ricrea tutte le tabelle (anagrafiche, ordini d'acquisto,
magazzino cartoni, fustelle, storico). I dati vengono persi.
"""

import asyncio
import sys
import os

# Aggiungi backend/ alla PYTHONPATH per importare app.*
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from app.core.database import engine
from app.models import Base

async def reset():
    print(f"Connessione al database, eliminazione di {len(Base.metadata.tables)} tabelle...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        print("Tabelle eliminate. Creazione nuove tabelle...")
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print("Database resettato: " + ", ".join(sorted(Base.metadata.tables)))

if __name__ == "__main__":
    asyncio.run(reset())
