"""
Test per i service CRUD: fustelle e anagrafiche.

I metodi eseguono flush; i test confermano con commit dove serve
rileggere i dati.
"""

import uuid
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from app.core.events import EventType
from app.core.exceptions import ConflictError, DuplicateError, NotFoundError
from app.models import Fustella
from app.schemas.anagrafica import ClienteCreate, FornitoreCreate, FornitoreUpdate
from app.schemas.fustella import FustellaCreate, FustellaUpdate
from app.services.anagrafica_service import cliente_service, fornitore_service
from app.services.fustella_service import fustella_service
from tests.conftest import crea_ordine


# ============================================================
# Fustelle
# ============================================================


class TestFustellaService:
    """Test per l'inserimento e la manutenzione delle fustelle."""

    @pytest.mark.asyncio
    async def test_aggiungi_primo_codice_libero(self, db, event_spy):
        """Test senza codice viene assegnato il primo FST libero."""
        db.add_all([Fustella(codice="FST-001"), Fustella(codice="FST-003")])
        await db.commit()

        fustella = await fustella_service.aggiungi_fustella(db, FustellaCreate(cliente="Pasticceria Dolce"))
        await db.commit()

        assert fustella.codice == "FST-002"
        assert fustella.disponibile is True
        assert len(event_spy.of_type(EventType.FUSTELLE_CHANGED)) == 1

    @pytest.mark.asyncio
    async def test_aggiungi_codice_duplicato(self, db):
        """Test codice esplicito già in uso."""
        db.add(Fustella(codice="FST-001"))
        await db.commit()

        with pytest.raises(DuplicateError):
            await fustella_service.aggiungi_fustella(db, FustellaCreate(codice="fst-001"))

    def test_codice_non_valido(self):
        """Test formato del codice."""
        with pytest.raises(ValidationError):
            FustellaCreate(codice="X-1")

    @pytest.mark.asyncio
    async def test_modifica_azzera_campi_dipendenti(self, db):
        """Test disattivando l'incollatura i campi collegati si svuotano."""
        db.add(Fustella(codice="FST-001", incollatura=True, incollatrice="Bobst", tipo_incollatura="Lineare"))
        await db.commit()

        fustella = await fustella_service.modifica_fustella(db, "FST-001", FustellaUpdate(incollatura=False))

        assert fustella.incollatrice is None
        assert fustella.tipo_incollatura is None

    @pytest.mark.asyncio
    async def test_disponibilita(self, db):
        """Test cambio di disponibilità."""
        db.add(Fustella(codice="FST-001"))
        await db.commit()

        fustella = await fustella_service.cambia_disponibilita_fustella(db, "FST-001", True)

        assert fustella.disponibile is True

    @pytest.mark.asyncio
    async def test_disponibilita_fustella_inesistente(self, mock_db):
        """Test codice sconosciuto: nessun flush sul database."""
        mock_db.get = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError):
            await fustella_service.cambia_disponibilita_fustella(mock_db, "FST-404", True)

        mock_db.get.assert_awaited_once_with(Fustella, "FST-404")
        mock_db.flush.assert_not_called()

    @pytest.mark.asyncio
    async def test_elimina_e_ricerca(self, db):
        """Test eliminazione e ricerca per cliente."""
        db.add_all([
            Fustella(codice="FST-001", cliente="Pasticceria Dolce"),
            Fustella(codice="FST-002", cliente="Vini Neri"),
        ])
        await db.commit()

        assert [f.codice for f in await fustella_service.get_all(db, search="dolce")] == ["FST-001"]

        await fustella_service.elimina_fustella(db, "FST-001")
        await db.commit()

        with pytest.raises(NotFoundError):
            await fustella_service.get_by_codice(db, "FST-001")


# ============================================================
# Anagrafiche
# ============================================================


class TestAnagraficaService:
    """Test per fornitori e clienti."""

    @pytest.mark.asyncio
    async def test_crea_fornitore_con_codice(self, db, fornitore_cartone):
        """Test codice FOR progressivo."""
        fornitore = await fornitore_service.create(
            db, FornitoreCreate(nome="Colle Gialle", tipo_fornitore="Colla", partita_iva="01234567897"),
        )
        await db.commit()

        assert fornitore.codice_anagrafica == "FOR-002"
        assert fornitore.tipo_fornitore == "Colla"

    @pytest.mark.asyncio
    async def test_partita_iva_duplicata(self, db):
        """Test partita IVA già registrata."""
        await cliente_service.create(db, ClienteCreate(nome="Pasticceria Dolce", partita_iva="01234567897"))
        await db.commit()

        with pytest.raises(DuplicateError):
            await cliente_service.create(db, ClienteCreate(nome="Altro", partita_iva="IT01234567897"))

    def test_partita_iva_non_valida(self):
        """Test cifra di controllo errata."""
        with pytest.raises(ValidationError):
            ClienteCreate(nome="Pasticceria Dolce", partita_iva="01234567890")

    @pytest.mark.asyncio
    async def test_aggiorna(self, db, fornitore_cartone):
        """Test aggiornamento parziale."""
        fornitore = await fornitore_service.update(
            db, fornitore_cartone.id, FornitoreUpdate(considera_iva=False, provincia="mi"),
        )

        assert fornitore.considera_iva is False
        assert fornitore.provincia == "MI"

    @pytest.mark.asyncio
    async def test_elimina_fornitore_con_ordini(self, db, fornitore_cartone):
        """Test un fornitore usato da ordini non si elimina."""
        await crea_ordine(db, fornitore_cartone, [])

        with pytest.raises(ConflictError):
            await fornitore_service.delete(db, fornitore_cartone.id)

    @pytest.mark.asyncio
    async def test_elimina_inesistente(self, db):
        """Test ID sconosciuto."""
        with pytest.raises(NotFoundError):
            await cliente_service.delete(db, uuid.uuid4())
