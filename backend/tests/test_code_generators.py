"""
Unit tests per i generatori di codici.

Parsing, politiche massimo + 1 / primo buco libero, contatori per anno
e lettura dei massimi dal database.
"""

import pytest

from app.models import CartoneEsaurito, CartoneGiacenza, CartoneOrdine, Fustella
from app.services.code_generators import (
    GapFillingCodeGenerator,
    SequentialCodeGenerator,
    YearSequenceGenerator,
    code_generator_service,
    cartone_code_generator,
    fustella_code_generator,
    parse_code_number,
    parse_year_sequence,
    pulitore_code_generator,
)
from tests.conftest import articolo_cartone, crea_ordine


# ============================================================
# Parsing
# ============================================================


class TestParsing:
    """Test per l'estrazione della parte numerica dei codici."""

    def test_parse_code_number(self):
        """Test codice standard."""
        assert parse_code_number("CTN-012", ["CTN"]) == 12

    def test_parse_code_number_confronto_numerico(self):
        """Test CTN-1000 è maggiore di CTN-999."""
        assert parse_code_number("CTN-1000", ["CTN"]) > parse_code_number("CTN-999", ["CTN"])

    def test_parse_code_number_prefisso_diverso(self):
        """Test prefisso non riconosciuto."""
        assert parse_code_number("FST-001", ["CTN"]) is None
        assert parse_code_number(None, ["CTN"]) is None
        assert parse_code_number("CTN-abc", ["CTN"]) is None

    def test_parse_code_number_alias(self):
        """Test alias PUL accettato per i pulitori."""
        assert parse_code_number("PUL-007", ["PU", "PUL"]) == 7

    def test_parse_year_sequence(self):
        """Test sequenza per anno."""
        assert parse_year_sequence("12/25", "25") == 12
        assert parse_year_sequence("12/24", "25") is None
        assert parse_year_sequence("abc/25", "25") is None


# ============================================================
# Generatori in memoria
# ============================================================


class TestSequentialCodeGenerator:
    """Test per la politica massimo + 1."""

    def test_next_dopo_reset(self):
        """Test reset(41) → CTN-042."""
        gen = SequentialCodeGenerator("CTN")
        gen.reset(41)
        assert gen.next() == "CTN-042"
        assert gen.next() == "CTN-043"

    def test_peek_non_consuma(self):
        """Test l'anteprima non avanza il contatore."""
        gen = SequentialCodeGenerator("PU")
        gen.reset(3)
        assert gen.peek() == "PU-004"
        assert gen.next() == "PU-004"

    def test_oltre_tre_cifre(self):
        """Test il formato si allarga oltre 999."""
        gen = SequentialCodeGenerator("CTN")
        gen.reset(999)
        assert gen.next() == "CTN-1000"


class TestGapFillingCodeGenerator:
    """Test per la politica del primo buco libero."""

    def test_riempie_il_buco(self):
        """Test {1, 2, 4} → FST-003."""
        gen = GapFillingCodeGenerator("FST")
        gen.reset({1, 2, 4})
        assert gen.next() == "FST-003"
        assert gen.next() == "FST-005"

    def test_senza_buchi(self):
        """Test {1, 2, 3} → FST-004."""
        gen = GapFillingCodeGenerator("FST")
        gen.reset({1, 2, 3})
        assert gen.next() == "FST-004"

    def test_reset_con_intero(self):
        """Test reset(N) occupa i numeri 1..N."""
        gen = GapFillingCodeGenerator("FST")
        gen.reset(2)
        assert gen.next() == "FST-003"
        gen.reset(0)
        assert gen.next() == "FST-001"


class TestYearSequenceGenerator:
    """Test per i contatori per anno solare."""

    def test_anno_legacy_parte_da_offset(self):
        """Test l'anno legacy non azzerato parte dall'offset."""
        gen = YearSequenceGenerator("FSC", legacy_year=2024, legacy_offset=31)
        assert gen.next(2024) == "32/24"
        assert gen.next(2025) == "1/25"

    def test_contatori_indipendenti(self):
        """Test un contatore per anno."""
        gen = YearSequenceGenerator("FSC")
        gen.reset(5, 2025)
        assert gen.next(2025) == "6/25"
        assert gen.next(2026) == "1/26"
        assert gen.next(2025) == "7/25"

    def test_peek(self):
        """Test anteprima senza consumo."""
        gen = YearSequenceGenerator("ordini_acquisto")
        gen.reset(9, 2025)
        assert gen.peek(2025) == "10/25"
        assert gen.current(2025) == 9


# ============================================================
# Massimi letti dal database
# ============================================================


class TestFetchDaDatabase:
    """Test per il calcolo dei massimi sulle tabelle."""

    @pytest.mark.asyncio
    async def test_cartone_massimo_su_tre_tabelle(self, db):
        """Test CTN considera ordini, giacenza ed esauriti."""
        db.add_all([
            CartoneOrdine(codice="CTN-003", fogli=10),
            CartoneGiacenza(codice="CTN-010", fogli=10),
            CartoneEsaurito(codice="CTN-007", fogli=0),
        ])
        await db.commit()

        gen = cartone_code_generator()
        assert await gen.reset_from_db(db) == 10
        assert gen.next() == "CTN-011"

    @pytest.mark.asyncio
    async def test_fustella_riempie_buchi_anche_dagli_ordini(self, db, fornitore_fustelle):
        """Test FST legge tabella fustelle e righe JSON degli ordini."""
        db.add_all([Fustella(codice="FST-001"), Fustella(codice="FST-004")])
        await db.commit()
        await crea_ordine(
            db, fornitore_fustelle,
            [{"item_type": "fustella", "fustella_codice": "FST-002", "quantita": "1"}],
        )

        gen = fustella_code_generator()
        await gen.reset_from_db(db)
        assert gen.next() == "FST-003"

    @pytest.mark.asyncio
    async def test_pulitore_accetta_alias_pul(self, db):
        """Test i vecchi codici PUL-### contano per il massimo."""
        db.add_all([
            Fustella(codice="FST-001", pulitore_codice="PU-002"),
            Fustella(codice="FST-002", pulitore_codice="PUL-005"),
        ])
        await db.commit()

        gen = pulitore_code_generator()
        await gen.reset_from_db(db)
        assert gen.next() == "PU-006"

    @pytest.mark.asyncio
    async def test_sessione_ordine(self, db, fornitore_cartone):
        """Test sessione: numero ordine e commessa FSC per anno."""
        await crea_ordine(
            db, fornitore_cartone,
            [articolo_cartone("CTN-004", fsc=True, rif_commessa_fsc="3/25")],
            numero="7/25",
        )

        session = await code_generator_service.open_ordine_session(db, year=2025)
        assert session.next_numero_ordine() == "8/25"
        assert session.next_rif_commessa_fsc() == "4/25"
        assert session.cartoni.next() == "CTN-005"

    @pytest.mark.asyncio
    async def test_sessione_anno_legacy_vuoto(self, db):
        """Test FSC nell'anno legacy senza righe parte dall'offset."""
        session = await code_generator_service.open_ordine_session(db, year=2026, fsc_years=[2024])
        assert session.next_rif_commessa_fsc(2024) == "32/24"

    @pytest.mark.asyncio
    async def test_preview(self, db):
        """Test anteprima su database vuoto."""
        preview = await code_generator_service.preview(db, 2025)
        assert preview["numero_ordine"] == "1/25"
        assert preview["cartone"] == "CTN-001"
        assert preview["fustella"] == "FST-001"
        assert preview["pulitore"] == "PU-001"
        assert preview["cliente"] == "CLI-001"
        assert preview["fornitore"] == "FOR-001"
