"""
Unit tests per gli articoli degli ordini d'acquisto e per i formati.

Logica pura: nessun database.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.core.exceptions import BusinessValidationError
from app.core.formati import calcola_kg, format_formato, format_grammatura, parse_formato, parse_grammatura
from app.schemas.articolo import (
    ArticleStatus,
    ArticoloCartone,
    ArticoloFustella,
    ArticoloGenerico,
    ArticoloPulitore,
    calcola_importo_totale,
    matches_identifier,
    parse_articolo,
    tutti_annullati,
    valida_articoli_per_fornitore,
)


# ============================================================
# Formati e kg
# ============================================================


class TestFormati:
    """Test per parsing di formato e grammatura."""

    @pytest.mark.parametrize("formato", ["70x100", "70 x 100 cm", "70×100", "70 100", "70X100cm"])
    def test_parse_formato(self, formato):
        """Test varianti di scrittura del formato."""
        assert parse_formato(formato) == (Decimal("70"), Decimal("100"))

    def test_parse_formato_decimale_con_virgola(self):
        """Test virgola decimale."""
        assert parse_formato("70,5x100") == (Decimal("70.5"), Decimal("100"))

    def test_parse_formato_non_valido(self):
        """Test formato non interpretabile."""
        assert parse_formato("A4") is None
        assert parse_formato(None) is None

    def test_parse_grammatura(self):
        """Test grammatura con e senza unità."""
        assert parse_grammatura("300 g/m²") == 300
        assert parse_grammatura("250") == 250
        assert parse_grammatura("n/d") is None

    def test_parse_grammatura_decimale(self):
        """Test grammatura con decimali non viene troncata."""
        assert parse_grammatura("300,5 g/m²") == Decimal("300.5")
        assert calcola_kg(1000, "100x100", "300,5") == Decimal("300.500")
        assert format_grammatura("300,5") == "300.5 g/m²"

    def test_calcola_kg(self):
        """Test 1000 fogli 100x100 da 100 g/m² pesano 100 kg."""
        assert calcola_kg(1000, "100x100cm", "100 g/m²") == Decimal("100.000")

    def test_calcola_kg_formato_standard(self):
        """Test 1000 fogli 70x100 da 300 g/m² pesano 210 kg."""
        assert calcola_kg(1000, "70x100", "300") == Decimal("210.000")

    def test_calcola_kg_dati_mancanti(self):
        """Test zero se formato o grammatura mancano."""
        assert calcola_kg(1000, None, "300") == Decimal("0")
        assert calcola_kg(0, "70x100", "300") == Decimal("0")

    def test_formattazione(self):
        """Test formattazione per la visualizzazione."""
        assert format_formato("70x100") == "70 × 100 cm"
        assert format_grammatura("300") == "300 g/m²"
        assert format_formato("A4") == "A4"


# ============================================================
# Varianti e invarianti
# ============================================================


class TestVariantiArticolo:
    """Test per il parsing dell'unione discriminata."""

    def test_parse_per_item_type(self):
        """Test la variante segue item_type."""
        articolo = parse_articolo({"item_type": "fustella", "fustella_codice": "FST-001"})
        assert isinstance(articolo, ArticoloFustella)

    def test_inferenza_senza_item_type(self):
        """Test righe storiche senza item_type."""
        assert isinstance(parse_articolo({"codice_ctn": "CTN-001", "numero_fogli": 10}), ArticoloCartone)
        assert isinstance(parse_articolo({"pulitore_codice_fustella": "PU-001"}), ArticoloPulitore)
        assert isinstance(parse_articolo({"descrizione": "Colla vinilica"}), ArticoloGenerico)

    def test_campi_di_altre_varianti_scartati(self):
        """Test cambio categoria: i campi estranei non sopravvivono."""
        articolo = parse_articolo({"item_type": "altro", "descrizione": "Inchiostro", "codice_ctn": "CTN-001"})
        assert "codice_ctn" not in articolo.to_json()

    def test_riga_non_valida(self):
        """Test quantità negativa rifiutata."""
        with pytest.raises(ValidationError):
            parse_articolo({"item_type": "cartone", "quantita": "-1"})

    def test_fsc_disattivato_azzera_riferimento(self):
        """Test rif_commessa_fsc solo per cartoni FSC."""
        articolo = ArticoloCartone(fsc=False, rif_commessa_fsc="3/25")
        assert articolo.rif_commessa_fsc is None

    def test_campi_dipendenti_fustella(self):
        """Test flag disattivati azzerano i campi collegati."""
        articolo = ArticoloFustella(
            fustella_codice="FST-001",
            has_pulitore=False,
            pulitore_codice_fustella="PU-001",
            prezzo_pulitore=Decimal("30"),
            tasselli_intercambiabili=False,
            nr_tasselli=4,
            incollatura=False,
            incollatrice="Bobst",
        )
        assert articolo.pulitore_codice_fustella is None
        assert articolo.prezzo_pulitore == Decimal("0")
        assert articolo.nr_tasselli is None
        assert articolo.incollatrice is None

    def test_alias_has_pulitore(self):
        """Test il flag accetta anche il nome hasPulitore."""
        articolo = parse_articolo({"item_type": "fustella", "hasPulitore": True, "pulitore_codice_fustella": "PU-003"})
        assert articolo.has_pulitore is True
        assert articolo.pulitore_codice_fustella == "PU-003"

    def test_pulitore_quantita_uno(self):
        """Test il pulitore separato ha sempre quantità 1."""
        assert ArticoloPulitore(quantita=Decimal("5")).quantita == Decimal("1")

    def test_matches_identifier_pulitore_incorporato(self):
        """Test una fustella risponde anche al codice del suo pulitore."""
        articolo = ArticoloFustella(fustella_codice="FST-002", has_pulitore=True, pulitore_codice_fustella="PU-004")
        assert matches_identifier(articolo, "FST-002")
        assert matches_identifier(articolo, "PU-004")
        assert not matches_identifier(articolo, "PU-005")


class TestTotali:
    """Test per importo totale e annullamenti."""

    def test_totale_esclude_annullati(self):
        """Test le righe annullate non contano."""
        articoli = [
            ArticoloGenerico(descrizione="Colla", quantita=Decimal("2"), prezzo_unitario=Decimal("10")),
            ArticoloGenerico(
                descrizione="Inchiostro", quantita=Decimal("1"), prezzo_unitario=Decimal("50"),
                stato=ArticleStatus.ANNULLATO,
            ),
        ]
        assert calcola_importo_totale(articoli) == Decimal("20.00")

    def test_totale_fustella_con_pulitore(self):
        """Test il prezzo del pulitore incorporato si somma alla riga."""
        articolo = ArticoloFustella(
            fustella_codice="FST-001", quantita=Decimal("1"), prezzo_unitario=Decimal("200"),
            has_pulitore=True, prezzo_pulitore=Decimal("35.50"),
        )
        assert calcola_importo_totale([articolo]) == Decimal("235.50")

    def test_tutti_annullati(self):
        """Test ordine con tutte le righe annullate."""
        annullato = ArticoloGenerico(descrizione="x", stato=ArticleStatus.ANNULLATO)
        attivo = ArticoloGenerico(descrizione="y")
        assert tutti_annullati([annullato, annullato])
        assert not tutti_annullati([annullato, attivo])
        assert not tutti_annullati([])


class TestArticoliPerFornitore:
    """Test per le varianti ammesse dalla categoria del fornitore."""

    def test_cartone_per_fornitore_cartone(self):
        """Test combinazione ammessa."""
        valida_articoli_per_fornitore([ArticoloCartone(codice_ctn="CTN-001")], "Cartone")

    def test_fustella_per_fornitore_cartone(self):
        """Test combinazione non ammessa."""
        with pytest.raises(BusinessValidationError):
            valida_articoli_per_fornitore([ArticoloFustella(fustella_codice="FST-001")], "Cartone")

    def test_pulitore_per_fornitore_fustelle(self):
        """Test pulitore ammesso per fornitori Fustelle."""
        valida_articoli_per_fornitore([ArticoloPulitore(pulitore_codice_fustella="PU-001")], "Fustelle")

    def test_categoria_sconosciuta(self):
        """Test categoria non valida."""
        with pytest.raises(BusinessValidationError):
            valida_articoli_per_fornitore([], "Legno")
