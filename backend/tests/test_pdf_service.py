"""
Test per il documento d'ordine (contesto e HTML).

Il rendering PDF richiede le librerie di sistema di WeasyPrint e non
viene eseguito qui: si verificano il contesto e l'HTML del template.
"""

import datetime
from decimal import Decimal

from app.models import Cliente, Fornitore, OrdineAcquisto
from app.services.pdf_service import build_documento_ordine, pdf_service
from tests.conftest import articolo_cartone


def _ordine(articoli, note=None):
    return OrdineAcquisto(
        numero_ordine="3/25",
        data_ordine=datetime.date(2025, 3, 1),
        stato="inviato",
        importo_totale=Decimal("0"),
        note=note,
        articoli=articoli,
    )


def _fornitore(considera_iva=True):
    return Fornitore(
        codice_anagrafica="FOR-001",
        nome="Cartiera Rossi Srl",
        tipo_fornitore="Cartone",
        considera_iva=considera_iva,
    )


class TestBuildDocumentoOrdine:
    """Test per il contesto del documento d'ordine."""

    def test_totali_con_iva(self):
        """Test imponibile, IVA al 22% e totale."""
        documento = build_documento_ordine(_ordine([articolo_cartone("CTN-001")]), _fornitore())

        assert documento["imponibile"] == Decimal("315.00")
        assert documento["aliquota_iva"] == Decimal("22.00")
        assert documento["iva"] == Decimal("69.30")
        assert documento["totale"] == Decimal("384.30")

    def test_senza_iva(self):
        """Test fornitore con considera_iva disattivato."""
        documento = build_documento_ordine(_ordine([articolo_cartone("CTN-001")]), _fornitore(False))

        assert documento["iva"] == Decimal("0.00")
        assert documento["totale"] == Decimal("315.00")

    def test_esclude_annullati_e_illeggibili(self):
        """Test righe annullate o non valide non compaiono."""
        documento = build_documento_ordine(
            _ordine([
                articolo_cartone("CTN-001"),
                articolo_cartone("CTN-002", stato="annullato"),
                articolo_cartone("CTN-003", quantita="-1"),
                None,
            ]),
            _fornitore(),
        )

        assert [riga["codice"] for riga in documento["righe"]] == ["CTN-001"]

    def test_riga_cartone(self):
        """Test dettagli di visualizzazione del cartone."""
        documento = build_documento_ordine(
            _ordine([articolo_cartone("CTN-001", fsc=True, rif_commessa_fsc="4/25")]),
            _fornitore(),
            clienti=[Cliente(codice_anagrafica="CLI-007", nome="Pasticceria Dolce")],
        )

        riga = documento["righe"][0]
        assert riga["unita"] == "kg"
        assert "Formato: 70 × 100 cm" in riga["dettagli"]
        assert "FSC - commessa 4/25" in riga["dettagli"]
        assert riga["cliente_codice"] == "CLI-007"

    def test_riga_fustella_con_pulitore(self):
        """Test il pulitore incorporato compare nei dettagli e nel totale."""
        documento = build_documento_ordine(
            _ordine([{
                "item_type": "fustella",
                "fustella_codice": "FST-001",
                "quantita": "1",
                "prezzo_unitario": "200",
                "hasPulitore": True,
                "pulitore_codice_fustella": "PU-001",
                "prezzo_pulitore": "30",
            }]),
            _fornitore(False),
        )

        riga = documento["righe"][0]
        assert riga["totale"] == Decimal("230.00")
        assert "Pulitore PU-001: € 30.00" in riga["dettagli"]


class TestRenderHtml:
    """Test per il template HTML."""

    def test_render(self):
        """Test intestazione, righe e note nel documento."""
        documento = build_documento_ordine(
            _ordine([articolo_cartone("CTN-001")], note="Consegna entro venerdì"),
            _fornitore(),
        )

        html = pdf_service.render_html(documento)

        assert "Ordine d'acquisto n. 3/25" in html
        assert "CTN-001" in html
        assert "Cartiera Rossi Srl" in html
        assert "Consegna entro venerdì" in html
        assert "384.30" in html
