"""
Service per la generazione del PDF dell'ordine d'acquisto con WeasyPrint + Jinja2.
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)
"""

import logging
import os
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.formati import format_formato, format_grammatura
from app.models import Cliente, Fornitore, OrdineAcquisto
from app.schemas.articolo import (
    ArticoloCartone,
    ArticoloFustella,
    ArticoloGenerico,
    ArticoloPulitore,
    parse_articolo,
)

logger = logging.getLogger(__name__)

# Path alle cartelle templates
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
TEMPLATES_DIR = os.path.join(BASE_DIR, "templates")

CENTESIMI = Decimal("0.01")


# Lazy import of weasyprint to avoid startup errors if GTK libraries aren't available
def _get_weasyprint():
    """Lazy import of weasyprint to handle missing GTK/Pango libraries gracefully."""
    try:
        from weasyprint import CSS, HTML
        return HTML, CSS
    except OSError as e:
        raise RuntimeError(
            "Dipendenze di WeasyPrint non trovate. Installare le librerie Pango/GTK "
            "del sistema operativo."
        ) from e


def _si_no(valore: bool) -> str:
    return "Sì" if valore else "No"


def _riga_documento(articolo: Any, clienti: Dict[str, Cliente]) -> Dict[str, Any]:
    """Campi di visualizzazione specifici per variante."""
    dettagli: List[str] = []
    if isinstance(articolo, ArticoloCartone):
        descrizione = articolo.tipologia_cartone or "Cartone"
        dettagli += [
            f"Formato: {format_formato(articolo.formato)}",
            f"Grammatura: {format_grammatura(articolo.grammatura)}",
            f"Fogli: {articolo.numero_fogli}",
        ]
        if articolo.fsc:
            dettagli.append(f"FSC - commessa {articolo.rif_commessa_fsc or 'N/A'}")
        if articolo.alimentare:
            dettagli.append("Idoneo al contatto alimentare")
        unita = "kg"
    elif isinstance(articolo, ArticoloFustella):
        descrizione = f"Fustella {articolo.codice_fornitore_fustella or ''}".strip()
        dettagli += [
            f"Fustellatrice: {articolo.fustellatrice or 'N/A'}",
            f"Resa: {articolo.resa_fustella or 'N/A'}",
            f"Pinza tagliata: {_si_no(articolo.pinza_tagliata)}",
        ]
        if articolo.tasselli_intercambiabili:
            dettagli.append(f"Tasselli intercambiabili: {articolo.nr_tasselli or 0}")
        if articolo.incollatura:
            dettagli.append(
                f"Incollatura: {articolo.incollatrice or 'N/A'} ({articolo.tipo_incollatura or 'N/A'})"
            )
        if articolo.has_pulitore:
            dettagli.append(
                f"Pulitore {articolo.pulitore_codice_fustella or 'N/A'}: € {articolo.prezzo_pulitore:.2f}"
            )
        unita = "pz"
    elif isinstance(articolo, ArticoloPulitore):
        descrizione = articolo.descrizione or "Pulitore"
        dettagli.append(f"Per fustella {articolo.codice_fornitore_fustella or 'N/A'}")
        unita = "pz"
    else:
        descrizione = articolo.descrizione if isinstance(articolo, ArticoloGenerico) else ""
        unita = "pz"

    cliente = clienti.get(articolo.cliente or "")
    return {
        "tipo": articolo.item_type,
        "codice": articolo.identificativo or "",
        "descrizione": descrizione,
        "dettagli": dettagli,
        "cliente": articolo.cliente or "",
        "cliente_codice": cliente.codice_anagrafica if cliente else "",
        "lavoro": articolo.lavoro or "",
        "data_consegna": articolo.data_consegna_prevista,
        "quantita": articolo.quantita,
        "unita": unita,
        "prezzo_unitario": articolo.prezzo_unitario,
        "totale": articolo.totale_riga().quantize(CENTESIMI),
    }


def build_documento_ordine(
    ordine: OrdineAcquisto,
    fornitore: Fornitore,
    clienti: Optional[Iterable[Cliente]] = None,
) -> Dict[str, Any]:
    """
    Prepara il contesto del documento d'ordine.

    Solo gli articoli non annullati compaiono nel documento; l'IVA
    all'aliquota predefinita si applica se il fornitore ha
    `considera_iva` attivo.

    Args:
        ordine: Ordine d'acquisto
        fornitore: Fornitore dell'ordine
        clienti: Anagrafica clienti per risolvere i riferimenti delle righe

    Returns:
        Dizionario pronto per il template Jinja2
    """
    clienti_per_nome = {c.nome: c for c in (clienti or [])}

    righe = []
    for indice, raw in enumerate(ordine.articoli or [], start=1):
        if raw is None:
            continue
        try:
            articolo = parse_articolo(raw)
        except PydanticValidationError:
            logger.warning("Documento ordine %s: articolo %d illeggibile, escluso", ordine.numero_ordine, indice)
            continue
        if articolo.annullato:
            continue
        righe.append(_riga_documento(articolo, clienti_per_nome))

    imponibile = sum((riga["totale"] for riga in righe), Decimal("0")).quantize(CENTESIMI)
    aliquota = settings.default_vat_rate if fornitore.considera_iva else Decimal("0")
    iva = (imponibile * aliquota / Decimal("100")).quantize(CENTESIMI)

    return {
        # Dati azienda (da settings)
        "company_name": settings.company_name,
        "company_address": settings.company_address,
        "company_vat": settings.company_vat_number,
        "company_phone": settings.company_phone,
        "company_email": settings.company_email,

        "ordine": ordine,
        "fornitore": fornitore,
        "righe": righe,
        "imponibile": imponibile,
        "considera_iva": fornitore.considera_iva,
        "aliquota_iva": aliquota,
        "iva": iva,
        "totale": imponibile + iva,
        "oggi": date.today().strftime("%d/%m/%Y"),
    }


class PdfService:
    """
    Genera il PDF dell'ordine da template HTML/CSS usando WeasyPrint + Jinja2.
    """

    def __init__(self):
        self.env = Environment(
            loader=FileSystemLoader(TEMPLATES_DIR),
            autoescape=select_autoescape(["html"]),
        )

    def render_html(self, context: Dict[str, Any]) -> str:
        template = self.env.get_template("ordine_acquisto.html")
        return template.render(context)

    def render_ordine_pdf(self, context: Dict[str, Any]) -> bytes:
        """
        Genera il PDF di un ordine d'acquisto.

        Args:
            context: Contesto prodotto da build_documento_ordine

        Returns:
            bytes: PDF binario pronto per il download
        """
        # Lazy import weasyprint
        HTML, CSS = _get_weasyprint()

        html_out = self.render_html(context)
        css = CSS(filename=os.path.join(TEMPLATES_DIR, "ordine_acquisto.css"))

        pdf_bytes = HTML(string=html_out, base_url=TEMPLATES_DIR).write_pdf(stylesheets=[css])
        logger.info("Generato PDF ordine %s (%d byte)", context["ordine"].numero_ordine, len(pdf_bytes))
        return pdf_bytes


pdf_service = PdfService()
