"""
Utility per formati e grammature dei cartoni
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Funzioni pure per:
- Parsing del formato foglio ("70x100", "70 x 100 cm", "70,5×100")
- Parsing della grammatura ("300", "300 g/m²")
- Calcolo dei kg a partire da fogli, formato e grammatura
- Formattazione per la visualizzazione
"""

import logging
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

_NUMERO = r"(\d+(?:[.,]\d+)?)"
_FORMATO_X = re.compile(rf"^{_NUMERO}\s*x\s*{_NUMERO}$", re.IGNORECASE)
_FORMATO_SPAZIO = re.compile(rf"^{_NUMERO}\s+{_NUMERO}$")
_GRAMMATURA = re.compile(_NUMERO)


def _to_decimal(valore: str) -> Decimal:
    return Decimal(valore.replace(",", "."))


def parse_formato(formato: Optional[str]) -> Optional[Tuple[Decimal, Decimal]]:
    """
    Estrae le dimensioni del foglio in centimetri.

    Args:
        formato: Stringa del formato (es. "70x100cm", "70 × 100")

    Returns:
        Tuple (base, altezza) in cm, oppure None se non interpretabile
    """
    if not formato:
        return None

    testo = formato.strip().lower().replace("cm", "").strip()
    for simbolo in ("×", "✕", "*"):
        testo = testo.replace(simbolo, "x")

    match = _FORMATO_X.match(testo) or _FORMATO_SPAZIO.match(testo)
    if not match:
        logger.debug("Formato non interpretabile: %s", formato)
        return None

    return _to_decimal(match.group(1)), _to_decimal(match.group(2))


def parse_grammatura(grammatura: Optional[str]) -> Optional[Decimal]:
    """Estrae i grammi per metro quadro ("300 g/m²" → 300, "300,5" → 300.5)."""
    if not grammatura:
        return None
    testo = grammatura.replace("g/m²", "").replace("g/m2", "").strip()
    match = _GRAMMATURA.search(testo)
    if not match:
        return None
    return _to_decimal(match.group(1))


def calcola_kg(numero_fogli: int, formato: Optional[str], grammatura: Optional[str]) -> Decimal:
    """
    Calcola il peso in kg di una fornitura di fogli.

    kg = fogli × area(m²) × grammatura / 1000, arrotondato a 3 decimali.
    Restituisce 0 se formato o grammatura non sono interpretabili.

    Esempio:
        >>> calcola_kg(1000, "100x100cm", "100 g/m²")
        Decimal('100.000')
    """
    dimensioni = parse_formato(formato)
    grammi = parse_grammatura(grammatura)
    if not numero_fogli or dimensioni is None or grammi is None:
        return Decimal("0.000")

    base_cm, altezza_cm = dimensioni
    area_m2 = (base_cm / Decimal("100")) * (altezza_cm / Decimal("100"))
    kg = Decimal(numero_fogli) * area_m2 * grammi / Decimal("1000")
    return kg.quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)


def format_formato(formato: Optional[str]) -> str:
    """Normalizza il formato per la visualizzazione ("70x100" → "70 × 100 cm")."""
    dimensioni = parse_formato(formato)
    if dimensioni is None:
        return formato or ""
    base, altezza = dimensioni
    return f"{base.normalize():f} × {altezza.normalize():f} cm"


def format_grammatura(grammatura: Optional[str]) -> str:
    grammi = parse_grammatura(grammatura)
    if grammi is None:
        return grammatura or ""
    return f"{grammi.normalize():f} g/m²"
