"""
Generatori di codici leggibili
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Ogni generatore è un oggetto con stato costruito per sessione (es. per
la compilazione di un ordine) ed espone:
- fetch del massimo già usato sul database (async)
- reset del contatore in memoria
- next: genera il codice successivo

Famiglie di codici:
- CTN-### (cartoni): massimo + 1 su ordini, giacenza, esauriti e righe d'ordine
- FST-### (fustelle): primo numero libero (riempie i buchi)
- PU-### (pulitori): massimo + 1
- <seq>/<YY> (commesse FSC): contatore per anno solare
- CLI-### / FOR-### (anagrafiche): massimo + 1
- <n>/<YY> (numero ordine d'acquisto): massimo + 1 per anno

NOTA: i contatori sono in memoria e senza lock distribuito; due sessioni
concorrenti possono generare lo stesso codice. Il re-fetch del massimo
all'apertura della sessione riduce la finestra ma non la elimina.
"""

import datetime
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from app.core.config import settings
from app.models import (
    CartoneEsaurito,
    CartoneGiacenza,
    CartoneOrdine,
    Cliente,
    Fornitore,
    Fustella,
    OrdineAcquisto,
)

logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# Parsing
# ------------------------------------------------------------

def parse_code_number(code: Optional[str], prefixes: Sequence[str]) -> Optional[int]:
    """
    Estrae la parte numerica di un codice ("CTN-012" → 12).

    Il confronto è numerico: "CTN-1000" è maggiore di "CTN-999".
    """
    if not code:
        return None
    pattern = rf"^(?:{'|'.join(re.escape(p) for p in prefixes)})-(\d+)$"
    match = re.match(pattern, code.strip(), re.IGNORECASE)
    return int(match.group(1)) if match else None


def parse_year_sequence(value: Optional[str], year_short: str) -> Optional[int]:
    """Estrae la sequenza da "<n>/<YY>" se l'anno corrisponde."""
    if not value:
        return None
    parts = value.strip().split("/")
    if len(parts) != 2 or parts[1] != year_short or not parts[0].isdigit():
        return None
    return int(parts[0])


def year_short(year: int) -> str:
    return str(year)[-2:]


async def _column_values(db: AsyncSession, column: InstrumentedAttribute) -> List[str]:
    result = await db.execute(select(column).where(column.is_not(None)))
    return [value for value in result.scalars().all() if value]


async def _article_values(db: AsyncSession, field: str) -> List[Any]:
    """Valori di un campo letti dalle righe JSON di tutti gli ordini."""
    result = await db.execute(select(OrdineAcquisto.articoli))
    values = []
    for articoli in result.scalars().all():
        if not isinstance(articoli, list):
            continue
        for articolo in articoli:
            if isinstance(articolo, dict) and articolo.get(field):
                values.append(articolo[field])
    return values


# ------------------------------------------------------------
# Generatori
# ------------------------------------------------------------

class SequentialCodeGenerator:
    """
    Generatore PREFISSO-### con politica massimo + 1.

    Usage:
        gen = SequentialCodeGenerator("CTN", sources=[CartoneOrdine.codice])
        gen.reset(41)
        gen.next()  # "CTN-042"
    """

    def __init__(
        self,
        prefix: str,
        sources: Sequence[InstrumentedAttribute] = (),
        article_field: Optional[str] = None,
        aliases: Sequence[str] = (),
        width: int = 3,
    ) -> None:
        self.prefix = prefix
        self.sources = list(sources)
        self.article_field = article_field
        self.prefixes = [prefix, *aliases]
        self.width = width
        self._counter = 0

    @property
    def current(self) -> int:
        return self._counter

    def format(self, number: int) -> str:
        return f"{self.prefix}-{number:0{self.width}d}"

    def reset(self, n: int = 0) -> None:
        self._counter = n
        logger.debug("Generatore %s azzerato a %d", self.prefix, n)

    def next(self) -> str:
        self._counter += 1
        return self.format(self._counter)

    def peek(self) -> str:
        """Codice che verrebbe generato, senza consumarlo."""
        return self.format(self._counter + 1)

    async def fetch_max(self, db: AsyncSession) -> int:
        """Numero massimo già usato su tutte le sorgenti."""
        codes: List[str] = []
        for column in self.sources:
            codes.extend(await _column_values(db, column))
        if self.article_field:
            codes.extend(await _article_values(db, self.article_field))

        numbers = [n for n in (parse_code_number(c, self.prefixes) for c in codes) if n is not None]
        return max(numbers, default=0)

    async def reset_from_db(self, db: AsyncSession) -> int:
        maximum = await self.fetch_max(db)
        self.reset(maximum)
        return maximum


class GapFillingCodeGenerator:
    """
    Generatore PREFISSO-### che riempie il primo buco.

    Dato l'insieme dei numeri usati, il prossimo è il più piccolo intero
    positivo mancante: {1, 2, 4} → 3, {1, 2, 3} → 4.
    """

    def __init__(
        self,
        prefix: str,
        sources: Sequence[InstrumentedAttribute] = (),
        article_field: Optional[str] = None,
        width: int = 3,
    ) -> None:
        self.prefix = prefix
        self.sources = list(sources)
        self.article_field = article_field
        self.width = width
        self._used: Set[int] = set()

    def format(self, number: int) -> str:
        return f"{self.prefix}-{number:0{self.width}d}"

    def reset(self, used: Union[int, Iterable[int]] = 0) -> None:
        """
        Reimposta i numeri occupati.

        Args:
            used: Un intero N (numeri 1..N occupati) oppure l'insieme
                esplicito dei numeri occupati
        """
        if isinstance(used, int):
            self._used = set(range(1, used + 1))
        else:
            self._used = {n for n in used if n > 0}
        logger.debug("Generatore %s azzerato con %d codici occupati", self.prefix, len(self._used))

    def _smallest_missing(self) -> int:
        candidate = 1
        for number in sorted(self._used):
            if number == candidate:
                candidate += 1
            elif number > candidate:
                break
        return candidate

    def next(self) -> str:
        number = self._smallest_missing()
        self._used.add(number)
        return self.format(number)

    def peek(self) -> str:
        return self.format(self._smallest_missing())

    async def fetch_used(self, db: AsyncSession) -> Set[int]:
        codes: List[str] = []
        for column in self.sources:
            codes.extend(await _column_values(db, column))
        if self.article_field:
            codes.extend(await _article_values(db, self.article_field))
        return {n for n in (parse_code_number(c, [self.prefix]) for c in codes) if n is not None}

    async def fetch_max(self, db: AsyncSession) -> int:
        return max(await self.fetch_used(db), default=0)

    async def reset_from_db(self, db: AsyncSession) -> Set[int]:
        used = await self.fetch_used(db)
        self.reset(used)
        return used


class YearSequenceGenerator:
    """
    Generatore "<seq>/<YY>" con un contatore per anno solare.

    Se `next` viene chiamato per un anno mai azzerato, il contatore parte
    da `legacy_offset` quando l'anno è `legacy_year` e da 0 negli altri casi.
    """

    def __init__(
        self,
        name: str,
        legacy_year: Optional[int] = None,
        legacy_offset: int = 0,
    ) -> None:
        self.name = name
        self.legacy_year = legacy_year
        self.legacy_offset = legacy_offset
        self._counters: Dict[str, int] = {}

    def reset(self, n: int, year: int) -> None:
        self._counters[year_short(year)] = n
        logger.debug("Generatore %s azzerato a %d per l'anno %d", self.name, n, year)

    def next(self, year: int) -> str:
        key = year_short(year)
        if key not in self._counters:
            self._counters[key] = self.legacy_offset if year == self.legacy_year else 0
        self._counters[key] += 1
        return f"{self._counters[key]}/{key}"

    def current(self, year: int) -> int:
        return self._counters.get(
            year_short(year), self.legacy_offset if year == self.legacy_year else 0
        )

    def peek(self, year: int) -> str:
        return f"{self.current(year) + 1}/{year_short(year)}"

    async def _values(self, db: AsyncSession) -> List[str]:
        raise NotImplementedError

    async def fetch_max(self, db: AsyncSession, year: int) -> int:
        key = year_short(year)
        numbers = [
            n for n in (parse_year_sequence(v, key) for v in await self._values(db)) if n is not None
        ]
        return max(numbers, default=0)

    async def reset_from_db(self, db: AsyncSession, year: int) -> int:
        maximum = await self.fetch_max(db, year)
        self.reset(maximum, year)
        return maximum


class FscCommessaGenerator(YearSequenceGenerator):
    """Riferimenti commessa FSC, letti dalle righe cartone FSC degli ordini."""

    def __init__(self) -> None:
        super().__init__(
            "FSC",
            legacy_year=settings.fsc_legacy_year,
            legacy_offset=settings.fsc_legacy_offset,
        )

    async def _values(self, db: AsyncSession) -> List[str]:
        result = await db.execute(select(OrdineAcquisto.articoli))
        values = []
        for articoli in result.scalars().all():
            for articolo in articoli or []:
                if isinstance(articolo, dict) and articolo.get("fsc") and articolo.get("rif_commessa_fsc"):
                    values.append(articolo["rif_commessa_fsc"])
        return values


class NumeroOrdineGenerator(YearSequenceGenerator):
    """Numeri d'ordine d'acquisto "<n>/<YY>"."""

    def __init__(self) -> None:
        super().__init__("ordini_acquisto")

    async def _values(self, db: AsyncSession) -> List[str]:
        return await _column_values(db, OrdineAcquisto.numero_ordine)


# ------------------------------------------------------------
# Factory
# ------------------------------------------------------------

def cartone_code_generator() -> SequentialCodeGenerator:
    return SequentialCodeGenerator(
        "CTN",
        sources=[CartoneOrdine.codice, CartoneGiacenza.codice, CartoneEsaurito.codice],
        article_field="codice_ctn",
    )


def fustella_code_generator() -> GapFillingCodeGenerator:
    return GapFillingCodeGenerator(
        "FST",
        sources=[Fustella.codice],
        article_field="fustella_codice",
    )


def pulitore_code_generator() -> SequentialCodeGenerator:
    return SequentialCodeGenerator(
        "PU",
        sources=[Fustella.pulitore_codice],
        article_field="pulitore_codice_fustella",
        aliases=["PUL"],
    )


def cliente_code_generator() -> SequentialCodeGenerator:
    return SequentialCodeGenerator("CLI", sources=[Cliente.codice_anagrafica])


def fornitore_code_generator() -> SequentialCodeGenerator:
    return SequentialCodeGenerator("FOR", sources=[Fornitore.codice_anagrafica])


@dataclass
class CodiciOrdineSession:
    """Generatori usati durante la compilazione di un ordine d'acquisto."""

    year: int
    cartoni: SequentialCodeGenerator
    fustelle: GapFillingCodeGenerator
    pulitori: SequentialCodeGenerator
    fsc: FscCommessaGenerator
    ordini: NumeroOrdineGenerator

    def next_numero_ordine(self) -> str:
        return self.ordini.next(self.year)

    def next_rif_commessa_fsc(self, year: Optional[int] = None) -> str:
        return self.fsc.next(year or self.year)


class CodeGeneratorService:
    """
    Service per l'apertura delle sessioni di generazione e le anteprime.

    Ogni chiamata costruisce generatori nuovi azzerati dal database.
    """

    async def open_ordine_session(
        self,
        db: AsyncSession,
        year: Optional[int] = None,
        fsc_years: Iterable[int] = (),
    ) -> CodiciOrdineSession:
        """
        Crea una sessione di generazione per un ordine d'acquisto.

        Args:
            db: Sessione database
            year: Anno dell'ordine (default: anno corrente)
            fsc_years: Anni aggiuntivi per cui azzerare il contatore FSC
        """
        year = year or datetime.date.today().year
        session = CodiciOrdineSession(
            year=year,
            cartoni=cartone_code_generator(),
            fustelle=fustella_code_generator(),
            pulitori=pulitore_code_generator(),
            fsc=FscCommessaGenerator(),
            ordini=NumeroOrdineGenerator(),
        )
        await session.cartoni.reset_from_db(db)
        await session.fustelle.reset_from_db(db)
        await session.pulitori.reset_from_db(db)
        await session.ordini.reset_from_db(db, year)
        for fsc_year in {year, *fsc_years}:
            maximum = await session.fsc.fetch_max(db, fsc_year)
            if maximum or fsc_year != settings.fsc_legacy_year:
                session.fsc.reset(maximum, fsc_year)

        logger.info(
            "Sessione codici aperta: CTN=%d, PU=%d, ordine=%d/%s",
            session.cartoni.current,
            session.pulitori.current,
            session.ordini.current(year),
            year_short(year),
        )
        return session

    async def preview(self, db: AsyncSession, year: Optional[int] = None) -> Dict[str, str]:
        """Anteprima del prossimo codice per ogni famiglia."""
        session = await self.open_ordine_session(db, year)
        cliente = cliente_code_generator()
        fornitore = fornitore_code_generator()
        await cliente.reset_from_db(db)
        await fornitore.reset_from_db(db)
        return {
            "numero_ordine": session.ordini.peek(session.year),
            "cartone": session.cartoni.peek(),
            "fustella": session.fustelle.peek(),
            "pulitore": session.pulitori.peek(),
            "commessa_fsc": session.fsc.peek(session.year),
            "cliente": cliente.peek(),
            "fornitore": fornitore.peek(),
        }


# Istanza singleton del service
code_generator_service = CodeGeneratorService()
