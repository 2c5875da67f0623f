"""
Schemas Pydantic per gli Articoli degli Ordini d'Acquisto
Progetto: Gestionale Cartotecnica (Cartoni, Fustelle, Ordini d'Acquisto)

Un articolo è un'unione discriminata sul campo `item_type`:
- cartone: fogli di cartone (codice CTN-###)
- fustella: fustella con eventuale pulitore incorporato (codice FST-###)
- pulitore: pulitore ordinato separatamente, collegato alla fustella
  tramite il codice del fornitore (codice PU-###)
- altro: articolo generico (inchiostri, colle, varie)

I campi delle altre varianti vengono scartati in fase di parsing
(extra="ignore"), così un cambio di categoria non lascia dati orfani.
"""

import datetime
import logging
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict, FrozenSet, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from app.core.exceptions import BusinessValidationError

logger = logging.getLogger(__name__)


class ArticleStatus(str, Enum):
    """Stato di un articolo (e dell'ordine)."""
    IN_ATTESA = "in_attesa"
    INVIATO = "inviato"
    CONFERMATO = "confermato"
    RICEVUTO = "ricevuto"
    ANNULLATO = "annullato"


# Stati che portano un cartone nella tabella degli ordini in arrivo
STATI_IN_ARRIVO: FrozenSet[ArticleStatus] = frozenset(
    {ArticleStatus.IN_ATTESA, ArticleStatus.INVIATO, ArticleStatus.CONFERMATO}
)

# Stati dell'ordine che vengono estesi a tutti gli articoli
STATI_CONTAGIOSI: FrozenSet[ArticleStatus] = frozenset(
    {ArticleStatus.ANNULLATO, ArticleStatus.INVIATO, ArticleStatus.IN_ATTESA}
)

# Priorità di ordinamento nella lista ordini
PRIORITA_STATO: Dict[str, int] = {
    ArticleStatus.IN_ATTESA.value: 1,
    ArticleStatus.INVIATO.value: 2,
    ArticleStatus.CONFERMATO.value: 3,
    ArticleStatus.RICEVUTO.value: 4,
    ArticleStatus.ANNULLATO.value: 5,
}


class TipoFornitore(str, Enum):
    """Categoria merceologica del fornitore."""
    CARTONE = "Cartone"
    INCHIOSTRO = "Inchiostro"
    COLLA = "Colla"
    FUSTELLE = "Fustelle"
    ALTRO = "Altro"


class ItemType(str, Enum):
    """Variante dell'articolo."""
    CARTONE = "cartone"
    FUSTELLA = "fustella"
    PULITORE = "pulitore"
    ALTRO = "altro"


ARTICOLI_AMMESSI: Dict[TipoFornitore, FrozenSet[ItemType]] = {
    TipoFornitore.CARTONE: frozenset({ItemType.CARTONE}),
    TipoFornitore.FUSTELLE: frozenset({ItemType.FUSTELLA, ItemType.PULITORE}),
    TipoFornitore.INCHIOSTRO: frozenset({ItemType.ALTRO}),
    TipoFornitore.COLLA: frozenset({ItemType.ALTRO}),
    TipoFornitore.ALTRO: frozenset({ItemType.ALTRO}),
}


# ------------------------------------------------------------
# Varianti
# ------------------------------------------------------------

class ArticoloBase(BaseModel):
    """Campi comuni a tutte le varianti."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    stato: ArticleStatus = Field(default=ArticleStatus.IN_ATTESA, description="Stato dell'articolo")
    quantita: Decimal = Field(default=Decimal("0"), ge=0, description="Quantità (kg per i cartoni)")
    prezzo_unitario: Decimal = Field(default=Decimal("0"), ge=0, description="Prezzo unitario")
    data_consegna_prevista: Optional[datetime.date] = Field(None, description="Data di consegna prevista")
    cliente: Optional[str] = Field(None, max_length=255, description="Cliente finale")
    lavoro: Optional[str] = Field(None, max_length=255, description="Lavoro di riferimento")

    @property
    def annullato(self) -> bool:
        return self.stato == ArticleStatus.ANNULLATO

    @property
    def identificativo(self) -> Optional[str]:
        """Codice usato per individuare l'articolo nell'ordine."""
        raise NotImplementedError

    def totale_riga(self) -> Decimal:
        return self.quantita * self.prezzo_unitario

    def to_json(self) -> Dict[str, Any]:
        """Serializzazione per la colonna JSON `articoli`."""
        return self.model_dump(mode="json", by_alias=False)


class ArticoloCartone(ArticoloBase):
    """Articolo cartone: la quantità in kg è derivata dai fogli."""

    item_type: Literal["cartone"] = "cartone"
    codice_ctn: Optional[str] = Field(None, max_length=20, description="Codice cartone CTN-###")
    tipologia_cartone: Optional[str] = Field(None, max_length=100)
    formato: Optional[str] = Field(None, max_length=50, description="Formato del foglio (es. 70x100)")
    grammatura: Optional[str] = Field(None, max_length=30, description="Grammatura (es. 300 g/m²)")
    numero_fogli: int = Field(default=0, ge=0, description="Numero di fogli")
    fsc: bool = Field(default=False, description="Cartone certificato FSC")
    alimentare: bool = Field(default=False, description="Idoneo al contatto alimentare")
    rif_commessa_fsc: Optional[str] = Field(None, max_length=20, description="Riferimento commessa FSC")

    @model_validator(mode="after")
    def clear_fsc_reference(self):
        """Il riferimento FSC ha senso solo per cartoni FSC."""
        if not self.fsc and self.rif_commessa_fsc:
            self.rif_commessa_fsc = None
        return self

    @property
    def identificativo(self) -> Optional[str]:
        return self.codice_ctn


class ArticoloFustella(ArticoloBase):
    """Articolo fustella, con pulitore eventualmente incorporato."""

    item_type: Literal["fustella"] = "fustella"
    fustella_codice: Optional[str] = Field(None, max_length=20, description="Codice fustella FST-###")
    codice_fornitore_fustella: Optional[str] = Field(None, max_length=100)
    fustellatrice: Optional[str] = Field(None, max_length=100)
    resa_fustella: Optional[str] = Field(None, max_length=50)
    pinza_tagliata: bool = False
    tasselli_intercambiabili: bool = False
    nr_tasselli: Optional[int] = Field(None, ge=0)
    incollatura: bool = False
    incollatrice: Optional[str] = Field(None, max_length=100)
    tipo_incollatura: Optional[str] = Field(None, max_length=100)
    has_pulitore: bool = Field(default=False, alias="hasPulitore")
    pulitore_codice_fustella: Optional[str] = Field(None, max_length=20, description="Codice pulitore PU-###")
    prezzo_pulitore: Decimal = Field(default=Decimal("0"), ge=0)

    @model_validator(mode="after")
    def clear_dependent_fields(self):
        """Azzera i campi che dipendono da flag disattivati."""
        if not self.has_pulitore:
            self.pulitore_codice_fustella = None
            self.prezzo_pulitore = Decimal("0")
        if not self.tasselli_intercambiabili:
            self.nr_tasselli = None
        if not self.incollatura:
            self.incollatrice = None
            self.tipo_incollatura = None
        return self

    @property
    def identificativo(self) -> Optional[str]:
        return self.fustella_codice

    def totale_riga(self) -> Decimal:
        totale = self.quantita * self.prezzo_unitario
        if self.has_pulitore:
            totale += self.prezzo_pulitore
        return totale


class ArticoloPulitore(ArticoloBase):
    """Pulitore ordinato come riga separata (quantità sempre 1)."""

    item_type: Literal["pulitore"] = "pulitore"
    pulitore_codice_fustella: Optional[str] = Field(None, max_length=20, description="Codice pulitore PU-###")
    codice_fornitore_fustella: Optional[str] = Field(
        None, max_length=100, description="Codice fornitore della fustella di riferimento"
    )
    descrizione: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def force_single_quantity(self):
        self.quantita = Decimal("1")
        return self

    @property
    def identificativo(self) -> Optional[str]:
        return self.pulitore_codice_fustella


class ArticoloGenerico(ArticoloBase):
    """Articolo generico (inchiostri, colle, varie)."""

    item_type: Literal["altro"] = "altro"
    descrizione: str = Field(default="", max_length=255)

    @property
    def identificativo(self) -> Optional[str]:
        return self.descrizione or None


ArticoloOrdine = Annotated[
    Union[ArticoloCartone, ArticoloFustella, ArticoloPulitore, ArticoloGenerico],
    Field(discriminator="item_type"),
]

_articolo_adapter: TypeAdapter = TypeAdapter(ArticoloOrdine)


# ------------------------------------------------------------
# Parsing e invarianti
# ------------------------------------------------------------

def infer_item_type(raw: Dict[str, Any]) -> str:
    """Deduce la variante di una riga salvata senza `item_type`."""
    if raw.get("codice_ctn") or raw.get("numero_fogli"):
        return ItemType.CARTONE.value
    if raw.get("fustella_codice"):
        return ItemType.FUSTELLA.value
    if raw.get("pulitore_codice_fustella"):
        return ItemType.PULITORE.value
    return ItemType.ALTRO.value


def parse_articolo(raw: Any) -> "ArticoloOrdine":
    """
    Converte una riga (dict o modello) nella variante corretta.

    Raises:
        pydantic.ValidationError: Se la riga non è valida
    """
    if isinstance(raw, ArticoloBase):
        return raw  # type: ignore[return-value]
    if isinstance(raw, dict) and not raw.get("item_type"):
        raw = {**raw, "item_type": infer_item_type(raw)}
    return _articolo_adapter.validate_python(raw)


def parse_articoli(raw_list: Iterable[Any]) -> List["ArticoloOrdine"]:
    """Converte tutte le righe, scartando i valori nulli."""
    return [parse_articolo(raw) for raw in raw_list if raw is not None]


def calcola_importo_totale(articoli: Iterable[ArticoloBase]) -> Decimal:
    """Somma dei totali di riga sugli articoli non annullati."""
    totale = sum(
        (articolo.totale_riga() for articolo in articoli if not articolo.annullato),
        Decimal("0"),
    )
    return totale.quantize(Decimal("0.01"))


def tutti_annullati(articoli: List[ArticoloBase]) -> bool:
    """True se l'ordine ha almeno un articolo e sono tutti annullati."""
    return bool(articoli) and all(articolo.annullato for articolo in articoli)


def matches_identifier(articolo: ArticoloBase, identificativo: str) -> bool:
    """
    Verifica se l'articolo corrisponde all'identificativo.

    Per le fustelle vale anche il codice del pulitore incorporato.
    """
    if articolo.identificativo == identificativo:
        return True
    if isinstance(articolo, ArticoloFustella) and articolo.has_pulitore:
        return articolo.pulitore_codice_fustella == identificativo
    return False


def valida_articoli_per_fornitore(
    articoli: Iterable[ArticoloBase],
    tipo_fornitore: Union[TipoFornitore, str],
) -> None:
    """
    Verifica che ogni variante sia ammessa per la categoria del fornitore.

    Raises:
        BusinessValidationError: Se una riga non è ammessa
    """
    try:
        categoria = TipoFornitore(tipo_fornitore)
    except ValueError as exc:
        raise BusinessValidationError(f"Categoria fornitore non valida: {tipo_fornitore}") from exc

    ammessi = ARTICOLI_AMMESSI[categoria]
    for indice, articolo in enumerate(articoli, start=1):
        if ItemType(articolo.item_type) not in ammessi:
            raise BusinessValidationError(
                f"Articolo {indice}: tipo '{articolo.item_type}' non ammesso "
                f"per fornitori '{categoria.value}'"
            )
