"""
Test per la riconciliazione ordini d'acquisto → magazzino.

Girano su SQLite in memoria: ogni test crea il proprio ordine e
verifica le righe derivate nelle tabelle ordini / giacenza / esauriti
e fustelle.
"""

import datetime

import pytest
from sqlalchemy import select

from app.core.events import EventType
from app.models import CartoneEsaurito, CartoneGiacenza, CartoneOrdine, Fustella
from app.schemas.articolo import ArticleStatus
from app.services.read_models import cardboard_inventory_read_model
from app.services.sync_service import inventory_sync_service, route_cartone
from tests.conftest import articolo_cartone, crea_ordine


async def _codici(db, model):
    result = await db.execute(select(model.codice).order_by(model.codice))
    return list(result.scalars().all())


# ============================================================
# Instradamento
# ============================================================


class TestRouteCartone:
    """Test per la tabella di destinazione di un cartone."""

    @pytest.mark.parametrize("stato", [ArticleStatus.IN_ATTESA, ArticleStatus.INVIATO, ArticleStatus.CONFERMATO])
    def test_stati_in_arrivo(self, stato):
        """Test stati non ricevuti vanno negli ordini."""
        assert route_cartone(stato, 500) == "ordini"

    def test_ricevuto(self):
        """Test ricevuto va in giacenza o negli esauriti."""
        assert route_cartone(ArticleStatus.RICEVUTO, 1000) == "giacenza"
        assert route_cartone(ArticleStatus.RICEVUTO, 0) == "esauriti"

    def test_annullato(self):
        """Test annullato non va in nessuna tabella."""
        assert route_cartone(ArticleStatus.ANNULLATO, 1000) is None


# ============================================================
# Cartoni
# ============================================================


class TestSyncCartoni:
    """Test per la ricostruzione delle righe cartone."""

    @pytest.mark.asyncio
    async def test_instradamento_per_stato(self, db, fornitore_cartone, event_spy):
        """Test ogni riga finisce nella tabella del suo stato."""
        ordine = await crea_ordine(db, fornitore_cartone, [
            articolo_cartone("CTN-001"),
            articolo_cartone("CTN-002", stato="confermato"),
            articolo_cartone("CTN-003", stato="ricevuto"),
            articolo_cartone("CTN-004", stato="annullato"),
        ])

        esito = await inventory_sync_service.sync_article_inventory_status(db, ordine)

        assert esito.success
        assert esito.data["inseriti"]["ordini"] == 2
        assert esito.data["inseriti"]["giacenza"] == 1
        assert await _codici(db, CartoneOrdine) == ["CTN-001", "CTN-002"]
        assert await _codici(db, CartoneGiacenza) == ["CTN-003"]
        assert await _codici(db, CartoneEsaurito) == []

        confermato = await db.get(CartoneOrdine, "CTN-002")
        assert confermato.confermato is True
        assert len(event_spy.of_type(EventType.CARTONI_CHANGED)) == 1
        assert cardboard_inventory_read_model.locate("CTN-003") == "giacenza"

    @pytest.mark.asyncio
    async def test_ricevuto_nuovo_usa_fogli_ordinati(self, db, fornitore_cartone):
        """Test un cartone ricevuto senza storico entra con i fogli ordinati."""
        ordine = await crea_ordine(db, fornitore_cartone, [articolo_cartone("CTN-010", stato="ricevuto")])

        await inventory_sync_service.sync_article_inventory_status(db, ordine)

        giacenza = await db.get(CartoneGiacenza, "CTN-010")
        assert giacenza.fogli == 1000
        assert giacenza.ddt == "AUTO-SYNC"
        assert giacenza.magazzino == "AUTO-SYNC"
        assert giacenza.data_arrivo == datetime.date.today()
        assert giacenza.ordine == "1/25"
        assert giacenza.fornitore == "Cartiera Rossi Srl"

    @pytest.mark.asyncio
    async def test_idempotente(self, db, fornitore_cartone):
        """Test due sincronizzazioni producono lo stesso risultato."""
        ordine = await crea_ordine(db, fornitore_cartone, [
            articolo_cartone("CTN-001"),
            articolo_cartone("CTN-002", stato="ricevuto"),
        ])

        await inventory_sync_service.sync_article_inventory_status(db, ordine)
        await inventory_sync_service.sync_article_inventory_status(db, ordine)

        assert await _codici(db, CartoneOrdine) == ["CTN-001"]
        assert await _codici(db, CartoneGiacenza) == ["CTN-002"]

    @pytest.mark.asyncio
    async def test_preserva_fogli_e_dati_arrivo(self, db, fornitore_cartone):
        """Test fogli residui e DDT sopravvivono alla ricostruzione."""
        ordine = await crea_ordine(db, fornitore_cartone, [articolo_cartone("CTN-005", stato="ricevuto")])
        db.add(CartoneGiacenza(
            codice="CTN-005", ordine="1/25", fogli=420, ddt="DDT-77",
            data_arrivo=datetime.date(2025, 3, 10), magazzino="B2",
        ))
        await db.commit()

        await inventory_sync_service.sync_article_inventory_status(db, ordine)

        giacenza = await db.get(CartoneGiacenza, "CTN-005")
        await db.refresh(giacenza)
        assert giacenza.fogli == 420
        assert giacenza.ddt == "DDT-77"
        assert giacenza.magazzino == "B2"
        assert giacenza.data_arrivo == datetime.date(2025, 3, 10)

    @pytest.mark.asyncio
    async def test_esaurito_resta_esaurito(self, db, fornitore_cartone):
        """Test un cartone già esaurito non torna in giacenza."""
        ordine = await crea_ordine(db, fornitore_cartone, [articolo_cartone("CTN-006", stato="ricevuto")])
        db.add(CartoneEsaurito(codice="CTN-006", ordine="1/25", fogli=0, ddt="DDT-1"))
        await db.commit()

        esito = await inventory_sync_service.sync_article_inventory_status(db, ordine)

        assert esito.data["inseriti"]["esauriti"] == 1
        assert await _codici(db, CartoneGiacenza) == []
        assert await _codici(db, CartoneEsaurito) == ["CTN-006"]

    @pytest.mark.asyncio
    async def test_annullato_rimuove_righe(self, db, fornitore_cartone):
        """Test annullando l'articolo la riga derivata sparisce."""
        ordine = await crea_ordine(db, fornitore_cartone, [articolo_cartone("CTN-001")])
        await inventory_sync_service.sync_article_inventory_status(db, ordine)
        assert await _codici(db, CartoneOrdine) == ["CTN-001"]

        ordine.articoli = [articolo_cartone("CTN-001", stato="annullato")]
        await db.commit()
        await inventory_sync_service.sync_article_inventory_status(db, ordine)

        assert await _codici(db, CartoneOrdine) == []

    @pytest.mark.asyncio
    async def test_riga_non_valida_saltata(self, db, fornitore_cartone):
        """Test una riga illeggibile non blocca le altre."""
        ordine = await crea_ordine(db, fornitore_cartone, [
            articolo_cartone("CTN-001", numero_fogli=-5),
            articolo_cartone("CTN-002"),
        ])

        esito = await inventory_sync_service.sync_article_inventory_status(db, ordine)

        assert esito.success
        assert esito.data["saltati"] == ["articolo 1"]
        assert await _codici(db, CartoneOrdine) == ["CTN-002"]

    @pytest.mark.asyncio
    async def test_cartone_senza_codice_saltato(self, db, fornitore_cartone):
        """Test righe senza codice o senza fogli non generano magazzino."""
        ordine = await crea_ordine(db, fornitore_cartone, [
            articolo_cartone(None),
            articolo_cartone("CTN-003", numero_fogli=0),
        ])

        esito = await inventory_sync_service.sync_article_inventory_status(db, ordine)

        assert len(esito.data["saltati"]) == 2
        assert await _codici(db, CartoneOrdine) == []

    @pytest.mark.asyncio
    async def test_fornitore_senza_magazzino(self, db, fornitore_inchiostro, event_spy):
        """Test ordini di inchiostro non toccano il magazzino."""
        ordine = await crea_ordine(db, fornitore_inchiostro, [
            {"item_type": "altro", "descrizione": "Nero offset", "quantita": "5", "prezzo_unitario": "12"},
        ])

        esito = await inventory_sync_service.sync_article_inventory_status(db, ordine)

        assert esito.success
        assert event_spy.of_type(EventType.CARTONI_CHANGED) == []

    @pytest.mark.asyncio
    async def test_articoli_non_elenco(self, db, fornitore_cartone, event_spy):
        """Test colonna articoli corrotta: esito fallito e notifica."""
        ordine = await crea_ordine(db, fornitore_cartone, [])
        ordine.articoli = {"non": "valido"}

        esito = await inventory_sync_service.sync_article_inventory_status(db, ordine)

        assert not esito.success
        assert esito.error_code == "ARTICOLI_NON_VALIDI"
        assert len(event_spy.notifications("error")) == 1

    @pytest.mark.asyncio
    async def test_sync_by_numero_inesistente(self, db):
        """Test numero ordine sconosciuto."""
        esito = await inventory_sync_service.sync_by_numero(db, "99/25")
        assert not esito.success
        assert esito.error_code == "RESOURCE_NOT_FOUND"


# ============================================================
# Fustelle e pulitori
# ============================================================


def _fustella(codice, stato="in_attesa", **kwargs):
    riga = {
        "item_type": "fustella",
        "fustella_codice": codice,
        "codice_fornitore_fustella": f"F-{codice}",
        "quantita": "1",
        "prezzo_unitario": "250",
        "stato": stato,
        "cliente": "Pasticceria Dolce",
    }
    riga.update(kwargs)
    return riga


class TestSyncFustelle:
    """Test per la ricostruzione delle fustelle."""

    @pytest.mark.asyncio
    async def test_disponibile_solo_se_ricevuta(self, db, fornitore_fustelle):
        """Test disponibile segue lo stato ricevuto."""
        ordine = await crea_ordine(db, fornitore_fustelle, [
            _fustella("FST-001"),
            _fustella("FST-002", stato="ricevuto"),
            _fustella("FST-003", stato="annullato"),
        ])

        esito = await inventory_sync_service.sync_article_inventory_status(db, ordine)

        assert esito.data["inseriti"]["fustelle"] == 2
        assert (await db.get(Fustella, "FST-001")).disponibile is False
        assert (await db.get(Fustella, "FST-002")).disponibile is True
        assert await db.get(Fustella, "FST-003") is None

    @pytest.mark.asyncio
    async def test_pulitore_incorporato(self, db, fornitore_fustelle):
        """Test il pulitore incorporato viene scritto sulla fustella."""
        ordine = await crea_ordine(db, fornitore_fustelle, [
            _fustella("FST-001", hasPulitore=True, pulitore_codice_fustella="PU-001"),
        ])

        await inventory_sync_service.sync_article_inventory_status(db, ordine)

        assert (await db.get(Fustella, "FST-001")).pulitore_codice == "PU-001"

    @pytest.mark.asyncio
    async def test_pulitore_incorporato_rimosso(self, db, fornitore_fustelle):
        """Test togliendo il pulitore dalla riga la fustella resta senza pulitore."""
        ordine = await crea_ordine(db, fornitore_fustelle, [
            _fustella("FST-001", hasPulitore=True, pulitore_codice_fustella="PU-001"),
        ])
        await inventory_sync_service.sync_article_inventory_status(db, ordine)

        ordine.articoli = [_fustella("FST-001")]
        await db.commit()
        await inventory_sync_service.sync_article_inventory_status(db, ordine)

        fustella = await db.get(Fustella, "FST-001")
        await db.refresh(fustella)
        assert fustella.pulitore_codice is None
        assert fustella.pulitore_incorporato is False

    @pytest.mark.asyncio
    async def test_pulitore_separato_collegato(self, db, fornitore_fustelle):
        """Test un pulitore ordinato a parte si collega per codice fornitore."""
        ordine_fustella = await crea_ordine(db, fornitore_fustelle, [_fustella("FST-001")], numero="1/25")
        await inventory_sync_service.sync_article_inventory_status(db, ordine_fustella)

        ordine_pulitore = await crea_ordine(db, fornitore_fustelle, [{
            "item_type": "pulitore",
            "pulitore_codice_fustella": "PU-002",
            "codice_fornitore_fustella": "F-FST-001",
            "prezzo_unitario": "40",
        }], numero="2/25")
        esito = await inventory_sync_service.sync_article_inventory_status(db, ordine_pulitore)

        assert esito.data["inseriti"]["pulitori"] == 1
        fustella = await db.get(Fustella, "FST-001")
        await db.refresh(fustella)
        assert fustella.pulitore_codice == "PU-002"
        assert fustella.ordine_acquisto_numero == "1/25"

        # la ricostruzione della fustella non perde il pulitore collegato
        await inventory_sync_service.sync_article_inventory_status(db, ordine_fustella)
        fustella = await db.get(Fustella, "FST-001")
        await db.refresh(fustella)
        assert fustella.pulitore_codice == "PU-002"

    @pytest.mark.asyncio
    async def test_pulitore_senza_fustella(self, db, fornitore_fustelle):
        """Test pulitore con fustella di riferimento inesistente."""
        ordine = await crea_ordine(db, fornitore_fustelle, [{
            "item_type": "pulitore",
            "pulitore_codice_fustella": "PU-009",
            "codice_fornitore_fustella": "SCONOSCIUTA",
        }])

        esito = await inventory_sync_service.sync_article_inventory_status(db, ordine)

        assert esito.success
        assert esito.data["non_trovati"] == ["PU-009"]

    @pytest.mark.asyncio
    async def test_pulitore_annullato_scollegato(self, db, fornitore_fustelle):
        """Test annullando il pulitore separato il collegamento viene rimosso."""
        db.add(Fustella(codice="FST-005", codice_fornitore="F-77", pulitore_codice="PU-003"))
        await db.commit()
        ordine = await crea_ordine(db, fornitore_fustelle, [{
            "item_type": "pulitore",
            "pulitore_codice_fustella": "PU-003",
            "codice_fornitore_fustella": "F-77",
            "stato": "annullato",
        }])

        await inventory_sync_service.sync_article_inventory_status(db, ordine)

        fustella = await db.get(Fustella, "FST-005")
        await db.refresh(fustella)
        assert fustella.pulitore_codice is None
