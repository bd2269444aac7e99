# tests/test_search_service.py
"""Unit tests for the hybrid search service. Qdrant and OpenAI are mocked."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import MagicMock, AsyncMock

from factories import make_access_payload, make_inside_payload, make_point
from portaria.errors import EmbeddingError, PayloadValidationError, SearchError
from portaria.schemas.access_record import AccessRecord
from portaria.schemas.search import SearchQuery
from portaria.services.filter_compiler import AllOf, AnyOf, MatchCondition
from portaria.services.search_service import SearchService
from portaria.services.text_normalizer import normalize


def make_service(search_results=None, scroll_results=None):
    store = MagicMock()
    store.search = AsyncMock(side_effect=search_results or [[]])
    store.scroll = AsyncMock(return_value=scroll_results or [])
    embedder = MagicMock()
    embedder.embed = AsyncMock(return_value=[0.1, 0.2, 0.3])
    return SearchService(store, embedder), store, embedder


class TestFreeTextSearch:
    @pytest.mark.asyncio
    async def test_person_name_falls_back_to_vector(self):
        """No name-filtered hit → plain vector search at the default threshold."""
        service, store, embedder = make_service(search_results=[[], [make_point("acc-1")]])

        result = await service.search("ALECSANDER SILVA")

        assert result.strategy == "vector"
        assert [r.id for r in result.records] == ["acc-1"]
        assert store.search.await_count == 2

        first, second = store.search.await_args_list
        assert isinstance(first.args[1], AnyOf)
        assert first.kwargs["score_threshold"] == 0.5
        assert len(second.args) == 1
        assert second.kwargs["score_threshold"] == 0.55
        embedder.embed.assert_awaited_once_with(normalize("ALECSANDER SILVA"))

    @pytest.mark.asyncio
    async def test_name_hit_returns_hybrid_without_fallback(self):
        service, store, _ = make_service(search_results=[[make_point("acc-1"), make_point("acc-2")]])

        result = await service.search("Alecsander Silva", limit=5)

        assert result.strategy == "hybrid"
        assert result.total == 2
        assert result.has_more is False
        store.search.assert_awaited_once()
        name_filter = store.search.await_args.args[1]
        assert MatchCondition("pessoa_nome", "ALECSANDER SILVA", "text") in name_filter.conditions

    @pytest.mark.asyncio
    async def test_non_name_goes_straight_to_vector(self):
        service, store, _ = make_service(search_results=[[make_point()]])

        result = await service.search("MORADOR APT 236")

        assert result.strategy == "vector"
        store.search.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_caller_threshold_used_for_fallback(self):
        service, store, _ = make_service(search_results=[[], []])

        result = await service.search("NICOLAS MORAES SALVADOR", score_threshold=0.3)

        assert result.records == []
        assert [c.kwargs["score_threshold"] for c in store.search.await_args_list] == [0.3, 0.3]

    @pytest.mark.asyncio
    async def test_full_page_reports_has_more(self):
        points = [make_point(f"acc-{i}") for i in range(3)]
        service, _, _ = make_service(search_results=[points])

        result = await service.search("carro prata", limit=3)

        assert result.has_more is True

    @pytest.mark.asyncio
    async def test_invalid_payload_fails_the_call(self):
        bad = make_point("acc-bad")
        del bad.payload["pessoa_nome"]
        service, _, _ = make_service(search_results=[[make_point("acc-ok"), bad]])

        with pytest.raises(PayloadValidationError, match="acc-bad"):
            await service.search("carro prata")

    @pytest.mark.asyncio
    async def test_inconsistent_exit_fails_validation(self):
        bad = make_point("acc-bad", ainda_dentro=True)
        service, _, _ = make_service(search_results=[[bad]])

        with pytest.raises(PayloadValidationError):
            await service.search("carro prata")

    @pytest.mark.asyncio
    async def test_search_errors_propagate(self):
        service, store, _ = make_service()
        store.search = AsyncMock(side_effect=SearchError("boom"))

        with pytest.raises(SearchError):
            await service.search("ALECSANDER SILVA")
        store.search.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_embedding_errors_propagate(self):
        service, store, embedder = make_service()
        embedder.embed = AsyncMock(side_effect=EmbeddingError("no key"))

        with pytest.raises(EmbeddingError):
            await service.search("ALECSANDER SILVA")
        store.search.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_records_keep_every_payload_field(self):
        service, _, _ = make_service(search_results=[[make_point("acc-1")]])

        result = await service.search("carro prata")

        dumped = result.records[0].model_dump()
        expected = make_access_payload(id="acc-1")
        assert dumped == AccessRecord.model_validate(expected).model_dump()
        assert dumped["original_record"]["veiculo"]["placa"] == "ABC1D23"


class TestFilteredSearch:
    @pytest.mark.asyncio
    async def test_filters_without_text_scroll(self):
        service, store, embedder = make_service(scroll_results=[make_point("acc-1")])

        result = await service.search_filtered(SearchQuery(pessoa_documento="12345678900", limit=5, offset=10))

        assert result.strategy == "scroll"
        embedder.embed.assert_not_awaited()
        predicate = store.scroll.await_args.args[0]
        assert predicate == AllOf((MatchCondition("pessoa_documento", "12345678900"),))
        assert store.scroll.await_args.kwargs == {"limit": 5, "offset": 10}

    @pytest.mark.asyncio
    async def test_filters_with_text_embed_raw_query(self):
        service, store, embedder = make_service(search_results=[[make_point("acc-1")]])

        result = await service.search_filtered(SearchQuery(query="carro prata", tem_veiculo=True))

        assert result.strategy == "filtered_vector"
        embedder.embed.assert_awaited_once_with("carro prata")
        assert store.search.await_args.args[1] == AllOf((MatchCondition("tem_veiculo", True),))

    @pytest.mark.asyncio
    async def test_text_only_is_plain_vector(self):
        service, store, _ = make_service(search_results=[[]])

        result = await service.search_filtered(SearchQuery(query="carro prata"))

        assert result.strategy == "vector"
        assert store.search.await_args.args[1] is None

    @pytest.mark.asyncio
    async def test_people_inside(self):
        inside = make_point("acc-in")
        inside.payload = make_inside_payload(id="acc-in")
        service, store, _ = make_service(scroll_results=[inside])

        result = await service.people_inside(limit=10)

        assert result.records[0].ainda_dentro is True
        assert result.records[0].saida_datetime == ""
        assert store.scroll.await_args.args[0] == AllOf((MatchCondition("ainda_dentro", True),))

    @pytest.mark.asyncio
    async def test_person_history_with_dates(self):
        service, store, _ = make_service()

        await service.person_history("123", data_inicio="2024-03-01", data_fim="2024-03-31")

        conditions = store.scroll.await_args.args[0].conditions
        assert MatchCondition("pessoa_documento", "123") in conditions
        assert len(conditions) == 3
        assert store.scroll.await_args.kwargs["limit"] == 20

    @pytest.mark.asyncio
    async def test_by_vehicle(self):
        service, store, _ = make_service()

        await service.by_vehicle("ABC1D23")

        assert store.scroll.await_args.args[0].conditions[0].key == "original_record.veiculo.placa"
