# portaria/routers/search.py
"""Access-log search endpoints: free text, structured filters and shortcuts."""

from fastapi import APIRouter, Depends, Query
from datetime import date
from typing import Optional

from portaria.schemas.search import AdvancedSearchIn, SearchQuery, SearchResult, TextSearchIn
from portaria.services.search_service import SearchService
from portaria.services_registry import get_search_service

router = APIRouter(prefix="/search")


@router.post("/text", response_model=SearchResult, summary="Free-text semantic search")
async def search_text(body: TextSearchIn, service: SearchService = Depends(get_search_service)):
    """Names, documents, plates... Person names try a name-filtered search first."""
    return await service.search(body.query, body.limit, body.offset)


@router.post("/advanced", response_model=SearchResult, summary="Free-text search with a score threshold")
async def search_advanced(body: AdvancedSearchIn, service: SearchService = Depends(get_search_service)):
    return await service.search(body.query, body.limit, body.offset, body.score_threshold)


@router.post("/filters", response_model=SearchResult, summary="Structured filters, optional free text")
async def search_filters(body: SearchQuery, service: SearchService = Depends(get_search_service)):
    return await service.search_filtered(body)


@router.get("/inside", response_model=SearchResult, summary="People still inside the condominium")
async def people_inside(
    limit: int = Query(10, ge=1, le=100),
    service: SearchService = Depends(get_search_service),
):
    return await service.people_inside(limit)


@router.get("/history/{documento}", response_model=SearchResult, summary="Access history of one visitor")
async def person_history(
    documento: str,
    data_inicio: Optional[date] = None,
    data_fim: Optional[date] = None,
    limit: int = Query(20, ge=1, le=100),
    service: SearchService = Depends(get_search_service),
):
    return await service.person_history(documento, data_inicio, data_fim, limit)


@router.get("/resident", response_model=SearchResult, summary="Visits received by a resident")
async def resident_visits(
    morador_nome: str,
    data_inicio: Optional[date] = None,
    data_fim: Optional[date] = None,
    limit: int = Query(20, ge=1, le=100),
    service: SearchService = Depends(get_search_service),
):
    return await service.resident_visits(morador_nome, data_inicio, data_fim, limit)


@router.get("/vehicle/{placa}", response_model=SearchResult, summary="Access records for a plate")
async def by_vehicle(
    placa: str,
    limit: int = Query(10, ge=1, le=100),
    service: SearchService = Depends(get_search_service),
):
    return await service.by_vehicle(placa, limit)
