"""Entity CRUD proxied through the request optimizer"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request

from financial_shift.api.dependencies import get_optimizer, get_request_id
from financial_shift.api.v1.errors import entity_http_error
from financial_shift.api.v1.schemas import InvalidateCacheResponse, OptimizerStatsResponse
from financial_shift.infrastructure.optimization.entities import RequestOptimizer

router = APIRouter()

Record = Dict[str, Any]

_LIST_CONTROL_PARAMS = ("sort", "limit")


@router.get("/entities/{name}", response_model=List[Record])
async def list_entities(
    name: str,
    request: Request,
    sort: Optional[str] = None,
    limit: Optional[int] = None,
    optimizer: RequestOptimizer = Depends(get_optimizer),
    request_id: str = Depends(get_request_id),
):
    """List records; query parameters other than sort/limit are filters"""
    filters = {k: v for k, v in request.query_params.items() if k not in _LIST_CONTROL_PARAMS}
    try:
        return await optimizer.entity(name).list(filters=filters or None, sort=sort, limit=limit)
    except Exception as e:
        raise entity_http_error(e, request_id)


@router.post("/entities/{name}/query", response_model=List[Record])
async def query_entities(
    name: str,
    query: Record = Body(...),
    optimizer: RequestOptimizer = Depends(get_optimizer),
    request_id: str = Depends(get_request_id),
):
    try:
        return await optimizer.entity(name).query(query)
    except Exception as e:
        raise entity_http_error(e, request_id)


@router.delete("/entities/{name}/cache", response_model=InvalidateCacheResponse)
async def invalidate_entity_cache(
    name: str,
    optimizer: RequestOptimizer = Depends(get_optimizer),
    request_id: str = Depends(get_request_id),
):
    """Drop cached and in-flight reads of one entity"""
    try:
        optimizer.entity(name)
    except Exception as e:
        raise entity_http_error(e, request_id)
    return InvalidateCacheResponse(entity=name, invalidated=optimizer.invalidate_cache(name))


@router.get("/entities/{name}/{entity_id}", response_model=Record)
async def get_entity(
    name: str,
    entity_id: str,
    optimizer: RequestOptimizer = Depends(get_optimizer),
    request_id: str = Depends(get_request_id),
):
    try:
        record = await optimizer.entity(name).get(entity_id)
    except Exception as e:
        raise entity_http_error(e, request_id)

    if record is None:
        raise HTTPException(status_code=404, detail=f"{name} {entity_id} not found")
    return record


@router.post("/entities/{name}", response_model=Record, status_code=201)
async def create_entity(
    name: str,
    data: Record = Body(...),
    optimizer: RequestOptimizer = Depends(get_optimizer),
    request_id: str = Depends(get_request_id),
):
    try:
        return await optimizer.entity(name).create(data)
    except Exception as e:
        raise entity_http_error(e, request_id)


@router.put("/entities/{name}/{entity_id}", response_model=Record)
async def update_entity(
    name: str,
    entity_id: str,
    data: Record = Body(...),
    optimizer: RequestOptimizer = Depends(get_optimizer),
    request_id: str = Depends(get_request_id),
):
    try:
        return await optimizer.entity(name).update(entity_id, data)
    except Exception as e:
        raise entity_http_error(e, request_id)


@router.delete("/entities/{name}/{entity_id}", status_code=204)
async def delete_entity(
    name: str,
    entity_id: str,
    optimizer: RequestOptimizer = Depends(get_optimizer),
    request_id: str = Depends(get_request_id),
):
    try:
        await optimizer.entity(name).delete(entity_id)
    except Exception as e:
        raise entity_http_error(e, request_id)


@router.get("/optimizer/stats", response_model=OptimizerStatsResponse)
async def optimizer_stats(optimizer: RequestOptimizer = Depends(get_optimizer)):
    """Rate limiter, deduplicator and batcher state"""
    return optimizer.stats()
