"""
Concept Graph API
=================

Tag network derived from the reconciled history.

Endpoints:
- GET /api/graph        - Nodes with laid-out positions, plus weighted edges
- GET /api/graph/cloud  - Tag cloud (counts on a sphere)
- GET /api/graph/nodes/{name}/history - History filtered by a selected tag

Graph and cloud accept the history filters, so the graph and the list view can be
driven by the same query.
"""
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from radar.filters import HistoryQuery, apply_query
from radar.graph import build_concept_graph, highlight, tag_counts
from radar.layout import ForceLayout, sphere_positions
from radar.pagination import BrowseState
from services.container import AuditServices

from api.dependencies import get_services
from api.history import HistoryPage, build_query, page_response


router = APIRouter(prefix="/api/graph", tags=["Graph"])


class GraphNode(BaseModel):
    name: str
    occurrence_count: int
    average_transparency: float
    band: str
    position: Tuple[float, float, float]
    highlighted: bool = True


class GraphEdge(BaseModel):
    source: str
    target: str
    weight: int


class GraphResponse(BaseModel):
    nodes: List[GraphNode]
    edges: List[GraphEdge]
    empty: bool
    iterations: int


class CloudTag(BaseModel):
    name: str
    count: int
    position: Tuple[float, float, float]


@router.get("", response_model=GraphResponse)
async def concept_graph(
    query: HistoryQuery = Depends(build_query),
    steps: Optional[int] = Query(None, ge=0, le=5000, description="Layout iterations"),
    search: Optional[str] = Query(None, description="Highlight matching tags"),
    seed: Optional[int] = Query(None),
    services: AuditServices = Depends(get_services),
):
    """
    Build the co-occurrence graph and run the force layout.

    An empty history gives `empty=true` with no nodes.
    """
    records = apply_query(await services.reconciler.reconcile(), query)
    graph = build_concept_graph(records)

    if graph.is_empty:
        return GraphResponse(nodes=[], edges=[], empty=True, iterations=0)

    layout = ForceLayout(graph, seed=seed)
    state = layout.advance(services.layout_steps if steps is None else steps)
    positions = layout.positions()
    lit = highlight(graph, search or "").nodes

    return GraphResponse(
        nodes=[
            GraphNode(
                name=node.name,
                occurrence_count=node.occurrence_count,
                average_transparency=round(node.average_transparency, 2),
                band=node.band,
                position=positions[node.name],
                highlighted=node.name in lit,
            )
            for node in graph.nodes
        ],
        edges=[
            GraphEdge(source=e.source, target=e.target, weight=e.co_occurrence_count)
            for e in graph.edges
        ],
        empty=False,
        iterations=state.iteration,
    )


@router.get("/cloud", response_model=List[CloudTag])
async def tag_cloud(
    query: HistoryQuery = Depends(build_query),
    radius: float = Query(12.0, gt=0),
    services: AuditServices = Depends(get_services),
):
    records = apply_query(await services.reconciler.reconcile(), query)
    counts = tag_counts(records)
    points = sphere_positions(len(counts), radius)
    return [
        CloudTag(name=name, count=count, position=point)
        for (name, count), point in zip(counts, points)
    ]


@router.get("/nodes/{name}/history", response_model=HistoryPage)
async def node_history(
    name: str,
    page: int = Query(1),
    services: AuditServices = Depends(get_services),
):
    """Selecting a node: the history filtered to that tag, from page 1."""
    records = await services.reconciler.reconcile()
    graph = build_concept_graph(records)
    if graph.node(name) is None:
        raise HTTPException(status_code=404, detail=f"Tag not found: {name}")

    state = BrowseState(query=graph.select(name), page=page, page_size=services.page_size)
    return page_response(state.window(records))
