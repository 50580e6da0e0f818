from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from lfa_core import __version__
from lfa_core.compiler import LFADocument, compile_graph
from lfa_core.critique import CritiqueClient, audit_graph, review_document
from lfa_core.enums import Domain
from lfa_core.graph import Graph
from lfa_core.pipeline import analyze
from lfa_core.simulator import simulator_for
from lfa_core.toolbox import Toolbox, UnknownDomainError, available_domains, get_toolbox
from lfa_core.validator import validate_structure

logger = logging.getLogger(__name__)

app = FastAPI(title="LFA Design API", version=__version__)

# Allow local dev frontends
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class GraphPayload(BaseModel):
    nodes: List[Dict[str, Any]] = Field(default_factory=list)
    edges: List[Dict[str, Any]] = Field(default_factory=list)


class ReviewRequest(GraphPayload):
    domain: str = Domain.FLN.value
    lfa: Optional[Dict[str, Any]] = None


class ProjectContext(BaseModel):
    mode: str = "FLN"
    region: str = "Bihar"
    problemStatement: str = ""


class AuditRequest(BaseModel):
    graphData: GraphPayload
    projectContext: ProjectContext = Field(default_factory=ProjectContext)


_critique_client: Optional[CritiqueClient] = None


def get_critique_client() -> CritiqueClient:
    # Created lazily so the environment is read on first use
    global _critique_client
    if _critique_client is None:
        _critique_client = CritiqueClient()
    return _critique_client


def _toolbox(domain: str) -> Toolbox:
    try:
        return get_toolbox(domain)
    except UnknownDomainError as e:
        raise HTTPException(status_code=404, detail=f"Unknown domain: {domain}") from e


def _simulation_client(client: CritiqueClient) -> Optional[CritiqueClient]:
    # Without an API key the Career domain falls back to the rule engine
    return client if client.enabled else None


def _graph(body: GraphPayload, toolbox: Optional[Toolbox] = None) -> Graph:
    return Graph.from_dict({"nodes": body.nodes, "edges": body.edges}, toolbox=toolbox)


@app.get("/")
async def root():
    return {
        "service": "lfa",
        "status": "ok",
        "version": __version__,
        "domains": [d.value for d in available_domains()],
    }


@app.get("/toolbox/{domain}")
async def get_domain_toolbox(domain: str):
    return _toolbox(domain).as_dict()


@app.get("/toolbox/{domain}/indicators")
async def get_domain_indicators(domain: str, source: Optional[str] = None, target: Optional[str] = None):
    """Indicator library for a domain, narrowed to one connection when both ends are given."""
    toolbox = _toolbox(domain)
    if source and target:
        options = toolbox.indicators_for_edge(source, target)
    else:
        options = toolbox.indicators_for_theme()
    return {"indicators": [o.to_dict() for o in options]}


@app.post("/validate")
async def post_validate(body: GraphPayload, domain: Optional[str] = None):
    toolbox = _toolbox(domain) if domain else None
    errors = validate_structure(_graph(body, toolbox), toolbox=toolbox)
    return {"errors": [e.to_dict() for e in errors]}


@app.post("/simulate/{domain}")
def post_simulate(
    domain: str,
    body: GraphPayload,
    client: CritiqueClient = Depends(get_critique_client),
):
    toolbox = _toolbox(domain)
    simulator = simulator_for(toolbox.domain, critique_client=_simulation_client(client))
    return simulator.simulate(_graph(body, toolbox)).to_dict()


@app.post("/compile/{domain}")
async def post_compile(domain: str, body: GraphPayload):
    toolbox = _toolbox(domain)
    return compile_graph(_graph(body, toolbox), toolbox.domain).to_dict()


@app.post("/analyze/{domain}")
def post_analyze(
    domain: str,
    body: GraphPayload,
    client: CritiqueClient = Depends(get_critique_client),
):
    toolbox = _toolbox(domain)
    return analyze(
        _graph(body, toolbox), toolbox.domain, critique_client=_simulation_client(client)
    ).to_dict()


@app.post("/analyze-logic")
def post_analyze_logic(
    body: ReviewRequest,
    client: CritiqueClient = Depends(get_critique_client),
):
    toolbox = _toolbox(body.domain)
    graph = _graph(body, toolbox)
    if body.lfa is not None:
        document = LFADocument.from_dict(body.lfa)
    else:
        document = compile_graph(graph, toolbox.domain)
    return review_document(client, document, graph, toolbox.domain).to_dict()


@app.post("/ai-audit")
def post_ai_audit(
    body: AuditRequest,
    client: CritiqueClient = Depends(get_critique_client),
):
    ctx = body.projectContext
    logger.info("AI audit requested: mode=%s region=%s", ctx.mode, ctx.region)
    report = audit_graph(client, _graph(body.graphData), ctx.mode, ctx.region, ctx.problemStatement)
    if report is None:
        raise HTTPException(status_code=502, detail="AI audit failed")
    return report.to_dict()
