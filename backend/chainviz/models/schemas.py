"""Pydantic schemas for catalog files and API request/response models."""
from typing import Any
from pydantic import BaseModel, Field, field_validator

from ..engine.graph import EdgeKind


class NodeSchema(BaseModel):
    id: str
    name: str = ""
    description: str = ""
    layer: str = ""
    position: dict[str, float] = {}
    details: list[str] = []
    metadata: dict[str, Any] = {}


class EdgeSchema(BaseModel):
    id: str
    source: str = Field(alias="from")
    target: str = Field(alias="to")
    kind: EdgeKind = EdgeKind.DATA
    label: str = ""
    description: str = ""

    model_config = {"populate_by_name": True}


class GraphSchema(BaseModel):
    nodes: list[NodeSchema]
    edges: list[EdgeSchema]


class StepSchema(BaseModel):
    active: str
    duration_ms: int = Field(gt=0)
    highlight: list[str] = []
    description: str = ""


class ScenarioSchema(BaseModel):
    id: str
    name: str = ""
    description: str = ""
    color: str = ""
    steps: list[StepSchema]

    @field_validator("steps")
    @classmethod
    def _non_empty(cls, steps: list[StepSchema]) -> list[StepSchema]:
        if not steps:
            raise ValueError("a scenario needs at least one step")
        return steps


class CatalogSchema(BaseModel):
    name: str = ""
    description: str = ""
    graph: GraphSchema
    scenarios: list[ScenarioSchema] = []


class ScenarioSummary(BaseModel):
    id: str
    name: str
    description: str
    color: str = ""
    step_count: int
    total_duration_ms: int


class CreateSessionRequest(BaseModel):
    scenario_id: str | None = None
    speed: float | None = None
    autoplay: bool = False


class StartRequest(BaseModel):
    scenario_id: str


class SpeedRequest(BaseModel):
    speed: float


class StepRequest(BaseModel):
    action: str = Field(pattern="^(next|previous|goto)$")
    index: int | None = None


class SnapshotResponse(BaseModel):
    session_id: str
    status: str
    scenario_id: str | None
    current_step_index: int
    step_count: int
    active_node: str | None
    highlight_nodes: list[str]
    active_edge_ids: list[str]
    description: str
    speed: float
    progress: float
    is_playing: bool
    is_paused: bool
    speed_options: list[float] = []
