from datetime import date
from typing import List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

SNAPSHOT_VERSION = 2

EntityKind = Literal["task", "group"]


def new_entity_id() -> str:
    return str(uuid4())


class TaskEntity(BaseModel):
    """A task or group row. Wire names follow the version 2 snapshot schema."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_entity_id)
    name: str = ""
    type: EntityKind = "task"
    parent_id: Optional[str] = Field(default=None, alias="parentId")
    start: Optional[date] = None
    end: Optional[date] = None
    deps: List[str] = []
    notes: str = ""
    collapsed: bool = False

    @property
    def is_group(self) -> bool:
        return self.type == "group"

    @property
    def is_dated(self) -> bool:
        return self.start is not None and self.end is not None

    @property
    def is_derived(self) -> bool:
        # Group dates are roll-ups written back into start/end, never user intent.
        return self.type == "group"


class GanttState(BaseModel):
    version: int = SNAPSHOT_VERSION
    tasks: List[TaskEntity] = []


class EntityEdit(BaseModel):
    """Partial edit of one entity. Fields left unset are not touched."""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    type: Optional[EntityKind] = None
    parent_id: Optional[str] = Field(default=None, alias="parentId")
    deps: Optional[List[str]] = None
    notes: Optional[str] = None
    start: Optional[date] = None
    end: Optional[date] = None
    collapsed: Optional[bool] = None
