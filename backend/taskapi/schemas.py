from datetime import datetime, timezone
from typing import Annotated, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import TaskStatus, TaskPriority, ProjectStatus


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def wire_enum(value):
    # accepts the client spelling ("in-progress") as well as "IN_PROGRESS"
    if isinstance(value, str):
        return value.strip().upper().replace("-", "_")
    return value


def parse_wire_enum(enum_cls, value):
    if value is None:
        return None
    try:
        return enum_cls(wire_enum(value))
    except ValueError:
        raise ValueError(f"Invalid {enum_cls.__name__} value: {value}")


StatusIn = Annotated[TaskStatus, BeforeValidator(wire_enum)]
PriorityIn = Annotated[TaskPriority, BeforeValidator(wire_enum)]
ProjectStatusIn = Annotated[ProjectStatus, BeforeValidator(wire_enum)]


def to_utc(value: datetime) -> datetime:
    # naive timestamps are taken to be UTC already
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

UtcDatetime = Annotated[datetime, AfterValidator(to_utc)]


# Users

class UserLogin(ApiModel):
    email: str = Field(min_length=3, max_length=320)
    name: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("email must contain '@'")
        return value

class UserOut(ApiModel):
    id: str
    email: str
    name: str
    date_created: datetime


# Tasks

class TaskCreate(ApiModel):
    title: str = Field(min_length=1, max_length=500)
    description: Optional[str] = None
    status: StatusIn = TaskStatus.TODO
    priority: PriorityIn = TaskPriority.NONE
    deadline: Optional[UtcDatetime] = None
    date_completed: Optional[UtcDatetime] = None
    estimated_time: Optional[float] = None
    actual_time_spent: Optional[float] = None
    created_by: Optional[str] = None
    tags: List[str] = []
    project_ids: List[str] = []


class TaskUpdate(ApiModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[StatusIn] = None
    priority: Optional[PriorityIn] = None
    deadline: Optional[UtcDatetime] = None
    date_completed: Optional[UtcDatetime] = None
    estimated_time: Optional[float] = None
    actual_time_spent: Optional[float] = None
    tags: Optional[List[str]] = None
    project_ids: Optional[List[str]] = None


class TaskOut(ApiModel):
    id: str
    title: str
    description: Optional[str]
    status: TaskStatus
    priority: TaskPriority
    date_added: datetime
    date_modified: datetime
    deadline: Optional[datetime]
    date_completed: Optional[datetime]
    estimated_time: Optional[float]
    actual_time_spent: Optional[float]
    created_by: str
    tags: List[str]
    project_ids: List[str]

class TaskSummary(ApiModel):
    total: int
    due_today: int
    overdue: int
    completed_today: int
    by_status: Dict[str, int]


# Projects

class ProjectCreate(ApiModel):
    title: str = Field(min_length=1, max_length=500)
    description: str = ""
    content: Optional[str] = None
    status: ProjectStatusIn = ProjectStatus.ACTIVE
    created_by: Optional[str] = None
    task_ids: List[str] = []
    filter_item_ids: List[str] = []


class ProjectUpdate(ApiModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    content: Optional[str] = None
    status: Optional[ProjectStatusIn] = None
    task_ids: Optional[List[str]] = None
    filter_item_ids: Optional[List[str]] = None


class ProjectOut(ApiModel):
    id: str
    title: str
    description: str
    content: Optional[str]
    status: ProjectStatus
    created_by: str
    date_created: datetime
    date_modified: datetime
    tasks: List[TaskOut]
    task_ids: List[str]
    filter_item_ids: List[str]


# Filter taxonomy

class FilterItemIn(ApiModel):
    id: Optional[str] = Field(default=None, max_length=36)
    name: str = Field(min_length=1, max_length=200)
    color: str = Field(min_length=1, max_length=32)

class FilterGroupIn(ApiModel):
    id: Optional[str] = Field(default=None, max_length=36)
    name: str = Field(min_length=1, max_length=200)
    color: str = Field(min_length=1, max_length=32)
    items: List[FilterItemIn] = []

class FilterGroupCreate(FilterGroupIn):
    user_id: Optional[str] = None

class FilterGroupUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    color: Optional[str] = Field(default=None, min_length=1, max_length=32)

class FilterGroupBulk(ApiModel):
    user_id: Optional[str] = None
    filter_groups: List[FilterGroupIn] = []

class FilterItemCreate(FilterItemIn):
    group_id: str
    user_id: Optional[str] = None

class FilterItemUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    color: Optional[str] = Field(default=None, min_length=1, max_length=32)

class FilterItemOut(ApiModel):
    id: str
    name: str
    color: str
    group_id: str

class FilterGroupOut(ApiModel):
    id: str
    name: str
    color: str
    user_id: str
    items: List[FilterItemOut]


class SuccessOut(ApiModel):
    success: bool = True
    message: Optional[str] = None
