import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Float, String, DateTime, Text, Enum, ForeignKey, Table, JSON
from sqlalchemy.orm import relationship

from .database import Base


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(str, enum.Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    ON_HOLD = "ON_HOLD"
    COMPLETE = "COMPLETE"
    CANCELLED = "CANCELLED"


class TaskPriority(str, enum.Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    NONE = "NONE"


class ProjectStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    COMPLETE = "COMPLETE"
    ARCHIVED = "ARCHIVED"


project_tasks = Table(
    "project_tasks",
    Base.metadata,
    Column("project_id", String(36), ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("task_id", String(36), ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
)

project_filter_items = Table(
    "project_filter_items",
    Base.metadata,
    Column("project_id", String(36), ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("filter_item_id", String(36), ForeignKey("filter_items.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(320), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False)
    date_created = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Task(Base):
    __tablename__ = "tasks"
    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Enum(TaskStatus, native_enum=False, length=20), default=TaskStatus.TODO, nullable=False)
    priority = Column(Enum(TaskPriority, native_enum=False, length=20), default=TaskPriority.NONE, nullable=False)
    date_added = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    date_modified = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deadline = Column(DateTime(timezone=True), nullable=True)
    date_completed = Column(DateTime(timezone=True), nullable=True)
    estimated_time = Column(Float, nullable=True)
    actual_time_spent = Column(Float, nullable=True)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    # filter item ids; not a foreign key so a taxonomy replace keeps them
    tags = Column(JSON, default=list, nullable=False)

    projects = relationship("Project", secondary=project_tasks, back_populates="tasks")

    @property
    def project_ids(self):
        return [p.id for p in self.projects]


class Project(Base):
    __tablename__ = "projects"
    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(500), nullable=False)
    description = Column(Text, default="", nullable=False)
    content = Column(Text, nullable=True)
    status = Column(Enum(ProjectStatus, native_enum=False, length=20), default=ProjectStatus.ACTIVE, nullable=False)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    date_created = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    date_modified = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    tasks = relationship("Task", secondary=project_tasks, back_populates="projects", order_by="Task.date_added")
    filter_items = relationship("FilterItem", secondary=project_filter_items, back_populates="projects")

    @property
    def task_ids(self):
        return [t.id for t in self.tasks]

    @property
    def filter_item_ids(self):
        return [i.id for i in self.filter_items]


class FilterGroup(Base):
    __tablename__ = "filter_groups"
    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    color = Column(String(32), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    position = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    items = relationship(
        "FilterItem",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="FilterItem.position",
    )


class FilterItem(Base):
    __tablename__ = "filter_items"
    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    color = Column(String(32), nullable=False)
    group_id = Column(String(36), ForeignKey("filter_groups.id", ondelete="CASCADE"), index=True, nullable=False)
    position = Column(Integer, default=0, nullable=False)

    group = relationship("FilterGroup", back_populates="items")
    projects = relationship("Project", secondary=project_filter_items, back_populates="filter_items")
