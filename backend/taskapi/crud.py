import logging
from collections import Counter
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import (
    User, Task, Project, FilterGroup, FilterItem,
    TaskStatus, new_id, utcnow,
)
from . import schemas

logger = logging.getLogger(__name__)


class UnknownIdsError(ValueError):
    """Linked ids that do not exist or belong to another user."""

    def __init__(self, kind: str, ids: Iterable[str]):
        self.kind = kind
        self.ids = sorted(ids)
        super().__init__(f"Unknown {kind} ids: {', '.join(self.ids)}")


def _unique(ids: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(ids))


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored as UTC
    return None if value is None else schemas.to_utc(value)


# Users

def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()

def get_or_create_user(db: Session, email: str, name: Optional[str] = None) -> User:
    obj = db.query(User).filter(User.email == email).first()
    if obj:
        return obj
    obj = User(email=email, name=(name or "").strip() or email.split("@", 1)[0])
    db.add(obj)
    db.commit()
    db.refresh(obj)
    logger.info("created user %s for %s", obj.id, email)
    return obj


# Tasks

def _owned_projects(db: Session, user_id: str, ids: Sequence[str]) -> List[Project]:
    ids = _unique(ids)
    if not ids:
        return []
    found = db.query(Project).filter(Project.id.in_(ids), Project.created_by == user_id).all()
    missing = set(ids) - {p.id for p in found}
    if missing:
        raise UnknownIdsError("project", missing)
    return found

def _owned_tasks(db: Session, user_id: str, ids: Sequence[str]) -> List[Task]:
    ids = _unique(ids)
    if not ids:
        return []
    found = db.query(Task).filter(Task.id.in_(ids), Task.created_by == user_id).all()
    missing = set(ids) - {t.id for t in found}
    if missing:
        raise UnknownIdsError("task", missing)
    return found

def _owned_filter_items(db: Session, user_id: str, ids: Sequence[str]) -> List[FilterItem]:
    ids = _unique(ids)
    if not ids:
        return []
    found = (
        db.query(FilterItem)
        .join(FilterGroup)
        .filter(FilterItem.id.in_(ids), FilterGroup.user_id == user_id)
        .all()
    )
    missing = set(ids) - {i.id for i in found}
    if missing:
        raise UnknownIdsError("filter item", missing)
    return found

def _sync_completion(task: Task, explicit_completed: Optional[datetime] = None) -> None:
    """COMPLETE tasks always carry a completion date, other statuses never do."""
    if task.status == TaskStatus.COMPLETE:
        if explicit_completed is not None:
            task.date_completed = explicit_completed
        elif task.date_completed is None:
            task.date_completed = utcnow()
    else:
        task.date_completed = None

def list_tasks(
    db: Session,
    user_id: str,
    status: Optional[TaskStatus] = None,
    priority=None,
    project_id: Optional[str] = None,
    search: Optional[str] = None,
    tags: Optional[Sequence[str]] = None,
) -> List[Task]:
    q = db.query(Task).filter(Task.created_by == user_id)
    if status:
        q = q.filter(Task.status == status)
    if priority:
        q = q.filter(Task.priority == priority)
    if project_id:
        q = q.filter(Task.projects.any(Project.id == project_id))
    if search:
        needle = search.strip()
        q = q.filter(or_(
            Task.title.icontains(needle, autoescape=True),
            Task.description.icontains(needle, autoescape=True),
        ))
    rows = q.order_by(Task.date_added.desc(), Task.id).all()
    if tags:
        wanted = set(tags)
        rows = [t for t in rows if wanted.intersection(t.tags or [])]
    return rows

def get_task(db: Session, task_id: str, user_id: Optional[str] = None) -> Optional[Task]:
    q = db.query(Task).filter(Task.id == task_id)
    if user_id:
        q = q.filter(Task.created_by == user_id)
    return q.first()

def create_task(db: Session, data: schemas.TaskCreate, user_id: str) -> Task:
    obj = Task(
        title=data.title,
        description=data.description,
        status=data.status,
        priority=data.priority,
        deadline=data.deadline,
        estimated_time=data.estimated_time,
        actual_time_spent=data.actual_time_spent,
        created_by=user_id,
        tags=_unique(data.tags),
    )
    obj.projects = _owned_projects(db, user_id, data.project_ids)
    _sync_completion(obj, data.date_completed)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj

def update_task(db: Session, task_id: str, data: schemas.TaskUpdate, user_id: Optional[str] = None) -> Optional[Task]:
    obj = get_task(db, task_id, user_id)
    if not obj:
        return None
    changes = data.model_dump(exclude_unset=True)
    project_ids = changes.pop("project_ids", None)
    explicit_completed = changes.pop("date_completed", None)
    for field, value in changes.items():
        if value is None and field in ("title", "status", "priority", "tags"):
            continue
        if field == "tags":
            value = _unique(value)
        setattr(obj, field, value)
    if project_ids is not None:
        obj.projects = _owned_projects(db, obj.created_by, project_ids)
    _sync_completion(obj, explicit_completed)
    obj.date_modified = utcnow()
    db.commit()
    db.refresh(obj)
    return obj

def delete_task(db: Session, task_id: str, user_id: Optional[str] = None) -> bool:
    obj = get_task(db, task_id, user_id)
    if not obj:
        return False
    db.delete(obj)
    db.commit()
    return True

def task_summary(db: Session, user_id: str, now: Optional[datetime] = None) -> dict:
    now = _as_utc(now) or utcnow()
    today = now.date()
    tasks = db.query(Task).filter(Task.created_by == user_id).all()

    due_today = overdue = completed_today = 0
    for task in tasks:
        deadline = _as_utc(task.deadline)
        completed = _as_utc(task.date_completed)
        open_task = task.status != TaskStatus.COMPLETE
        if deadline and open_task:
            if deadline.date() == today:
                due_today += 1
            if deadline < now:
                overdue += 1
        if completed and completed.date() == today:
            completed_today += 1

    counts = Counter(task.status.value for task in tasks)
    return {
        "total": len(tasks),
        "due_today": due_today,
        "overdue": overdue,
        "completed_today": completed_today,
        "by_status": {s.value: counts.get(s.value, 0) for s in TaskStatus},
    }


# Projects

def list_projects(db: Session, user_id: str, status=None) -> List[Project]:
    q = db.query(Project).filter(Project.created_by == user_id)
    if status:
        q = q.filter(Project.status == status)
    return q.order_by(Project.date_created.desc(), Project.id).all()

def get_project(db: Session, project_id: str, user_id: Optional[str] = None) -> Optional[Project]:
    q = db.query(Project).filter(Project.id == project_id)
    if user_id:
        q = q.filter(Project.created_by == user_id)
    return q.first()

def create_project(db: Session, data: schemas.ProjectCreate, user_id: str) -> Project:
    obj = Project(
        title=data.title,
        description=data.description,
        content=data.content,
        status=data.status,
        created_by=user_id,
    )
    obj.tasks = _owned_tasks(db, user_id, data.task_ids)
    obj.filter_items = _owned_filter_items(db, user_id, data.filter_item_ids)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj

def update_project(
    db: Session, project_id: str, data: schemas.ProjectUpdate, user_id: Optional[str] = None
) -> Optional[Project]:
    obj = get_project(db, project_id, user_id)
    if not obj:
        return None
    changes = data.model_dump(exclude_unset=True)
    task_ids = changes.pop("task_ids", None)
    filter_item_ids = changes.pop("filter_item_ids", None)
    for field, value in changes.items():
        if value is None and field in ("title", "description", "status"):
            continue
        setattr(obj, field, value)
    if task_ids is not None:
        obj.tasks = _owned_tasks(db, obj.created_by, task_ids)
    if filter_item_ids is not None:
        obj.filter_items = _owned_filter_items(db, obj.created_by, filter_item_ids)
    obj.date_modified = utcnow()
    db.commit()
    db.refresh(obj)
    return obj

def delete_project(db: Session, project_id: str, user_id: Optional[str] = None) -> bool:
    obj = get_project(db, project_id, user_id)
    if not obj:
        return False
    db.delete(obj)
    db.commit()
    return True


# Filter groups and items

def list_filter_groups(db: Session, user_id: str) -> List[FilterGroup]:
    return (
        db.query(FilterGroup)
        .filter(FilterGroup.user_id == user_id)
        .order_by(FilterGroup.position, FilterGroup.created_at)
        .all()
    )

def get_filter_group(db: Session, group_id: str, user_id: Optional[str] = None) -> Optional[FilterGroup]:
    q = db.query(FilterGroup).filter(FilterGroup.id == group_id)
    if user_id:
        q = q.filter(FilterGroup.user_id == user_id)
    return q.first()

def _build_group(data: schemas.FilterGroupIn, user_id: str, position: int) -> FilterGroup:
    group = FilterGroup(
        id=data.id or new_id(),
        name=data.name,
        color=data.color,
        user_id=user_id,
        position=position,
    )
    for item_position, item in enumerate(data.items):
        group.items.append(
            FilterItem(id=item.id or new_id(), name=item.name, color=item.color, position=item_position)
        )
    return group

def create_filter_group(db: Session, data: schemas.FilterGroupIn, user_id: str) -> FilterGroup:
    position = db.query(FilterGroup).filter(FilterGroup.user_id == user_id).count()
    obj = _build_group(data, user_id, position)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj

def update_filter_group(
    db: Session, group_id: str, data: schemas.FilterGroupUpdate, user_id: Optional[str] = None
) -> Optional[FilterGroup]:
    obj = get_filter_group(db, group_id, user_id)
    if not obj:
        return None
    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(obj, field, value)
    db.commit()
    db.refresh(obj)
    return obj

def delete_filter_group(db: Session, group_id: str, user_id: Optional[str] = None) -> bool:
    obj = get_filter_group(db, group_id, user_id)
    if not obj:
        return False
    db.delete(obj)
    db.commit()
    return True

def replace_filter_groups(db: Session, user_id: str, groups: Sequence[schemas.FilterGroupIn]) -> List[FilterGroup]:
    """
    Swap the user's whole taxonomy for `groups` in a single transaction.
    Project links survive for items whose ids appear again in the new set.
    """
    try:
        linked_projects = {}
        for group in list_filter_groups(db, user_id):
            for item in group.items:
                linked_projects[item.id] = [p.id for p in item.projects]
            db.delete(group)
        # old rows must be gone before ids are reused
        db.flush()
        db.expire_all()

        created = []
        for position, data in enumerate(groups):
            group = _build_group(data, user_id, position)
            for item in group.items:
                project_ids = linked_projects.get(item.id)
                if project_ids:
                    item.projects = db.query(Project).filter(Project.id.in_(project_ids)).all()
            db.add(group)
            created.append(group)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    logger.info("replaced filter groups for user %s (%d groups)", user_id, len(created))
    return created

def get_filter_item(db: Session, item_id: str, user_id: Optional[str] = None) -> Optional[FilterItem]:
    q = db.query(FilterItem).filter(FilterItem.id == item_id)
    if user_id:
        q = q.join(FilterGroup).filter(FilterGroup.user_id == user_id)
    return q.first()

def create_filter_item(db: Session, data: schemas.FilterItemCreate, user_id: Optional[str] = None) -> Optional[FilterItem]:
    group = get_filter_group(db, data.group_id, user_id)
    if not group:
        return None
    obj = FilterItem(
        id=data.id or new_id(),
        name=data.name,
        color=data.color,
        position=len(group.items),
    )
    group.items.append(obj)
    db.commit()
    db.refresh(obj)
    return obj

def update_filter_item(
    db: Session, item_id: str, data: schemas.FilterItemUpdate, user_id: Optional[str] = None
) -> Optional[FilterItem]:
    obj = get_filter_item(db, item_id, user_id)
    if not obj:
        return None
    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(obj, field, value)
    db.commit()
    db.refresh(obj)
    return obj

def delete_filter_item(db: Session, item_id: str, user_id: Optional[str] = None) -> bool:
    obj = get_filter_item(db, item_id, user_id)
    if not obj:
        return False
    db.delete(obj)
    db.commit()
    return True
