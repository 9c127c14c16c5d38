"""
Client-side workspace: an in-memory copy of a user's tasks, projects and
filter taxonomy, loaded on login and written back on change.

Taxonomy edits are saved with a debounced bulk replace, so a burst of edits
costs one POST. The server keeps no versions; the last save wins.
"""

import copy
import logging
import threading
import uuid
from typing import Any, Dict, Iterable, List, Optional

from . import config
from .client import ApiError, TaskManagerClient

logger = logging.getLogger(__name__)


def _norm(value: str) -> str:
    return value.strip().lower().replace("_", "-")


class Workspace:
    def __init__(self, client: TaskManagerClient, save_delay: Optional[float] = None):
        self.client = client
        self.save_delay = config.FILTER_SAVE_DELAY if save_delay is None else save_delay
        self.user: Optional[Dict[str, Any]] = None
        self.tasks: List[Dict[str, Any]] = []
        self.projects: List[Dict[str, Any]] = []
        self.filter_groups: List[Dict[str, Any]] = []

        # _lock guards local state; _send_lock keeps saves in order
        self._lock = threading.Lock()
        self._send_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._dirty = False

    # Loading

    def login(self, email: str, name: Optional[str] = None) -> Dict[str, Any]:
        self.user = self.client.login_or_create_user(email, name)
        self.reload()
        return self.user

    def reload(self) -> None:
        self.tasks = self._load("tasks", self.client.get_tasks)
        self.projects = self._load("projects", self.client.get_projects)
        self.filter_groups = self._load("filter groups", self.client.get_filter_groups)

    def _load(self, what: str, fetch) -> List[Dict[str, Any]]:
        try:
            return fetch()
        except ApiError as e:
            logger.error("could not load %s: %s", what, e)
            return []

    # Tasks (written through immediately)

    def add_task(self, **fields) -> Dict[str, Any]:
        task = self.client.create_task(**fields)
        self.tasks.insert(0, task)
        return task

    def update_task(self, task_id: str, **fields) -> Dict[str, Any]:
        task = self.client.update_task(task_id, **fields)
        self.tasks = [task if t["id"] == task_id else t for t in self.tasks]
        return task

    def remove_task(self, task_id: str) -> None:
        self.client.delete_task(task_id)
        self.tasks = [t for t in self.tasks if t["id"] != task_id]

    def visible_tasks(
        self,
        search: str = "",
        statuses: Iterable[str] = (),
        priorities: Iterable[str] = (),
        active_filters: Iterable[str] = (),
    ) -> List[Dict[str, Any]]:
        """Tasks matching every given filter; filter items match any-of."""
        needle = search.strip().lower()
        statuses = {_norm(s) for s in statuses}
        priorities = {_norm(p) for p in priorities}
        active = set(active_filters)

        visible = []
        for task in self.tasks:
            if needle:
                haystack = f"{task.get('title') or ''}\n{task.get('description') or ''}".lower()
                if needle not in haystack:
                    continue
            if statuses and _norm(task["status"]) not in statuses:
                continue
            if priorities and _norm(task["priority"]) not in priorities:
                continue
            if active and not active.intersection(task.get("tags") or []):
                continue
            visible.append(task)
        return visible

    def filter_item(self, item_id: str) -> Optional[Dict[str, Any]]:
        for group in self.filter_groups:
            for item in group["items"]:
                if item["id"] == item_id:
                    return item
        return None

    # Filter taxonomy (saved in the background)

    def set_filter_groups(self, groups: List[Dict[str, Any]]) -> None:
        with self._lock:
            self.filter_groups = copy.deepcopy(groups)
        self.schedule_save()

    def add_filter_group(self, name: str, color: str) -> Dict[str, Any]:
        group = {"id": str(uuid.uuid4()), "name": name, "color": color, "items": []}
        with self._lock:
            self.filter_groups.append(group)
        self.schedule_save()
        return group

    def add_filter_item(self, group_id: str, name: str, color: str) -> Dict[str, Any]:
        item = {"id": str(uuid.uuid4()), "name": name, "color": color}
        with self._lock:
            group = next((g for g in self.filter_groups if g["id"] == group_id), None)
            if group is None:
                raise KeyError(group_id)
            group["items"].append(item)
        self.schedule_save()
        return item

    def remove_filter_group(self, group_id: str) -> None:
        with self._lock:
            self.filter_groups = [g for g in self.filter_groups if g["id"] != group_id]
        self.schedule_save()

    def remove_filter_item(self, item_id: str) -> None:
        with self._lock:
            for group in self.filter_groups:
                group["items"] = [i for i in group["items"] if i["id"] != item_id]
        self.schedule_save()

    def schedule_save(self) -> None:
        """(Re)start the save timer; only the last change in a burst triggers a POST."""
        with self._lock:
            self._dirty = True
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.save_delay, self._save_in_background)
            self._timer.daemon = True
            self._timer.start()

    @property
    def pending(self) -> bool:
        return self._dirty

    def _save_in_background(self) -> None:
        try:
            self.flush()
        except ApiError as e:
            # kept dirty so the next change or flush() retries
            logger.error("saving filter groups failed: %s", e)

    def flush(self) -> bool:
        """Save pending taxonomy changes now. Returns False when nothing was pending."""
        with self._send_lock:
            with self._lock:
                if self._timer is not None:
                    self._timer.cancel()
                    self._timer = None
                if not self._dirty:
                    return False
                payload = [
                    {
                        "id": g["id"],
                        "name": g["name"],
                        "color": g["color"],
                        "items": [{"id": i["id"], "name": i["name"], "color": i["color"]} for i in g["items"]],
                    }
                    for g in self.filter_groups
                ]
                self._dirty = False

            try:
                self.client.save_filter_groups(payload)
            except ApiError:
                with self._lock:
                    self._dirty = True
                raise
        logger.debug("saved %d filter groups", len(payload))
        return True

    def close(self) -> None:
        self.flush()
