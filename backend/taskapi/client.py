import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A failed API call. `status_code` is None when no response came back."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class TaskManagerClient:
    """
    Thin JSON client over the REST API.
    `session` may be any requests-compatible session; tests pass FastAPI's TestClient.
    """

    def __init__(self, base_url: str = "http://localhost:8000", session=None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.current_user: Optional[Dict[str, Any]] = None

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise ApiError(f"{method} {path} failed: {e}")

        if response.status_code >= 400:
            try:
                message = response.json().get("error")
            except ValueError:
                message = None
            raise ApiError(message or f"{method} {path} returned {response.status_code}", response.status_code)
        return response.json()

    def _user_id(self) -> str:
        if not self.current_user:
            raise ApiError("User not authenticated")
        return self.current_user["id"]

    # Users

    def login_or_create_user(self, email: str, name: Optional[str] = None) -> Dict[str, Any]:
        self.current_user = self._request("POST", "/api/users", json={"email": email, "name": name})
        return self.current_user

    def logout(self) -> None:
        self.current_user = None

    # Tasks

    def get_tasks(self, **filters) -> List[Dict[str, Any]]:
        params = {"userId": self._user_id()}
        params.update({k: v for k, v in filters.items() if v is not None})
        return self._request("GET", "/api/tasks", params=params)

    def get_task(self, task_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/tasks/{task_id}")

    def get_task_summary(self) -> Dict[str, Any]:
        return self._request("GET", "/api/tasks/summary", params={"userId": self._user_id()})

    def create_task(self, **fields) -> Dict[str, Any]:
        payload = {"createdBy": self._user_id(), **fields}
        return self._request("POST", "/api/tasks", json=payload)

    def update_task(self, task_id: str, **fields) -> Dict[str, Any]:
        return self._request("PUT", f"/api/tasks/{task_id}", json=fields)

    def delete_task(self, task_id: str) -> None:
        self._request("DELETE", f"/api/tasks/{task_id}")

    # Projects

    def get_projects(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"userId": self._user_id()}
        if status:
            params["status"] = status
        return self._request("GET", "/api/projects", params=params)

    def get_project(self, project_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/projects/{project_id}")

    def create_project(self, **fields) -> Dict[str, Any]:
        payload = {"createdBy": self._user_id(), **fields}
        return self._request("POST", "/api/projects", json=payload)

    def update_project(self, project_id: str, **fields) -> Dict[str, Any]:
        return self._request("PUT", f"/api/projects/{project_id}", json=fields)

    def delete_project(self, project_id: str) -> None:
        self._request("DELETE", f"/api/projects/{project_id}")

    # Filter taxonomy

    def get_filter_groups(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/filter-groups", params={"userId": self._user_id()})

    def create_filter_group(self, name: str, color: str) -> Dict[str, Any]:
        payload = {"name": name, "color": color, "userId": self._user_id()}
        return self._request("POST", "/api/filter-groups", json=payload)

    def create_filter_item(self, group_id: str, name: str, color: str) -> Dict[str, Any]:
        payload = {"name": name, "color": color, "groupId": group_id, "userId": self._user_id()}
        return self._request("POST", "/api/filter-items", json=payload)

    def save_filter_groups(self, groups: List[Dict[str, Any]]) -> Dict[str, Any]:
        payload = {"userId": self._user_id(), "filterGroups": groups}
        return self._request("POST", "/api/filter-groups/bulk", json=payload)

    def health_check(self) -> bool:
        try:
            self._request("GET", "/")
        except ApiError as e:
            logger.warning("health check failed: %s", e)
            return False
        return True
