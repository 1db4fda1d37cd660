"""Thin HTTP client for the esxcloud API."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import requests

from cpi.constants import DEFAULT_REQUEST_TIMEOUT, USER_AGENT
from cpi.exceptions import ApiError
from cpi.models import Task
from cpi.utils import log


class EsxCloudClient:
    """Issues esxcloud API calls; every mutating call returns a ``Task``."""

    def __init__(
        self,
        endpoint: str,
        project_id: str,
        session: Optional[requests.Session] = None,
        timeout: int = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.project_id = project_id
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            session.headers["User-Agent"] = USER_AGENT
        self.session = session

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.endpoint}{path}"
        log("DEBUG", f"{method} {url}")
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise ApiError(f"{method} {url} failed: {exc.__class__.__name__}: {exc}")
        if resp.status_code < 200 or resp.status_code >= 300:
            body = (resp.text or "").strip()
            raise ApiError(f"{method} {url} returned HTTP {resp.status_code}: {body}", status_code=resp.status_code)
        return resp

    def _task(self, method: str, path: str, **kwargs: Any) -> Task:
        resp = self._request(method, path, **kwargs)
        return Task.from_dict(resp.json())

    def _exists(self, path: str) -> bool:
        """Report whether GET on ``path`` succeeds; the body is never read."""
        try:
            self._request("GET", path)
        except ApiError as exc:
            if exc.status_code == 404:
                return False
            raise
        return True

    # Images

    def create_image(self, image_path: str) -> Task:
        path = Path(image_path)
        with open(path, "rb") as f:
            return self._task("POST", "/v1/images", files={"file": (path.name, f)})

    def delete_image(self, image_id: str) -> Task:
        return self._task("DELETE", f"/v1/images/{image_id}")

    # Disks

    def create_disk(self, spec: Dict[str, Any]) -> Task:
        return self._task("POST", f"/v1/projects/{self.project_id}/disks", json=spec)

    def disk_exists(self, disk_id: str) -> bool:
        return self._exists(f"/v1/disks/{disk_id}")

    def delete_disk(self, disk_id: str) -> Task:
        return self._task("DELETE", f"/v1/disks/{disk_id}", params={"force": "true"})

    def attach_disk(self, vm_id: str, disk_id: str) -> Task:
        return self._task("POST", f"/v1/vms/{vm_id}/attach_disk", json={"diskId": disk_id})

    def detach_disk(self, vm_id: str, disk_id: str) -> Task:
        return self._task("POST", f"/v1/vms/{vm_id}/detach_disk", json={"diskId": disk_id})

    # VMs

    def create_vm(self, spec: Dict[str, Any]) -> Task:
        return self._task("POST", f"/v1/projects/{self.project_id}/vms", json=spec)

    def vm_exists(self, vm_id: str) -> bool:
        return self._exists(f"/v1/vms/{vm_id}")

    def delete_vm(self, vm_id: str) -> Task:
        return self._task("DELETE", f"/v1/vms/{vm_id}", params={"force": "true"})

    def attach_iso(self, vm_id: str, iso_path: str) -> Task:
        path = Path(iso_path)
        with open(path, "rb") as f:
            return self._task("POST", f"/v1/vms/{vm_id}/attach_iso", files={"file": (path.name, f)})

    def start_vm(self, vm_id: str) -> Task:
        return self._task("POST", f"/v1/vms/{vm_id}/start")

    # Tasks

    def get_task(self, task_id: str) -> Task:
        return self._task("GET", f"/v1/tasks/{task_id}")
