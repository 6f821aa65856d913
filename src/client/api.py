from typing import Callable, List, Optional

import httpx

from src.core import get_settings
from src.logs.server_log import client_logger
from src.schemas.board import BoardResponse
from src.schemas.column import ColumnResponse
from src.schemas.item import ItemResponse
from src.schemas.progress import ProgressReport, ProjectProgress
from src.schemas.project import ProjectResponse
from src.schemas.task import TaskResponse

settings = get_settings()

CredentialsProvider = Callable[[], Optional[str]]


class BoardAPIError(Exception):
    """A persistence call failed (transport error or non-2xx answer)"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class BoardAPI:
    """Async HTTP client for the board and task endpoints"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        credentials: Optional[CredentialsProvider] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.API_URL).rstrip("/")
        self.credentials = credentials or (lambda: None)
        self._client = client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT)

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _headers(self) -> dict:
        token = self.credentials()
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def _request(self, method: str, path: str, json: Optional[dict] = None):
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.request(method, url, json=json, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            client_logger.error(f"API: {method} {path} answered {e.response.status_code}: {e.response.text}")
            raise BoardAPIError(f"{method} {path} failed", e.response.status_code) from e
        except httpx.HTTPError as e:
            client_logger.error(f"API: {method} {path} failed: {str(e)}")
            raise BoardAPIError(f"{method} {path} failed: {str(e)}") from e

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # Board

    async def get_board(self, project_id: int) -> BoardResponse:
        return BoardResponse.model_validate(await self._request("GET", f"/board/{project_id}"))

    async def create_column(self, project_id: int, name: str) -> ColumnResponse:
        data = await self._request("POST", "/board/column", {"project_id": project_id, "name": name})
        return ColumnResponse.model_validate(data)

    async def move_column(self, column_id: int, new_order: int, intent_id: Optional[str] = None) -> List[ColumnResponse]:
        data = await self._request(
            "PATCH",
            "/board/column/move",
            {"column_id": column_id, "new_order": new_order, "intent_id": intent_id},
        )
        return [ColumnResponse.model_validate(column) for column in data]

    async def delete_column(self, column_id: int) -> None:
        await self._request("DELETE", f"/board/column/{column_id}")

    async def create_item(self, task_id: int, project_id: int, column_id: Optional[int] = None) -> ItemResponse:
        payload = {"task_id": task_id, "project_id": project_id, "column_id": column_id}
        return ItemResponse.model_validate(await self._request("POST", "/board/item", payload))

    async def move_item(
        self,
        item_id: int,
        new_column_id: int,
        new_order: int,
        intent_id: Optional[str] = None,
    ) -> List[ItemResponse]:
        data = await self._request(
            "PATCH",
            "/board/item/move",
            {"item_id": item_id, "new_column_id": new_column_id, "new_order": new_order, "intent_id": intent_id},
        )
        return [ItemResponse.model_validate(item) for item in data]

    async def update_item(self, item_id: int, **fields) -> ItemResponse:
        return ItemResponse.model_validate(await self._request("PATCH", f"/board/item/{item_id}", fields))

    async def delete_item(self, item_id: int) -> None:
        await self._request("DELETE", f"/board/item/{item_id}")

    async def request_refetch(self, project_id: int) -> None:
        await self._request("POST", f"/board/{project_id}/refetch")

    # Tasks

    async def get_tasks(self, project_id: int) -> List[TaskResponse]:
        data = await self._request("GET", f"/tasks/project/{project_id}")
        return [TaskResponse.model_validate(task) for task in data]

    async def create_task(self, project_id: int, title: str, **fields) -> TaskResponse:
        payload = {"project_id": project_id, "title": title, **fields}
        return TaskResponse.model_validate(await self._request("POST", "/tasks", payload))

    async def update_task(self, task_id: int, **fields) -> TaskResponse:
        return TaskResponse.model_validate(await self._request("PATCH", f"/tasks/{task_id}", fields))

    async def delete_task(self, task_id: int) -> None:
        await self._request("DELETE", f"/tasks/{task_id}")

    async def get_progress(self, project_id: int) -> ProgressReport:
        return ProgressReport.model_validate(await self._request("GET", f"/projects/{project_id}/progress"))

    async def get_projects(self) -> List[ProjectResponse]:
        data = await self._request("GET", "/projects")
        return [ProjectResponse.model_validate(project) for project in data]

    async def get_projects_progress(self) -> List[ProjectProgress]:
        data = await self._request("GET", "/projects/progress")
        return [ProjectProgress.model_validate(row) for row in data]
