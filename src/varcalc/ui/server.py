"""FastAPI server exposing resolution and formula execution as JSON.

Routes are thin wrappers over the shared :class:`ProjectService`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from varcalc.ui.service import ProjectService

# The singleton service is set at startup by ``create_app()``.
_service: ProjectService | None = None


def create_app(project_dir: Path) -> FastAPI:
    """Create the FastAPI application for a given project.

    Args:
        project_dir: Root of the varcalc project.

    Returns:
        Configured FastAPI instance.
    """
    global _service
    _service = ProjectService(project_dir=project_dir)

    from varcalc import __version__

    app = FastAPI(title="varcalc API", version=__version__)
    app.include_router(_api_router())
    return app


def _svc() -> ProjectService:
    """Get the singleton service, raising if not initialised."""
    if _service is None:
        raise HTTPException(500, "Service not initialised")
    return _service


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class ExecuteRequest(BaseModel):
    context: dict[str, str] = Field(default_factory=dict)


class EvaluateRequest(BaseModel):
    text: str


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


def _api_router():
    from fastapi import APIRouter

    router = APIRouter(prefix="/api")

    @router.get("/project")
    async def get_project() -> dict[str, Any]:
        return _svc().get_project_info()

    @router.post("/reload")
    async def reload() -> dict[str, Any]:
        try:
            _svc().reload()
        except (FileNotFoundError, ValueError) as exc:
            raise HTTPException(400, str(exc))
        return _svc().get_project_info()

    @router.get("/variables")
    async def list_variables(errors_only: bool = Query(False)) -> list[dict[str, Any]]:
        rows = _svc().list_variables()
        if errors_only:
            rows = [r for r in rows if "error" in r]
        return rows

    @router.get("/formulas")
    async def list_formulas() -> list[dict[str, Any]]:
        return _svc().list_formulas()

    @router.post("/formulas/{name}/execute")
    async def execute_formula(name: str, req: ExecuteRequest | None = None) -> dict[str, Any]:
        context = req.context if req is not None else {}
        try:
            return _svc().execute_formula(name, context)
        except KeyError as exc:
            raise HTTPException(404, str(exc.args[0]))

    @router.post("/evaluate")
    async def evaluate_expression(req: EvaluateRequest) -> dict[str, Any]:
        return _svc().evaluate_expression(req.text)

    return router
