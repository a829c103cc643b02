"""Tests for the JSON API service layer and FastAPI endpoints."""

from __future__ import annotations

from pathlib import Path

import pytest

from varcalc.logging import reset_sink
from varcalc.project import scaffold_project
from varcalc.ui.service import ProjectService


@pytest.fixture(autouse=True)
def _detach_sink():
    yield
    reset_sink()


@pytest.fixture
def demo_project(tmp_path: Path) -> Path:
    return scaffold_project(tmp_path / "demo")


class TestProjectService:
    def test_project_info(self, demo_project: Path) -> None:
        info = ProjectService(demo_project).get_project_info()
        assert info["variable_count"] == 7
        assert info["formula_count"] == 3

    def test_list_variables(self, demo_project: Path) -> None:
        rows = {r["name"]: r for r in ProjectService(demo_project).list_variables()}
        assert rows["GROSS"]["value"] == 15000
        assert rows["GROSS"]["display"] == "15000"
        assert rows["GROSS"]["depends_on"] == ["BASIC", "DA", "HRA"]
        assert rows["BASIC"]["kind"] == "CONSTANT"

    def test_execute_error_returned(self, demo_project: Path) -> None:
        out = ProjectService(demo_project).execute_formula("MONTHLY_SALARY", {"num_of_days": "x"})
        assert out["kind"] == "InvalidContextValue"
        assert "result" not in out

    def test_reload_picks_up_edits(self, demo_project: Path) -> None:
        svc = ProjectService(demo_project)
        text = (demo_project / "workbook.yaml").read_text().replace('"10000"', '"20000"')
        (demo_project / "workbook.yaml").write_text(text)
        svc.reload()
        rows = {r["name"]: r for r in svc.list_variables()}
        assert rows["GROSS"]["value"] == 25000


class TestAPI:
    @pytest.fixture
    def client(self, demo_project: Path):
        from fastapi.testclient import TestClient

        from varcalc.ui.server import create_app

        return TestClient(create_app(demo_project))

    def test_project(self, client) -> None:
        resp = client.get("/api/project")
        assert resp.status_code == 200
        assert "engine_version" in resp.json()

    def test_variables(self, client) -> None:
        resp = client.get("/api/variables")
        assert resp.status_code == 200
        names = [r["name"] for r in resp.json()]
        assert names[:3] == ["BASIC", "DA", "HRA"]

    def test_variables_errors_only(self, client) -> None:
        resp = client.get("/api/variables", params={"errors_only": True})
        assert resp.json() == []

    def test_formulas(self, client) -> None:
        data = client.get("/api/formulas").json()
        by_name = {f["name"]: f for f in data}
        assert by_name["MONTHLY_SALARY"]["context_names"] == ["num_of_days"]
        assert by_name["NET_SALARY"]["context_names"] == []

    def test_execute(self, client) -> None:
        resp = client.post(
            "/api/formulas/MONTHLY_SALARY/execute",
            json={"context": {"num_of_days": "30"}},
        )
        assert resp.status_code == 200
        assert resp.json()["display"] == "15000"

    def test_execute_without_body(self, client) -> None:
        resp = client.post("/api/formulas/NET_SALARY/execute")
        assert resp.status_code == 200
        assert resp.json()["result"] == 13300

    def test_execute_missing_context(self, client) -> None:
        data = client.post("/api/formulas/BONUS/execute", json={"context": {}}).json()
        assert data == {
            "formula": "BONUS",
            "error": 'Context value for "bonus_percentage" is required.',
            "kind": "MissingContextValue",
        }

    def test_execute_unknown_formula(self, client) -> None:
        resp = client.post("/api/formulas/NOPE/execute", json={"context": {}})
        assert resp.status_code == 404

    def test_evaluate(self, client) -> None:
        assert client.post("/api/evaluate", json={"text": "(2+3)*4"}).json()["result"] == 20
        err = client.post("/api/evaluate", json={"text": "(1+2"}).json()
        assert err["kind"] == "MismatchedParentheses"
