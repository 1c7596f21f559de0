"""
Tests for scripts/load_workflows.py.

The script rebinds the module-level engine; every test that writes to a
database restores the suite's engine afterwards.
"""

import pytest
import yaml
from sqlalchemy import select

import approval_kernel.db.engine as engine_module
from approval_kernel.db.engine import reset_engine, session_scope
from approval_kernel.models.workflow import ApprovalWorkflowModel
from scripts.load_workflows import SYSTEM_ACTOR_ID, main


@pytest.fixture
def isolated_engine(monkeypatch):
    """Let the script own the module engine for one test, then restore ours."""
    monkeypatch.setattr(engine_module, "_engine", engine_module._engine)
    monkeypatch.setattr(engine_module, "_SessionFactory", engine_module._SessionFactory)
    yield
    reset_engine()


@pytest.fixture
def invalid_file(tmp_path):
    path = tmp_path / "invalid.yaml"
    path.write_text(yaml.safe_dump({"workflows": [
        {"name": "No steps", "target_type": "invoice"},
    ]}))
    return path


class TestLoadWorkflowsScript:

    def test_dry_run_bundled_set(self, capsys):
        assert main(["--dry-run"]) == 0

        out = capsys.readouterr().out
        assert "[ok] invoice: Large invoice approval (priority=10, steps=3)" in out
        assert "Dry run: 3 workflow(s) valid." in out

    def test_invalid_file_fails(self, invalid_file, capsys):
        assert main([str(invalid_file), "--dry-run"]) == 1

        captured = capsys.readouterr()
        assert "[INVALID] invoice: No steps" in captured.out
        assert "ERROR: Active workflow must have at least one step" in captured.out
        assert "1 validation error(s)" in captured.err

    def test_missing_path_fails(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing.yaml"), "--dry-run"]) == 1
        assert "not found" in capsys.readouterr().err

    def test_missing_database_url_fails(self, monkeypatch, capsys):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        assert main(["--database-url", ""]) == 1
        assert "no database URL" in capsys.readouterr().err

    def test_loads_into_database(self, tmp_path, isolated_engine, capsys):
        url = f"sqlite:///{tmp_path / 'approvals.db'}"

        assert main(["--database-url", url, "--create-tables"]) == 0
        # Reloading the same set updates rows in place
        assert main(["--database-url", url]) == 0

        with session_scope() as session:
            models = session.execute(
                select(ApprovalWorkflowModel).order_by(ApprovalWorkflowModel.priority),
            ).scalars().all()
            names = sorted(m.name for m in models)
            creators = {m.created_by_id for m in models}
            editors = {m.updated_by_id for m in models}

        assert names == [
            "Large invoice approval",
            "Sales quotation approval",
            "Standard invoice approval",
        ]
        assert creators == {SYSTEM_ACTOR_ID}
        assert editors == {SYSTEM_ACTOR_ID}
        assert "Loaded 3 workflow(s)." in capsys.readouterr().out
