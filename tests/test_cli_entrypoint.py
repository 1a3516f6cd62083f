from __future__ import annotations

import importlib
import json
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _keep_test_logging(monkeypatch) -> None:
    module = importlib.import_module("plotty.main")
    monkeypatch.setattr(module, "configure_logging", lambda level: None)


def test_console_entrypoint_exposes_app() -> None:
    pytest.importorskip("typer")

    module = importlib.import_module("plotty.main")

    assert hasattr(module, "app")
    assert module.app is not None


def test_dry_run_create_prints_commands_and_stores_nothing(tmp_path: Path, monkeypatch) -> None:
    typer_testing = pytest.importorskip("typer.testing")
    module = importlib.import_module("plotty.main")
    registry_path = tmp_path / "regions.json"
    monkeypatch.setattr(module.settings, "registry_path", str(registry_path))

    result = typer_testing.CliRunner().invoke(
        module.app,
        ["create", "--owner", "1", "--owner-name", "alice", "--x1", "0", "--z1", "0", "--x2", "10", "--z2", "10", "--dry-run"],
    )

    assert result.exit_code == 0, result.output
    assert "region create alice_plot_1 alice" in result.output
    assert not registry_path.exists()


def test_list_reads_registry(tmp_path: Path, monkeypatch) -> None:
    typer_testing = pytest.importorskip("typer.testing")
    module = importlib.import_module("plotty.main")
    registry_path = tmp_path / "regions.json"
    registry_path.write_text(
        json.dumps(
            {
                "plots": [{"owner": 1, "name": "alice_plot_1", "ax": 0, "az": 0, "bx": 10, "bz": 10}],
                "counters": {"1": 1},
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setattr(module.settings, "registry_path", str(registry_path))

    result = typer_testing.CliRunner().invoke(module.app, ["list", "--owner", "1"])

    assert result.exit_code == 0, result.output
    assert "alice_plot_1" in result.output
    assert "100m²" in result.output


def test_redefine_of_foreign_plot_exits_with_error(tmp_path: Path, monkeypatch) -> None:
    typer_testing = pytest.importorskip("typer.testing")
    module = importlib.import_module("plotty.main")
    registry_path = tmp_path / "regions.json"
    registry_path.write_text(
        json.dumps({"plots": [{"owner": 1, "name": "alice_plot_1", "ax": 0, "az": 0, "bx": 10, "bz": 10}]}),
        encoding="utf-8",
    )
    monkeypatch.setattr(module.settings, "registry_path", str(registry_path))

    result = typer_testing.CliRunner().invoke(
        module.app,
        ["redefine", "--owner", "2", "--plot", "alice_plot_1", "--x1", "0", "--z1", "0", "--x2", "5", "--z2", "5", "--dry-run"],
    )

    assert result.exit_code == 1
    assert "You can not update this plot." in result.output


def _seed_registry(tmp_path: Path, monkeypatch, module) -> Path:
    registry_path = tmp_path / "regions.json"
    registry_path.write_text(
        json.dumps(
            {
                "plots": [{"owner": 1, "name": "alice_plot_1", "ax": 0, "az": 0, "bx": 10, "bz": 10}],
                "counters": {"1": 1},
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setattr(module.settings, "registry_path", str(registry_path))
    return registry_path


def test_dry_run_delete_confirmed(tmp_path: Path, monkeypatch) -> None:
    typer_testing = pytest.importorskip("typer.testing")
    module = importlib.import_module("plotty.main")
    registry_path = _seed_registry(tmp_path, monkeypatch, module)
    before = registry_path.read_text(encoding="utf-8")

    result = typer_testing.CliRunner().invoke(
        module.app,
        ["delete", "--owner", "1", "--plot", "alice_plot_1", "--world", "world", "--dry-run"],
        input="y\n",
    )

    assert result.exit_code == 0, result.output
    assert "Do you really want to delete your plot alice_plot_1?" in result.output
    assert "rg delete -w world alice_plot_1" in result.output
    assert "deleted" in result.output
    assert registry_path.read_text(encoding="utf-8") == before


def test_dry_run_delete_declined(tmp_path: Path, monkeypatch) -> None:
    typer_testing = pytest.importorskip("typer.testing")
    module = importlib.import_module("plotty.main")
    _seed_registry(tmp_path, monkeypatch, module)

    result = typer_testing.CliRunner().invoke(
        module.app,
        ["delete", "--owner", "1", "--plot", "alice_plot_1", "--world", "world", "--dry-run"],
        input="n\n",
    )

    assert result.exit_code == 0, result.output
    assert "cancelled" in result.output
    assert "rg delete" not in result.output


def test_dry_run_member_commands(tmp_path: Path, monkeypatch) -> None:
    typer_testing = pytest.importorskip("typer.testing")
    module = importlib.import_module("plotty.main")
    _seed_registry(tmp_path, monkeypatch, module)
    runner = typer_testing.CliRunner()
    target = ["--owner", "1", "--plot", "alice_plot_1", "--member", "bob", "--world", "world", "--dry-run"]

    added = runner.invoke(module.app, ["member-add", *target])
    removed = runner.invoke(module.app, ["member-remove", *target])

    assert added.exit_code == 0, added.output
    assert "rg addmember -w world alice_plot_1 bob" in added.output
    assert removed.exit_code == 0, removed.output
    assert "rg removemember -w world alice_plot_1 bob" in removed.output


def test_member_add_on_foreign_plot_exits_with_error(tmp_path: Path, monkeypatch) -> None:
    typer_testing = pytest.importorskip("typer.testing")
    module = importlib.import_module("plotty.main")
    _seed_registry(tmp_path, monkeypatch, module)

    result = typer_testing.CliRunner().invoke(
        module.app,
        ["member-add", "--owner", "2", "--plot", "alice_plot_1", "--member", "carol", "--dry-run"],
    )

    assert result.exit_code == 1
    assert "You can not alter the members of this plot." in result.output
