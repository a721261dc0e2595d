from __future__ import annotations

import json
import zipfile
from pathlib import Path

import allure
from click.testing import CliRunner
from conftest import write_tree

from unit_packager.main import unit_packager

pytestmark = [
    allure.epic("Packaging"),
    allure.feature("CLI"),
]


def _write_service(root: Path, description: dict[str, object]) -> Path:
    service_file = root / "service.json"
    service_file.write_text(json.dumps(description), "utf-8")
    return service_file


def test_package_command_writes_service_and_layer_archives(tmp_path: Path) -> None:
    write_tree(tmp_path, ["handler.js", ".git/config", "layers/deps/lib.txt"])
    service_file = _write_service(
        tmp_path,
        {
            "service": "orders",
            "functions": {"create": {}, "cancel": {}},
            "layers": {"deps": {"path": "layers/deps"}},
        },
    )

    result = CliRunner().invoke(unit_packager, ["package", "--service-file", str(service_file)])

    assert result.exit_code == 0, result.output
    assert "Packaging service..." in result.output
    assert "orders (service):" in result.output
    assert "Packaged 2 artifact(s), 0 failure(s)." in result.output
    with zipfile.ZipFile(tmp_path / ".serverless" / "orders.zip") as archive:
        assert archive.namelist() == ["handler.js"]
    with zipfile.ZipFile(tmp_path / ".serverless" / "deps.zip") as archive:
        assert archive.namelist() == ["lib.txt"]


def test_package_command_fails_when_a_unit_fails(tmp_path: Path) -> None:
    write_tree(tmp_path, ["handler.js"])
    service_file = _write_service(
        tmp_path,
        {
            "service": "orders",
            "functions": {
                "ok": {"package": {"individually": True}},
                "empty": {"package": {"individually": True, "exclude": ["**"]}},
            },
        },
    )

    result = CliRunner().invoke(unit_packager, ["package", "--service-file", str(service_file)])

    assert result.exit_code == 1
    assert "empty: FAILED (NoMatchError: No file matches include / exclude patterns)" in (
        result.output
    )
    assert "ok: " in result.output
    assert "Packaging failed." in result.output


def test_package_command_reports_invalid_description(tmp_path: Path) -> None:
    service_file = _write_service(tmp_path, {"functions": {}})

    result = CliRunner().invoke(unit_packager, ["package", "--service-file", str(service_file)])

    assert result.exit_code == 1
    assert "Invalid configuration:" in result.output


def test_resolve_command_prints_selected_files(tmp_path: Path) -> None:
    write_tree(tmp_path, ["a/keep.txt", "a/drop.txt", "b.txt"])

    result = CliRunner().invoke(
        unit_packager,
        ["resolve", str(tmp_path), "--exclude", "a/**", "--include", "a/keep.txt"],
    )

    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == ["a/keep.txt", "b.txt"]


def test_resolve_command_fails_on_empty_selection(tmp_path: Path) -> None:
    write_tree(tmp_path, ["a.txt"])

    result = CliRunner().invoke(unit_packager, ["resolve", str(tmp_path), "--exclude", "**"])

    assert result.exit_code == 1
    assert "No file matches include / exclude patterns" in result.output
