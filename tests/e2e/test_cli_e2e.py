from __future__ import annotations

"""
End-to-End (E2E) CLI Tests.

Verifies the application's external behavior by invoking the entry point
script via subprocess. These tests validate argument parsing, exit codes,
stream output (stdout/stderr) and report files.
"""

import json
import os
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
SRC_DIR = PROJECT_ROOT / "src"
ENTRY_POINT = SRC_DIR / "missingrefs" / "main.py"

DEAD_GUID = "deadbeefdeadbeefdeadbeefdeadbeef"


def run_cli(args: List[str], home: Path, cwd: Optional[Path] = None) -> subprocess.CompletedProcess[str]:
    """
    Helper to execute the CLI in a separate process.

    Injects the 'src' directory into PYTHONPATH and points the user home at
    a temporary folder so the persisted configuration is never touched.
    """
    env = os.environ.copy()
    env["PYTHONPATH"] = str(SRC_DIR) + os.pathsep + env.get("PYTHONPATH", "")
    env["HOME"] = str(home)
    env["LOCALAPPDATA"] = str(home)

    cmd = [sys.executable, str(ENTRY_POINT)] + args

    return subprocess.run(
        cmd,
        cwd=cwd,
        env=env,
        capture_output=True,
        text=True,
        encoding="utf-8"
    )


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def broken_project(unity_project) -> Path:
    """
    Project with one broken prefab and one clean asset.

    Structure:
    /Project/Assets
      /Models/Char/char.prefab   (dangling reference)
      /Data/clean.asset
    """
    unity_project.asset(
        "Assets/Models/Char/char.prefab",
        "--- !u!1 &100\nGameObject:\n  m_Name: Char\n  m_Component:\n  - component: {fileID: 400}\n"
        "--- !u!4 &400\nTransform:\n  m_GameObject: {fileID: 100}\n  m_Children: []\n  m_Father: {fileID: 0}\n"
        f"  m_Extra: {{fileID: 2100000, guid: {DEAD_GUID}, type: 2}}\n",
        importer="PrefabImporter",
    )
    unity_project.asset(
        "Assets/Data/clean.asset",
        "--- !u!114 &11400000\nMonoBehaviour:\n  m_Name: Clean\n  m_Icon: {fileID: 0}\n",
    )
    return unity_project.root


def test_cli_reports_missing_references(broken_project: Path, home: Path) -> None:
    """TC-01: A broken prefab appears in the expanded report."""
    result = run_cli(["-p", str(broken_project), "--use-defaults"], home)

    assert result.returncode == 0, f"CLI failed with stderr: {result.stderr}"
    assert "Project: 1" in result.stdout
    assert "Models: 1" in result.stdout
    assert "Assets/Models/Char/char.prefab (1 missing)" in result.stdout
    assert "m_Extra: missing object" in result.stdout
    assert "clean.asset" not in result.stdout


def test_cli_strict_mode_fails_on_findings(broken_project: Path, home: Path) -> None:
    """TC-02: --strict turns findings into a non-zero exit code."""
    result = run_cli(["-p", str(broken_project), "--use-defaults", "--strict"], home)
    assert result.returncode == 1


def test_cli_clean_project(unity_project, home: Path) -> None:
    """TC-03: A project without broken links prints the all-clear message."""
    unity_project.asset("Assets/ok.asset", "--- !u!114 &1\nMonoBehaviour:\n  m_Name: Ok\n")

    result = run_cli(["-p", str(unity_project.root), "--use-defaults", "--strict"], home)

    assert result.returncode == 0
    assert "No missing references in project" in result.stdout


def test_cli_handles_missing_project(tmp_path: Path, home: Path) -> None:
    """TC-04: A missing project path exits with code 2."""
    result = run_cli(["-p", str(tmp_path / "non_existent"), "--use-defaults"], home)

    assert result.returncode == 2
    assert "does not exist" in result.stderr


def test_cli_json_output_structure(broken_project: Path, home: Path) -> None:
    """TC-05: JSON mode emits the folder tree and the scan summary."""
    result = run_cli(["-p", str(broken_project), "--use-defaults", "--json"], home)
    assert result.returncode == 0

    data = json.loads(result.stdout)

    assert data["state"] == "SCANNED"
    assert data["root"]["count"] == 1
    assert data["summary"]["findings"] == 1
    models = data["root"]["folders"][0]["folders"][0]
    assert models["name"] == "Models"
    assert models["folders"][0]["composites"][0]["path"] == "Assets/Models/Char/char.prefab"


def test_cli_writes_report_file(broken_project: Path, home: Path, tmp_path: Path) -> None:
    """TC-06: -o writes the report to disk and --collapsed keeps only the root line."""
    out = tmp_path / "report.txt"

    result = run_cli(["-p", str(broken_project), "--use-defaults", "--collapsed", "-o", str(out)], home)

    assert result.returncode == 0
    assert out.read_text(encoding="utf-8").strip() == "[+] Project: 1"


def test_cli_dump_config(broken_project: Path, home: Path) -> None:
    """TC-07: --dump-config prints the merged configuration."""
    result = run_cli(["-p", str(broken_project), "--use-defaults", "--roots", "Assets", "--dump-config"], home)

    assert result.returncode == 0
    data = json.loads(result.stdout)
    assert data["scan_roots"] == ["Assets"]
    assert data["project_path"] == str(broken_project)


def test_cli_help_message(home: Path) -> None:
    """TC-08: Help message is displayed (smoke test for argparse)."""
    result = run_cli(["--help"], home)

    assert result.returncode == 0
    assert "usage: missingrefs" in result.stdout
    assert "--project" in result.stdout


def test_cli_saved_profile_round_trip(broken_project: Path, home: Path) -> None:
    """TC-09: --save-profile stores the effective config and --profile restores it."""
    saved = run_cli([
        "-p", str(broken_project), "--use-defaults", "--roots", "Assets",
        "--exclude-extension", ".gltf", "--save-profile", "ci", "--json",
    ], home)
    assert saved.returncode == 0, f"CLI failed with stderr: {saved.stderr}"

    result = run_cli(["--profile", "ci", "--dump-config"], home)

    assert result.returncode == 0
    data = json.loads(result.stdout)
    assert data["scan_roots"] == ["Assets"]
    assert data["excluded_composite_extensions"] == [".gltf"]
    assert data["project_path"] == str(broken_project)
