"""End-to-end tests for the release pipeline and the command line."""

from __future__ import annotations

import os
import stat
import sys
import zipfile

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from webapp_release import cli
from webapp_release.errors import NotFound, ToolchainError, ToolchainNotFound
from webapp_release.pipeline import run_release
from webapp_release.service_manager import ServiceState
from webapp_release.settings import load_settings

# Stand-in toolchain: <exe> publish <project> --configuration C --output DIR
FAKE_TOOLCHAIN = """#!/bin/sh
out="$6"
mkdir -p "$out/wwwroot"
echo "$2" > "$out/WebApp.dll"
echo "body {}" > "$out/wwwroot/site.css"
echo "PK" > "$out/WebApp.zip"
"""

FAILING_TOOLCHAIN = """#!/bin/sh
echo "error CS0103: The name 'x' does not exist" >&2
exit 1
"""


def _toolchain(path, body):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def project_root(tmp_path):
    root = tmp_path / "src"
    (root / "WebApp").mkdir(parents=True)
    (root / "Lib").mkdir()
    (root / "scripts").mkdir()
    (root / "Lib" / "Lib.csproj").write_text('<Project Sdk="Microsoft.NET.Sdk" />\n')
    (root / "WebApp" / "WebApp.csproj").write_text('<Project Sdk="Microsoft.NET.Sdk.Web" />\n')
    (root / "appspec.yml").write_text("version: 0.0\n")
    (root / "scripts" / "before-install.sh").write_bytes(b"#!/bin/bash\r\nexit 0\r\n")
    return root


def _settings(tmp_path, project_root, toolchain_body=FAKE_TOOLCHAIN, **overrides):
    exe = _toolchain(tmp_path / "tools" / "dotnet", toolchain_body)
    return load_settings(
        environ={"PATH": ""},
        defaults={},
        project_root=project_root,
        output_root=tmp_path / "release",
        toolchain_candidates=[str(exe)],
        **overrides,
    )


def test_run_release_builds_bundle(tmp_path, project_root):
    settings = _settings(tmp_path, project_root)

    bundle = run_release(settings)

    with zipfile.ZipFile(bundle.archive) as zf:
        names = set(zf.namelist())
        assert zf.read("app/WebApp.dll").decode().strip() == str(project_root / "WebApp" / "WebApp.csproj")
        assert b"\r" not in zf.read("scripts/before-install.sh")
    assert names == {
        "app/WebApp.dll",
        "app/wwwroot/site.css",
        "appspec.yml",
        "scripts/before-install.sh",
    }
    # nested archive produced by the toolchain is stripped
    assert not (settings.publish_dir / "WebApp.zip").exists()


def test_run_release_twice_converges(tmp_path, project_root):
    settings = _settings(tmp_path, project_root)

    first = run_release(settings)
    first_entries = sorted(first.entries)
    second = run_release(settings)

    assert sorted(second.entries) == first_entries


def test_run_release_without_project(tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()
    settings = _settings(tmp_path, empty)

    with pytest.raises(NotFound):
        run_release(settings)


def test_run_release_toolchain_failure(tmp_path, project_root):
    settings = _settings(tmp_path, project_root, toolchain_body=FAILING_TOOLCHAIN)

    with pytest.raises(ToolchainError) as excinfo:
        run_release(settings)

    assert excinfo.value.exit_code == 1
    assert "CS0103" in excinfo.value.stderr
    assert not settings.archive_path.exists()


def test_run_release_without_toolchain(tmp_path, project_root):
    settings = load_settings(
        environ={"PATH": str(tmp_path / "nothing")},
        defaults={},
        project_root=project_root,
        output_root=tmp_path / "release",
        toolchain_candidates=[],
    )

    with pytest.raises(ToolchainNotFound):
        run_release(settings)


@pytest.fixture
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("WEBAPP_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("WEBAPP_SETTLE_SECONDS", "0")


def test_cli_locate(tmp_path, project_root, clean_env, capsys):
    assert cli.main(["locate", "--project-root", str(project_root)]) == 0

    out = capsys.readouterr().out.strip()
    assert out == str(project_root / "WebApp" / "WebApp.csproj")


def test_cli_locate_not_found_exits_1(tmp_path, clean_env):
    assert cli.main(["locate", "--project-root", str(tmp_path)]) == 1


def test_cli_bundle(tmp_path, project_root, clean_env, monkeypatch):
    exe = _toolchain(tmp_path / "tools" / "dotnet", FAKE_TOOLCHAIN)
    monkeypatch.setenv("WEBAPP_TOOLCHAIN_CANDIDATES", str(exe))

    status = cli.main([
        "bundle",
        "--configuration", "Debug",
        "--project-root", str(project_root),
        "--output-root", str(tmp_path / "out"),
    ])

    assert status == 0
    assert (tmp_path / "out" / "webapp.zip").is_file()


def test_cli_rejects_unknown_configuration(clean_env):
    with pytest.raises(SystemExit):
        cli.main(["bundle", "--configuration", "Profile"])


class _Manager:
    def __init__(self, running_after_start):
        self.running_after_start = running_after_start
        self.started = False

    def query(self, name):
        if self.started and self.running_after_start:
            return ServiceState.RUNNING
        return ServiceState.STOPPED

    def stop(self, name):
        pass

    def start(self, name):
        self.started = True

    def reload_definitions(self):
        pass

    def status_text(self, name):
        return "Active: failed"


def test_cli_hook_before_install(tmp_path, clean_env, monkeypatch):
    monkeypatch.setattr(cli, "get_service_manager", lambda code: _Manager(True))
    target = tmp_path / "www" / "WebApp"

    assert cli.main(["hook", "before-install", "--target-dir", str(target)]) == 0
    assert target.is_dir()


def test_cli_hook_application_start_failure_exits_1(tmp_path, clean_env, monkeypatch, caplog):
    monkeypatch.setattr(cli, "get_service_manager", lambda code: _Manager(False))

    status = cli.main(["hook", "application-start", "--service", "shop",
                       "--target-dir", str(tmp_path)])

    assert status == 1
    assert "Active: failed" in caplog.text
