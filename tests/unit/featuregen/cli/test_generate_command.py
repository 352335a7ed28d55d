"""Tests for featuregen generate."""

import json
import textwrap

import pytest
from click.testing import CliRunner

from featuregen.cli import main
from featuregen.serverconfig import GENERATED_FEATURES_FILE, feature_manager_features, parse_config


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runner(monkeypatch):
    # Leave global logging configuration alone while invoking the CLI
    monkeypatch.setattr("featuregen.cli.generate.configure_logging", lambda *args: None)
    return CliRunner()


@pytest.fixture
def project(tmp_path):
    """A project with one feature dependency and a server with nothing declared."""
    project_dir = tmp_path / "app"
    (project_dir / "src" / "main" / "liberty" / "config").mkdir(parents=True)
    (project_dir / "target" / "classes").mkdir(parents=True)
    (project_dir / "deps.yaml").write_text(
        textwrap.dedent(
            """\
            - groupId: io.openliberty.features
              artifactId: servlet-4.0
              type: esa
              scope: compile
            - groupId: io.openliberty.features
              artifactId: mpHealth-2.0
              type: esa
              scope: provided
            """
        ),
        encoding="utf-8",
    )
    (project_dir / "visible.yaml").write_text("- servlet-4.0\n- jsp-2.3\n- mpHealth-2.0\n", encoding="utf-8")
    (project_dir / "scanner.py").write_text(
        textwrap.dedent(
            """\
            def scan(classes_dirs, ee_level, mp_level, current_features, locale):
                return ["mpHealth-3.0", "mpMetrics-2.3"]
            """
        ),
        encoding="utf-8",
    )
    server_dir = tmp_path / "wlp" / "usr" / "servers" / "defaultServer"
    server_dir.mkdir(parents=True)
    (server_dir / "server.xml").write_text(
        "<server><featureManager><feature>jsp-2.3</feature></featureManager></server>",
        encoding="utf-8",
    )
    return project_dir


def _args(project, *extra):
    return [
        "generate",
        "--project-dir", str(project),
        "--dependencies", str(project / "deps.yaml"),
        "--visible-features", str(project / "visible.yaml"),
        "--install-dir", str(project.parent / "wlp"),
        *extra,
    ]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestGenerate:
    def test_writes_missing_features(self, runner, project):
        result = runner.invoke(main, _args(project))
        assert result.exit_code == 0, result.output
        assert "servlet-4.0" in result.output

        target = project.parent / "wlp" / "usr" / "servers" / "defaultServer" / GENERATED_FEATURES_FILE
        assert feature_manager_features(parse_config(target).getroot()) == ["mpHealth-2.0", "servlet-4.0"]
        assert (project / "src" / "main" / "liberty" / "config" / GENERATED_FEATURES_FILE).exists()

    def test_second_run_regenerates_same_features(self, runner, project):
        runner.invoke(main, _args(project))
        result = runner.invoke(main, _args(project, "--format", "json"))
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["missing_features"] == ["mpHealth-2.0", "servlet-4.0"]

    def test_dry_run_writes_nothing(self, runner, project):
        result = runner.invoke(main, _args(project, "--dry-run"))
        assert result.exit_code == 0, result.output
        assert "dry-run" in result.output
        target = project.parent / "wlp" / "usr" / "servers" / "defaultServer" / GENERATED_FEATURES_FILE
        assert not target.exists()

    def test_json_output_with_scanner(self, runner, project):
        result = runner.invoke(
            main,
            _args(project, "--dry-run", "--format", "json", "--scanner", f"{project / 'scanner.py'}:scan"),
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["missing_features"] == ["mpHealth-2.0", "mpMetrics-2.3", "servlet-4.0"]
        assert payload["mp_level"] == "mp3"
        assert [c["feature"] for c in payload["conflicts"]] == ["mpHealth-3.0"]
        assert payload["written"] is False

    def test_missing_install_information(self, runner, project):
        result = runner.invoke(
            main,
            ["generate", "--project-dir", str(project), "--dependencies", str(project / "deps.yaml")],
        )
        assert result.exit_code == 1
        assert "--server-dir or --install-dir" in result.output

    def test_missing_pom(self, runner, tmp_path):
        result = runner.invoke(
            main,
            ["generate", "--project-dir", str(tmp_path), "--server-dir", str(tmp_path)],
        )
        assert result.exit_code == 1
        assert "Dependency file not found" in result.output

    def test_unreadable_inventory_is_fatal(self, runner, project):
        server_xml = project.parent / "wlp" / "usr" / "servers" / "defaultServer" / "server.xml"
        server_xml.write_text("<server><featureManager>", encoding="utf-8")
        result = runner.invoke(main, _args(project))
        assert result.exit_code == 1
        assert "read permission" in result.output
        config_dir = project / "src" / "main" / "liberty" / "config"
        assert not (config_dir / GENERATED_FEATURES_FILE).exists()
