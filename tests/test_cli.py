"""
tests/test_cli.py
End-to-end tests for mapcheck.cli.run (exit codes and printed reports).
"""

from __future__ import annotations

import json
import pathlib
from typing import Any, Dict

import pytest
import yaml

from mapcheck.cli import EXIT_INPUT_ERROR, EXIT_SUCCESS, run


class TestRun:
    def test_valid_mapping(
        self, blog_yaml_path: pathlib.Path, capsys: pytest.CaptureFixture
    ) -> None:
        assert run(["-m", str(blog_yaml_path)]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Mapping:  OK" in out
        assert "Database: skipped" in out

    def test_broken_mapping(
        self, broken_yaml_path: pathlib.Path, capsys: pytest.CaptureFixture
    ) -> None:
        assert run(["-m", str(broken_yaml_path)]) == 1
        out = capsys.readouterr().out
        assert "Y#xs which does not exist." in out

    def test_json_output(
        self, broken_yaml_path: pathlib.Path, capsys: pytest.CaptureFixture
    ) -> None:
        assert run(["-m", str(broken_yaml_path), "--format", "json"]) == 1
        payload: Dict[str, Any] = json.loads(capsys.readouterr().out)
        assert payload["valid"] is False
        assert list(payload["errors"]) == ["X"]

    def test_ignore(self, broken_yaml_path: pathlib.Path) -> None:
        assert run(["-m", str(broken_yaml_path), "--ignore", "X"]) == EXIT_SUCCESS

    def test_skip_mapping(self, broken_yaml_path: pathlib.Path) -> None:
        assert run(["-m", str(broken_yaml_path), "--skip-mapping"]) == EXIT_SUCCESS

    def test_single_class(self, broken_yaml_path: pathlib.Path) -> None:
        assert run(["-m", str(broken_yaml_path), "--class", "Y"]) == EXIT_SUCCESS
        assert run(["-m", str(broken_yaml_path), "--class", "X"]) == 1

    def test_unknown_class(self, broken_yaml_path: pathlib.Path) -> None:
        assert run(["-m", str(broken_yaml_path), "--class", "Nobody"]) == EXIT_INPUT_ERROR

    def test_out_of_sync_database(
        self,
        blog_yaml_path: pathlib.Path,
        tmp_path: pathlib.Path,
        capsys: pytest.CaptureFixture,
    ) -> None:
        url = f"sqlite:///{tmp_path / 'empty.db'}"
        assert run(["-m", str(blog_yaml_path), "--database-url", url]) == 2
        assert "OUT OF SYNC" in capsys.readouterr().out

    def test_skip_sync_with_database(
        self, blog_yaml_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        url = f"sqlite:///{tmp_path / 'empty.db'}"
        args = ["-m", str(blog_yaml_path), "--database-url", url, "--skip-sync"]
        assert run(args) == EXIT_SUCCESS

    def test_sync_requested_without_url(
        self, broken_mapping_dict: Dict[str, Any], tmp_path: pathlib.Path
    ) -> None:
        path = tmp_path / "sync.yaml"
        broken_mapping_dict["config"] = {"skip_sync": False}
        path.write_text(yaml.safe_dump(broken_mapping_dict), encoding="utf-8")
        assert run(["-m", str(path)]) == EXIT_INPUT_ERROR


class TestInputErrors:
    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        assert run(["-m", str(tmp_path / "missing.yaml")]) == EXIT_INPUT_ERROR

    def test_invalid_document(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("tables: []\n", encoding="utf-8")
        assert run(["-m", str(path)]) == EXIT_INPUT_ERROR

    def test_malformed_class_body(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "keyed.yaml"
        path.write_text("classes:\n  X: [1, 2]\n", encoding="utf-8")
        assert run(["-m", str(path)]) == EXIT_INPUT_ERROR

    def test_unimportable_models(self) -> None:
        assert run(["--models", "no_such_package.models:Base"]) == EXIT_INPUT_ERROR

    def test_input_is_required(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run([])
        assert exc_info.value.code == 2

    def test_version(self, capsys: pytest.CaptureFixture) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run(["--version"])
        assert exc_info.value.code == 0
        assert "mapcheck v" in capsys.readouterr().out
