"""
Tests for the CLI runner.
"""

import json

import pytest

from factorylint.engine.config import EngineConfig
from factorylint.engine.runner import (
    EXIT_FINDINGS, EXIT_OK, EXIT_USAGE, collect_files, format_output, main, setup_adapters,
)
from factorylint.engine.types import Finding


OFFENDING = "describe User do\n  it 'counts' do\n    3.times { create :user }\n  end\nend\n"
CLEAN = "describe User do\n  it 'counts' do\n    create_list :user, 3\n  end\nend\n"


def write_project(root):
    (root / "spec" / "models").mkdir(parents=True)
    (root / "spec" / "models" / "user_spec.rb").write_text(OFFENDING)
    (root / "spec" / "models" / "clean_spec.rb").write_text(CLEAN)
    (root / "vendor" / "bundle").mkdir(parents=True)
    (root / "vendor" / "bundle" / "gem_spec.rb").write_text(OFFENDING)
    return root / "spec" / "models" / "user_spec.rb"


class TestCollectFiles:

    def setup_method(self):
        setup_adapters()

    def test_skips_vendor_and_non_ruby(self, tmp_path):
        write_project(tmp_path)
        (tmp_path / "README.md").write_text("")
        files = collect_files([str(tmp_path)], EngineConfig())
        assert files == sorted([
            str(tmp_path / "spec" / "models" / "clean_spec.rb"),
            str(tmp_path / "spec" / "models" / "user_spec.rb"),
        ])

    def test_config_exclude(self, tmp_path):
        write_project(tmp_path)
        files = collect_files([str(tmp_path)], EngineConfig(exclude=["spec/models/clean_*"]))
        assert files == [str(tmp_path / "spec" / "models" / "user_spec.rb")]

    def test_single_file_and_missing_path(self, tmp_path):
        target = write_project(tmp_path)
        files = collect_files([str(target), str(tmp_path / "missing")], EngineConfig())
        assert files == [str(target)]


class TestFormatOutput:

    def setup_method(self):
        setup_adapters()
        self.metrics = {"parse_ms": 1.0, "rules_ms": 2.0, "total_ms": 3.0}

    def test_pretty(self, tmp_path):
        path = tmp_path / "a_spec.rb"
        text = "x\n3.times { create :user }\n"
        finding = Finding(rule="factory.create_list", message="Prefer create_list.", file=str(path),
                          start_byte=2, end_byte=9, severity="warn")
        output = format_output([finding], 1, 1, self.metrics, "pretty", {str(path.resolve()): text})
        assert f"{path}:2:1: warn: Prefer create_list. (factory.create_list)" in output
        assert "1 files inspected, 1 offenses detected" in output

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            format_output([], 0, 0, self.metrics, "xml")


class TestMain:
    """End-to-end runs; requires the Ruby grammar."""

    def setup_method(self):
        pytest.importorskip("tree_sitter")
        pytest.importorskip("tree_sitter_ruby")

    def test_json_report(self, tmp_path, capsys):
        target = write_project(tmp_path)
        status = main(["--paths", str(tmp_path), "--jobs", "2", "--validate"])

        output = json.loads(capsys.readouterr().out)
        assert status == EXIT_FINDINGS
        assert output["files_scanned"] == 2
        assert len(output["findings"]) == 1
        finding = output["findings"][0]
        assert finding["file_path"] == str(target.resolve())
        assert finding["range"]["startLine"] == 3
        assert finding["autofix"][0]["replacement"] == "create_list :user, 3"
        assert target.read_text() == OFFENDING

    def test_clean_tree_exits_zero(self, tmp_path, capsys):
        (tmp_path / "clean_spec.rb").write_text(CLEAN)
        assert main(["--paths", str(tmp_path)]) == EXIT_OK
        assert json.loads(capsys.readouterr().out)["findings"] == []

    def test_autocorrect_writes_files(self, tmp_path, capsys):
        target = write_project(tmp_path)
        status = main(["--paths", str(tmp_path), "--autocorrect", "--format", "pretty"])

        assert status == EXIT_OK
        assert target.read_text() == CLEAN
        assert "corrected" in capsys.readouterr().out
        # A second run finds nothing left to fix
        assert main(["--paths", str(tmp_path)]) == EXIT_OK

    def test_diff_does_not_write(self, tmp_path, capsys):
        target = write_project(tmp_path)
        status = main(["--paths", str(tmp_path), "--diff"])

        out = capsys.readouterr().out
        assert status == EXIT_FINDINGS
        assert "-    3.times { create :user }" in out
        assert "+    create_list :user, 3" in out
        assert target.read_text() == OFFENDING

    def test_suppressed_finding(self, tmp_path, capsys):
        (tmp_path / "a_spec.rb").write_text("3.times { create :user } # factorylint: ignore[factory.create_list]\n")
        assert main(["--paths", str(tmp_path)]) == EXIT_OK

    def test_config_severity_and_rules(self, tmp_path, capsys):
        write_project(tmp_path)
        (tmp_path / ".factorylint.yml").write_text("rule_severities:\n  factory.create_list: error\n")
        main(["--paths", str(tmp_path)])
        assert json.loads(capsys.readouterr().out)["findings"][0]["severity"] == "error"

        (tmp_path / ".factorylint.yml").write_text("enabled_rules: ['style.*']\n")
        assert main(["--paths", str(tmp_path)]) == EXIT_OK
        assert json.loads(capsys.readouterr().out)["rules_run"] == 0

    def test_rules_flag_overrides_config(self, tmp_path, capsys):
        write_project(tmp_path)
        (tmp_path / ".factorylint.yml").write_text("enabled_rules: ['style.*']\n")
        assert main(["--paths", str(tmp_path), "--rules", "factory.*"]) == EXIT_FINDINGS

    def test_bad_config_is_usage_error(self, tmp_path):
        write_project(tmp_path)
        config = tmp_path / "broken.yml"
        config.write_text("bogus: 1\n")
        assert main(["--paths", str(tmp_path), "--config", str(config)]) == EXIT_USAGE

    def test_no_files_is_usage_error(self, tmp_path):
        (tmp_path / "notes.txt").write_text("")
        assert main(["--paths", str(tmp_path)]) == EXIT_USAGE
