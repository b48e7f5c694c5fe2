"""Tests for the tplheal command line."""

import json

import pytest
from typer.testing import CliRunner

from tplheal.run.cli import app

runner = CliRunner()


def run_json(*args: str, **kwargs) -> dict:
    result = runner.invoke(app, [*args, "--json"], **kwargs)
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


# --- check ---


def test_check_heals_missing_filter():
    report = run_json("check", "--text", "{{ x|nope }}", "--data", '{"x": 1}')
    assert report["healed"] is True
    assert report["output"] == ""
    assert [(d["level"], d["line"], d["char"]) for d in report["diagnostics"]] == [("parse", 0, 5)]
    assert report["diagnostics"][0]["description"] == "No filter named 'nope'."


def test_check_template_file(tmp_path):
    path = tmp_path / "page.j2"
    path.write_text("Hello {{ name }}")
    data = tmp_path / "data.json"
    data.write_text('{"name": "Ann"}')
    report = run_json("check", str(path), "--data-file", str(data))
    assert report["output"] == "Hello Ann"
    assert report["diagnostics"] == []


def test_check_reads_stdin():
    report = run_json("check", "-", "-d", '{"name": "Ann"}', input="Hi {{ name }}")
    assert report["output"] == "Hi Ann"


def test_check_bad_data():
    report = run_json("check", "-t", "plain", "-d", "{oops")
    assert report["output"] == "plain"
    assert report["diagnostics"][0]["level"] == "misunderstood"
    assert report["diagnostics"][0]["description"].startswith("failed to understand data")


def test_check_undecodable_data_file(tmp_path):
    data = tmp_path / "data.json"
    data.write_bytes(b"\xff\xfe{")
    report = run_json("check", "-t", "plain", "--data-file", str(data))
    assert report["output"] == "plain"
    assert len(report["diagnostics"]) == 1
    assert report["diagnostics"][0]["level"] == "misunderstood"
    assert report["diagnostics"][0]["description"].startswith("failed to understand data: ")


def test_check_without_input():
    report = run_json("check")
    assert report["diagnostics"] == [
        {"line": -1, "char": -1, "description": "couldn't accept file", "level": "misunderstood"}
    ]


def test_check_functions_option():
    report = run_json("check", "-t", "{{ x|shout }}", "-d", '{"x": 1}', "-f", "shout, no good")
    assert report["healed"] is True
    assert [d["description"] for d in report["diagnostics"]] == ['bad function name provided: "no good"']


def test_check_config_limits_fixes():
    report = run_json("check", "-t", "{{ x|nope }}", "-c", "recovery.max_fixes=0")
    assert report["healed"] is False
    assert [d["level"] for d in report["diagnostics"]] == ["parse", "limit"]


def test_check_max_fixes_option_overrides_config():
    report = run_json("check", "-t", "{{ x|nope }}", "-d", '{"x": 1}', "--max-fixes", "0")
    assert report["healed"] is False


def test_check_strict_exit_code():
    result = runner.invoke(app, ["check", "-t", "{{ }}", "--strict", "--json"])
    assert result.exit_code == 2
    clean = runner.invoke(app, ["check", "-t", "fine", "--strict", "--json"])
    assert clean.exit_code == 0


def test_check_bad_config():
    result = runner.invoke(app, ["check", "-t", "x", "-c", "no-such-config.yaml"])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


@pytest.mark.parametrize("spec", ["recovery=5", "engine=jinja"])
def test_check_config_section_must_be_mapping(spec):
    result = runner.invoke(app, ["check", "-t", "x", "-c", spec])
    assert result.exit_code == 1
    assert "must be a mapping" in result.output


def test_check_unknown_engine():
    result = runner.invoke(app, ["check", "-t", "x", "--engine", "mustache"])
    assert result.exit_code == 1


def test_check_renders_report():
    result = runner.invoke(app, ["check", "-t", "{% if %}"])
    assert result.exit_code == 0
    assert "1 | {% if %}" in result.output
    assert "FAIL" in result.output


# --- sample ---


def test_sample():
    report = run_json("sample")
    assert report["diagnostics"] == []
    assert "立正" in report["output"]


def test_sample_out_of_range():
    result = runner.invoke(app, ["sample", "99"])
    assert result.exit_code == 1
