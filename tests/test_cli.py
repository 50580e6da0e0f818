import json
import os
import sys
import tempfile

import pytest


def _ensure_scripts_on_path():
    repo_root = os.path.dirname(os.path.dirname(__file__))
    scripts_dir = os.path.join(repo_root, "scripts")
    if scripts_dir not in sys.path:
        sys.path.insert(0, scripts_dir)
    return scripts_dir


SCRIPTS = _ensure_scripts_on_path()

import lfa_cli  # noqa: E402

FLN_SAMPLE = os.path.join(SCRIPTS, "fln_sample.yaml")


def write_snapshot(data):
    f = tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False, encoding="utf-8")
    with f:
        json.dump(data, f)
    return f.name


def test_version(capsys):
    assert lfa_cli.main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == "0.1.0"


def test_list_samples(capsys):
    assert lfa_cli.main(["--list-samples"]) == 0
    samples = json.loads(capsys.readouterr().out)
    assert any(s.endswith("fln_sample.yaml") for s in samples)
    assert any(s.endswith("career_sample.yaml") for s in samples)


def test_missing_snapshot(capsys):
    assert lfa_cli.main([]) == 2
    assert "missing snapshot" in capsys.readouterr().err


def test_default_run(capsys):
    assert lfa_cli.main([FLN_SAMPLE]) == 0
    result = json.loads(capsys.readouterr().out)
    assert result["simulation"]["score"] == 100
    assert result["document"]["goal"]["narrative"] == "NIPUN Lakshya met by 2026"


def test_validate_exit_code_on_critical(capsys):
    path = write_snapshot(
        {
            "nodes": [{"id": "a", "type": "outcome"}, {"id": "b", "type": "outcome"}],
            "edges": [{"id": "e1", "source": "a", "target": "b"}, {"id": "e2", "source": "b", "target": "a"}],
        }
    )
    try:
        assert lfa_cli.main([path, "--validate"]) == 1
        errors = json.loads(capsys.readouterr().out)["errors"]
        assert errors[0]["id"] == "structure-cycle"
    finally:
        os.unlink(path)


def test_validate_clean(capsys):
    assert lfa_cli.main([FLN_SAMPLE, "--validate"]) == 0
    assert json.loads(capsys.readouterr().out) == {"errors": []}


def test_simulate_with_project_scale(capsys):
    path = write_snapshot(
        {
            "nodes": [{"id": "i", "type": "intervention"}, {"id": "s", "type": "stakeholder"}],
            "edges": [{"id": "e1", "source": "i", "target": "s", "indicators": ["x"]}],
        }
    )
    try:
        assert lfa_cli.main([path, "--simulate", "--project-scale", "50"]) == 0
        result = json.loads(capsys.readouterr().out)
        assert result["score"] == 90
        assert result["errors"][0]["id"] == "missing-authority"
    finally:
        os.unlink(path)


def test_compile_to_file():
    out = tempfile.NamedTemporaryFile(suffix=".json", delete=False).name
    try:
        assert lfa_cli.main([os.path.join(SCRIPTS, "career_sample.yaml"), "--domain", "career", "--compile", "--out", out]) == 0
        with open(out, "r", encoding="utf-8") as f:
            document = json.load(f)
        assert document["goal"]["narrative"] == "Sustainable Income"
    finally:
        os.unlink(out)


def test_export_graphml(capsys):
    pytest.importorskip("networkx")
    out = tempfile.NamedTemporaryFile(suffix=".graphml", delete=False).name
    try:
        assert lfa_cli.main([FLN_SAMPLE, "--compile", "--export-graphml", out]) == 0
        with open(out, "r", encoding="utf-8") as f:
            assert "<graphml" in f.read()
    finally:
        os.unlink(out)
