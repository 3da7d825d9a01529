"""Tests for CLI functionality."""

import json

from did_v1 import cli
from did_v1.cli import main
from did_v1.document import DidDocument


def test_cli_main_help(capsys):
    """argparse exits with 0 for --help."""
    result = main(["--help"])
    assert result == 0

    captured = capsys.readouterr()
    assert "usage:" in captured.out.lower()
    assert "validate" in captured.out.lower()


def test_cli_main_invalid_args():
    assert main(["--version"]) == 1
    assert main([]) == 1


def test_cli_generate_prints_document_and_keys(capsys):
    result = main(["--mode", "test", "generate"])

    assert result == 0
    output = json.loads(capsys.readouterr().out)
    document = output["didDocument"]
    assert document["id"].startswith("did:v1:test:nym:z6Mk")
    invoke_id = document["capabilityInvocation"][0]["id"]
    assert "privateKeyMultibase" in output["keys"][invoke_id]
    assert "privateKeyMultibase" not in json.dumps(document)


def test_cli_generate_writes_keys_file(tmp_path, capsys):
    keys_file = tmp_path / "keys.json"

    result = main(["--mode", "test", "generate", "--did-type", "uuid", "--keys-out", str(keys_file)])

    assert result == 0
    output = json.loads(capsys.readouterr().out)
    assert "keys" not in output
    assert output["didDocument"]["id"].startswith("did:v1:test:uuid:")
    assert len(json.loads(keys_file.read_text(encoding="utf-8"))) == 5


def test_cli_validate_valid_document(tmp_path, capsys):
    path = tmp_path / "did.json"
    path.write_text(DidDocument.generate(mode="test").to_json(), encoding="utf-8")

    result = main(["--mode", "test", "validate", "--input", str(path), "--method-ids"])

    assert result == 0
    assert json.loads(capsys.readouterr().out) == {"valid": True}


def test_cli_validate_mode_mismatch(tmp_path, capsys):
    path = tmp_path / "did.json"
    path.write_text(
        json.dumps({"didDocument": DidDocument.generate(mode="test").to_dict()}),
        encoding="utf-8",
    )

    result = main(["--mode", "live", "validate", "-i", str(path)])

    assert result == 1
    output = json.loads(capsys.readouterr().out)
    assert output["valid"] is False
    assert output["error"]["name"] == "ModeMismatchError"


def test_cli_validate_quiet_reads_stdin(monkeypatch, capsys):
    document = DidDocument.generate(mode="test").to_json()
    monkeypatch.setattr(cli, "_read_stdin", lambda: document)

    assert main(["--mode", "test", "validate", "--quiet"]) == 0
    assert capsys.readouterr().out == ""


def test_cli_validate_without_input(monkeypatch, capsys):
    monkeypatch.setattr(cli, "_read_stdin", lambda: None)

    assert main(["validate"]) == 1
    assert "No input provided" in capsys.readouterr().err


def test_cli_get_resolves_through_driver(monkeypatch, capsys):
    seen = {}

    class _Driver:
        def __init__(self, *, mode, hostname):
            seen.update(mode=mode, hostname=hostname)

        async def get(self, did):
            seen["did"] = did
            return {"id": did}

    monkeypatch.setattr(cli, "DidV1Driver", _Driver)

    result = main(["--mode", "test", "get", "did:v1:test:nym:z6Mkabc", "--hostname", "ledger.test"])

    assert result == 0
    assert json.loads(capsys.readouterr().out) == {"id": "did:v1:test:nym:z6Mkabc"}
    assert seen == {"mode": "test", "hostname": "ledger.test", "did": "did:v1:test:nym:z6Mkabc"}


def test_cli_reports_library_errors(monkeypatch, capsys):
    from did_v1.errors import NotFoundError

    class _Driver:
        def __init__(self, **_):
            pass

        async def get(self, did):
            raise NotFoundError(f'"{did}" not found.')

    monkeypatch.setattr(cli, "DidV1Driver", _Driver)

    assert main(["get", "did:v1:uuid:abc"]) == 1
    assert "NotFoundError" in capsys.readouterr().err
