import json
import os

from axispay import callback, checksum, envelope
from axispay.cli import main

from conftest import CALLBACK_KEY_HEX


def write_json(tmp_path, name, body):
    path = tmp_path / name
    path.write_text(json.dumps(body), encoding="utf-8")
    return str(path)


def test_no_command_prints_help(capsys):
    assert main([]) == 2
    assert "usage" in capsys.readouterr().out.lower()


def test_checksum(tmp_path, capsys):
    path = write_json(tmp_path, "body.json", {"Data": {"channelId": "CHAN01", "corpCode": "CORP01"}})
    assert main(["checksum", path]) == 0
    assert capsys.readouterr().out.strip() == checksum.digest({"x": "CHAN01CORP01"})


def test_checksum_inject(tmp_path, capsys):
    path = write_json(tmp_path, "body.json", {"Data": {"crn": "CRN1"}})
    assert main(["checksum", path, "--inject"]) == 0
    stamped = json.loads(capsys.readouterr().out)
    assert list(stamped) == ["Data"]
    assert stamped["Data"]["checksum"] == checksum.digest({"crn": "CRN1"})


def test_verify_checksum(tmp_path, capsys):
    good = write_json(tmp_path, "good.json", checksum.with_checksum({"crn": "CRN1"}))
    bad = write_json(tmp_path, "bad.json", {"crn": "CRN1", "checksum": "0" * 32})
    assert main(["verify-checksum", good]) == 0
    assert main(["verify-checksum", bad]) == 1
    assert "mismatch" in capsys.readouterr().err


def test_missing_file(tmp_path, capsys):
    assert main(["checksum", str(tmp_path / "absent.json")]) == 1
    assert capsys.readouterr().err.startswith("✗")


def test_seal_then_open(tmp_path, capsys, monkeypatch, client_codec, bank_codec):
    path = write_json(tmp_path, "body.json", {"Data": {"crn": "CRN1"}})

    monkeypatch.setattr(envelope, "get_default_codec", lambda: client_codec)
    assert main(["seal", path]) == 0
    token_path = tmp_path / "token.txt"
    token_path.write_text(capsys.readouterr().out, encoding="utf-8")

    monkeypatch.setattr(envelope, "get_default_codec", lambda: bank_codec)
    assert main(["open", str(token_path)]) == 0
    assert json.loads(capsys.readouterr().out) == {"Data": {"crn": "CRN1"}}


def test_open_rejects_garbage(tmp_path, capsys, monkeypatch, client_codec):
    monkeypatch.setattr(envelope, "get_default_codec", lambda: client_codec)
    token_path = tmp_path / "token.txt"
    token_path.write_text("a.b.c", encoding="utf-8")
    assert main(["open", str(token_path)]) == 1
    assert "SIGNATURE_INVALID" in capsys.readouterr().err


def test_callback(tmp_path, capsys):
    data = checksum.with_checksum({"crn": "CRN1"})
    path = tmp_path / "callback.txt"
    path.write_text(callback.encrypt_hex_aes128_ecb(json.dumps({"Data": data}), CALLBACK_KEY_HEX))
    assert main(["callback", str(path), "--mode", "ecb", "--key-hex", CALLBACK_KEY_HEX]) == 0
    assert json.loads(capsys.readouterr().out) == data


def test_keygen(tmp_path, capsys):
    out = tmp_path / "sandbox"
    assert main(["keygen", "-o", str(out), "-p", "secret"]) == 0
    for name in ("client.p12", "client.crt", "client.key", "bank.key", "bank.crt"):
        assert os.path.exists(out / name)
    assert "Sandbox material only" in capsys.readouterr().err
