from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

import esp_image_tool.main as cli
from conftest import SAMPLE_SEGMENTS, build_image

runner = CliRunner()


@pytest.fixture(autouse=True)
def session_log(tmp_path, monkeypatch):
    path = tmp_path / "logs" / "session.jsonl"
    monkeypatch.setattr(cli, "LOG_FILE", path)
    return path


def _events(path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_info(sample_file, session_log) -> None:
    result = runner.invoke(cli.app, ["info", str(sample_file)])

    assert result.exit_code == 0, result.output
    assert "0x40080000" in result.output
    assert "0x3FFB0000" in result.output
    assert "valid" in result.output
    event = _events(session_log)[-1]
    assert event["kind"] == "info"
    assert event["payload"]["checksum_ok"] is True


def test_info_without_checksum(tmp_path) -> None:
    path = tmp_path / "plain.bin"
    path.write_bytes(build_image(0x40080000, SAMPLE_SEGMENTS))

    result = runner.invoke(cli.app, ["info", str(path)])

    assert result.exit_code == 0, result.output
    assert "missing" in result.output


def test_segments_json(sample_file) -> None:
    result = runner.invoke(cli.app, ["segments", str(sample_file), "--json"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == [
        {"index": 0, "address": "0x3FFB0000", "length": 4},
        {"index": 1, "address": "0x40080000", "length": 2},
    ]


def test_segments_reports_truncation(tmp_path, session_log) -> None:
    path = tmp_path / "broken.bin"
    path.write_bytes(build_image(0x40080000, SAMPLE_SEGMENTS)[:-1])

    result = runner.invoke(cli.app, ["segments", str(path)])

    assert result.exit_code == 1
    assert "0x3FFB0000" in result.output
    event = _events(session_log)[-1]
    assert event["kind"] == "image_error"
    assert event["payload"]["error"] == "TruncatedPayload"


def test_info_rejects_short_file(tmp_path, session_log) -> None:
    path = tmp_path / "short.bin"
    path.write_bytes(b"\xE9\x01")

    result = runner.invoke(cli.app, ["info", str(path)])

    assert result.exit_code == 1
    payload = _events(session_log)[-1]["payload"]
    assert payload["error"] == "TruncatedHeader"
    assert payload["message"] == "Truncated image header: got 2 bytes, need 24"


def test_missing_file(tmp_path) -> None:
    result = runner.invoke(cli.app, ["info", str(tmp_path / "nope.bin")])

    assert result.exit_code == 2


def test_split(sample_file, tmp_path) -> None:
    out = tmp_path / "parts"

    result = runner.invoke(cli.app, ["split", str(sample_file), str(out)])

    assert result.exit_code == 0, result.output
    assert sorted(p.name for p in out.iterdir()) == ["0x3ffb0000_app.bin", "0x40080000_app.bin"]


def test_load(sample_file, session_log) -> None:
    result = runner.invoke(cli.app, ["load", str(sample_file), "--chunk", "2"])

    assert result.exit_code == 0, result.output
    assert "2 segments, 6 bytes" in result.output
    event = _events(session_log)[-1]
    assert event["kind"] == "load"
    assert event["payload"]["info"]["bytes"] == 6


@pytest.mark.parametrize("chunk", ["0", "-1"])
def test_load_rejects_bad_chunk(sample_file, session_log, chunk: str) -> None:
    result = runner.invoke(cli.app, ["load", str(sample_file), "--chunk", chunk])

    assert result.exit_code == 2
    assert not session_log.exists()
