from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from intakesync.ui import cli
from tests.helpers.jobs import SAMPLE_TRANSCRIPT

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def _offline(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


def _output(capsys: pytest.CaptureFixture[str]) -> object:
    return json.loads(capsys.readouterr().out)


def test_parse_address_prints_components(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["parse-address", "123 Main St, New York, NY 10001"])

    assert _output(capsys) == {
        "street": "123 Main St",
        "city": "New York",
        "state": "NY",
        "zip": "10001",
        "confidence": 1.0,
    }


def test_validate_reads_field_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "fields.json"
    source.write_text(json.dumps({"fields": {"addressState": "ZZ"}}), encoding="utf-8")

    cli.main(["validate", str(source)])

    output = _output(capsys)
    assert isinstance(output, dict)
    assert output["isValid"] is False
    assert output["errors"] == {"addressState": "Invalid state code"}


def test_merge_combines_field_files(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    realtime = tmp_path / "realtime.json"
    realtime.write_text(
        json.dumps({"fields": {"firstName": "Jon"}, "confidence": {"firstName": 0.6}}),
        encoding="utf-8",
    )
    post_call = tmp_path / "post_call.json"
    post_call.write_text(json.dumps({"firstName": "John", "sex": "M"}), encoding="utf-8")

    cli.main(["merge", "--realtime", str(realtime), "--post-call", str(post_call)])

    output = _output(capsys)
    assert isinstance(output, dict)
    assert output["mergedFields"] == {"firstName": "John", "sex": "M"}
    assert output["fieldSources"] == {"firstName": "post_call", "sex": "post_call"}


def test_transcript_command_runs_offline_extraction(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["--memory", "transcript", "--subject", "s-1", "--text", SAMPLE_TRANSCRIPT])

    output = _output(capsys)
    assert isinstance(output, dict)
    assert output["state"] == "completed"
    assert output["ready"] is True
    assert output["fields"]["email"] == "jane.doe@example.com"  # type: ignore[index]


def test_invalid_json_file_exits_with_usage_error(tmp_path: Path) -> None:
    source = tmp_path / "broken.json"
    source.write_text("{not json", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["validate", str(source)])

    assert excinfo.value.code == 2


def test_malformed_job_id_exits_with_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--memory", "status", "--subject", "s-1", "not-a-uuid"])

    assert excinfo.value.code == 2


def test_unknown_job_exits_with_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(
            ["--memory", "result", "--subject", "s-1", "00000000-0000-0000-0000-000000000001"]
        )

    assert excinfo.value.code == 2


def test_list_of_unknown_subject_is_empty(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["--memory", "list", "--subject", "nobody"])

    assert _output(capsys) == []
