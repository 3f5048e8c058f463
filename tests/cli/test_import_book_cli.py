from __future__ import annotations

import json
from pathlib import Path

import pytest

from bookimport.cli import import_book


_STORY = "Prologue text.\nChapter 1: Start\nBody one.\nChapter 2: End\nBody two.\n"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(import_book, "load_dotenv", lambda: False)
    for name in ("BOOKIMPORT_HEADING_LANGUAGES", "BOOKIMPORT_PAGE_BATCH_SIZE", "BOOKIMPORT_FOREWORD_TITLE"):
        monkeypatch.delenv(name, raising=False)


def test_cli_prints_chapter_outline(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "story.txt"
    source.write_text(_STORY, encoding="utf-8")

    exit_code = import_book.main(["--path", str(source)])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert payload["title"] == "story"
    assert payload["format"] == "text"
    assert payload["chapter_count"] == 3
    assert [chapter["title"] for chapter in payload["chapters"]] == ["Foreword", "Chapter 1: Start", "Chapter 2: End"]
    assert "content" not in payload["chapters"][0]


def test_cli_writes_full_output_and_honours_vocabulary(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "buch.txt"
    source.write_text("Kapitel 1\nErster Teil.\nKapitel 2\nZweiter Teil.\n", encoding="utf-8")
    vocabulary = tmp_path / "vocabulary.json"
    vocabulary.write_text(json.dumps({"keywords": ["Kapitel"]}), encoding="utf-8")
    output = tmp_path / "result.json"

    exit_code = import_book.main(
        ["--path", str(source), "--vocabulary", str(vocabulary), "--output", str(output), "--include-content"]
    )

    printed = json.loads(capsys.readouterr().out)
    written = json.loads(output.read_text(encoding="utf-8"))
    assert exit_code == 0
    assert [chapter["title"] for chapter in printed["chapters"]] == ["Kapitel 1", "Kapitel 2"]
    assert printed["chapters"][0]["content"] == "Erster Teil.\n"
    assert written["chapters"][1]["content"] == "Zweiter Teil."


def test_cli_reports_ingestion_errors_as_json(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    missing = tmp_path / "missing.txt"

    exit_code = import_book.main(["--path", str(missing)])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 1
    assert payload["source_path"] == str(missing)
    assert "Failed to read source file" in payload["error"]


def test_cli_rejects_invalid_vocabulary_file(tmp_path: Path) -> None:
    source = tmp_path / "story.txt"
    source.write_text(_STORY, encoding="utf-8")
    vocabulary = tmp_path / "vocabulary.json"
    vocabulary.write_text(json.dumps(["Kapitel"]), encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        import_book.main(["--path", str(source), "--vocabulary", str(vocabulary)])

    assert excinfo.value.code == 2


def test_cli_reports_unwritable_output_as_json(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "story.txt"
    source.write_text(_STORY, encoding="utf-8")
    output = tmp_path / "missing-dir" / "result.json"

    exit_code = import_book.main(["--path", str(source), "--output", str(output)])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 1
    assert payload["source_path"] == str(source)
    assert "Failed to write output" in payload["error"]
    assert not output.exists()
