"""CLI command that imports one book and prints its chapter outline as JSON."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from bookimport.config import ImportSettings
from bookimport.ingestion import (
    CancellationError,
    CancellationToken,
    ImportResult,
    IngestionError,
    build_default_importer,
)
from bookimport.ingestion.vocabulary import HeadingVocabulary

logger = logging.getLogger(__name__)


def _load_vocabulary(path: Path) -> HeadingVocabulary:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Vocabulary file must contain a JSON object")
    return HeadingVocabulary.from_mapping(data)


def _result_payload(source: Path, result: ImportResult, *, include_content: bool) -> dict[str, object]:
    chapters: list[dict[str, object]] = []
    for chapter in result.chapters:
        entry: dict[str, object] = {
            "order": chapter.order,
            "title": chapter.title,
            "characters": len(chapter.content),
        }
        if include_content:
            entry["content"] = chapter.content
        chapters.append(entry)

    return {
        "source_path": str(source),
        "title": result.title,
        "author": result.author,
        "format": result.format.value if result.format else None,
        "chapter_count": len(result.chapters),
        "chapters": chapters,
    }


def _log_progress(percent: int, phase: str, detail: str | None) -> None:
    if detail:
        logger.info("%3d%% %s: %s", percent, phase, detail)
    else:
        logger.info("%3d%% %s", percent, phase)


def main(argv: list[str] | None = None) -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(description="Import a TXT, PDF or EPUB book and split it into chapters")
    parser.add_argument("--path", required=True, help="Source book file")
    parser.add_argument("--media-type", default=None, help="Declared media type, overrides the extension")
    parser.add_argument("--vocabulary", default=None, help="JSON file with a custom heading vocabulary")
    parser.add_argument("--output", default=None, help="Write the full result including chapter text here")
    parser.add_argument(
        "--include-content",
        action="store_true",
        help="Include chapter text in the JSON printed to stdout",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.INFO,
    )

    try:
        settings = ImportSettings.from_env()
        vocabulary = _load_vocabulary(Path(args.vocabulary)) if args.vocabulary else None
    except (OSError, ValueError) as exc:
        parser.error(str(exc))

    source_path = Path(args.path)
    importer = build_default_importer(settings, vocabulary=vocabulary)
    cancel_token = CancellationToken()

    try:
        result = asyncio.run(
            importer.import_path(
                source_path,
                media_type=args.media_type,
                on_progress=_log_progress,
                cancel_token=cancel_token,
            )
        )
    except (KeyboardInterrupt, CancellationError):
        cancel_token.cancel()
        logger.warning("Import cancelled: %s", source_path)
        return 130
    except IngestionError as exc:
        logger.error("Could not read file %s: %s", source_path, exc)
        print(json.dumps({"source_path": str(source_path), "error": str(exc)}, ensure_ascii=False, indent=2))
        return 1

    if args.output:
        full_payload = _result_payload(source_path, result, include_content=True)
        try:
            Path(args.output).write_text(json.dumps(full_payload, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.error("Could not write output %s: %s", args.output, exc)
            print(
                json.dumps(
                    {"source_path": str(source_path), "error": f"Failed to write output {args.output}: {exc}"},
                    ensure_ascii=False,
                    indent=2,
                )
            )
            return 1

    payload = _result_payload(source_path, result, include_content=args.include_content)
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
