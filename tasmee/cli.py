"""Command line interface for Tasmee.

Every command writes JSON lines to stdout so it can be driven by other
programs.

    tasmee verse 1 2
    tasmee search "الرحمن الرحيم"
    tasmee align 1 2 "الحمد لله رب" --detailed
    tasmee recite --audio-dir chunks/ --chapter 1 --verse 1
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from tasmee._logging import configure_logging, enable_debug_logging
from tasmee.config import get_settings
from tasmee.core.aligner import (
    align_words_with_verse,
    alignment_summary,
    detect_errors,
)
from tasmee.core.arabic import tokenize
from tasmee.data.corpus import Corpus, CorpusRepository
from tasmee.exceptions import TasmeeError, VerseNotFoundError

AUDIO_EXTENSIONS = {".wav", ".mp3", ".m4a", ".flac", ".ogg", ".webm"}


def emit(event: dict) -> None:
    print(json.dumps(event, ensure_ascii=False, default=str))
    sys.stdout.flush()


def load_cli_corpus(paths: Optional[list[str]]) -> Corpus:
    settings = get_settings()
    sources = [Path(p) for p in paths] if paths else list(settings.corpus_paths)
    repository = CorpusRepository(sources, metadata=settings.chapter_metadata_path)
    return repository.load()


def list_audio_files(audio_dir: Path) -> list[Path]:
    if not audio_dir.exists():
        return []
    files = [p for p in audio_dir.iterdir() if p.is_file() and p.suffix.lower() in AUDIO_EXTENSIONS]
    return sorted(files)


def cmd_verse(args: argparse.Namespace) -> int:
    corpus = load_cli_corpus(args.corpus)
    verse = corpus.get_verse(args.chapter, args.verse)
    if verse is None:
        raise VerseNotFoundError(args.chapter, args.verse)
    emit({"type": "verse", "chapter_name": corpus.chapter_name(args.chapter), **verse.model_dump(mode="json")})
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    corpus = load_cli_corpus(args.corpus)
    for verse in corpus.search_verses(args.query, max_results=args.max_results):
        emit({
            "type": "search_result",
            "chapter": verse.chapter_number,
            "verse": verse.verse_number,
            "text": verse.original_text,
        })
    return 0


def cmd_align(args: argparse.Namespace) -> int:
    corpus = load_cli_corpus(args.corpus)
    verse = corpus.get_verse(args.chapter, args.verse)
    if verse is None:
        raise VerseNotFoundError(args.chapter, args.verse)

    words = tokenize(args.text)
    expected = list(verse.normalized_words[args.start:])

    if args.detailed:
        alignments = align_words_with_verse(words, expected)
        for row in alignments:
            emit({"type": "alignment", **row.model_dump(mode="json")})
        emit({"type": "summary", **alignment_summary(alignments)})
    else:
        errors = detect_errors(words, expected, args.chapter, args.verse, start_word_index=args.start)
        for error in errors:
            record = error.model_dump(mode="json")
            emit({"type": "recitation_error", "error_type": record.pop("type"), **record})
        emit({"type": "summary", "errors": len(errors)})
    return 0


async def _recite(args: argparse.Namespace, transcriber) -> int:
    from tasmee.service import RecitationService

    settings = get_settings()
    corpus = load_cli_corpus(args.corpus)
    service = RecitationService(CorpusRepository.from_corpus(corpus), transcriber, settings=settings)

    files = list_audio_files(Path(args.audio_dir))
    session = await service.start_session(args.user, args.chapter, args.verse, mode=args.mode)
    emit({"type": "session_start", "session_id": session.id, "chunks": len(files)})

    for path in files:
        feedback = await service.process_chunk(
            session.id,
            path.read_bytes(),
            audio_format=path.suffix.lstrip(".").lower(),
            detailed=args.detailed,
        )
        emit({"type": "chunk", "file": path.name, **feedback.model_dump(mode="json")})

    statistics = await service.get_session_statistics(session.id)
    summary = await service.stop_session(session.id)
    emit({"type": "statistics", **statistics.model_dump(mode="json")})
    emit({"type": "session_stop", **summary.model_dump(mode="json")})
    return 0


def cmd_recite(args: argparse.Namespace) -> int:
    if args.engine == "whisper":
        from tasmee.transcription import WhisperTranscriber

        transcriber = WhisperTranscriber()
    else:
        from tasmee.transcription import HFInferenceTranscriber

        transcriber = HFInferenceTranscriber(endpoint_url=args.endpoint, api_token=args.token)

    with transcriber:
        return asyncio.run(_recite(args, transcriber))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tasmee", description="Recitation tracking tools")
    parser.add_argument("--corpus", action="append", help="Corpus source (repeatable, tried in order)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    verse = sub.add_parser("verse", help="Look up a verse")
    verse.add_argument("chapter", type=int)
    verse.add_argument("verse", type=int)
    verse.set_defaults(func=cmd_verse)

    search = sub.add_parser("search", help="Search the corpus")
    search.add_argument("query")
    search.add_argument("--max-results", type=int, default=10)
    search.set_defaults(func=cmd_search)

    align = sub.add_parser("align", help="Compare a typed transcript with a verse")
    align.add_argument("chapter", type=int)
    align.add_argument("verse", type=int)
    align.add_argument("text")
    align.add_argument("--start", type=int, default=0, help="Word index the transcript starts at")
    align.add_argument("--detailed", action="store_true", help="Word-by-word alignment")
    align.set_defaults(func=cmd_align)

    recite = sub.add_parser("recite", help="Run a session over a folder of audio chunks")
    recite.add_argument("--audio-dir", required=True, help="Folder of chunk files, processed in name order")
    recite.add_argument("--chapter", type=int, default=1)
    recite.add_argument("--verse", type=int, default=1)
    recite.add_argument("--user", default="cli")
    recite.add_argument("--mode", default="guided", choices=["guided", "free", "memorization"])
    recite.add_argument("--engine", default="hf", choices=["hf", "whisper"])
    recite.add_argument("--endpoint", default=None, help="HF Inference Endpoint URL")
    recite.add_argument("--token", default=None, help="HF API token")
    recite.add_argument("--detailed", action="store_true")
    recite.set_defaults(func=cmd_recite)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        enable_debug_logging()
    else:
        configure_logging(level=logging.WARNING)

    try:
        return args.func(args)
    except TasmeeError as e:
        emit({"type": "error", "message": str(e)})
        return 1


if __name__ == "__main__":
    sys.exit(main())
