# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, cast
from uuid import UUID

from dotenv import load_dotenv

from intakesync.app import IntakeService, build_service, extract_and_wait, merge_field_maps
from intakesync.config import ConfigurationError, configure_logging
from intakesync.domain.address import parse_address
from intakesync.domain.errors import IntakeError
from intakesync.domain.model import InputKind, InputReference
from intakesync.domain.validation import validate_fields

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from types import FrameType

    from intakesync.domain.model import CandidateFieldSet

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract and reconcile patient intake data")
    parser.add_argument(
        "--memory",
        action="store_true",
        help="Keep jobs in memory instead of the configured database",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at DEBUG level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    transcript = subparsers.add_parser("transcript", help="Extract fields from a call transcript")
    transcript.add_argument("--subject", required=True, help="Subject (owner) id of the job")
    source = transcript.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", type=str, help="Transcript text")
    source.add_argument("--file", type=str, help="Path to a UTF-8 transcript file")
    transcript.add_argument(
        "--realtime",
        type=str,
        help="JSON file with fields captured during the call",
    )

    id_image = subparsers.add_parser("id-image", help="Extract fields from an ID document image")
    id_image.add_argument("--subject", required=True, help="Subject (owner) id of the job")
    id_image.add_argument("path", type=str, help="Path to a JPEG, PNG, GIF or WebP image")
    id_image.add_argument("--mime-type", type=str, help="Override the detected media type")

    audio = subparsers.add_parser("audio", help="Transcribe a call recording and extract fields")
    audio.add_argument("--subject", required=True, help="Subject (owner) id of the job")
    audio.add_argument("path", type=str, help="Path to the audio file")
    audio.add_argument("--mime-type", type=str, help="Override the detected media type")
    audio.add_argument(
        "--realtime",
        type=str,
        help="JSON file with fields captured during the call",
    )

    merge = subparsers.add_parser("merge", help="Merge realtime and post-call field sets")
    merge.add_argument("--realtime", required=True, help="JSON file with the existing field set")
    merge.add_argument("--post-call", required=True, help="JSON file with the incoming field set")

    validate = subparsers.add_parser("validate", help="Validate a field set")
    validate.add_argument("source", type=str, help="JSON file with fields ('-' for stdin)")

    address = subparsers.add_parser("parse-address", help="Split a one-line US address")
    address.add_argument("text", type=str, help="Address text")

    for name, help_text in (("status", "Show job status"), ("result", "Show job result")):
        lookup = subparsers.add_parser(name, help=help_text)
        lookup.add_argument("--subject", required=True, help="Subject (owner) id of the job")
        lookup.add_argument("job_id", type=str, help="Job id")

    listing = subparsers.add_parser("list", help="List the jobs of a subject")
    listing.add_argument("--subject", required=True, help="Subject (owner) id")

    edit = subparsers.add_parser("edit", help="Lock a field to an operator-supplied value")
    edit.add_argument("--subject", required=True, help="Subject (owner) id of the job")
    edit.add_argument("job_id", type=str, help="Completed job to correct")
    edit.add_argument("field", type=str, help="Field name, e.g. firstName")
    edit.add_argument("value", type=str, help="Corrected value")

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid job id: {value}") from exc


def _load_json(source: str) -> dict[str, object]:
    try:
        text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read {source}: {exc}") from exc
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{source} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"{source} must contain a JSON object")
    return cast("dict[str, object]", payload)


def _field_maps(source: str) -> tuple[Mapping[str, object], Mapping[str, object] | None]:
    """Read ``{"fields": ..., "confidence": ...}`` or a flat field map."""

    payload = _load_json(source)
    fields = payload.get("fields")
    if isinstance(fields, dict):
        confidence = payload.get("confidence")
        return (
            cast("Mapping[str, object]", fields),
            cast("Mapping[str, object]", confidence) if isinstance(confidence, dict) else None,
        )
    return payload, None


def _emit(payload: object) -> None:
    print(json.dumps(payload, indent=2, sort_keys=False))


def _realtime(service: IntakeService, source: str | None) -> CandidateFieldSet | None:
    if source is None:
        return None
    fields, confidence = _field_maps(source)
    return service.realtime_candidate(fields, confidence)


def _input_reference(args: argparse.Namespace) -> InputReference:
    if args.command == "transcript":
        if args.text is not None:
            return InputReference(kind=InputKind.TRANSCRIPT, text=args.text)
        path = Path(args.file).expanduser()
        return InputReference(kind=InputKind.TRANSCRIPT, path=str(path), filename=path.name)
    path = Path(args.path).expanduser()
    kind = InputKind.ID_IMAGE if args.command == "id-image" else InputKind.AUDIO
    return InputReference(kind=kind, path=str(path), filename=path.name, mime_type=args.mime_type)


def _run_extraction(service: IntakeService, args: argparse.Namespace) -> None:
    input_ref = _input_reference(args)
    realtime = _realtime(service, getattr(args, "realtime", None))
    result = asyncio.run(extract_and_wait(service, args.subject, input_ref, realtime=realtime))
    _emit(result.to_dict())


def _run_stateless(args: argparse.Namespace) -> bool:
    if args.command == "merge":
        existing, existing_confidence = _field_maps(args.realtime)
        incoming, incoming_confidence = _field_maps(args.post_call)
        result = merge_field_maps(existing, existing_confidence, incoming, incoming_confidence)
        _emit(result.to_dict())
    elif args.command == "validate":
        fields, _ = _field_maps(args.source)
        _emit(validate_fields(fields).to_dict())
    elif args.command == "parse-address":
        _emit(parse_address(args.text).to_dict())
    else:
        return False
    return True


def _run_job_command(service: IntakeService, args: argparse.Namespace) -> None:
    if args.command in {"transcript", "id-image", "audio"}:
        _run_extraction(service, args)
    elif args.command == "status":
        _emit(service.get_status(_parse_uuid(args.job_id), args.subject).to_dict())
    elif args.command == "result":
        _emit(service.get_result(_parse_uuid(args.job_id), args.subject).to_dict())
    elif args.command == "list":
        _emit([view.to_dict() for view in service.list_jobs(args.subject)])
    elif args.command == "edit":
        correction_id = service.edit_field(
            _parse_uuid(args.job_id), args.subject, args.field, args.value
        )
        _emit(service.get_result(correction_id, args.subject).to_dict())
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else None)

    try:
        if _run_stateless(parsed_args):
            return
        service = build_service(in_memory=parsed_args.memory)
        _run_job_command(service, parsed_args)
    except (ValueError, IntakeError, ConfigurationError) as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
