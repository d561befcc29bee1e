"""Command line entry point for templatehelper."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .host.context import DocumentHost
from .host.docx_engine import DocxEngine
from .services.outcome import Outcome
from .services.settings import ENV_PREFIX, Settings, SettingsStore
from .services.word_document import WordDocumentService
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_LOGGER = logging.getLogger(__name__)
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def configure_logging(debug: bool = False, *, log_dir: str | None = None, force: bool = False) -> None:
    """Configure structured logging for the command line."""

    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, log_dir=log_dir, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def build_service(engine: DocxEngine, settings: Settings) -> WordDocumentService:
    return WordDocumentService(DocumentHost(engine), settings=settings)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the `templatehelper` console script."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    settings_path = args.settings_path or os.environ.get("TEMPLATEHELPER_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(EXIT_USAGE) from exc

    overrides_mapping: Dict[str, Any] | None = cli_overrides or None
    settings = load_settings(resolved_path, store=settings_store, overrides=overrides_mapping)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return EXIT_OK

    if args.command is None:
        parser.print_usage(sys.stderr)
        return EXIT_USAGE

    debug = args.debug or settings.debug_logging or _env_flag("TEMPLATEHELPER_DEBUG")
    configure_logging(debug, log_dir=settings.log_dir)

    handler = _COMMANDS[args.command]
    try:
        return asyncio.run(handler(args, settings, settings_store))
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Interrupted by user.")
        return EXIT_FAILURE


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------
async def _cmd_replace(args: argparse.Namespace, settings: Settings, store: SettingsStore) -> int:
    engine = _open_document(args.document)
    if engine is None:
        return EXIT_FAILURE
    service = build_service(engine, settings)
    outcome = await service.replace_excluding(args.find, args.replace, args.exclude)
    _print_outcome(outcome)
    if not outcome.ok:
        return EXIT_FAILURE
    return _save(engine, args.output, settings, store)


async def _cmd_sample(args: argparse.Namespace, settings: Settings, store: SettingsStore) -> int:
    engine = _open_document(args.document, must_exist=False)
    if engine is None:
        return EXIT_FAILURE
    paragraphs = args.paragraphs or list(settings.sample_paragraphs)
    service = build_service(engine, settings)
    outcome = await service.replace_document_content(paragraphs)
    _print_outcome(outcome)
    if not outcome.ok:
        return EXIT_FAILURE
    return _save(engine, None, settings, store)


async def _cmd_export_markup(args: argparse.Namespace, settings: Settings, store: SettingsStore) -> int:
    del store
    engine = _open_document(args.document)
    if engine is None:
        return EXIT_FAILURE
    service = build_service(engine, settings)
    outcome = await service.fetch_markup()
    if not outcome.ok or outcome.value is None:
        _print_outcome(outcome)
        return EXIT_FAILURE
    if args.output is None:
        sys.stdout.write(outcome.value)
        sys.stdout.write("\n")
        return EXIT_OK
    target = Path(args.output).expanduser()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(outcome.value, encoding="utf-8")
    except OSError as exc:
        _LOGGER.error("Error: could not write %s: %s", target, exc)
        return EXIT_FAILURE
    _print_outcome(outcome, include_value=False)
    return EXIT_OK


async def _cmd_import_markup(args: argparse.Namespace, settings: Settings, store: SettingsStore) -> int:
    source = Path(args.markup).expanduser()
    try:
        markup = source.read_text(encoding="utf-8")
    except OSError as exc:
        _LOGGER.error("Error: could not read markup from %s: %s", source, exc)
        return EXIT_FAILURE
    engine = _open_document(args.document, must_exist=False)
    if engine is None:
        return EXIT_FAILURE
    service = build_service(engine, settings)
    outcome = await service.set_markup(markup)
    _print_outcome(outcome)
    if not outcome.ok:
        return EXIT_FAILURE
    return _save(engine, args.output, settings, store)


_COMMANDS = {
    "replace": _cmd_replace,
    "sample": _cmd_sample,
    "export-markup": _cmd_export_markup,
    "import-markup": _cmd_import_markup,
}


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------
def _open_document(document: str, *, must_exist: bool = True) -> DocxEngine | None:
    path = Path(document).expanduser()
    if must_exist and not path.exists():
        _LOGGER.error("Error: %s does not exist", path)
        return None
    try:
        return DocxEngine.open(path)
    except Exception as exc:
        # python-docx raises a mix of zipfile, KeyError and its own errors for bad packages
        _LOGGER.error("Error: could not open %s: %s", path, exc)
        return None


def _save(engine: DocxEngine, output: str | None, settings: Settings, store: SettingsStore) -> int:
    try:
        target = engine.save(output)
    except OSError as exc:
        _LOGGER.error("Error: could not save document: %s", exc)
        return EXIT_FAILURE
    store.remember_recent_file(settings, target)
    return EXIT_OK


def _print_outcome(outcome: Outcome[Any], *, include_value: bool = True, stream: TextIO | None = None) -> None:
    destination = stream or sys.stdout
    payload = outcome.to_dict()
    if not include_value:
        payload.pop("value", None)
    json.dump(payload, destination, indent=2, default=str)
    destination.write("\n")


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="templatehelper",
        description="Search and replace in Word documents while leaving chosen paragraphs untouched.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.templatehelper/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    replace = commands.add_parser("replace", help="Replace text outside the excluded paragraphs.")
    replace.add_argument("document", metavar="DOCX")
    replace.add_argument("--find", required=True, metavar="TEXT", help="Literal text to search for.")
    replace.add_argument("--replace", required=True, metavar="TEXT", help="Replacement text.")
    replace.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="N",
        help="Index of a paragraph to leave untouched (repeatable).",
    )
    replace.add_argument("--output", metavar="PATH", help="Write the result here instead of in place.")

    sample = commands.add_parser("sample", help="Replace the document body with sample paragraphs.")
    sample.add_argument("document", metavar="DOCX")
    sample.add_argument(
        "--paragraph",
        dest="paragraphs",
        action="append",
        default=[],
        metavar="TEXT",
        help="Paragraph to write (repeatable); defaults to the configured sample.",
    )

    export = commands.add_parser("export-markup", help="Print the document body markup.")
    export.add_argument("document", metavar="DOCX")
    export.add_argument("--output", metavar="PATH", help="Write the markup to a file.")

    importer = commands.add_parser("import-markup", help="Replace the document body with markup from a file.")
    importer.add_argument("document", metavar="DOCX")
    importer.add_argument("markup", metavar="MARKUP")
    importer.add_argument("--output", metavar="PATH", help="Write the result here instead of in place.")
    return parser


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    """Turn ``KEY=VALUE`` strings into typed settings overrides."""

    hints = get_type_hints(Settings)
    overrides: Dict[str, Any] = {}
    for entry in items:
        key, separator, raw_value = entry.partition("=")
        key = key.strip()
        if not separator:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in hints:
            raise ValueError(f"Unknown setting '{key}'.")
        overrides[key] = _coerce_value(hints[key], raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    members = [arg for arg in get_args(annotation) if arg is not type(None)]
    nullable = len(members) < len(get_args(annotation))
    if nullable and raw_value.lower() in {"none", "null"}:
        return None
    target = get_origin(annotation) or annotation
    if nullable and members:
        target = get_origin(members[0]) or members[0]

    if target is bool:
        return _parse_bool(raw_value)
    if target in (int, float):
        return target(raw_value)
    if target in (list, dict):
        try:
            value = json.loads(raw_value or ("[]" if target is list else "{}"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"{target.__name__} overrides must be valid JSON") from exc
        if not isinstance(value, target):
            raise ValueError(f"{target.__name__} overrides must be a JSON {target.__name__}")
        return value
    return raw_value


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    output = {"settings": asdict(settings), "meta": metadata}
    json.dump(output, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith(ENV_PREFIX))


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
