"""Persisted user settings for templatehelper.

Settings resolve in layers: dataclass defaults, then the JSON file, then
``--set`` overrides from the command line, then ``TEMPLATEHELPER_*``
environment variables.
"""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

__all__ = [
    "DEFAULT_SAMPLE_PARAGRAPHS",
    "ENV_PREFIX",
    "Settings",
    "SettingsStore",
]

LOGGER = logging.getLogger(__name__)
ENV_PREFIX = "TEMPLATEHELPER_"
SETTINGS_VERSION = 1
RECENT_FILES_LIMIT = 10

_DEFAULT_SETTINGS_PATH = Path.home() / ".templatehelper" / "settings.json"
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_NULLABLE_FIELDS = {"operation_timeout", "log_dir"}

DEFAULT_SAMPLE_PARAGRAPHS: tuple[str, ...] = (
    "Contoso Ltd. agrees to supply the goods listed in Schedule A to the Customer.",
    "The Customer shall pay Contoso Ltd. within thirty days of each delivery.",
    "This agreement is governed by the laws in force where Contoso Ltd. is registered.",
)


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between runs."""

    match_case: bool = False
    match_whole_word: bool = True
    operation_timeout: float | None = None
    debug_logging: bool = False
    log_dir: str | None = None
    sample_paragraphs: list[str] = field(default_factory=lambda: list(DEFAULT_SAMPLE_PARAGRAPHS))
    recent_files: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(item.name for item in fields(cls))

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Settings:
        """Build settings from a decoded JSON object, ignoring unknown keys.

        Values of the wrong type are coerced where the intent is clear (``"5"``
        for a timeout, ``"false"`` for a flag) and otherwise dropped with a
        warning so the default applies.
        """
        known = cls.field_names()
        data = {key: value for key, value in payload.items() if key in known}
        for name, coerce in _PAYLOAD_COERCIONS.items():
            if name not in data:
                continue
            try:
                data[name] = coerce(data[name])
            except ValueError as exc:
                LOGGER.warning("Ignoring settings field %s: %s", name, exc)
                data.pop(name)
        return cls(**data)

    def to_payload(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["version"] = SETTINGS_VERSION
        return payload


def _payload_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    raise ValueError(f"expected a boolean, got {value!r}")


def _payload_timeout(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"expected a number of seconds, got {value!r}")
    try:
        seconds = float(value)
    except ValueError as exc:
        raise ValueError(f"expected a number of seconds, got {value!r}") from exc
    if not math.isfinite(seconds) or seconds < 0:
        raise ValueError(f"expected a non-negative number of seconds, got {value!r}")
    return seconds


def _payload_path(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise ValueError(f"expected a path string, got {value!r}")


def _payload_strings(value: Any) -> list[str]:
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return value
    raise ValueError("expected a list of strings")


def _payload_object(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    raise ValueError("expected an object")


# Settings field -> validator applied to values read from the JSON file.
_PAYLOAD_COERCIONS: Mapping[str, Callable[[Any], Any]] = {
    "match_case": _payload_bool,
    "match_whole_word": _payload_bool,
    "debug_logging": _payload_bool,
    "operation_timeout": _payload_timeout,
    "log_dir": _payload_path,
    "sample_paragraphs": _payload_strings,
    "recent_files": _payload_strings,
    "metadata": _payload_object,
}


def _env_bool(raw: str) -> bool:
    return raw.strip().lower() in _TRUE_VALUES


def _env_text(raw: str) -> str:
    return raw.strip()


# Environment variable -> (settings field, converter).
_ENV_FIELDS: Mapping[str, tuple[str, Callable[[str], Any]]] = {
    f"{ENV_PREFIX}MATCH_CASE": ("match_case", _env_bool),
    f"{ENV_PREFIX}MATCH_WHOLE_WORD": ("match_whole_word", _env_bool),
    f"{ENV_PREFIX}DEBUG_LOGGING": ("debug_logging", _env_bool),
    f"{ENV_PREFIX}OPERATION_TIMEOUT": ("operation_timeout", float),
    f"{ENV_PREFIX}LOG_DIR": ("log_dir", _env_text),
}


class SettingsStore:
    """JSON file backing for :class:`Settings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Return the effective settings for this run.

        Args:
            overrides: Field values from the command line. Unknown names are
                skipped, and ``None`` is only honoured for nullable fields.

        Returns:
            Settings with the file, the overrides and the environment applied
            in that order.
        """
        settings = self._load_file()
        if overrides:
            settings = _merge(settings, overrides, source="command line")
        return _merge(settings, self._environment_overrides(), source="environment")

    def save(self, settings: Settings) -> Path:
        """Write ``settings`` atomically through a temporary file."""

        body = json.dumps(settings.to_payload(), indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        staging = self._path.with_suffix(".tmp")
        staging.write_text(body, encoding="utf-8")
        staging.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def remember_recent_file(self, settings: Settings, path: Path | str) -> Settings:
        """Move ``path`` to the front of the recent files and persist the result."""

        entry = str(Path(path).expanduser().resolve())
        others = [item for item in settings.recent_files if item != entry]
        settings.recent_files = [entry, *others][:RECENT_FILES_LIMIT]
        try:
            self.save(settings)
        except OSError as exc:
            LOGGER.warning("Unable to record recent file %s: %s", entry, exc)
        return settings

    def _load_file(self) -> Settings:
        payload = self._read_payload()
        if not payload:
            return Settings()
        settings = Settings.from_payload(payload)
        LOGGER.debug("Settings loaded from %s", self._path)
        if payload.get("version") != SETTINGS_VERSION:
            try:
                self.save(settings)
            except OSError as exc:
                LOGGER.warning("Failed to rewrite settings at version %s: %s", SETTINGS_VERSION, exc)
        return settings

    def _read_payload(self) -> Dict[str, Any]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not hold a JSON object", self._path)
            return {}
        return payload

    def _environment_overrides(self) -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        for env_name, (field_name, convert) in _ENV_FIELDS.items():
            raw = os.environ.get(env_name)
            if raw is None:
                continue
            try:
                overrides[field_name] = convert(raw)
            except ValueError:
                LOGGER.warning("Ignoring %s=%r: not a valid %s value", env_name, raw, field_name)
        return overrides


def _merge(settings: Settings, overrides: Mapping[str, Any], *, source: str) -> Settings:
    known = Settings.field_names()
    changes: Dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in known:
            LOGGER.debug("Skipping unknown %s setting %r", source, key)
            continue
        if value is None and key not in _NULLABLE_FIELDS:
            continue
        changes[key] = value
    if isinstance(changes.get("metadata"), Mapping):
        changes["metadata"] = {**settings.metadata, **changes["metadata"]}
    if not changes:
        return settings
    LOGGER.debug("Applying %s settings: %s", source, sorted(changes))
    return replace(settings, **changes)
