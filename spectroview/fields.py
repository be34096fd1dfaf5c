"""
Derived field values shown on top of the spectrogram.

The viewer only needs something that answers ``field_values_for(file_name)``;
``StaticFieldValues`` serves a JSON mapping of file names to labelled values.
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Union

from spectroview.markings import Mark


@dataclass(frozen=True)
class FieldValues:
    computed_values: List[Mark] = field(default_factory=list)
    names_that_could_not_be_computed: List[str] = field(default_factory=list)


class FieldValueProvider(Protocol):
    def field_values_for(self, file_name: str) -> FieldValues:
        ...


class StaticFieldValues:
    def __init__(self, entries: Optional[Mapping[str, Sequence[Mapping]]] = None):
        self._entries: Dict[str, List[Mapping]] = {
            file_name: _checked_entries(file_name, values) for file_name, values in (entries or {}).items()
        }

    def field_values_for(self, file_name: str) -> FieldValues:
        computed: List[Mark] = []
        missing: List[str] = []
        for entry in self._entries.get(file_name, []):
            name = str(entry["name"])
            value = entry.get("value")
            if value is None:
                missing.append(name)
                continue
            computed.append(Mark(name=name, value=value, time=_parse_time(entry.get("time"))))
        return FieldValues(computed_values=computed, names_that_could_not_be_computed=missing)


def _checked_entries(file_name: str, values) -> List[Mapping]:
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        raise ValueError(f"field values for {file_name!r} must be a list of objects")
    for position, entry in enumerate(values):
        if not isinstance(entry, Mapping):
            raise ValueError(f"field value #{position} for {file_name!r} is not an object")
        if entry.get("name") in (None, ""):
            raise ValueError(f"field value #{position} for {file_name!r} has no name")
    return list(values)


def _parse_time(raw) -> Optional[float]:
    # Unparseable times stay None so the mark is reported as unrendered.
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def load_field_values(source: Union[str, Path, bytes]) -> StaticFieldValues:
    if isinstance(source, bytes):
        raw = json.loads(source.decode("utf-8"))
    else:
        with Path(source).open("r", encoding="utf-8") as f:
            raw = json.load(f)
    if not isinstance(raw, dict):
        raise ValueError("field values must be a JSON object keyed by file name")
    return StaticFieldValues(raw)
