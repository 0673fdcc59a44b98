import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from volleyscout.config import MATCHES_DIR, SCHEMA_VERSION
from volleyscout.event_log import EventLog
from volleyscout.exceptions import EventStoreError
from volleyscout.models import RallyEvent
from volleyscout.set_record import SetRecord

logger = logging.getLogger(__name__)


class SetStore:
    """
    File-backed event store for the sets of one match.

    Layout inside match_dir:
      set_<n>.json          set descriptor (serving side, lineups)
      set_<n>.events.jsonl  one JSON event per line, in log order
    """

    def __init__(self, match_dir: Path):
        self.match_dir = Path(match_dir)

    @staticmethod
    def for_match(match_id: str, root: Path = MATCHES_DIR) -> "SetStore":
        return SetStore(Path(root) / match_id)

    def descriptor_path(self, set_number: int) -> Path:
        return self.match_dir / f"set_{set_number}.json"

    def events_path(self, set_number: int) -> Path:
        return self.match_dir / f"set_{set_number}.events.jsonl"

    # ---------------------------------------------------------
    # Sets
    # ---------------------------------------------------------

    def create(self, record: SetRecord):
        path = self.descriptor_path(record.set_number)
        if path.exists():
            raise EventStoreError(f"set {record.set_number} already exists in {self.match_dir}")

        descriptor = {"schema_version": SCHEMA_VERSION, **record.descriptor()}
        try:
            self.match_dir.mkdir(parents=True, exist_ok=True)
            self._write_events(record.set_number, record.events.read_all())
            _atomic_write(path, json.dumps(descriptor, indent=4))
        except OSError as e:
            raise EventStoreError(f"could not create set {record.set_number}: {e}") from e

        logger.debug("created set %d in %s", record.set_number, self.match_dir)

    def set_numbers(self) -> List[int]:
        if not self.match_dir.is_dir():
            return []

        numbers = []
        for path in self.match_dir.glob("set_*.json"):
            suffix = path.stem[len("set_"):]
            if suffix.isdigit():
                numbers.append(int(suffix))
        return sorted(numbers)

    def load(self, set_number: int) -> SetRecord:
        path = self.descriptor_path(set_number)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise EventStoreError(f"set {set_number} not found in {self.match_dir}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise EventStoreError(f"could not read {path}: {e}") from e

        if not isinstance(data, dict) or data.get("schema_version") != SCHEMA_VERSION:
            raise EventStoreError(f"unsupported schema_version in {path}")

        return SetRecord.from_descriptor(data, EventLog(self.read_events(set_number)))

    def load_all(self) -> List[SetRecord]:
        return [self.load(n) for n in self.set_numbers()]

    # ---------------------------------------------------------
    # Events
    # ---------------------------------------------------------

    def read_events(self, set_number: int) -> List[RallyEvent]:
        path = self.events_path(set_number)
        if not path.exists():
            return []

        events: List[RallyEvent] = []
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line_number, line in enumerate(f, 1):
                    if not line.strip():
                        continue
                    try:
                        events.append(RallyEvent.from_dict(json.loads(line)))
                    except json.JSONDecodeError as e:
                        raise EventStoreError(f"{path}:{line_number}: {e}") from e
        except OSError as e:
            raise EventStoreError(f"could not read {path}: {e}") from e

        return events

    def append(self, set_number: int, event: RallyEvent):
        self._require_set(set_number)
        path = self.events_path(set_number)
        try:
            with open(path, "a", encoding="utf-8") as f:
                f.write(json.dumps(event.to_dict()) + "\n")
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise EventStoreError(f"could not append to {path}: {e}") from e

        logger.debug("set %d: appended %s", set_number, event.kind.value)

    def remove_last(self, set_number: int) -> Optional[RallyEvent]:
        self._require_set(set_number)
        events = self.read_events(set_number)
        if not events:
            return None

        removed = events.pop()
        try:
            self._write_events(set_number, events)
        except OSError as e:
            raise EventStoreError(f"could not rewrite {self.events_path(set_number)}: {e}") from e

        logger.debug("set %d: removed last %s", set_number, removed.kind.value)
        return removed

    # ---------------------------------------------------------
    # Internals
    # ---------------------------------------------------------

    def _require_set(self, set_number: int):
        if not self.descriptor_path(set_number).exists():
            raise EventStoreError(f"set {set_number} not found in {self.match_dir}")

    def _write_events(self, set_number: int, events):
        text = "".join(json.dumps(e.to_dict()) + "\n" for e in events)
        _atomic_write(self.events_path(set_number), text)


def _atomic_write(path: Path, text: str):
    tmp = path.with_name(path.name + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(text)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)
