# provenance/events/sinks.py
import logging
import threading
from pathlib import Path
from typing import List, Protocol, Type, runtime_checkable

from provenance.core.canon import canonical_json_str

logger = logging.getLogger(__name__)


@runtime_checkable
class EventSink(Protocol):
    def emit(self, event) -> None:
        ...


class NullSink:
    def emit(self, event) -> None:
        pass


class RecordingSink:
    """Keeps every event in memory, in emission order. Handy for tests."""

    def __init__(self):
        self.events: List = []

    def emit(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_type: Type) -> List:
        return [e for e in self.events if isinstance(e, event_type)]

    @property
    def names(self) -> List[str]:
        return [e.name for e in self.events]

    def clear(self) -> None:
        self.events.clear()


class LoggingSink:
    def __init__(self, level: int = logging.INFO, logger_name: str = "provenance.events"):
        self.level = level
        self._logger = logging.getLogger(logger_name)

    def emit(self, event) -> None:
        self._logger.log(self.level, "%s %s", event.name, canonical_json_str(event.to_dict()))


class JsonlSink:
    """Appends one canonical JSON object per event to a file (for external indexers)."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def emit(self, event) -> None:
        line = canonical_json_str(event.to_dict())
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line)
                f.write("\n")


class FanoutSink:
    def __init__(self, *sinks):
        self.sinks = list(sinks)

    def emit(self, event) -> None:
        for sink in self.sinks:
            sink.emit(event)
