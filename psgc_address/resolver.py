from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Sequence, Union

from .config import DEFAULT_INPUT_LIMITS
from .matching import match_record
from .models import LEVELS, AddressData, Level, PSGCRecord, Unresolved, is_resolved
from .utils import LimitedValue, apply_max_length

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("block_lot", "street", "country", "zipcode")

LOAD_LABELS = {
    Level.REGION: "regions",
    Level.PROVINCE: "provinces",
    Level.CITY: "cities/municipalities",
    Level.BARANGAY: "barangays",
}


class Status(str, Enum):
    EMPTY = "empty"
    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"


@dataclass
class LevelState:
    options: List[PSGCRecord] = field(default_factory=list)
    # parent key the current options were fetched for; None until a load succeeds
    loaded_for: Optional[str] = None
    loading: bool = False
    generation: int = 0
    # name last matched at this level; cleared by reset(), so each load matches at most once
    matched: Optional[str] = None
    error: Optional[str] = None

    def reset(self) -> None:
        self.options = []
        self.loaded_for = None
        self.loading = False
        self.generation += 1
        self.matched = None
        self.error = None


# Events

@dataclass(frozen=True)
class Hydrate:
    address: AddressData


@dataclass(frozen=True)
class Opened:
    level: Level


@dataclass(frozen=True)
class Selected:
    level: Level
    code: Optional[str]


@dataclass(frozen=True)
class OptionsLoaded:
    level: Level
    generation: int
    items: Sequence[PSGCRecord]


@dataclass(frozen=True)
class LoadFailed:
    level: Level
    generation: int
    message: str = ""


@dataclass(frozen=True)
class FieldChanged:
    field: str
    value: str


Event = Union[Hydrate, Opened, Selected, OptionsLoaded, LoadFailed, FieldChanged]


# Effects

@dataclass(frozen=True)
class LoadOptions:
    level: Level
    parent_key: str
    generation: int


@dataclass(frozen=True)
class AddressChanged:
    address: AddressData


Effect = Union[LoadOptions, AddressChanged]


class AddressResolver:
    """Reducer driving the region -> province -> city -> barangay cascade.

    ``dispatch`` applies one event and returns the effects the caller must run:
    ``LoadOptions`` (fetch a level's option list, then dispatch ``OptionsLoaded`` or
    ``LoadFailed`` with the same generation) and ``AddressChanged`` (notify listeners).

    Every load carries the level's generation. Resetting a level bumps it, so results
    of loads issued before a reset are dropped when they arrive.

    Values hydrated from persisted data are ``Unresolved`` names. They are matched once
    per load against the option list fetched under their resolved parent. Resolving a
    level this way keeps the descendants; only user selections clear them.

    A successful match replaces the ``Unresolved`` value, and every path that could put
    the same name back also resets the level. ``LevelState.matched`` is therefore only a
    guard: it records which name was matched and never blocks a match on its own.
    """

    def __init__(self,
                 address: Optional[AddressData] = None,
                 match_mode: str = "substring",
                 input_limits: Optional[Dict[str, int]] = None):
        self.address = address if address is not None else AddressData()
        self.match_mode = match_mode
        self.input_limits = dict(input_limits or DEFAULT_INPUT_LIMITS)
        self.levels: Dict[Level, LevelState] = {level: LevelState() for level in LEVELS}
        self.limit_counters: Dict[str, LimitedValue] = {}

    def dispatch(self, event: Event) -> List[Effect]:
        if isinstance(event, Hydrate):
            return self._hydrate(event.address)
        if isinstance(event, Opened):
            return self._opened(Level(event.level))
        if isinstance(event, Selected):
            return self._selected(Level(event.level), event.code)
        if isinstance(event, OptionsLoaded):
            return self._options_loaded(event)
        if isinstance(event, LoadFailed):
            return self._load_failed(event)
        if isinstance(event, FieldChanged):
            return self._field_changed(event.field, event.value)
        raise ValueError(f"Unknown event: {event!r}")

    def parent_key(self, level: Level) -> Optional[str]:
        """Lookup key for ``level``'s options, None while the parent is not resolved."""
        parent = level.parent
        if parent is None:
            return ""
        value = self.address.get(parent)
        return value.code if is_resolved(value) else None

    def status(self, level: Level) -> Status:
        level = Level(level)
        value = self.address.get(level)
        if value is None:
            return Status.EMPTY
        if is_resolved(value):
            return Status.RESOLVED
        if self.levels[level].loading:
            return Status.RESOLVING
        parent = level.parent
        if parent is not None and self.status(parent) is Status.RESOLVING:
            return Status.RESOLVING
        return Status.UNRESOLVED

    def snapshot(self) -> AddressData:
        return replace(self.address)

    def _hydrate(self, address: AddressData) -> List[Effect]:
        if address == self.address:
            return []
        self.address = replace(address)
        for state in self.levels.values():
            state.reset()

        region = self.address.region
        if isinstance(region, Unresolved):
            return self._load(Level.REGION)
        if is_resolved(region):
            return self._load(Level.PROVINCE)
        return []

    def _opened(self, level: Level) -> List[Effect]:
        state = self.levels[level]
        key = self.parent_key(level)
        if key is None or state.loading or state.loaded_for == key:
            return []
        return self._load(level)

    def _selected(self, level: Level, code: Optional[str]) -> List[Effect]:
        state = self.levels[level]
        chosen = next((opt for opt in state.options if opt.code == code), None) if code else None
        self.address.set(level, chosen)
        state.matched = None
        for desc in level.descendants():
            self.address.set(desc, None)
            self.levels[desc].reset()

        effects: List[Effect] = [AddressChanged(self.snapshot())]
        if chosen is not None and level.child is not None:
            effects.extend(self._load(level.child))
        return effects

    def _options_loaded(self, event: OptionsLoaded) -> List[Effect]:
        level = Level(event.level)
        state = self.levels[level]
        if event.generation != state.generation:
            logger.debug("Dropping stale %s options (generation %s, current %s)",
                         level.value, event.generation, state.generation)
            return []

        state.options = list(event.items)
        state.loading = False
        state.loaded_for = self.parent_key(level)
        state.error = None

        effects: List[Effect] = []
        value = self.address.get(level)
        if isinstance(value, Unresolved) and state.matched != value.name:
            found = match_record(value.name, state.options, self.match_mode)
            if found is not None:
                state.matched = value.name
                self.address.set(level, found)
                effects.append(AddressChanged(self.snapshot()))
            else:
                logger.info("No %s matches %r among %d options", level.value, value.name, len(state.options))

        child = level.child
        if child is not None and is_resolved(self.address.get(level)):
            child_state = self.levels[child]
            if not child_state.loading and child_state.loaded_for != self.parent_key(child):
                effects.extend(self._load(child))
        return effects

    def _load_failed(self, event: LoadFailed) -> List[Effect]:
        level = Level(event.level)
        state = self.levels[level]
        if event.generation != state.generation:
            return []
        state.options = []
        state.loaded_for = None
        state.loading = False
        state.error = f"Failed to load {LOAD_LABELS[level]}. Please try again."
        logger.warning("Loading %s failed: %s", level.value, event.message)
        return []

    def _field_changed(self, name: str, value: str) -> List[Effect]:
        if name not in self.input_limits or name not in TEXT_FIELDS:
            raise ValueError(f"Unknown address field: {name}")
        limited = apply_max_length(value, self.input_limits[name])
        setattr(self.address, name, limited.value)
        self.limit_counters[name] = limited
        return [AddressChanged(self.snapshot())]

    def _load(self, level: Level) -> List[Effect]:
        key = self.parent_key(level)
        if key is None:
            return []
        state = self.levels[level]
        state.generation += 1
        state.loading = True
        state.error = None
        return [LoadOptions(level, key, state.generation)]
