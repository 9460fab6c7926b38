from __future__ import annotations
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

from .config import Config
from .models import (
    LEVELS,
    AddressData,
    CityMunicipality,
    Level,
    LevelValue,
    ResolveOutcome,
    is_resolved,
    value_code,
)
from .resolver import (
    AddressChanged,
    AddressResolver,
    Effect,
    Event,
    FieldChanged,
    Hydrate,
    LoadFailed,
    LoadOptions,
    Opened,
    OptionsLoaded,
    Selected,
    Status,
)
from .service import PSGCFetchError, PSGCService

logger = logging.getLogger(__name__)

PLACEHOLDERS = {
    Level.REGION: ("", "Loading regions...", "Select Region*"),
    Level.PROVINCE: ("Select Region first", "Loading provinces...", "Select Province*"),
    Level.CITY: ("Select Province first", "Loading cities...", "Select City/Municipality*"),
    Level.BARANGAY: ("Select City/Municipality first", "Loading barangays...", "Select Barangay*"),
}

FIELD_ERROR_KEYS = {
    "block_lot": ("address.blockLot", "address.block_lot"),
    "street": ("address.street",),
    "country": ("address.country",),
    "zipcode": ("address.zipcode", "address.postal_code"),
}


@dataclass
class SelectorView:
    level: str
    value: str
    display_value: str
    options: List[Dict[str, str]] = field(default_factory=list)
    placeholder: str = ""
    disabled: bool = False
    loading: bool = False
    status: str = Status.EMPTY.value
    load_error: Optional[str] = None
    field_error: Optional[str] = None


@dataclass
class TextFieldView:
    name: str
    value: str
    counter: str = ""
    is_at_limit: bool = False
    field_error: Optional[str] = None


def display_name(value: Optional[LevelValue]) -> str:
    if value is None:
        return ""
    if isinstance(value, CityMunicipality) and value.type:
        return f"{value.name} ({value.type})"
    return value.name


class AddressForm:
    """Runs an ``AddressResolver`` against a ``PSGCService``.

    Loads are executed synchronously in the order the resolver asks for them. Fetch
    errors become inline messages on the failing level; ``on_update`` receives the full
    address after every resolution or user change.
    """

    def __init__(self,
                 service: PSGCService,
                 on_update: Optional[Callable[[AddressData], None]] = None,
                 errors: Optional[Dict[str, str]] = None,
                 match_mode: str = "substring",
                 input_limits: Optional[Dict[str, int]] = None):
        self.service = service
        self.on_update = on_update
        self.errors: Dict[str, str] = dict(errors or {})
        self.resolver = AddressResolver(match_mode=match_mode, input_limits=input_limits)

    @classmethod
    def from_config(cls, cfg: Config, service: PSGCService,
                    on_update: Optional[Callable[[AddressData], None]] = None,
                    errors: Optional[Dict[str, str]] = None) -> "AddressForm":
        return cls(service, on_update=on_update, errors=errors,
                   match_mode=cfg.match_mode, input_limits=cfg.input_limits)

    @property
    def address(self) -> AddressData:
        return self.resolver.snapshot()

    @property
    def error(self) -> str:
        for level in LEVELS:
            err = self.resolver.levels[level].error
            if err:
                return err
        return ""

    def hydrate(self, address: Union[AddressData, dict]) -> AddressData:
        if isinstance(address, dict):
            address = AddressData.from_dict(address)
        self._send(Hydrate(address))
        return self.address

    def open(self, level: Union[Level, str]) -> None:
        self._send(Opened(Level(level)))

    def select(self, level: Union[Level, str], code: Optional[str]) -> AddressData:
        self._send(Selected(Level(level), code))
        return self.address

    def set_field(self, name: str, value: str) -> AddressData:
        self._send(FieldChanged(name, value))
        return self.address

    def options(self, level: Union[Level, str]) -> list:
        return list(self.resolver.levels[Level(level)].options)

    def status(self, level: Union[Level, str]) -> Status:
        return self.resolver.status(Level(level))

    def resolve(self, address: Union[AddressData, dict]) -> ResolveOutcome:
        resolved = self.hydrate(address)
        return ResolveOutcome(
            address=resolved,
            statuses={level.value: self.status(level).value for level in LEVELS},
            errors={level.value: self.resolver.levels[level].error
                    for level in LEVELS if self.resolver.levels[level].error},
        )

    def view(self) -> Dict[str, SelectorView]:
        views: Dict[str, SelectorView] = {}
        for level in LEVELS:
            state = self.resolver.levels[level]
            value = self.resolver.address.get(level)
            parent = level.parent
            parent_ready = parent is None or is_resolved(self.resolver.address.get(parent))
            no_parent, loading_text, select_text = PLACEHOLDERS[level]
            if not parent_ready:
                placeholder = no_parent
            elif state.loading:
                placeholder = loading_text
            else:
                placeholder = select_text
            views[level.value] = SelectorView(
                level=level.value,
                value=value_code(value),
                display_value=display_name(value),
                options=[{"code": opt.code, "name": display_name(opt)} for opt in state.options],
                placeholder=placeholder,
                disabled=not parent_ready or state.loading,
                loading=state.loading,
                status=self.resolver.status(level).value,
                load_error=state.error,
                field_error=self.errors.get(f"address.{level.value}"),
            )
        return views

    def text_fields(self) -> Dict[str, TextFieldView]:
        views: Dict[str, TextFieldView] = {}
        for name in FIELD_ERROR_KEYS:
            limited = self.resolver.limit_counters.get(name)
            views[name] = TextFieldView(
                name=name,
                value=getattr(self.resolver.address, name),
                counter=limited.counter if limited else "",
                is_at_limit=limited.is_at_limit if limited else False,
                field_error=next((self.errors[k] for k in FIELD_ERROR_KEYS[name] if k in self.errors), None),
            )
        return views

    def _send(self, event: Event) -> None:
        queue = deque(self.resolver.dispatch(event))
        while queue:
            effect: Effect = queue.popleft()
            if isinstance(effect, LoadOptions):
                queue.extend(self.resolver.dispatch(self._load(effect)))
            elif isinstance(effect, AddressChanged):
                if self.on_update is not None:
                    self.on_update(effect.address)

    def _load(self, effect: LoadOptions) -> Event:
        try:
            items = self.service.get_options(effect.level, effect.parent_key or None)
        except PSGCFetchError as exc:
            logger.error("Error loading %s for %r: %s", effect.level.value, effect.parent_key, exc)
            return LoadFailed(effect.level, effect.generation, str(exc))
        return OptionsLoaded(effect.level, effect.generation, items)
