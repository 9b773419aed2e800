from collections.abc import Sequence
from dataclasses import dataclass

from heats.config import Config
from heats.session.reply import ReplySlot
from heats.source.models import DisplayItem, LoadedItem


@dataclass
class Activate:
    mode_name: str


@dataclass
class DmenuSession:
    items: Sequence[DisplayItem]
    reply: ReplySlot


@dataclass
class QueryChanged:
    query: str


@dataclass
class MoveSelection:
    delta: int


@dataclass
class Execute:
    pass


@dataclass
class SelectAndExecute:
    index: int


@dataclass
class Dismiss:
    pass


@dataclass
class SurfaceClosed:
    pass


@dataclass
class ItemsLoaded:
    session_id: int
    provider_names: Sequence[str]
    items: Sequence[LoadedItem]


@dataclass
class EvalResults:
    generation: int
    items: Sequence[LoadedItem]


@dataclass
class CacheRefresh:
    pass


@dataclass
class CacheUpdated:
    provider_name: str
    items: Sequence[LoadedItem]


@dataclass
class ConfigReloaded:
    config: Config


@dataclass
class ExitMessage:
    pass


Message = (
    Activate
    | DmenuSession
    | QueryChanged
    | MoveSelection
    | Execute
    | SelectAndExecute
    | Dismiss
    | SurfaceClosed
    | ItemsLoaded
    | EvalResults
    | CacheRefresh
    | CacheUpdated
    | ConfigReloaded
    | ExitMessage
)
