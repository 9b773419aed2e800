"""Session state machine.

The coordinator owns what is currently shown. It processes one message at a
time from its queue, so session state is only ever touched from its own task
and needs no lock. Slow work (source loads, evaluator runs, cache refreshes)
runs in background tasks that post their results back as messages.

There is at most one session at a time:

- INTERNAL: started by an activation (hotkey) for a configured mode. Items come
  from the mode's providers and evaluators; a selection runs an action command.
- EXTERNAL: started by a dmenu client over the IPC socket. A selection (or
  cancellation) is delivered through the session's reply slot, exactly once.

Starting a session while one is shown first tears the old one down, cancelling
an external predecessor's reply.
"""

import asyncio
from collections.abc import Awaitable, Callable, Coroutine, Mapping, Sequence
from enum import Enum
from typing import Any

from heats.config import Config, EvaluatorSpec, InputMode, ProviderSpec
from heats.logger import logging
from heats.session.debounce import EvaluatorDebouncer
from heats.session.messages import (
    Activate,
    CacheRefresh,
    CacheUpdated,
    ConfigReloaded,
    Dismiss,
    DmenuSession,
    EvalResults,
    Execute,
    ExitMessage,
    ItemsLoaded,
    Message,
    MoveSelection,
    QueryChanged,
    SelectAndExecute,
    SurfaceClosed,
)
from heats.session.ranking import MAX_RESULTS, RapidfuzzRanker, Ranker
from heats.session.reply import ReplySlot
from heats.session.surface import HeadlessSurface, Surface, View
from heats.source import command, evaluator
from heats.source.cache import SourceCache
from heats.source.models import DisplayItem, LoadedItem

logger = logging.getLogger(__name__)

ProviderLoader = Callable[[Sequence[str], Mapping[str, ProviderSpec]], Awaitable[list[LoadedItem]]]
EvaluatorRunner = Callable[
    [str, Sequence[str], Mapping[str, EvaluatorSpec]], Awaitable[list[LoadedItem]]
]
ActionRunner = Callable[[Sequence[str], str, InputMode], None]


class SessionKind(Enum):
    IDLE = "idle"
    INTERNAL = "internal"
    EXTERNAL = "external"


class Coordinator:
    config: Config
    ranker: Ranker
    surface: Surface
    cache: SourceCache
    debouncer: EvaluatorDebouncer[list[LoadedItem]]

    kind: SessionKind
    mode_name: str | None
    session_id: int
    query: str
    selected: int
    loaded_items: list[LoadedItem]
    all_items: list[DisplayItem]
    results: list[DisplayItem]
    eval_items: list[LoadedItem]
    active_providers: list[str]
    active_evaluators: list[str]

    def __init__(
        self,
        config: Config,
        ranker: Ranker | None = None,
        surface: Surface | None = None,
        cache: SourceCache | None = None,
        debouncer: EvaluatorDebouncer[list[LoadedItem]] | None = None,
        load_providers: ProviderLoader = command.load_from_providers,
        run_evaluators: EvaluatorRunner = evaluator.run_evaluators,
        run_action: ActionRunner = command.run_action,
    ):
        self.config = config
        self.ranker = ranker if ranker is not None else RapidfuzzRanker()
        self.surface = surface if surface is not None else HeadlessSurface()
        self.cache = cache if cache is not None else SourceCache()
        self.debouncer = debouncer if debouncer is not None else EvaluatorDebouncer()
        self._load_providers = load_providers
        self._run_evaluators = run_evaluators
        self._run_action = run_action

        self._queue: asyncio.Queue[Message] = asyncio.Queue()
        self._tasks: set[asyncio.Task] = set()
        self._refreshing: set[str] = set()
        self._pending_config: Config | None = None
        self._config_changed = asyncio.Event()
        self._reply: ReplySlot | None = None

        self.kind = SessionKind.IDLE
        self.mode_name = None
        self.session_id = 0
        self._clear_session_state()

    # ---- Message loop ----

    def post(self, message: Message):
        self._queue.put_nowait(message)

    def submit_dmenu(self, items: Sequence[DisplayItem], reply: ReplySlot):
        """Entry point for the IPC server."""
        self.post(DmenuSession(items=items, reply=reply))

    async def run(self):
        """Process messages until an ExitMessage arrives."""
        refresher = asyncio.create_task(self._refresh_timer(), name="cache-refresh-timer")
        self.post(CacheRefresh())  # initial load of cached providers
        try:
            while True:
                message = await self._queue.get()
                if isinstance(message, ExitMessage):
                    break
                try:
                    self.dispatch(message)
                except Exception:
                    logger.exception("Failed to handle %s", type(message).__name__)
        finally:
            refresher.cancel()
            self.shutdown()

    def shutdown(self):
        """Cancel any open session and background work."""
        self.hide()
        while not self._queue.empty():
            message = self._queue.get_nowait()
            if isinstance(message, DmenuSession):
                message.reply.cancel()
        for task in list(self._tasks):
            task.cancel()

    def dispatch(self, message: Message):
        match message:
            case Activate(mode_name=mode_name):
                self._on_activate(mode_name)
            case DmenuSession(items=items, reply=reply):
                self._on_dmenu_session(items, reply)
            case QueryChanged(query=query):
                self._on_query_changed(query)
            case MoveSelection(delta=delta):
                self.move_selection(delta)
            case Execute():
                self.commit(self.selected)
            case SelectAndExecute(index=index):
                self.commit(index)
            case Dismiss() | SurfaceClosed():
                self.hide()
            case ItemsLoaded(session_id=session_id, provider_names=names, items=items):
                self._on_items_loaded(session_id, names, items)
            case EvalResults(generation=generation, items=items):
                self._on_eval_results(generation, items)
            case CacheRefresh():
                self._refresh_stale_caches()
            case CacheUpdated(provider_name=name, items=items):
                self._on_cache_updated(name, items)
            case ConfigReloaded(config=config):
                self._on_config_reloaded(config)
            case _:
                logger.warning("Unhandled message: %r", message)

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str):
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            return
        if (error := task.exception()) is not None:
            logger.error("Background task %s failed", task.get_name(), exc_info=error)

    # ---- Session lifecycle ----

    @property
    def visible(self) -> bool:
        return self.kind is not SessionKind.IDLE

    @property
    def latest_config(self) -> Config:
        """The configuration the next session will use."""
        return self._pending_config if self._pending_config is not None else self.config

    def _on_activate(self, mode_name: str):
        if self.visible:
            self.hide()
            return
        self.show_mode(mode_name)

    def show_mode(self, mode_name: str):
        self._apply_pending_config()
        mode = self.config.get_mode(mode_name)
        if mode is None:
            logger.warning("Mode '%s' not found in config", mode_name)
            return
        if not mode.providers and not mode.evaluators:
            logger.warning("No providers configured for mode '%s'", mode_name)
            return

        self._begin_session(SessionKind.INTERNAL)
        self.mode_name = mode_name
        self.active_providers = list(mode.providers)
        self.active_evaluators = list(mode.evaluators)

        cached: list[LoadedItem] = []
        uncached: list[str] = []
        for name in mode.providers:
            items = self.cache.get(name)
            if items is None:
                uncached.append(name)
                continue
            cached.extend(items)
            spec = self.config.providers.get(name)
            if spec is not None and spec.cache_interval is not None:
                if self.cache.is_stale(name, spec.cache_interval):
                    self._start_cache_reload(name, spec)

        if cached:
            self._set_loaded_items(cached)

        if uncached:
            self._spawn(
                self._load_for_session(self.session_id, uncached, self.config.providers),
                name=f"load-{mode_name}",
            )

        logger.info(
            "Showing mode '%s' (%d cached items, %d providers loading)",
            mode_name,
            len(cached),
            len(uncached),
        )
        self._render()

    def _on_dmenu_session(self, items: Sequence[DisplayItem], reply: ReplySlot):
        if self.visible:
            self.hide()
        self._apply_pending_config()
        self._begin_session(SessionKind.EXTERNAL)
        self._reply = reply
        self.all_items = list(items)
        self.results = self.ranker.rank(self.all_items, "")
        logger.info("Showing dmenu session with %d items", len(self.all_items))
        self._render()

    def hide(self):
        """Tear down the current session, cancelling an external reply if one is pending."""
        if not self.visible:
            return
        self._cancel_reply()
        self._clear_session_state()
        self.kind = SessionKind.IDLE
        self.mode_name = None
        self.surface.hide()

    def _begin_session(self, kind: SessionKind):
        self._clear_session_state()
        self.session_id += 1
        self.kind = kind

    def _cancel_reply(self):
        if self._reply is not None:
            if self._reply.cancel():
                logger.info("Dmenu session cancelled")
            self._reply = None

    def _clear_session_state(self):
        # The source cache is deliberately kept across sessions.
        self.query = ""
        self.selected = 0
        self.loaded_items = []
        self.all_items = []
        self.results = []
        self.eval_items = []
        self.active_providers = []
        self.active_evaluators = []
        self.debouncer.invalidate()

    def _apply_pending_config(self):
        if self._pending_config is not None:
            self.config = self._pending_config
            self._pending_config = None
            logger.info("Applied reloaded config")

    def _on_config_reloaded(self, config: Config):
        self._pending_config = config
        if not self.visible:
            self._apply_pending_config()
        self._config_changed.set()

    # ---- Query, selection and ranking ----

    def _on_query_changed(self, query: str):
        if not self.visible:
            return
        self.query = query
        self.selected = 0
        self._rerank()

        if self.active_evaluators and query:
            generation = self.debouncer.next_generation()
            self._spawn(
                self._evaluate(generation, query, list(self.active_evaluators)),
                name=f"evaluate-{generation}",
            )
        else:
            self.eval_items = []
            self.debouncer.invalidate()
        self._render()

    def _rerank(self):
        self.results = self.ranker.rank(self.all_items, self.query, MAX_RESULTS)

    def move_selection(self, delta: int):
        if not self.visible:
            return
        total = len(self.eval_items) + len(self.results)
        self.selected = max(0, min(self.selected + delta, total - 1))
        self._render()

    def commit(self, index: int):
        """
        Act on the item at ``index`` of the displayed list and end the session.

        Evaluator results come first in the displayed list, so indexes below
        the evaluator count select an evaluator result; the rest map into the
        ranked provider results.
        """
        if not self.visible:
            return
        self.selected = index

        eval_count = len(self.eval_items)
        if 0 <= index < eval_count:
            loaded = self.eval_items[index]
            spec = self.config.evaluators.get(loaded.provider_name)
            self.hide()
            if spec is None:
                logger.warning("Evaluator '%s' not found in config", loaded.provider_name)
                return
            self._run_action(
                spec.action, loaded.menu_item.get_field(spec.field), spec.action_input_mode
            )
            return

        adjusted = index - eval_count
        item = self.results[adjusted] if 0 <= adjusted < len(self.results) else None

        if self.kind is SessionKind.EXTERNAL:
            if item is not None and self._reply is not None:
                self._reply.resolve(item.id)
                self._reply = None
                logger.info("Dmenu session resolved with item %s", item.id)
            self.hide()
            return

        action = self._pending_action(item) if item is not None else None
        # Hide before running the action so focus moves to what the action opens
        self.hide()
        if action is not None:
            spec, loaded = action
            self._run_action(spec.action, loaded.menu_item.get_field(spec.field), InputMode.ARG)

    def _pending_action(self, item: DisplayItem) -> tuple[ProviderSpec, LoadedItem] | None:
        loaded = next((li for li in self.loaded_items if li.matches(item)), None)
        if loaded is None:
            logger.warning("No loaded item for selection '%s'", item.title)
            return None
        spec = self.config.providers.get(loaded.provider_name)
        if spec is None:
            logger.warning("Provider '%s' not found in config", loaded.provider_name)
            return None
        return spec, loaded

    # ---- Loading ----

    def _set_loaded_items(self, items: Sequence[LoadedItem]):
        self.loaded_items = list(items)
        self.all_items = [li.item for li in self.loaded_items]
        self._rerank()

    async def _load_for_session(
        self, session_id: int, names: Sequence[str], providers: Mapping[str, ProviderSpec]
    ):
        items = await self._load_providers(names, providers)
        self.post(ItemsLoaded(session_id=session_id, provider_names=list(names), items=items))

    def _on_items_loaded(
        self, session_id: int, names: Sequence[str], items: Sequence[LoadedItem]
    ):
        self._store_cacheable(items)
        if session_id != self.session_id or self.kind is not SessionKind.INTERNAL:
            logger.debug("Discarding %d items loaded for session %d", len(items), session_id)
            return
        # Items already shown (from the cache, or from a refresh that finished
        # first) are kept and the loaded ones appended, minus any stale copies
        # of the providers that were just loaded.
        kept = [li for li in self.loaded_items if li.provider_name not in names]
        if kept:
            self._set_loaded_items([*kept, *items])
        else:
            self._set_loaded_items(items)
        self._render()

    def _store_cacheable(self, items: Sequence[LoadedItem]):
        """Cache on-demand loads of providers that have a cache interval."""
        by_provider: dict[str, list[LoadedItem]] = {}
        for li in items:
            by_provider.setdefault(li.provider_name, []).append(li)
        for name, spec in self.latest_config.providers.items():
            if spec.cache_interval is not None and name in by_provider:
                self.cache.put(name, by_provider[name])

    # ---- Evaluators ----

    async def _evaluate(self, generation: int, query: str, names: Sequence[str]):
        evaluators = self.config.evaluators

        async def job() -> list[LoadedItem]:
            return await self._run_evaluators(query, names, evaluators)

        items = await self.debouncer.run(generation, job)
        if items is not None:
            self.post(EvalResults(generation=generation, items=items))

    def _on_eval_results(self, generation: int, items: Sequence[LoadedItem]):
        if not self.debouncer.is_current(generation) or not self.visible:
            logger.debug(
                "Discarding evaluator results for gen %d (current %d)",
                generation,
                self.debouncer.generation,
            )
            return
        self.eval_items = list(items)
        self._render()

    # ---- Background cache ----

    async def _refresh_timer(self):
        while True:
            interval = self.latest_config.min_cache_interval()
            if interval is None:
                self._config_changed.clear()
                await self._config_changed.wait()
                continue
            await asyncio.sleep(interval)
            self.post(CacheRefresh())

    def _refresh_stale_caches(self):
        providers = self.latest_config.providers
        for name in self.cache.stale_providers(providers):
            self._start_cache_reload(name, providers[name])

    def _start_cache_reload(self, name: str, spec: ProviderSpec):
        if name in self._refreshing:
            return
        self._refreshing.add(name)
        self._spawn(self._reload_provider(name, spec), name=f"refresh-{name}")

    async def _reload_provider(self, name: str, spec: ProviderSpec):
        try:
            items = await self._load_providers([name], {name: spec})
        except BaseException:
            # A failed or cancelled reload must not block later refreshes
            self._refreshing.discard(name)
            raise
        self.post(CacheUpdated(provider_name=name, items=items))

    def _on_cache_updated(self, name: str, items: Sequence[LoadedItem]):
        logger.debug("Cache updated: provider='%s', %d items", name, len(items))
        self._refreshing.discard(name)
        self.cache.put(name, items)
        if self.kind is SessionKind.INTERNAL and name in self.active_providers:
            # Swap the refreshed provider's items into the open session
            kept = [li for li in self.loaded_items if li.provider_name != name]
            self._set_loaded_items([*kept, *items])
            self._render()

    # ---- Rendering ----

    def view(self) -> View:
        return View(
            query=self.query,
            items=[li.item for li in self.eval_items] + self.results,
            selected=self.selected,
            external=self.kind is SessionKind.EXTERNAL,
        )

    def _render(self):
        if self.visible:
            self.surface.show(self.view())
