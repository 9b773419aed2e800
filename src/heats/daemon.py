import asyncio
import signal
from dataclasses import dataclass, field
from pathlib import Path

from heats.config import Config, load_config
from heats.errors import ConfigError
from heats.hotkey import HotkeyBridge, QueueActivationSource
from heats.ipc.server import IpcServer
from heats.logger import logging
from heats.runtime import remove_pid, write_pid
from heats.session.coordinator import Coordinator
from heats.session.messages import Activate, ConfigReloaded, ExitMessage
from heats.session.surface import HeadlessSurface, Surface
from heats.watcher import ConfigWatcher

logger = logging.getLogger(__name__)


@dataclass
class DaemonOptions:
    """Everything the daemon needs, built before the event loop starts."""

    config: Config
    socket_path: Path
    config_path: Path | None = None
    watch_config: bool = False
    activation_source: QueueActivationSource = field(default_factory=QueueActivationSource)
    surface: Surface = field(default_factory=HeadlessSurface)


class Daemon:
    options: DaemonOptions
    coordinator: Coordinator
    server: IpcServer

    def __init__(self, options: DaemonOptions):
        self.options = options
        self._stop = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None

    def request_stop(self):
        self._stop.set()

    def _activate_default_mode(self):
        modes = self.coordinator.latest_config.modes
        if not modes:
            logger.warning("No modes configured")
            return
        self.options.activation_source.activate(modes[0].name)

    def _reload_config(self):
        # Runs on the watchdog thread
        try:
            config = load_config(self.options.config_path, strict=True)
        except ConfigError as e:
            logger.warning("Config reload failed, keeping previous config: %s", e)
            return
        assert self._loop is not None
        self._loop.call_soon_threadsafe(self.coordinator.post, ConfigReloaded(config))

    async def run(self):
        self._loop = asyncio.get_running_loop()
        self.coordinator = Coordinator(self.options.config, surface=self.options.surface)
        self.server = IpcServer(self.options.socket_path, self.coordinator.submit_dmenu)
        bridge = HotkeyBridge(
            self.options.activation_source,
            lambda mode_name: self.coordinator.post(Activate(mode_name)),
        )

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._loop.add_signal_handler(sig, self.request_stop)
        self._loop.add_signal_handler(signal.SIGUSR1, self._activate_default_mode)

        watcher: ConfigWatcher | None = None
        if self.options.watch_config and self.options.config_path is not None:
            watcher = ConfigWatcher(self.options.config_path, self._reload_config)
            if not watcher.start():
                watcher = None

        coordinator_task = asyncio.create_task(self.coordinator.run(), name="coordinator")
        bridge_task = asyncio.create_task(bridge.run(), name="hotkey-bridge")
        # A bind failure leaves IPC idle; the rest of the daemon keeps running
        await self.server.start()

        try:
            await self._stop.wait()
        finally:
            logger.info("Shutting down")
            self.coordinator.post(ExitMessage())
            await coordinator_task
            bridge_task.cancel()
            await self.server.stop()
            if watcher is not None:
                watcher.stop()


def run_daemon(options: DaemonOptions):
    write_pid()
    try:
        logger.info("Starting daemon")
        asyncio.run(Daemon(options).run())
    finally:
        remove_pid()
