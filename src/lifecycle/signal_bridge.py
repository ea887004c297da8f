"""
Signal bridge: OS termination signals → ShutdownSignal.
"""

import asyncio
import signal
from typing import Dict, Iterable, Optional

from lifecycle.shutdown_signal import ShutdownSignal
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.SIGNAL)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SignalBridge:
    """
    Fires the shutdown signal once on the first SIGINT / SIGTERM.

    Later signals are logged and ignored.

    Example:
        bridge = SignalBridge(supervisor.shutdown_signal)
        bridge.install(asyncio.get_running_loop())
        try:
            await supervisor.run()
        finally:
            bridge.uninstall()
    """

    def __init__(self, shutdown_signal: ShutdownSignal, signals: Iterable[signal.Signals] = DEFAULT_SIGNALS):
        self._shutdown_signal = shutdown_signal
        self._signals = tuple(signals)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._via_loop = False
        self._previous: Dict[signal.Signals, object] = {}
        self._received: Optional[signal.Signals] = None

    def _handle(self, sig: signal.Signals) -> None:
        if self._received is not None:
            log.warn(f"Signal {sig.name} received, shutdown already in progress ({self._received.name})")
            return
        self._received = sig
        log.info(f"Signal {sig.name} received → triggering shutdown")
        self._shutdown_signal.fire(sig.name)

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        """Register handlers on `loop`, or through signal.signal where unsupported."""
        if self._loop is not None:
            raise RuntimeError("Signal bridge already installed")
        self._loop = loop

        try:
            for sig in self._signals:
                loop.add_signal_handler(sig, self._handle, sig)
            self._via_loop = True
        except NotImplementedError:
            # e.g. Windows proactor loop
            for sig in self._signals:
                self._previous[sig] = signal.signal(
                    sig, lambda signum, frame: loop.call_soon_threadsafe(self._handle, signal.Signals(signum))
                )
            self._via_loop = False

        names = ", ".join(sig.name for sig in self._signals)
        log.info(f"Signal handlers installed ({names})")

    def uninstall(self) -> None:
        """Restore default handling of the bridged signals."""
        loop = self._loop
        if loop is None:
            return
        for sig in self._signals:
            if self._via_loop:
                loop.remove_signal_handler(sig)
            else:
                signal.signal(sig, self._previous.get(sig, signal.SIG_DFL))
        self._previous.clear()
        self._loop = None
        log.debug("Signal handlers removed")

    @property
    def installed(self) -> bool:
        return self._loop is not None

    @property
    def received(self) -> Optional[signal.Signals]:
        """First signal received, if any."""
        return self._received
