"""Background plot construction with a single hand-off to the viewer.

A viewer event loop cannot block while a large alignment is loaded.
:class:`PlotLoader` runs the construction on a worker thread and exposes
the outcome through a :class:`concurrent.futures.Future`; the event loop
calls :meth:`PlotLoader.poll` each frame and receives the finished plot
(or the construction error) exactly once.

Examples
--------
>>> from alnview.loader import PlotLoader
>>> from alnview.plot import build_plot
>>> loader = PlotLoader()
>>> future = loader.start(build_plot, [(0, 0, 0, 10, 0, 10, False)])
>>> plot = future.result()
>>> loader.poll() is plot
True
>>> loader.poll() is None
True
"""

from __future__ import annotations

from concurrent.futures import Future
import logging
import threading
from typing import Any, Callable, Optional

from alnview.plot import Plot

_log = logging.getLogger(__name__)


class PlotLoader:
    """Run one plot construction at a time off the calling thread.

    Starting a new load replaces the current handle; the superseded
    construction still runs to completion but its result is ignored.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._future: Optional[Future] = None
        self._description: str = ''

    @property
    def is_loading(self) -> bool:
        """``True`` while the current construction has not finished."""
        with self._lock:
            return self._future is not None and not self._future.done()

    @property
    def description(self) -> str:
        """Label of the current (or last started) load, for status messages."""
        return self._description

    def start(
        self,
        build_fn: Callable[..., Plot],
        *args: Any,
        description: str = '',
        **kwargs: Any,
    ) -> Future:
        """Start building a plot on a daemon worker thread.

        Parameters
        ----------
        build_fn : callable
            Function returning a :class:`~alnview.plot.Plot`, typically
            :func:`~alnview.plot.build_plot`.
        *args, **kwargs
            Passed to *build_fn*.
        description : str, optional
            Label used in log messages, e.g. the input file name.

        Returns
        -------
        concurrent.futures.Future
            Resolves to the plot, or to the exception *build_fn* raised.
        """
        future: Future = Future()
        future.set_running_or_notify_cancel()

        def run() -> None:
            _log.info('Loading %s', description or 'plot')
            try:
                plot = build_fn(*args, **kwargs)
            except Exception as exc:
                _log.error('Failed to load %s: %s', description or 'plot', exc)
                future.set_exception(exc)
            else:
                _log.info('Loaded %s: %r', description or 'plot', plot)
                future.set_result(plot)

        with self._lock:
            if self._future is not None and not self._future.done():
                _log.debug('Superseding unfinished load of %s', self._description or 'plot')
            self._future = future
            self._description = description
        threading.Thread(target=run, name='alnview-loader', daemon=True).start()
        return future

    def poll(self) -> Optional[Plot]:
        """Collect the finished plot without blocking.

        Returns
        -------
        Plot or None
            The plot the first time it is polled after completion; ``None``
            while loading, when nothing was started, or once the result has
            been taken.

        Raises
        ------
        Exception
            The construction error, raised once in place of the plot.
        """
        with self._lock:
            future = self._future
            if future is None or not future.done():
                return None
            self._future = None
        exc = future.exception()
        if exc is not None:
            raise exc
        return future.result()
