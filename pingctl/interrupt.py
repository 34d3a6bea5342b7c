# mcpeek/pingctl/interrupt.py
"""Race the main operation against Ctrl-C.

The interrupt watcher always wins: once SIGINT arrives the main task is
cancelled and Cancelled is raised, whatever the main task was waiting on.
"""
import asyncio
import signal
import threading

from pinglib.errors import Cancelled
from pinglib.logger import get_logger

log = get_logger("mcpeek.interrupt")

_blocking_threads = []


def _install_sigint(loop, callback):
    if threading.current_thread() is not threading.main_thread():
        # Signals are only delivered to the main thread
        return lambda: None
    try:
        loop.add_signal_handler(signal.SIGINT, callback)
        return lambda: loop.remove_signal_handler(signal.SIGINT)
    except (NotImplementedError, RuntimeError, ValueError):
        # Windows event loops have no add_signal_handler
        previous = signal.signal(signal.SIGINT, lambda signum, frame: loop.call_soon_threadsafe(callback))
        return lambda: signal.signal(signal.SIGINT, previous)


async def run_interruptible(coro):
    loop = asyncio.get_running_loop()
    interrupted = asyncio.Event()
    restore = _install_sigint(loop, interrupted.set)
    main = asyncio.ensure_future(coro)
    watcher = asyncio.ensure_future(interrupted.wait())
    try:
        done, _ = await asyncio.wait({main, watcher}, return_when=asyncio.FIRST_COMPLETED)
        if watcher in done:
            log.debug("Interrupted, cancelling pending operation")
            main.cancel()
            await asyncio.gather(main, return_exceptions=True)
            raise Cancelled("interrupted")
        return main.result()
    finally:
        watcher.cancel()
        restore()


def _resolve(future, result=None, error=None):
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


async def run_blocking(func, *args):
    """Run `func` in a daemon thread so a pending prompt never blocks cancellation."""
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def worker():
        try:
            outcome = (func(*args), None)
        except Exception as e:
            outcome = (None, e)
        try:
            loop.call_soon_threadsafe(_resolve, future, *outcome)
        except RuntimeError:
            # The loop already shut down after an interrupt
            log.debug("Blocking call finished after the loop closed")

    thread = threading.Thread(target=worker, name="mcpeek-blocking", daemon=True)
    _blocking_threads.append(thread)
    thread.start()
    return await future


def has_pending_blocking():
    return any(t.is_alive() for t in _blocking_threads)
