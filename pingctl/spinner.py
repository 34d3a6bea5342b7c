# mcpeek/pingctl/spinner.py
import asyncio
import sys

from tqdm import tqdm

from pinglib.config import SPINNER_INTERVAL

SHOW_CURSOR = "\x1b[?25h"


class Spinner:
    FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"

    def __init__(self, file=None, disable=None):
        # disable=None lets tqdm turn itself off when stderr is not a TTY
        self.bar = tqdm(total=None, bar_format="{desc}", file=file or sys.stderr,
                        leave=False, disable=disable)
        self.message = ""
        self.ticks = 0

    def _draw(self):
        frame = self.FRAMES[self.ticks % len(self.FRAMES)]
        self.bar.set_description_str(f"{frame} {self.message}")

    def set_message(self, message):
        self.message = message
        self._draw()

    def tick(self):
        self.ticks += 1
        self._draw()

    def finish_and_clear(self):
        self.bar.close()


async def spin(awaitable, spinner, interval=SPINNER_INTERVAL):
    """Await `awaitable`, ticking `spinner` every `interval` seconds meanwhile."""
    task = asyncio.ensure_future(awaitable)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=interval)
            if done:
                return task.result()
            spinner.tick()
    finally:
        if not task.done():
            task.cancel()
        spinner.finish_and_clear()


def show_cursor(stream=None):
    stream = stream or sys.stderr
    if stream.isatty():
        stream.write(SHOW_CURSOR)
        stream.flush()
