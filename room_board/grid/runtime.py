# Event loop host bridging the threaded web layer and the board
import asyncio
import logging
import threading
from typing import Any, Callable

from .grid_assembler import GridAssembler

logger = logging.getLogger(__name__)


class BoardRuntime:
    """
    Hosts the board's event loop on a daemon thread.

    Flask serves requests from several threads, so view code never touches the assembler directly:
    call() runs a function on the loop thread and waits for its result, keeping a single logical thread in charge of the state.
    """

    CALL_TIMEOUT = 10

    def __init__(self, assembler: GridAssembler):
        self.assembler = assembler
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_loop, name="room-board-loop", daemon=True)

    def _run_loop(self):
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def start(self):
        self._thread.start()
        # The first refresh runs in the background, requests see the loading state until it commits
        asyncio.run_coroutine_threadsafe(self.assembler.start(), self._loop)
        logger.info("Board runtime started")

    def call(self, fn: Callable[..., Any], *args) -> Any:
        async def invoke():
            return fn(*args)
        return asyncio.run_coroutine_threadsafe(invoke(), self._loop).result(self.CALL_TIMEOUT)

    def refresh(self, wait: bool = False):
        # Without wait the result simply shows up on the next render
        future = asyncio.run_coroutine_threadsafe(self.assembler.refresh(), self._loop)
        if wait:
            future.result(self.CALL_TIMEOUT)

    def stop(self):
        if not self._thread.is_alive():
            return
        asyncio.run_coroutine_threadsafe(self.assembler.close(), self._loop).result(self.CALL_TIMEOUT)
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(self.CALL_TIMEOUT)
        if not self._thread.is_alive():
            self._loop.close()
        logger.info("Board runtime stopped")
