"""Run native codec calls in a throwaway worker process.

A native library that segfaults or aborts takes its whole process down.
``IsolatedCall`` moves the call into a single-use spawned worker so that such
a termination, or any error the library reports, comes back as a
``NativeCodecFailure`` instead. This is the only place in the package where
that conversion happens.
"""

from __future__ import annotations

import logging
import multiprocessing
from concurrent.futures import ProcessPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from typing import Any, Callable

from imagepress.errors import NativeCodecFailure

logger = logging.getLogger(__name__)


class IsolatedCall:
    """Wrap a module-level callable so it runs out of process.

    Args:
        func: Picklable (module-level) function performing the native call.
        codec: Codec name used in error messages.
        start_method: multiprocessing start method for the worker.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        codec: str,
        start_method: str = "spawn",
    ) -> None:
        self.func = func
        self.codec = codec
        self.start_method = start_method

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        context = multiprocessing.get_context(self.start_method)
        logger.debug("Running %s in an isolated worker", self.codec)
        # A fresh worker per call: a crashed worker never serves a later call.
        with ProcessPoolExecutor(max_workers=1, mp_context=context) as pool:
            future = pool.submit(self.func, *args, **kwargs)
            try:
                return future.result()
            except BrokenProcessPool as exc:
                raise NativeCodecFailure(
                    "native library terminated abnormally", codec=self.codec
                ) from exc
            except Exception as exc:
                raise NativeCodecFailure(
                    f"{type(exc).__name__}: {exc}", codec=self.codec
                ) from exc
