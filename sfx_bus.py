import logging
import threading

import numpy as np

import sfx_state
from sfx_engine import RUNNING, SUSPENDED, create_context

logger = logging.getLogger(__name__)


class OutputBus:
    """The one shared output: a processing context and its master gain.

    Created lazily on the first sound request and kept for the life of
    the process. Until a backend opens, and whenever the context is not
    running, every effect is a no-op. Graph construction from several
    threads is serialised through ``lock``.
    """

    def __init__(self, backends=None):
        self.backends = backends
        self.ctx = None
        self.master_gain = None
        self.rng = None
        self.lock = threading.RLock()
        self._warned = False

    def ensure_active(self):
        with self.lock:
            if self.ctx is None:
                self._init()
            if self.ctx is None:
                return False
            self.resume()
            return self.ctx.state == RUNNING

    def _init(self):
        # Retried on every request, a device may show up later
        ctx = create_context(self.backends)
        if ctx is None:
            if not self._warned:
                self._warned = True
                logger.warning("no audio output available, sound effects disabled")
            return

        s = sfx_state.shared
        master = ctx.create_gain()
        master.gain.value = s.master_volume
        master.connect(ctx.destination)

        self.ctx = ctx
        self.master_gain = master
        self.rng = np.random.default_rng(s.seed)
        if self._warned:
            logger.info("audio output available, sound effects enabled")

    def resume(self):
        if self.ctx.state != SUSPENDED:
            return
        try:
            self.ctx.resume()
        except Exception as e:
            logger.debug("audio context resume failed: %s", e)

    def shutdown(self):
        with self.lock:
            if self.ctx is not None:
                self.ctx.close()
