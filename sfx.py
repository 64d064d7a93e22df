"""Procedural UI sound effects.

The five calls the UI layer needs. Each ``play_*`` is fire-and-forget:
it builds a fresh graph on the shared output bus and returns at once,
the sound itself renders on the audio thread. Sound is cosmetic, so a
missing audio device or a failure while building a graph never reaches
the caller.
"""
import logging

import sfx_state
from sfx_bus import OutputBus
from sfx_recipes import RECIPES

logger = logging.getLogger(__name__)

# The process-wide output, opened on the first unmuted play
bus = OutputBus()


def _play(name):
    if sfx_state.shared.muted:
        return
    try:
        with bus.lock:
            if not bus.ensure_active():
                return
            t0 = bus.ctx.current_time
            graph = RECIPES[name](bus.ctx, bus.master_gain, t0, rng=bus.rng)
        logger.debug("%s: %d nodes at t=%.3f, ends t=%.3f",
                     name, len(graph.nodes), t0, graph.stop_time)
    except Exception:
        logger.exception("failed to play %s effect", name)


def play_hover():
    _play("hover")


def play_click():
    _play("click")


def play_zoom():
    _play("zoom")


def play_success():
    _play("success")


def toggle_mute():
    s = sfx_state.shared
    s.muted = not s.muted
    return s.muted
