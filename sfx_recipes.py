"""Graph builders for the four UI effects.

Each builder takes the context, the node to feed (the master gain), and
the invocation's start time ``t0``. Every breakpoint is an offset from
``t0``, so overlapping invocations never touch each other's timelines.
Sources are scheduled before the graph is attached to ``output``; the
audio thread only ever sees complete graphs.
"""

import numpy as np

# Target for exponential decays, an exponential ramp cannot reach zero
SILENCE = 0.001

SUCCESS_FUNDAMENTAL = 330.0
SUCCESS_HARMONICS = (1, 1.25, 1.5, 2, 4)
SUCCESS_DETUNE_CENTS = 6.0


class Graph:
    """The nodes one effect invocation created."""

    def __init__(self, name, ctx, t0):
        self.name = name
        self.ctx = ctx
        self.t0 = t0
        self.nodes = []
        self.sources = []

    @property
    def stop_time(self):
        return max(src.end_time() for src in self.sources)

    def oscillator(self, type):
        osc = self.ctx.create_oscillator()
        osc.type = type
        self.nodes.append(osc)
        return osc

    def noise(self, duration, rng):
        sr = self.ctx.sample_rate
        buf = self.ctx.create_buffer(1, int(sr * duration), sr)
        buf.get_channel_data(0)[:] = rng.uniform(-1.0, 1.0, buf.length)

        src = self.ctx.create_buffer_source()
        src.buffer = buf
        self.nodes.append(src)
        return src

    def filter(self, type, q):
        flt = self.ctx.create_biquad_filter()
        flt.type = type
        flt.Q.value = q
        self.nodes.append(flt)
        return flt

    def gain(self):
        g = self.ctx.create_gain()
        self.nodes.append(g)
        return g

    def schedule(self, source, start, stop):
        source.start(start)
        source.stop(stop)
        self.sources.append(source)


def build_hover(ctx, output, t0, rng=None):
    """Telemetry tick: a short, quiet upward sine chirp."""
    g = Graph("hover", ctx, t0)

    osc = g.oscillator("sine")
    osc.frequency.set_value_at_time(2200, t0)
    osc.frequency.exponential_ramp_to_value_at_time(2800, t0 + 0.04)

    env = g.gain()
    env.gain.set_value_at_time(0, t0)
    env.gain.linear_ramp_to_value_at_time(0.05, t0 + 0.01)
    env.gain.exponential_ramp_to_value_at_time(SILENCE, t0 + 0.05)

    g.schedule(osc, t0, t0 + 0.06)
    osc.connect(env).connect(output)
    return g


def build_click(ctx, output, t0, rng=None):
    """Actuation: a square-wave pitch drop plus a bandpassed noise snap."""
    rng = rng if rng is not None else np.random.default_rng()
    g = Graph("click", ctx, t0)

    # Servo thud
    osc = g.oscillator("square")
    osc.frequency.set_value_at_time(800, t0)
    osc.frequency.exponential_ramp_to_value_at_time(120, t0 + 0.12)

    thud = g.gain()
    thud.gain.set_value_at_time(0.06, t0)
    thud.gain.exponential_ramp_to_value_at_time(SILENCE, t0 + 0.15)

    # Latch snap
    noise = g.noise(0.06, rng)
    band = g.filter("bandpass", 1.2)
    band.frequency.value = 2500

    snap = g.gain()
    snap.gain.set_value_at_time(0.08, t0)
    snap.gain.exponential_ramp_to_value_at_time(SILENCE, t0 + 0.05)

    g.schedule(osc, t0, t0 + 0.16)
    g.schedule(noise, t0, t0 + 0.06)
    osc.connect(thud).connect(output)
    noise.connect(band).connect(snap).connect(output)
    return g


def build_zoom(ctx, output, t0, rng=None):
    """Power-up sweep: rising sawtooth through an opening resonant lowpass."""
    g = Graph("zoom", ctx, t0)

    osc = g.oscillator("sawtooth")
    osc.frequency.set_value_at_time(100, t0)
    osc.frequency.linear_ramp_to_value_at_time(800, t0 + 0.3)

    lowpass = g.filter("lowpass", 8)
    lowpass.frequency.set_value_at_time(200, t0)
    lowpass.frequency.exponential_ramp_to_value_at_time(8000, t0 + 0.3)

    env = g.gain()
    env.gain.set_value_at_time(0, t0)
    env.gain.linear_ramp_to_value_at_time(0.1, t0 + 0.05)
    env.gain.exponential_ramp_to_value_at_time(SILENCE, t0 + 0.3)

    g.schedule(osc, t0, t0 + 0.4)
    osc.connect(lowpass).connect(env).connect(output)
    return g


def build_success(ctx, output, t0, rng=None,
                  fundamental=SUCCESS_FUNDAMENTAL, harmonics=SUCCESS_HARMONICS):
    """System online: a detuned harmonic chord swelling open, plus a sparkle."""
    rng = rng if rng is not None else np.random.default_rng()
    g = Graph("success", ctx, t0)
    voices = []

    for ratio in harmonics:
        osc = g.oscillator("triangle")
        osc.frequency.set_value_at_time(fundamental * ratio, t0)
        osc.detune.value = rng.uniform(-SUCCESS_DETUNE_CENTS, SUCCESS_DETUNE_CENTS)

        lowpass = g.filter("lowpass", 4)
        lowpass.frequency.set_value_at_time(100, t0)
        lowpass.frequency.exponential_ramp_to_value_at_time(4000, t0 + 0.3)

        env = g.gain()
        env.gain.set_value_at_time(0, t0)
        env.gain.linear_ramp_to_value_at_time(0.04, t0 + 0.02)
        env.gain.exponential_ramp_to_value_at_time(SILENCE, t0 + 1.3)

        g.schedule(osc, t0, t0 + 1.4)
        osc.connect(lowpass).connect(env)
        voices.append(env)

    sparkle = g.oscillator("sine")
    sparkle.frequency.set_value_at_time(fundamental * 8, t0)
    sparkle.frequency.exponential_ramp_to_value_at_time(fundamental * 12, t0 + 1.0)

    shimmer = g.gain()
    shimmer.gain.set_value_at_time(0, t0)
    shimmer.gain.linear_ramp_to_value_at_time(0.015, t0 + 0.15)
    shimmer.gain.linear_ramp_to_value_at_time(0, t0 + 0.3)

    g.schedule(sparkle, t0, t0 + 0.35)
    sparkle.connect(shimmer)
    voices.append(shimmer)

    for env in voices:
        env.connect(output)
    return g


RECIPES = {
    "hover": build_hover,
    "click": build_click,
    "zoom": build_zoom,
    "success": build_success,
}
