import numpy as np
import pytest

from sfx_nodes import EXPONENTIAL, AudioParam
from sfx_recipes import RECIPES, SILENCE, build_success

DURATIONS = {"hover": 0.06, "click": 0.16, "zoom": 0.4, "success": 1.4}


def build(ctx, name, t0=0.25):
    master = ctx.create_gain()
    master.connect(ctx.destination)
    return RECIPES[name](ctx, master, t0, rng=np.random.default_rng(7))


def params(node):
    return [v for v in vars(node).values() if isinstance(v, AudioParam)]


@pytest.mark.parametrize("name", sorted(RECIPES))
def test_sources_stop_after_they_start(ctx, name):
    graph = build(ctx, name)
    assert graph.sources
    for src in graph.sources:
        assert src.start_time == graph.t0
        assert src.end_time() > src.start_time


@pytest.mark.parametrize("name", sorted(RECIPES))
def test_exponential_targets_stay_positive(ctx, name):
    graph = build(ctx, name)
    ramps = [bp for node in graph.nodes for p in params(node)
             for bp in p.events if bp.kind == EXPONENTIAL]
    assert ramps
    assert all(bp.value > 0 for bp in ramps)


@pytest.mark.parametrize("name", sorted(RECIPES))
def test_breakpoints_are_offsets_from_t0(ctx, name):
    graph = build(ctx, name, t0=3.0)
    for node in graph.nodes:
        for p in params(node):
            assert all(bp.time >= 3.0 for bp in p.events)


@pytest.mark.parametrize("name,duration", sorted(DURATIONS.items()))
def test_recipe_durations(ctx, name, duration):
    graph = build(ctx, name, t0=1.0)
    assert graph.stop_time == pytest.approx(1.0 + duration)


def test_envelopes_decay_to_silence_not_zero(ctx):
    graph = build(ctx, "hover")
    env = [n for n in graph.nodes if hasattr(n, "gain")][0]
    last = env.gain.events[-1]
    assert last.kind == EXPONENTIAL
    assert last.value == SILENCE
    assert env.gain.value_at(graph.t0 + 0.01) == pytest.approx(0.05)


def test_click_has_tone_and_noise_layers(ctx):
    graph = build(ctx, "click")
    kinds = sorted(type(src).__name__ for src in graph.sources)
    assert kinds == ["AudioBufferSourceNode", "OscillatorNode"]

    noise = [s for s in graph.sources if hasattr(s, "buffer")][0]
    data = noise.buffer.get_channel_data(0)
    assert len(data) == int(ctx.sample_rate * 0.06)
    assert data.min() >= -1.0 and data.max() < 1.0
    assert data.std() > 0.3


def test_zoom_sweeps_pitch_and_cutoff_upward(ctx):
    graph = build(ctx, "zoom", t0=0.0)
    osc, lowpass = graph.nodes[0], graph.nodes[1]
    assert osc.type == "sawtooth"
    assert osc.frequency.value_at(0.15) == pytest.approx(450)
    assert lowpass.frequency.value_at(0.3) == pytest.approx(8000)
    assert lowpass.Q.value == 8


def test_success_detune_is_small_and_seeded(ctx):
    a = build_success(ctx, ctx.destination, 0.0, rng=np.random.default_rng(1))
    b = build_success(ctx, ctx.destination, 0.0, rng=np.random.default_rng(1))
    detune_a = [s.detune.value for s in a.sources]
    detune_b = [s.detune.value for s in b.sources]
    assert detune_a == detune_b
    assert all(abs(d) <= 6.0 for d in detune_a)


def test_success_accepts_other_harmonic_tables(ctx):
    graph = build_success(ctx, ctx.destination, 0.0, fundamental=220, harmonics=(1, 2))
    assert len(graph.sources) == 3
    assert graph.sources[-1].frequency.value_at(0.0) == pytest.approx(220 * 8)
