"""Signal graph nodes.

Every node renders in blocks. A block is the array of absolute sample
times the context is about to emit, and each node returns one float64
sample per entry. Nodes pull from their inputs, so a graph is alive
exactly as long as something downstream keeps pulling it.
"""
import math
from collections import namedtuple

import numpy as np
from scipy.signal import lfilter

SET = "set"
LINEAR = "linear"
EXPONENTIAL = "exponential"

Breakpoint = namedtuple("Breakpoint", "time value kind")
Block = namedtuple("Block", "frame times")


class SchedulingError(ValueError):
    """A schedule that can never be rendered."""


# ============================================================================
# PARAMETERS
# ============================================================================

class AudioParam:
    """A value that can follow a curve of breakpoints over time.

    Before the first breakpoint the intrinsic ``value`` applies. A ramp
    runs from the previous breakpoint's (time, value) to its own, and
    every breakpoint holds its value until the next one takes over.
    """

    def __init__(self, value, min_value=-math.inf, max_value=math.inf):
        self.value = float(value)
        self.min_value = min_value
        self.max_value = max_value
        self.events = []

    def _insert(self, bp):
        if not math.isfinite(bp.time) or bp.time < 0:
            raise SchedulingError(f"invalid breakpoint time {bp.time!r}")
        # Sorted by time, equal times keep call order
        idx = len(self.events)
        while idx > 0 and self.events[idx - 1].time > bp.time:
            idx -= 1
        self.events.insert(idx, bp)
        return self

    def set_value_at_time(self, value, when):
        return self._insert(Breakpoint(float(when), float(value), SET))

    def linear_ramp_to_value_at_time(self, value, when):
        return self._insert(Breakpoint(float(when), float(value), LINEAR))

    def exponential_ramp_to_value_at_time(self, value, when):
        if value <= 0:
            raise SchedulingError(
                f"exponential ramp target must be positive, got {value!r}")
        return self._insert(Breakpoint(float(when), float(value), EXPONENTIAL))

    def render(self, times):
        out = np.full(len(times), self.value, dtype=np.float64)
        prev_time, prev_value = 0.0, self.value

        for bp in self.events:
            if bp.kind != SET and bp.time > prev_time:
                seg = (times >= prev_time) & (times < bp.time)
                if seg.any():
                    frac = (times[seg] - prev_time) / (bp.time - prev_time)
                    if bp.kind == LINEAR:
                        out[seg] = prev_value + (bp.value - prev_value) * frac
                    elif prev_value > 0:
                        out[seg] = prev_value * (bp.value / prev_value) ** frac
                    else:
                        # No exponential path out of zero, hold until the end
                        out[seg] = prev_value
            out[times >= bp.time] = bp.value
            prev_time, prev_value = bp.time, bp.value

        return np.clip(out, self.min_value, self.max_value)

    def value_at(self, when):
        return float(self.render(np.array([when], dtype=np.float64))[0])


# ============================================================================
# BASE NODES
# ============================================================================

class AudioNode:
    def __init__(self, context):
        self.context = context
        self.inputs = []
        self._connected = False
        self._cache_frame = None
        self._cache = None

    def connect(self, destination):
        if destination.context is not self.context:
            raise ValueError("cannot connect nodes from different contexts")
        with self.context.lock:
            destination.inputs.append(self)
            destination._connected = True
        return destination

    @property
    def finished(self):
        """True once every input has played out and been released."""
        return self._connected and not self.inputs

    def pull(self, block):
        # A node feeding several consumers renders once per block
        if self._cache_frame != block.frame:
            self._cache = self.process(block)
            self._cache_frame = block.frame
        return self._cache

    def process(self, block):
        raise NotImplementedError

    def _mix_inputs(self, block, release=True):
        out = np.zeros(len(block.times), dtype=np.float64)
        for node in list(self.inputs):
            out += node.pull(block)
        if release:
            with self.context.lock:
                self.inputs = [n for n in self.inputs if not n.finished]
        return out


class AudioScheduledSourceNode(AudioNode):
    def __init__(self, context):
        super().__init__(context)
        self.start_time = None
        self.stop_time = None
        self._rendered_until = 0.0

    def start(self, when=0.0):
        if self.start_time is not None:
            raise SchedulingError("start() may only be called once")
        if when < 0:
            raise SchedulingError(f"negative start time {when!r}")
        self.start_time = float(when)

    def stop(self, when):
        if self.start_time is None:
            raise SchedulingError("stop() called before start()")
        if when <= self.start_time:
            raise SchedulingError(
                f"stop time {when!r} must be after start time {self.start_time!r}")
        self.stop_time = float(when)

    def end_time(self):
        return self.stop_time

    @property
    def finished(self):
        end = self.end_time()
        return end is not None and self._rendered_until >= end

    def active(self, times):
        if self.start_time is None:
            return np.zeros(len(times), dtype=bool)
        mask = times >= self.start_time
        end = self.end_time()
        if end is not None:
            mask &= times < end
        return mask

    def pull(self, block):
        out = super().pull(block)
        self._rendered_until = block.times[-1] + 1.0 / self.context.sample_rate
        return out


# ============================================================================
# SOURCES
# ============================================================================

def _sine(phase):
    return np.sin(2 * np.pi * phase)

def _square(phase):
    return np.where(phase < 0.5, 1.0, -1.0)

def _sawtooth(phase):
    return 2.0 * ((phase + 0.5) % 1.0) - 1.0

def _triangle(phase):
    return 1.0 - 4.0 * np.abs(((phase + 0.25) % 1.0) - 0.5)

WAVEFORMS = {
    "sine": _sine,
    "square": _square,
    "sawtooth": _sawtooth,
    "triangle": _triangle,
}


class OscillatorNode(AudioScheduledSourceNode):
    def __init__(self, context, type="sine", frequency=440.0, detune=0.0):
        super().__init__(context)
        nyquist = context.sample_rate / 2.0
        self.type = type
        self.frequency = AudioParam(frequency, -nyquist, nyquist)
        self.detune = AudioParam(detune)  # cents
        self._phase = 0.0

    @property
    def type(self):
        return self._type

    @type.setter
    def type(self, value):
        if value not in WAVEFORMS:
            raise ValueError(f"unknown waveform {value!r}")
        self._type = value

    def process(self, block):
        out = np.zeros(len(block.times), dtype=np.float64)
        active = self.active(block.times)
        if not active.any():
            return out

        t = block.times[active]
        freq = self.frequency.render(t) * np.exp2(self.detune.render(t) / 1200.0)

        # Phase in cycles, carried across blocks
        inc = freq / self.context.sample_rate
        phases = (self._phase + np.cumsum(inc) - inc) % 1.0
        self._phase = float((self._phase + inc.sum()) % 1.0)

        out[active] = WAVEFORMS[self._type](phases)
        return out


class AudioBuffer:
    def __init__(self, number_of_channels, length, sample_rate):
        self.sample_rate = sample_rate
        self._data = np.zeros((number_of_channels, length), dtype=np.float32)

    @property
    def length(self):
        return self._data.shape[1]

    @property
    def duration(self):
        return self.length / self.sample_rate

    def get_channel_data(self, channel):
        return self._data[channel]


class AudioBufferSourceNode(AudioScheduledSourceNode):
    def __init__(self, context, buffer=None):
        super().__init__(context)
        self.buffer = buffer

    def end_time(self):
        # Whichever comes first, the scheduled stop or the end of the buffer
        ends = []
        if self.stop_time is not None:
            ends.append(self.stop_time)
        if self.buffer is not None and self.start_time is not None:
            ends.append(self.start_time + self.buffer.duration)
        return min(ends) if ends else None

    def process(self, block):
        out = np.zeros(len(block.times), dtype=np.float64)
        active = self.active(block.times)
        if self.buffer is None or self.buffer.length == 0 or not active.any():
            return out

        positions = np.flatnonzero(active)
        offsets = (block.times[positions] - self.start_time) * self.buffer.sample_rate
        idx = np.floor(offsets + 1e-6).astype(np.int64)
        keep = idx < self.buffer.length
        out[positions[keep]] = self.buffer.get_channel_data(0)[idx[keep]]
        return out


# ============================================================================
# PROCESSORS
# ============================================================================

FILTER_TYPES = ("lowpass", "highpass", "bandpass")


class BiquadFilterNode(AudioNode):
    """Second order IIR filter with RBJ cookbook coefficients.

    Cutoff and Q are sampled once per block, the filter state carries
    over between blocks.
    """

    def __init__(self, context, type="lowpass", frequency=350.0, Q=1.0):
        super().__init__(context)
        self.type = type
        self.frequency = AudioParam(frequency, 10.0, context.sample_rate / 2.0)
        self.Q = AudioParam(Q, 1e-4, 1000.0)
        self._zi = np.zeros(2, dtype=np.float64)

    @property
    def type(self):
        return self._type

    @type.setter
    def type(self, value):
        if value not in FILTER_TYPES:
            raise ValueError(f"unknown filter type {value!r}")
        self._type = value

    def coefficients(self, frequency, q):
        w0 = 2 * math.pi * frequency / self.context.sample_rate
        cos_w0 = math.cos(w0)
        alpha = math.sin(w0) / (2 * q)

        if self._type == "lowpass":
            b = [(1 - cos_w0) / 2, 1 - cos_w0, (1 - cos_w0) / 2]
        elif self._type == "highpass":
            b = [(1 + cos_w0) / 2, -(1 + cos_w0), (1 + cos_w0) / 2]
        else:
            b = [alpha, 0.0, -alpha]
        a = [1 + alpha, -2 * cos_w0, 1 - alpha]

        return np.array(b) / a[0], np.array(a) / a[0]

    def process(self, block):
        x = self._mix_inputs(block)
        t = block.times[0]
        b, a = self.coefficients(self.frequency.value_at(t), self.Q.value_at(t))
        y, self._zi = lfilter(b, a, x, zi=self._zi)
        return y


class GainNode(AudioNode):
    def __init__(self, context, gain=1.0):
        super().__init__(context)
        self.gain = AudioParam(gain)

    def process(self, block):
        return self._mix_inputs(block) * self.gain.render(block.times)


class AudioDestinationNode(AudioNode):
    """Final sink of a context. Never releases its inputs."""

    def process(self, block):
        return self._mix_inputs(block, release=False)
