import logging
import threading

import numpy as np

import sfx_state
from sfx_nodes import (
    AudioBuffer,
    AudioBufferSourceNode,
    AudioDestinationNode,
    BiquadFilterNode,
    Block,
    GainNode,
    OscillatorNode,
)

logger = logging.getLogger(__name__)

SUSPENDED = "suspended"
RUNNING = "running"
CLOSED = "closed"


class AudioContext:
    """Shared clock, node factory and block renderer.

    The clock only moves when blocks are rendered, so ``current_time``
    stands still while the context is suspended.
    """

    name = "base"

    def __init__(self, sample_rate=None, buffer_size=None, channels=None):
        s = sfx_state.shared
        self.sample_rate = sample_rate or s.sample_rate
        self.buffer_size = buffer_size or s.buffer_size
        self.channels = channels or s.channels

        self.state = SUSPENDED
        self.lock = threading.Lock()
        self.destination = AudioDestinationNode(self)

        self._frame = 0
        self.last_samples = np.zeros(self.buffer_size, dtype=np.float32)

    @property
    def current_time(self):
        return self._frame / self.sample_rate

    # --- NODE FACTORIES ---
    def create_oscillator(self):
        return OscillatorNode(self)

    def create_gain(self):
        return GainNode(self)

    def create_biquad_filter(self):
        return BiquadFilterNode(self)

    def create_buffer(self, number_of_channels, length, sample_rate):
        return AudioBuffer(number_of_channels, length, sample_rate)

    def create_buffer_source(self):
        return AudioBufferSourceNode(self)

    # --- RENDERING ---
    def render(self, frame_count):
        if frame_count <= 0:
            return np.zeros(0, dtype=np.float32)
        if self.state != RUNNING:
            # Clock stays put, nothing is rendered
            mono = np.zeros(frame_count, dtype=np.float32)
            self.last_samples = mono
            return mono

        times = (self._frame + np.arange(frame_count)) / self.sample_rate
        mono = self.destination.pull(Block(self._frame, times))
        self._frame += frame_count

        mono = np.clip(mono, -1.0, 1.0).astype(np.float32)

        # Save for Visuals
        self.last_samples = mono
        return mono

    def interleave(self, mono):
        return np.repeat(mono, self.channels).astype(np.float32)

    # --- LIFECYCLE ---
    def resume(self):
        if self.state == CLOSED:
            raise RuntimeError("cannot resume a closed audio context")
        if self.state == SUSPENDED:
            # Running before the stream starts, its first callback must render
            self.state = RUNNING
            try:
                self._start()
            except Exception:
                self.state = SUSPENDED
                raise

    def suspend(self):
        if self.state == RUNNING:
            self.state = SUSPENDED
            self._stop()

    def close(self):
        if self.state == CLOSED:
            return
        if self.state == RUNNING:
            self._stop()
        self._close()
        self.state = CLOSED

    def _start(self):
        pass

    def _stop(self):
        pass

    def _close(self):
        pass


class PyAudioContext(AudioContext):
    name = "pyaudio"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        import pyaudio
        self._pyaudio = pyaudio

        self.p = pyaudio.PyAudio()
        try:
            # Opened stopped, resume() starts it
            self.stream = self.p.open(
                format=pyaudio.paFloat32,
                channels=self.channels,
                rate=self.sample_rate,
                output=True,
                frames_per_buffer=self.buffer_size,
                stream_callback=self.callback,
                start=False
            )
        except Exception:
            self.p.terminate()
            raise

    def callback(self, in_data, frame_count, time_info, status):
        try:
            mono = self.render(frame_count)
        except Exception:
            logger.exception("render failed, emitting silence")
            mono = np.zeros(frame_count, dtype=np.float32)
        return (self.interleave(mono).tobytes(), self._pyaudio.paContinue)

    def _start(self):
        self.stream.start_stream()

    def _stop(self):
        self.stream.stop_stream()

    def _close(self):
        self.stream.close()
        self.p.terminate()


class SoundDeviceContext(AudioContext):
    name = "sounddevice"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        import sounddevice as sd

        self.stream = sd.OutputStream(
            samplerate=self.sample_rate,
            channels=self.channels,
            blocksize=self.buffer_size,
            dtype="float32",
            callback=self.callback,
        )

    def callback(self, outdata, frames, time_info, status):
        try:
            mono = self.render(frames)
        except Exception:
            logger.exception("render failed, emitting silence")
            mono = np.zeros(frames, dtype=np.float32)
        outdata[:] = mono[:, np.newaxis]

    def _start(self):
        self.stream.start()

    def _stop(self):
        self.stream.stop()

    def _close(self):
        self.stream.close()


class OfflineAudioContext(AudioContext):
    """No device. The caller drives the clock with ``advance``."""

    name = "offline"

    def advance(self, seconds):
        frames = int(round(seconds * self.sample_rate))
        chunks = []
        while frames > 0:
            n = min(frames, self.buffer_size)
            chunks.append(self.render(n))
            frames -= n
        if not chunks:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(chunks)


BACKENDS = {
    "pyaudio": PyAudioContext,
    "sounddevice": SoundDeviceContext,
    "offline": OfflineAudioContext,
}


def create_context(backends=None):
    """Open the first backend that works, or return None.

    ``backends`` holds backend names or context factories and defaults
    to ``shared.backends``.
    """
    if backends is None:
        backends = sfx_state.shared.backends

    for backend in backends:
        factory = BACKENDS.get(backend) if isinstance(backend, str) else backend
        label = backend if isinstance(backend, str) else getattr(backend, "name", repr(backend))
        if factory is None:
            logger.info("unknown audio backend %r, skipping", backend)
            continue
        try:
            ctx = factory()
        except Exception as e:
            logger.info("audio backend %s unavailable: %s", label, e)
            continue
        logger.info("using audio backend %s at %d Hz", label, ctx.sample_rate)
        return ctx

    return None
