import pytest

import sfx
import sfx_state
from sfx_bus import OutputBus
from sfx_engine import OfflineAudioContext


class RecordingContext(OfflineAudioContext):
    """Offline context that remembers every node it hands out."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.created = []
        self.resume_calls = 0

    def _record(self, node):
        self.created.append(node)
        return node

    def create_oscillator(self):
        return self._record(super().create_oscillator())

    def create_gain(self):
        return self._record(super().create_gain())

    def create_biquad_filter(self):
        return self._record(super().create_biquad_filter())

    def create_buffer_source(self):
        return self._record(super().create_buffer_source())

    def resume(self):
        self.resume_calls += 1
        super().resume()


@pytest.fixture(autouse=True)
def shared_state(monkeypatch):
    monkeypatch.setattr(sfx_state.shared, "muted", False)
    monkeypatch.setattr(sfx_state.shared, "seed", 1234)
    return sfx_state.shared


@pytest.fixture
def bus(monkeypatch):
    b = OutputBus(backends=[RecordingContext])
    monkeypatch.setattr(sfx, "bus", b)
    return b


@pytest.fixture
def ctx():
    c = RecordingContext()
    c.resume()
    return c
