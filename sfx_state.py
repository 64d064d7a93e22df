# sfx_state.py
class AppState:
    def __init__(self):
        # --- Output ---
        self.sample_rate = 44100
        self.buffer_size = 256   # Frames per render block
        self.channels = 2
        self.master_volume = 0.3 # Fixed master gain

        # Backends tried in order, first one that opens wins
        self.backends = ("pyaudio", "sounddevice")

        # --- Synthesis ---
        self.seed = None         # Noise/detune RNG seed, None = OS entropy

        # --- Global Flags ---
        self.muted = False
        self.running = True

# Create a single shared instance
shared = AppState()
