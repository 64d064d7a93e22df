import logging
import threading
import time

import dearpygui.dearpygui as dpg
import numpy as np

import sfx
import sfx_state

# --- SETTINGS ---
W_WIDTH = 900
W_HEIGHT = 520
SCOPE_HEIGHT = 300

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

EFFECTS = [
    ("HOVER", "Telemetry tick", sfx.play_hover),
    ("CLICK", "Actuation", sfx.play_click),
    ("ZOOM", "Transition sweep", sfx.play_zoom),
    ("SUCCESS", "System online", sfx.play_success),
]


def update_loop():
    hovered = set()

    while sfx_state.shared.running:
        if dpg.is_dearpygui_running():
            # 1. HOVER TICKS
            # Fire once when the pointer enters a button, not every frame
            for label, _, _ in EFFECTS:
                tag = f"btn_{label}"
                if dpg.does_item_exist(tag) and dpg.is_item_hovered(tag):
                    if tag not in hovered:
                        hovered.add(tag)
                        sfx.play_hover()
                else:
                    hovered.discard(tag)

            # 2. OSCILLOSCOPE
            ctx = sfx.bus.ctx
            if ctx is not None:
                signal = ctx.last_samples
                x_data = np.arange(len(signal))
                dpg.set_value("scope_series", [x_data.tolist(), signal.tolist()])
                dpg.set_value("status_text", f"{ctx.name} | {ctx.state} | t = {ctx.current_time:.2f}s")

        # Sleep briefly to spare CPU cycles (approx 60 FPS update rate)
        time.sleep(0.016)


# --- DPG GUI SETUP ---
dpg.create_context()

with dpg.window(tag="Primary Window"):

    # Split Layout: Left (Triggers) | Right (Scope)
    with dpg.group(horizontal=True):

        # --- LEFT PANEL: TRIGGERS ---
        with dpg.child_window(width=260):
            dpg.add_text("EFFECTS", color=(0, 255, 204))
            dpg.add_separator()

            for label, hint, play in EFFECTS:
                dpg.add_button(label=label, tag=f"btn_{label}", width=-1, height=40,
                               callback=lambda sender, app_data, user_data: user_data(),
                               user_data=play)
                dpg.add_text(hint, color=(140, 140, 140))
                dpg.add_spacer(height=6)

            dpg.add_spacer(height=20)
            dpg.add_text("OUTPUT", color=(0, 255, 204))
            dpg.add_separator()
            dpg.add_checkbox(label="Mute", default_value=sfx_state.shared.muted,
                             callback=lambda sender, app_data, user_data: dpg.set_value(sender, sfx.toggle_mute()))
            dpg.add_text("no output yet", tag="status_text")

        # --- RIGHT PANEL: SCOPE ---
        with dpg.child_window(width=-1):
            dpg.add_text("Output (Time Domain)")
            with dpg.plot(height=SCOPE_HEIGHT, width=-1, no_menus=True):
                dpg.add_plot_axis(dpg.mvXAxis, no_tick_labels=True)
                y_axis = dpg.add_plot_axis(dpg.mvYAxis, label="Amp")
                dpg.set_axis_limits(y_axis, -0.1, 0.1)
                dpg.add_line_series([], [], tag="scope_series", parent=y_axis)

# Start the Update Thread
render_thread = threading.Thread(target=update_loop, daemon=True)
render_thread.start()

# DPG Boilerplate
dpg.create_viewport(title="Procedural UI Sound Effects", width=W_WIDTH, height=W_HEIGHT)
dpg.setup_dearpygui()
dpg.set_primary_window("Primary Window", True)
dpg.show_viewport()
dpg.start_dearpygui()

# --- CLEANUP ---
sfx_state.shared.running = False
sfx.bus.shutdown()
dpg.destroy_context()
