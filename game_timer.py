#!/usr/bin/env python3
"""
Game Timer - 10 minute countdown for games
Features: Start/end sound cues, Pause/resume, Flashing finish, Notifications
"""

import argparse
import logging
import tkinter as tk

from timer_logic import (
    APP_NAME,
    NotificationManager,
    SoundManager,
    TimerController,
    TimerState,
)

logger = logging.getLogger(__name__)

# ===================== SETTINGS =====================

THEMES = {
    "Matrix": {"bg": "#000000", "fg": "#00FF00", "accent": "#008800"},
    "Cyber": {"bg": "#0a0a0a", "fg": "#00d4ff", "accent": "#0080ff"},
    "Fire": {"bg": "#1a0000", "fg": "#ff3300", "accent": "#cc0000"},
    "Purple": {"bg": "#0d0010", "fg": "#da00ff", "accent": "#8800cc"},
    "Ocean": {"bg": "#001a33", "fg": "#00ffff", "accent": "#0099cc"}
}

DEFAULTS = {
    "theme": "Matrix",
    "assets_dir": None,
    "mute": False,
    "notify": True,
    "fullscreen": False,
    "log_level": "WARNING",
}

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

STATUS_TEXT = {
    TimerState.READY: "Tap START",
    TimerState.STARTING: "Get ready...",
    TimerState.RUNNING: "Tap the time to pause",
    TimerState.PAUSED: "Paused - tap the time to resume",
    TimerState.FINISHED: "Time's up! Tap to reset",
}


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="game-timer", description=__doc__.strip().splitlines()[0])
    parser.add_argument("--theme", choices=sorted(THEMES), default=None,
                        help="color theme (default: %s)" % DEFAULTS["theme"])
    parser.add_argument("--assets", dest="assets_dir", metavar="DIR", default=None,
                        help="folder with start/end .wav/.ogg/.mp3 files overriding the built-in cues")
    parser.add_argument("--mute", action="store_true", help="no sound cues")
    parser.add_argument("--no-notify", dest="notify", action="store_false", default=None,
                        help="no desktop notification when time is up")
    parser.add_argument("--fullscreen", action="store_true", help="start fullscreen")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default=None)
    return parser.parse_args(argv)


def build_settings(args):
    """Defaults + flags passados na linha de comando"""
    settings = dict(DEFAULTS)
    for key, value in vars(args).items():
        if value is not None:
            settings[key] = value
    return settings


def setup_logging(level="WARNING"):
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT)


# ===================== SCHEDULER =====================

class TkScheduler:
    """Agenda callbacks no loop do Tk"""
    def __init__(self, root):
        self.root = root

    def call_later(self, delay_ms, callback):
        return self.root.after(delay_ms, callback)

    def cancel(self, handle):
        try:
            self.root.after_cancel(handle)
        except tk.TclError:
            pass

# ===================== MAIN APP =====================

class GameTimerApp:
    def __init__(self, root, settings=None):
        self.root = root
        self.root.title(APP_NAME)
        self.settings = settings or dict(DEFAULTS)
        self.theme = THEMES[self.settings["theme"]]

        # Managers
        self.scheduler = TkScheduler(root)
        self.sound_mgr = SoundManager(
            self.scheduler,
            assets_dir=self.settings["assets_dir"],
            enabled=not self.settings["mute"]
        )
        self.notif_mgr = NotificationManager(enabled=self.settings["notify"])

        self.controller = TimerController(self.scheduler, self.sound_mgr)
        self._last_state = self.controller.state

        # Setup
        self.root.geometry("720x360")
        self._setup_ui()
        self._setup_keybindings()
        self._apply_theme()
        if self.settings["fullscreen"]:
            self.root.attributes('-fullscreen', True)

        self.controller.add_listener(self.on_timer_change)
        self.root.protocol("WM_DELETE_WINDOW", self.close)
        self._render()

    def _setup_ui(self):
        main = tk.Frame(self.root)
        main.pack(fill=tk.BOTH, expand=True, padx=6, pady=6)

        self.time_lbl = tk.Label(main, font=('Arial', 120, 'bold'), relief='flat', cursor='hand2')
        self.time_lbl.pack(expand=True)
        self.time_lbl.bind('<Button-1>', lambda e: self._on_time_click())

        self.status_lbl = tk.Label(main, font=('Arial', 12), relief='flat')
        self.status_lbl.pack(pady=(0, 4))

        self.controls = tk.Frame(main)
        self.controls.pack(pady=6)

        self.start_btn = tk.Button(self.controls, text="START", command=self.controller.start,
                                   font=('Arial', 28, 'bold'), relief='flat', padx=24, pady=4)
        self.reset_btn = tk.Button(self.controls, text="⟲", command=self.controller.reset,
                                   font=('Arial', 28), relief='flat', padx=16, pady=0)

    def _setup_keybindings(self):
        """Atalhos de teclado"""
        self.root.bind('<space>', lambda e: self._key_space())
        self.root.bind('r', lambda e: self._key_reset())
        self.root.bind('R', lambda e: self._key_reset())
        self.root.bind('<Escape>', lambda e: self.root.attributes('-fullscreen', False))

    def _key_space(self):
        """Space = start ou pause/resume"""
        if self.controller.state is TimerState.READY:
            self.controller.start()
        else:
            self.controller.toggle_pause()

    def _key_reset(self):
        if self.controller.state in (TimerState.PAUSED, TimerState.FINISHED):
            self.controller.reset()

    def _on_time_click(self):
        state = self.controller.state
        if state in (TimerState.RUNNING, TimerState.PAUSED):
            self.controller.toggle_pause()
        elif state is TimerState.FINISHED:
            self.controller.reset()

    def _apply_theme(self):
        t = self.theme
        self.root.configure(bg=t["bg"])

        def apply_recursive(w):
            if isinstance(w, (tk.Frame, tk.Label)):
                w.configure(bg=t["bg"])
                if isinstance(w, tk.Label):
                    w.configure(fg=t["fg"])
            elif isinstance(w, tk.Button):
                w.configure(bg=t["bg"], fg=t["fg"],
                            activebackground=t["accent"], activeforeground=t["fg"])
            for child in w.winfo_children():
                apply_recursive(child)

        apply_recursive(self.root)

    def on_timer_change(self, controller):
        if controller.state is TimerState.FINISHED and self._last_state is not TimerState.FINISHED:
            self.notif_mgr.show("⏰ " + APP_NAME, "Time's up!")
        self._last_state = controller.state
        self._render()

    def _render(self):
        c = self.controller
        self.time_lbl.config(text=c.time_string)

        # Hide the digits by painting them in the background color
        hidden = c.state is TimerState.FINISHED and not c.flash_visible
        self.time_lbl.config(fg=self.theme["bg"] if hidden else self.theme["fg"])
        self.status_lbl.config(text=STATUS_TEXT[c.state])

        self.start_btn.pack_forget()
        self.reset_btn.pack_forget()
        if c.state is TimerState.READY:
            self.start_btn.pack(side=tk.LEFT, padx=2)
        elif c.state is TimerState.PAUSED:
            self.reset_btn.pack(side=tk.LEFT, padx=2)

    def close(self):
        self.controller.close()
        self.sound_mgr.shutdown()
        self.root.destroy()


def main(argv=None):
    settings = build_settings(parse_args(argv))
    setup_logging(settings["log_level"])
    logger.info("Starting %s (theme=%s, mute=%s)", APP_NAME, settings["theme"], settings["mute"])

    root = tk.Tk()
    GameTimerApp(root, settings)
    root.mainloop()


if __name__ == "__main__":
    main()
