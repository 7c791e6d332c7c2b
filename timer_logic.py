"""
Game Timer - core logic
State machine, countdown/flash clocks, start/end sound cues and notifications.
No Tkinter here: anything with call_later(ms, fn) / cancel(handle) drives it.
"""

import logging
from enum import Enum
from pathlib import Path

import numpy as np
import pygame
from plyer import notification

logger = logging.getLogger(__name__)

APP_NAME = "Game Timer"

COUNTDOWN_SECONDS = 10 * 60
TICK_MS = 1000
FLASH_MS = 500
POLL_MS = 50

CUE_START = "start"
CUE_END = "end"

MIXER_FREQUENCY = 44100
MIXER_SIZE = -16
MIXER_CHANNELS = 2
MIXER_BUFFER = 512
CUE_VOLUME = 0.8
AUDIO_EXTENSIONS = (".wav", ".ogg", ".mp3")

# (frequency Hz, duration s); frequency 0 is a rest
CUE_TONES = {
    CUE_START: [(523, 0.18), (659, 0.18), (784, 0.4)],
    CUE_END: [(880, 0.3), (0, 0.1), (880, 0.3), (0, 0.1), (660, 0.9)],
}


def format_time(seconds):
    mins, secs = divmod(max(0, int(seconds)), 60)
    return f"{mins:02d}:{secs:02d}"


class TimerState(Enum):
    READY = "ready"
    STARTING = "starting"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"


# ===================== CLOCKS =====================

class RepeatingClock:
    """Relógio periódico cancelável"""
    def __init__(self, scheduler, interval_ms, on_tick):
        self.scheduler = scheduler
        self.interval_ms = interval_ms
        self.on_tick = on_tick
        self._job = None
        self._generation = 0

    @property
    def active(self):
        return self._job is not None

    def start(self):
        self.cancel()
        self._schedule(self._generation)

    def cancel(self):
        # Bumping the generation turns any callback already queued into a no-op
        self._generation += 1
        if self._job is not None:
            self.scheduler.cancel(self._job)
            self._job = None

    def _schedule(self, generation):
        self._job = self.scheduler.call_later(
            self.interval_ms, lambda: self._fire(generation)
        )

    def _fire(self, generation):
        if generation != self._generation:
            return
        self._schedule(generation)
        self.on_tick()


# ===================== SOUND MANAGER =====================

class Playback:
    """Reprodução de um cue - completa uma única vez"""
    def __init__(self, cue, on_complete, scheduler, channel=None):
        self.cue = cue
        self.scheduler = scheduler
        self.channel = channel
        self.done = False
        self._on_complete = on_complete
        self._poll_job = None

    def begin_polling(self):
        self._poll_job = self.scheduler.call_later(POLL_MS, self._poll)

    def _poll(self):
        self._poll_job = None
        if self.done:
            return
        try:
            busy = self.channel.get_busy()
        except pygame.error as e:
            logger.warning("Lost channel for cue %r: %s", self.cue, e)
            busy = False
        if busy:
            self.begin_polling()
        else:
            self.complete()

    def complete(self):
        if self.done:
            return
        self.done = True
        callback, self._on_complete = self._on_complete, None
        if callback:
            callback()

    def stop(self):
        """Interrompe o som sem disparar a conclusão"""
        if self.done:
            return
        self.done = True
        self._on_complete = None
        if self._poll_job is not None:
            self.scheduler.cancel(self._poll_job)
            self._poll_job = None
        if self.channel is not None:
            try:
                self.channel.stop()
            except pygame.error as e:
                logger.warning("Stop error for cue %r: %s", self.cue, e)


class SoundManager:
    """Gerenciador dos cues de início e fim"""
    def __init__(self, scheduler, assets_dir=None, enabled=True):
        self.scheduler = scheduler
        self.assets_dir = Path(assets_dir) if assets_dir else None
        self.enabled = enabled
        self.sounds = {}
        self.current = None
        self.available = False
        self._owns_mixer = False

        if not enabled:
            logger.info("Sound muted")
        elif self._init_mixer():
            self._owns_mixer = True
            self.available = True
            self._load_sounds()

    def _init_mixer(self):
        try:
            pygame.mixer.init(frequency=MIXER_FREQUENCY, size=MIXER_SIZE,
                              channels=MIXER_CHANNELS, buffer=MIXER_BUFFER)
        except pygame.error as e:
            logger.warning("Audio unavailable, cues will complete instantly: %s", e)
            return False
        return True

    def _load_sounds(self):
        for cue, notes in CUE_TONES.items():
            sound = self._load_asset(cue)
            if sound is None:
                sound = self._create_cue(notes)
            if sound is not None:
                self.sounds[cue] = sound

    def _load_asset(self, cue):
        """Procura <cue>.wav/.ogg/.mp3 na pasta de assets"""
        if self.assets_dir is None:
            return None
        for ext in AUDIO_EXTENSIONS:
            path = self.assets_dir / f"{cue}{ext}"
            if not path.exists():
                continue
            try:
                sound = pygame.mixer.Sound(str(path))
            except pygame.error as e:
                logger.warning("Could not load %s: %s", path, e)
                continue
            logger.debug("Loaded cue %r from %s", cue, path)
            return sound
        return None

    def _create_cue(self, notes):
        sample_rate, _size, channels = pygame.mixer.get_init()
        wave = np.concatenate([self._create_tone(freq, dur, sample_rate)
                               for freq, dur in notes])
        audio = (wave * 32767 * CUE_VOLUME).astype(np.int16)
        if channels > 1:
            audio = np.repeat(audio.reshape(-1, 1), channels, axis=1)
        try:
            return pygame.sndarray.make_sound(audio)
        except (pygame.error, ValueError) as e:
            logger.warning("Sound generation error: %s", e)
            return None

    @staticmethod
    def _create_tone(freq, duration, sample_rate=MIXER_FREQUENCY):
        n = int(duration * sample_rate)
        if freq <= 0:
            return np.zeros(n)
        t = np.linspace(0, duration, n, False)
        wave = np.sin(freq * t * 2 * np.pi)

        fade = min(int(sample_rate * 0.01), n // 2)
        if fade:
            wave[:fade] *= np.linspace(0, 1, fade)
            wave[-fade:] *= np.linspace(1, 0, fade)
        return wave

    def play(self, cue, on_complete):
        """Toca o cue; on_complete é chamado uma vez, mesmo se falhar"""
        playback = Playback(cue, on_complete, self.scheduler)
        sound = self.sounds.get(cue) if self.available else None
        if sound is None:
            if self.enabled:
                logger.warning("Cue %r unavailable, completing immediately", cue)
            playback.complete()
            return playback

        try:
            channel = sound.play()
        except pygame.error as e:
            logger.warning("Play error for cue %r: %s", cue, e)
            playback.complete()
            return playback
        if channel is None:
            logger.warning("No free channel for cue %r, completing immediately", cue)
            playback.complete()
            return playback

        playback.channel = channel
        self.current = playback
        playback.begin_polling()
        return playback

    def stop(self):
        if self.current is not None:
            self.current.stop()
            self.current = None

    def shutdown(self):
        self.stop()
        if self._owns_mixer:
            pygame.mixer.quit()
            self._owns_mixer = False
            self.available = False


# ===================== NOTIFICATION MANAGER =====================

class NotificationManager:
    """Notificações do sistema via plyer"""
    def __init__(self, enabled=True):
        self.enabled = enabled

    def show(self, title, message):
        if not self.enabled:
            return
        try:
            notification.notify(title=title, message=message,
                                app_name=APP_NAME, timeout=10)
        except Exception as e:
            logger.warning("Notification error: %s", e)


# ===================== TIMER CONTROLLER =====================

class TimerController:
    """
    Máquina de estados do timer.

    READY -start()-> STARTING -start cue done-> RUNNING <-toggle_pause()-> PAUSED
    RUNNING -countdown hits 0-> FINISHED; reset() brings PAUSED/FINISHED back to READY.
    Listeners get the controller after every change.
    """
    def __init__(self, scheduler, sound_player):
        self.scheduler = scheduler
        self.sound_player = sound_player

        self.state = TimerState.READY
        self.countdown = COUNTDOWN_SECONDS
        self.flash_visible = True
        self.playback = None

        self._countdown_clock = RepeatingClock(scheduler, TICK_MS, self._on_countdown_tick)
        self._flash_clock = RepeatingClock(scheduler, FLASH_MS, self._on_flash_tick)
        self._listeners = []

    @property
    def time_string(self):
        return format_time(self.countdown)

    @property
    def is_clock_active(self):
        return self._countdown_clock.active

    @property
    def is_flash_active(self):
        return self._flash_clock.active

    def add_listener(self, listener):
        self._listeners.append(listener)

    def remove_listener(self, listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ---------- Intents ----------
    def start(self):
        if self.state is not TimerState.READY:
            logger.debug("start() ignored in %s", self.state.name)
            return
        self.countdown = COUNTDOWN_SECONDS
        self._set_state(TimerState.STARTING)
        self._track(self.sound_player.play(CUE_START, self._on_start_cue_done))

    def toggle_pause(self):
        if self.state is TimerState.RUNNING:
            self._countdown_clock.cancel()
            self._set_state(TimerState.PAUSED)
        elif self.state is TimerState.PAUSED:
            self._countdown_clock.start()
            self._set_state(TimerState.RUNNING)
        else:
            logger.debug("toggle_pause() ignored in %s", self.state.name)

    def reset(self):
        self._cancel_all()
        self.countdown = COUNTDOWN_SECONDS
        self.flash_visible = True
        self._set_state(TimerState.READY)

    def close(self):
        """Teardown: nenhum callback pode rodar depois disso"""
        self._cancel_all()
        self._listeners.clear()

    # ---------- Events ----------
    def _on_start_cue_done(self):
        if self.state is not TimerState.STARTING:
            return
        self.playback = None
        self._countdown_clock.start()
        self._set_state(TimerState.RUNNING)

    def _on_end_cue_done(self):
        self.playback = None

    def _on_countdown_tick(self):
        if self.state is not TimerState.RUNNING:
            return
        if self.countdown > 0:
            self.countdown -= 1
        if self.countdown == 0:
            self._finish()
        else:
            self._notify()

    def _on_flash_tick(self):
        if self.state is not TimerState.FINISHED:
            return
        self.flash_visible = not self.flash_visible
        self._notify()

    def _finish(self):
        self._countdown_clock.cancel()
        self.state = TimerState.FINISHED
        self.flash_visible = True
        self._flash_clock.start()
        logger.debug("-> FINISHED")
        self._track(self.sound_player.play(CUE_END, self._on_end_cue_done))
        self._notify()

    # ---------- Helpers ----------
    def _track(self, playback):
        # A cue that failed already completed inside play()
        self.playback = None if playback.done else playback

    def _cancel_all(self):
        self._countdown_clock.cancel()
        self._flash_clock.cancel()
        if self.playback is not None:
            self.playback.stop()
            self.playback = None

    def _set_state(self, state):
        logger.debug("%s -> %s", self.state.name, state.name)
        self.state = state
        self._notify()

    def _notify(self):
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Timer listener failed")
