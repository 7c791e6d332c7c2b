import pytest


class FakeScheduler:
    """Manual clock standing in for the Tk event loop."""

    def __init__(self):
        self.now = 0
        self._jobs = {}
        self._next_handle = 0

    def call_later(self, delay_ms, callback):
        self._next_handle += 1
        self._jobs[self._next_handle] = (self.now + delay_ms, self._next_handle, callback)
        return self._next_handle

    def cancel(self, handle):
        self._jobs.pop(handle, None)

    def pending(self):
        return len(self._jobs)

    def queued_callbacks(self):
        return [job[2] for job in self._jobs.values()]

    def advance(self, ms):
        target = self.now + ms
        while True:
            due = [job for job in self._jobs.values() if job[0] <= target]
            if not due:
                break
            when, handle, callback = min(due, key=lambda job: (job[0], job[1]))
            del self._jobs[handle]
            self.now = when
            callback()
        self.now = target


class FakePlayback:
    def __init__(self, cue, on_complete):
        self.cue = cue
        self.on_complete = on_complete
        self.done = False
        self.stopped = False

    def complete(self):
        if self.done:
            return
        self.done = True
        self.on_complete()

    def stop(self):
        self.done = True
        self.stopped = True


class FakeSoundPlayer:
    def __init__(self, instant=False):
        self.instant = instant
        self.playbacks = []

    @property
    def played(self):
        return [pb.cue for pb in self.playbacks]

    def play(self, cue, on_complete):
        playback = FakePlayback(cue, on_complete)
        self.playbacks.append(playback)
        if self.instant:
            playback.complete()
        return playback


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def player():
    return FakeSoundPlayer()


@pytest.fixture
def instant_player():
    return FakeSoundPlayer(instant=True)


@pytest.fixture
def sound_manager(scheduler, monkeypatch):
    """Build a SoundManager whose mixer 'loads' the given fake sounds."""
    import timer_logic

    def build(sounds):
        monkeypatch.setattr(timer_logic.SoundManager, "_init_mixer", lambda self: True)
        monkeypatch.setattr(timer_logic.SoundManager, "_load_sounds",
                            lambda self: self.sounds.update(sounds))
        return timer_logic.SoundManager(scheduler)

    return build
