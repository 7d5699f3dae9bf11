import random

import pytest

from citystate.domain.common.places import load_validator
from citystate.settings import DEFAULT_PLACE_DATA, Settings
from citystate.transport.codec import decode_url


class RecordingPresenter:
    def __init__(self):
        self.letters = []
        self.scores = []
        self.timers = []
        self.feedback = []
        self.input_enabled = []
        self.rosters = []
        self.plus_ones = 0

    def set_letter(self, letter):
        self.letters.append(letter)

    def set_score(self, score):
        self.scores.append(score)

    def set_timer(self, seconds_remaining, fraction):
        self.timers.append((seconds_remaining, fraction))

    def set_feedback(self, text):
        self.feedback.append(text)

    def set_input_enabled(self, enabled):
        self.input_enabled.append(enabled)

    def show_player_roster(self, players):
        self.rosters.append(list(players))

    def plus_one(self):
        self.plus_ones += 1


class RecordingConversation:
    def __init__(self):
        self.messages = []

    def insert_message(self, url, caption, subcaption=""):
        self.messages.append((url, caption, subcaption))

    @property
    def payloads(self):
        return [decode_url(url) for url, _, _ in self.messages]


class ManualClock:
    """Turn clock driven by the test instead of the event loop."""

    def __init__(self):
        self.running = False
        self.remaining = 0
        self.starts = 0
        self.stops = 0
        self._on_tick = None
        self._on_expire = None

    def start(self, duration, on_tick, on_expire):
        self.stop()
        self.starts += 1
        self.running = True
        self.remaining = duration
        self._on_tick = on_tick
        self._on_expire = on_expire

    def stop(self):
        if self.running:
            self.stops += 1
        self.running = False

    def tick(self):
        if not self.running:
            return
        self.remaining -= 1
        self._on_tick(self.remaining)
        if self.remaining <= 0:
            self.running = False
            self._on_expire()

    def expire(self):
        run = self.starts
        while self.running and self.starts == run:
            self.tick()


class FakeRepo:
    def __init__(self):
        self.player_ids = {}
        self.names = {}

    async def get_or_create_player_id(self, device_id, new_id):
        return self.player_ids.setdefault(device_id, new_id)

    async def get_display_name(self, device_id):
        return self.names.get(device_id)

    async def set_display_name(self, device_id, name):
        self.names[device_id] = name

    async def list_device_ids(self):
        return sorted(set(self.player_ids) | set(self.names))


@pytest.fixture
def presenter():
    return RecordingPresenter()


@pytest.fixture
def conversation():
    return RecordingConversation()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def clocks():
    return []


@pytest.fixture
def clock_factory(clocks):
    def _make():
        c = ManualClock()
        clocks.append(c)
        return c
    return _make


@pytest.fixture
def repo():
    return FakeRepo()


@pytest.fixture
def validator():
    return load_validator(DEFAULT_PLACE_DATA)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def rng():
    return random.Random(7)
