import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")

import pytest


class Clock:
    """A settable clock in epoch seconds."""

    def __init__(self, t=1700000000.0):
        self.t = t

    def __call__(self):
        return self.t

    def advance(self, hours=0.0, days=0.0):
        self.t += hours * 3600.0 + days * 86400.0


@pytest.fixture
def clock():
    return Clock()
