"""Shared test fixtures."""
import random
import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path so the top-level modules import
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from click_injector import ClickInjectionError  # noqa: E402


class FakeClock:
    def __init__(self, start=0.0):
        self.current = start

    def __call__(self):
        return self.current

    def sleep(self, seconds):
        self.current += seconds


class FakeInjector:
    def __init__(self, fail_after=None):
        self.clicks = 0
        self.fail_after = fail_after

    def send_click(self):
        if self.fail_after is not None and self.clicks >= self.fail_after:
            raise ClickInjectionError("SendInput delivered 1 of 2 events")
        self.clicks += 1


class MemoryCounterStore:
    def __init__(self, value=0, fail_saves=False):
        self.value = value
        self.saves = []
        self.fail_saves = fail_saves

    def load(self):
        return self.value

    def save(self, value):
        from lifetime_counter import CounterStoreError

        if self.fail_saves:
            raise CounterStoreError("disk full")
        self.saves.append(value)
        self.value = value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def injector():
    return FakeInjector()


@pytest.fixture
def rng():
    return random.Random(1234)
