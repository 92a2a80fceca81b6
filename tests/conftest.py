"""Shared fixtures for ledsrv tests."""

import pytest

from ledsrv import run_log
from ledsrv.link import ChannelNames
from ledsrv.view import LedView


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch):
    """Ensure tests never read a real config file or emit color codes."""
    # main() writes LEDSRV_CONFIG; setenv makes monkeypatch restore it
    monkeypatch.setenv("LEDSRV_CONFIG", "")
    monkeypatch.setenv("LEDSRV_FORCE_COLOR", "")
    run_log.reset_colors()


@pytest.fixture
def names(tmp_path):
    """Channel naming scheme rooted in a temporary directory."""
    return ChannelNames(
        rendezvous=str(tmp_path / "ledsrv"),
        inbound=str(tmp_path / "ledsrv.in.{pid}"),
        outbound=str(tmp_path / "ledsrv.out.{pid}"),
    )


class RecordingView(LedView):
    """View that remembers every state it was given."""

    def __init__(self):
        self.updates = []

    def update(self, state):
        self.updates.append(state)


@pytest.fixture
def view():
    return RecordingView()
