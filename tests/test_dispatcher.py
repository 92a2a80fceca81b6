"""Tests for the dispatcher: parsing, lookup, commit and publish."""

import pytest

from ledsrv.commands import Command, CommandTable, HandlerResult
from ledsrv.dispatcher import Dispatcher, Response
from ledsrv.protocol import format_response
from ledsrv.state import DEFAULT_STATE, LedColor, LedState
from ledsrv.view import LedView


@pytest.fixture
def dispatcher(view):
    return Dispatcher(view)


def _run(dispatcher, requests):
    """Dispatch a batch and return the wire responses, newline stripped."""
    return [format_response(*dispatcher.dispatch(r)).rstrip("\n") for r in requests]


# ---------------------------------------------------------------------------
# Rate
# ---------------------------------------------------------------------------


class TestRate:
    @pytest.mark.parametrize("rate", [1, 2, 3, 4, 5])
    def test_valid_rate_round_trips(self, dispatcher, rate):
        assert dispatcher.dispatch(f"set-led-rate {rate}") == Response(True, "")
        assert dispatcher.dispatch("get-led-rate") == Response(True, str(rate))

    @pytest.mark.parametrize("value", ["0", "6", "-1", "fast", "2.5", ""])
    def test_invalid_rate_fails_and_keeps_state(self, dispatcher, value):
        dispatcher.dispatch("set-led-rate 3")
        assert dispatcher.dispatch(f"set-led-rate {value}".strip()).ok is False
        assert dispatcher.dispatch("get-led-rate") == Response(True, "3")

    def test_rate_accepts_signed_digits(self, dispatcher):
        assert dispatcher.dispatch("set-led-rate +4").ok is True
        assert dispatcher.state.rate == 4


# ---------------------------------------------------------------------------
# State and color
# ---------------------------------------------------------------------------


class TestStateAndColor:
    @pytest.mark.parametrize("value", ["on", "On", "ON", "oN"])
    def test_state_values_are_case_insensitive(self, dispatcher, value):
        assert dispatcher.dispatch(f"set-led-state {value}").ok is True
        assert dispatcher.dispatch("get-led-state") == Response(True, "on")

    def test_state_off(self, dispatcher):
        dispatcher.dispatch("set-led-state on")
        dispatcher.dispatch("set-led-state OFF")
        assert dispatcher.dispatch("get-led-state") == Response(True, "off")

    def test_unknown_state_value_fails(self, dispatcher):
        assert dispatcher.dispatch("set-led-state xyz").ok is False
        assert dispatcher.state == DEFAULT_STATE

    @pytest.mark.parametrize("value,color", [
        ("red", LedColor.RED),
        ("Green", LedColor.GREEN),
        ("BLUE", LedColor.BLUE),
    ])
    def test_colors(self, dispatcher, value, color):
        assert dispatcher.dispatch(f"set-led-color {value}").ok is True
        assert dispatcher.state.color is color
        assert dispatcher.dispatch("get-led-color") == Response(True, color.value)

    def test_unknown_color_fails(self, dispatcher):
        assert dispatcher.dispatch("set-led-color purple").ok is False
        assert dispatcher.dispatch("get-led-color") == Response(True, "red")


# ---------------------------------------------------------------------------
# Parsing and lookup
# ---------------------------------------------------------------------------


class TestParsing:
    def test_unknown_verb_fails(self, dispatcher):
        assert dispatcher.dispatch("blink") == Response(False, "")

    def test_wrong_arity_fails(self, dispatcher):
        assert dispatcher.dispatch("set-led-state on extra").ok is False
        assert dispatcher.dispatch("set-led-state").ok is False
        assert dispatcher.dispatch("get-led-rate now").ok is False

    def test_verbs_are_case_sensitive(self, dispatcher):
        assert dispatcher.dispatch("GET-LED-RATE").ok is False

    @pytest.mark.parametrize("request_line", ["", "   ", "\t"])
    def test_blank_request_fails(self, dispatcher, request_line):
        assert dispatcher.dispatch(request_line).ok is False

    def test_any_whitespace_separates_fields(self, dispatcher):
        assert dispatcher.dispatch("  set-led-color \t  green  ").ok is True
        assert dispatcher.state.color is LedColor.GREEN

    def test_trailing_carriage_return_is_whitespace(self, dispatcher):
        assert dispatcher.dispatch("get-led-state\r") == Response(True, "off")

    def test_first_match_wins(self, view):
        first = Command("ping", 0, lambda args, s: HandlerResult(True, "first", s))
        second = Command("ping", 0, lambda args, s: HandlerResult(True, "second", s))
        dispatcher = Dispatcher(view, CommandTable([first, second]))
        assert dispatcher.dispatch("ping") == Response(True, "first")

    def test_arity_disambiguates_same_verb(self, view):
        bare = Command("ping", 0, lambda args, s: HandlerResult(True, "bare", s))
        with_arg = Command("ping", 1, lambda args, s: HandlerResult(True, args[0], s))
        dispatcher = Dispatcher(view, CommandTable([bare, with_arg]))
        assert dispatcher.dispatch("ping") == Response(True, "bare")
        assert dispatcher.dispatch("ping pong") == Response(True, "pong")


# ---------------------------------------------------------------------------
# Commit and publish
# ---------------------------------------------------------------------------


class TestCommit:
    def test_change_notifies_view_once(self, dispatcher, view):
        dispatcher.dispatch("set-led-color blue")
        assert view.updates == [LedState(color=LedColor.BLUE)]

    def test_repeated_set_notifies_once(self, dispatcher, view):
        assert dispatcher.dispatch("set-led-color green").ok is True
        assert dispatcher.dispatch("set-led-color green").ok is True
        assert len(view.updates) == 1

    def test_setting_default_value_does_not_notify(self, dispatcher, view):
        assert dispatcher.dispatch("set-led-color red").ok is True
        assert dispatcher.dispatch("set-led-color red").ok is True
        assert view.updates == []

    def test_queries_do_not_notify(self, dispatcher, view):
        for verb in ("get-led-state", "get-led-color", "get-led-rate"):
            assert dispatcher.dispatch(verb).ok is True
        assert view.updates == []

    def test_failed_request_does_not_notify(self, dispatcher, view):
        dispatcher.dispatch("set-led-rate 9")
        assert view.updates == []

    def test_failing_handler_does_not_commit(self, view):
        def broken(args, state):
            return HandlerResult(False, "", LedState(active=True))

        dispatcher = Dispatcher(view, CommandTable([Command("break", 0, broken)]))
        assert dispatcher.dispatch("break").ok is False
        assert dispatcher.state == DEFAULT_STATE
        assert view.updates == []

    def test_each_change_is_published_in_order(self, dispatcher, view):
        dispatcher.dispatch("set-led-state on")
        dispatcher.dispatch("set-led-rate 5")
        assert view.updates == [
            LedState(active=True),
            LedState(active=True, rate=5),
        ]

    def test_view_error_still_answers_ok(self, capsys):
        class BrokenView(LedView):
            def update(self, state):
                raise FileNotFoundError(2, "No such file or directory", "/missing/ledsrv.status")

        dispatcher = Dispatcher(BrokenView())
        assert dispatcher.dispatch("set-led-color blue") == Response(True, "")
        assert dispatcher.state.color is LedColor.BLUE
        assert dispatcher.dispatch("get-led-color") == Response(True, "blue")
        assert "View update failed" in capsys.readouterr().err

    def test_view_error_other_than_os_error_propagates(self):
        class BuggyView(LedView):
            def update(self, state):
                raise TypeError("bad view")

        with pytest.raises(TypeError):
            Dispatcher(BuggyView()).dispatch("set-led-state on")

    def test_initial_state(self, view):
        start = LedState(active=True, color=LedColor.GREEN, rate=2)
        dispatcher = Dispatcher(view, state=start)
        assert dispatcher.dispatch("get-led-color") == Response(True, "green")


# ---------------------------------------------------------------------------
# Whole batches
# ---------------------------------------------------------------------------


class TestBatch:
    def test_mixed_batch(self, dispatcher):
        responses = _run(dispatcher, [
            "set-led-color blue",
            "get-led-color",
            "set-led-rate 9",
            "get-led-rate",
        ])
        assert responses == ["OK", "OK blue", "FAILED", "OK 1"]

    def test_failures_do_not_stop_the_batch(self, dispatcher):
        responses = _run(dispatcher, ["blink", "set-led-state on", "get-led-state"])
        assert responses == ["FAILED", "OK", "OK on"]
