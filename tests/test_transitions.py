"""Tests for the pure connection state machine."""

import pytest

from statpanel.render import Connected, Disconnected, Error
from statpanel.snapshot import Snapshot
from statpanel.supervisor import (
    Closed,
    CloseConnection,
    ConnectionState,
    EndpointFailed,
    ErrorOccurred,
    MessageReceived,
    Opened,
    OpenConnection,
    Render,
    ReportError,
    RetryPolicy,
    ScheduleRetry,
    Start,
    Toggle,
    transition,
)

URL = "ws://localhost:9000"
S = ConnectionState


def manual(state, event):
    return transition(state, event, url=URL, policy=RetryPolicy.MANUAL)


def ambient(state, event):
    return transition(state, event, url=URL, policy=RetryPolicy.AMBIENT, retry_delay=5.0)


class TestManualToggle:
    """User-toggled connection."""

    @pytest.mark.parametrize("state", [S.IDLE, S.FAILED])
    def test_toggle_opens(self, state):
        assert manual(state, Toggle()) == (S.CONNECTING, [OpenConnection(URL)])

    def test_toggle_while_connecting_is_noop(self):
        assert manual(S.CONNECTING, Toggle()) == (S.CONNECTING, [])

    def test_toggle_while_closing_is_noop(self):
        assert manual(S.CLOSING, Toggle()) == (S.CLOSING, [])

    def test_toggle_while_open_closes_without_retry(self):
        state, effects = manual(S.OPEN, Toggle())
        assert state is S.CLOSING
        assert effects == [CloseConnection(), Render(Disconnected(URL))]

    def test_close_after_user_close_returns_to_idle_silently(self):
        assert manual(S.CLOSING, Closed()) == (S.IDLE, [])

    def test_start_is_ignored(self):
        assert manual(S.IDLE, Start()) == (S.IDLE, [])


class TestManualFailures:
    def test_error_reports_and_closes_without_retry(self):
        state, effects = manual(S.OPEN, ErrorOccurred("reset by peer"))
        assert state is S.FAILED
        assert effects == [
            ReportError("reset by peer"),
            Render(Error(URL)),
            CloseConnection(),
        ]

    def test_peer_close_renders_error(self):
        assert manual(S.OPEN, Closed()) == (S.IDLE, [Render(Error(URL))])

    def test_close_trailing_an_error_is_silent(self):
        assert manual(S.FAILED, Closed()) == (S.IDLE, [])

    def test_endpoint_failure_renders_error_without_url(self):
        state, effects = manual(S.IDLE, EndpointFailed("lookup failed"))
        assert state is S.FAILED
        assert effects == [ReportError("lookup failed"), Render(Error(""))]


class TestMessages:
    def test_message_renders_connected(self):
        state, effects = manual(S.OPEN, MessageReceived('{"cpu_usage": 42, "ram_usage": 60}'))
        assert state is S.OPEN
        assert effects == [Render(Connected(Snapshot(cpu_usage=42, ram_usage=60), URL))]

    def test_message_before_open_callback_implies_open(self):
        state, _ = manual(S.CONNECTING, MessageReceived("{}"))
        assert state is S.OPEN

    def test_malformed_message_is_an_error(self):
        state, effects = manual(S.OPEN, MessageReceived("garbage"))
        assert state is S.FAILED
        assert isinstance(effects[0], ReportError)
        assert "malformed" in effects[0].reason
        assert effects[1:] == [Render(Error(URL)), CloseConnection()]

    @pytest.mark.parametrize("state", [S.IDLE, S.CLOSING, S.FAILED])
    def test_message_outside_live_connection_ignored(self, state):
        assert manual(state, MessageReceived("{}")) == (state, [])

    def test_opened_moves_connecting_to_open(self):
        assert manual(S.CONNECTING, Opened()) == (S.OPEN, [])

    def test_stray_opened_ignored(self):
        assert manual(S.IDLE, Opened()) == (S.IDLE, [])


class TestAmbient:
    """Always-on feed with fixed-delay retry."""

    def test_start_from_idle_opens(self):
        assert ambient(S.IDLE, Start()) == (S.CONNECTING, [OpenConnection(URL)])

    @pytest.mark.parametrize("state", [S.CONNECTING, S.OPEN, S.CLOSING])
    def test_start_closes_existing_before_opening(self, state):
        assert ambient(state, Start()) == (
            S.CONNECTING,
            [CloseConnection(), OpenConnection(URL)],
        )

    def test_toggle_is_ignored(self):
        assert ambient(S.OPEN, Toggle()) == (S.OPEN, [])

    def test_close_schedules_retry(self):
        assert ambient(S.OPEN, Closed()) == (S.IDLE, [Render(Error(URL)), ScheduleRetry(5.0)])

    def test_error_schedules_retry(self):
        state, effects = ambient(S.CONNECTING, ErrorOccurred("refused"))
        assert state is S.FAILED
        assert effects[-1] == ScheduleRetry(5.0)
        assert effects.count(ScheduleRetry(5.0)) == 1

    def test_endpoint_failure_schedules_retry(self):
        state, effects = ambient(S.IDLE, EndpointFailed("down"))
        assert state is S.FAILED
        assert effects[-1] == ScheduleRetry(5.0)

    def test_endpoint_failure_closes_tracked_connection(self):
        _, effects = ambient(S.OPEN, EndpointFailed("down"))
        assert effects[0] == CloseConnection()

    def test_retry_delay_is_configurable(self):
        _, effects = transition(
            S.OPEN, Closed(), url=URL, policy=RetryPolicy.AMBIENT, retry_delay=0.25
        )
        assert ScheduleRetry(0.25) in effects


def test_unknown_event_raises():
    with pytest.raises(TypeError):
        manual(S.IDLE, object())  # type: ignore[arg-type]
