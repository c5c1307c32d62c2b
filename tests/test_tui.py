"""
Tests for the interactive browser.

The state machine (update), the renderer and BookmarkBrowser.dispatch are
all exercised without a terminal.
"""
import random
import pytest
from unittest.mock import MagicMock

from prompt_toolkit.application import Application, create_app_session
from prompt_toolkit.formatted_text import fragment_list_to_text
from prompt_toolkit.input import DummyInput
from prompt_toolkit.output import DummyOutput

from book.models import Bookmark
from book.tui import (
    KEY_EVENTS,
    BookmarkBrowser,
    BrowserState,
    Event,
    ExitAction,
    OpenAction,
    RedrawAction,
    render,
    status_line,
    update,
)


@pytest.fixture
def records():
    return [
        Bookmark("gh", "https://www.github.com", ["dev", "code"]),
        Bookmark("gl", "https://gitlab.com", ["dev", "ci"]),
        Bookmark("hn", "https://news.ycombinator.com", ["news", "tech"]),
    ]


@pytest.fixture
def state(records):
    return BrowserState.initial(records)


def run_events(state, *events):
    for event in events:
        state = update(state, event).state
    return state


class TestInitialState:

    def test_initial_state(self, state, records):
        assert state.cursor_row == 0
        assert state.cursor_col == 0
        assert state.selected_rows == frozenset()
        assert state.records == tuple(records)
        assert state.current == records[0]

    def test_empty_initial_state(self):
        state = BrowserState.initial([])
        assert state.row_count == 0
        assert state.current is None


class TestMovement:

    def test_down_and_up(self, state):
        state = run_events(state, Event.DOWN, Event.DOWN)
        assert state.cursor_row == 2
        state = run_events(state, Event.UP)
        assert state.cursor_row == 1

    def test_row_saturates_at_bounds(self, state):
        assert run_events(state, Event.UP).cursor_row == 0
        assert run_events(state, *[Event.DOWN] * 10).cursor_row == 2

    def test_column_saturates_at_bounds(self, state):
        assert run_events(state, Event.LEFT).cursor_col == 0
        assert run_events(state, *[Event.RIGHT] * 10).cursor_col == 2

    def test_top_and_bottom(self, state):
        state = run_events(state, Event.BOTTOM)
        assert state.cursor_row == 2
        assert run_events(state, Event.TOP).cursor_row == 0

    def test_movement_on_empty_table(self):
        state = run_events(BrowserState.initial([]), Event.DOWN, Event.BOTTOM, Event.UP)
        assert state.cursor_row == 0

    def test_random_moves_stay_in_bounds(self, records):
        rng = random.Random(1234)
        moves = [Event.UP, Event.DOWN, Event.LEFT, Event.RIGHT, Event.TOP, Event.BOTTOM]
        for size in range(0, 4):
            state = BrowserState.initial(records[:size])
            for _ in range(200):
                state = update(state, rng.choice(moves)).state
                assert 0 <= state.cursor_row < max(size, 1)
                assert 0 <= state.cursor_col < 3

    def test_update_does_not_mutate(self, state):
        update(state, Event.DOWN)
        assert state.cursor_row == 0


class TestSelection:

    def test_toggle_adds_and_removes(self, state):
        state = run_events(state, Event.TOGGLE)
        assert state.selected_rows == {0}
        state = run_events(state, Event.DOWN, Event.TOGGLE)
        assert state.selected_rows == {0, 1}
        state = run_events(state, Event.TOGGLE)
        assert state.selected_rows == {0}

    def test_toggle_on_empty_table(self):
        state = run_events(BrowserState.initial([]), Event.TOGGLE)
        assert state.selected_rows == frozenset()


class TestActivate:

    def test_activate_current_row(self, state):
        state = run_events(state, Event.DOWN)
        transition = update(state, Event.ACTIVATE)
        assert transition.actions == (OpenAction("https://gitlab.com"),)
        assert transition.state == state

    def test_activate_selected_rows_in_order(self, state):
        state = run_events(state, Event.BOTTOM, Event.TOGGLE, Event.TOP, Event.TOGGLE, Event.DOWN)
        transition = update(state, Event.ACTIVATE)
        assert transition.actions == (
            OpenAction("https://www.github.com"),
            OpenAction("https://news.ycombinator.com"),
        )

    def test_activate_on_empty_table(self):
        assert update(BrowserState.initial([]), Event.ACTIVATE).actions == ()

    def test_refresh_and_quit(self, state):
        assert update(state, Event.REFRESH).actions == (RedrawAction(),)
        assert update(state, Event.QUIT).actions == (ExitAction(),)
        assert update(state, Event.QUIT).state == state


class TestRender:

    def test_render_has_header_and_rows(self, state):
        text = fragment_list_to_text(render(state))
        lines = text.splitlines()
        assert lines[0].split() == ["Key", "Target", "Tags"]
        assert len(lines) == 4
        assert "gh" in lines[1] and "dev,code" in lines[1]

    def test_render_marks_selected_rows(self, state):
        state = run_events(state, Event.DOWN, Event.TOGGLE)
        lines = fragment_list_to_text(render(state)).splitlines()
        assert lines[2].startswith("* ")
        assert lines[1].startswith("  ")

    def test_render_truncates_long_targets(self):
        state = BrowserState.initial([Bookmark("k", "https://example.com/" + "x" * 100)])
        text = fragment_list_to_text(render(state, target_width=30))
        assert "..." in text
        assert "x" * 100 not in text

    def test_render_cursor_cell_style(self, state):
        state = run_events(state, Event.RIGHT)
        styled = [style for style, text in render(state) if text.startswith("https://www.github")]
        assert "class:cell.cursor" in styled[0]

    def test_render_empty(self):
        assert "No bookmarks" in fragment_list_to_text(render(BrowserState.initial([])))

    def test_status_line(self, state):
        state = run_events(state, Event.DOWN, Event.TOGGLE)
        text = fragment_list_to_text(status_line(state))
        assert "2/3" in text
        assert "selected: 1" in text


class TestBookmarkBrowser:

    def test_dispatch_opens_targets(self, records):
        opener = MagicMock(return_value=True)
        browser = BookmarkBrowser(records, opener=opener)
        assert browser.dispatch(Event.DOWN) is True
        assert browser.dispatch(Event.ACTIVATE) is True
        opener.assert_called_once_with("https://gitlab.com")

    def test_opener_failure_does_not_stop_loop(self, records):
        opener = MagicMock(return_value=False)
        browser = BookmarkBrowser(records, opener=opener)
        browser.dispatch(Event.TOGGLE)
        browser.dispatch(Event.DOWN)
        browser.dispatch(Event.TOGGLE)
        assert browser.dispatch(Event.ACTIVATE) is True
        assert opener.call_count == 2
        assert browser.state.selected_rows == {0, 1}

    def test_opener_exception_does_not_stop_loop(self, records):
        """An opener that raises is logged and the remaining targets still open."""
        opener = MagicMock(side_effect=[RuntimeError("no display"), True])
        browser = BookmarkBrowser(records, opener=opener)
        browser.dispatch(Event.TOGGLE)
        browser.dispatch(Event.DOWN)
        browser.dispatch(Event.TOGGLE)
        assert browser.dispatch(Event.ACTIVATE) is True
        assert opener.call_count == 2
        assert browser.dispatch(Event.DOWN) is True

    def test_dispatch_quit(self, records):
        assert BookmarkBrowser(records).dispatch(Event.QUIT) is False

    def test_dispatch_refresh_clears_renderer(self, records):
        browser = BookmarkBrowser(records)
        browser.app = MagicMock()
        assert browser.dispatch(Event.REFRESH) is True
        browser.app.renderer.clear.assert_called_once()

    def test_build_application(self, records):
        with create_app_session(input=DummyInput(), output=DummyOutput()):
            app = BookmarkBrowser(records).build_application()
        assert isinstance(app, Application)
        assert app.full_screen is True

    def test_key_map_covers_every_event(self):
        assert set(KEY_EVENTS.values()) == set(Event)
