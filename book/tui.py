"""
Interactive bookmark browser.

Shows bookmarks as a navigable table (Key / Target / Tags) in a full
screen prompt_toolkit application. Navigation and selection live in an
immutable BrowserState; update() maps (state, event) to a new state plus
a list of actions, and BookmarkBrowser runs those actions (open a URL,
redraw, exit). The whole state machine can be driven without a terminal.

Keys:
    up/k, down/j, left/h, right/l   move the cursor
    g / G                           first / last row
    space                           toggle selection of the current row
    enter                           open selected rows (or the current row)
    ctrl-l                          redraw
    ctrl-c / q                      quit
"""
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, FrozenSet, List, Optional, Sequence, Tuple

from prompt_toolkit.application import Application
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.styles import Style

from book.browser import open_external
from book.constants import COLUMNS, DEFAULT_KEY_WIDTH, DEFAULT_TARGET_WIDTH
from book.models import Bookmark

logger = logging.getLogger(__name__)


class Event(Enum):
    """Input events understood by the browser."""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"
    TOGGLE = "toggle"
    ACTIVATE = "activate"
    REFRESH = "refresh"
    QUIT = "quit"


@dataclass(frozen=True)
class OpenAction:
    """Open a target in the external browser."""
    target: str


@dataclass(frozen=True)
class RedrawAction:
    """Repaint the whole screen."""


@dataclass(frozen=True)
class ExitAction:
    """Leave the event loop."""


@dataclass(frozen=True)
class BrowserState:
    """Cursor position and selection over a fixed list of records."""
    records: Tuple[Bookmark, ...] = ()
    cursor_row: int = 0
    cursor_col: int = 0
    selected_rows: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def initial(cls, records: Sequence[Bookmark]) -> "BrowserState":
        return cls(records=tuple(records))

    @property
    def row_count(self) -> int:
        return len(self.records)

    @property
    def current(self) -> Optional[Bookmark]:
        if not self.records:
            return None
        return self.records[self.cursor_row]


@dataclass(frozen=True)
class Transition:
    """Result of one update step."""
    state: BrowserState
    actions: Tuple = ()


def _clamp(value: int, size: int) -> int:
    """Clamp value into [0, size); 0 when size is 0."""
    if size <= 0:
        return 0
    return max(0, min(value, size - 1))


def update(state: BrowserState, event: Event) -> Transition:
    """
    Apply one input event.

    Movement saturates at the table edges. ACTIVATE leaves the state as it
    is and returns one OpenAction per selected row in row order, or one
    for the cursor row when nothing is selected.
    """
    rows = state.row_count
    cols = len(COLUMNS)

    if event is Event.UP:
        return Transition(replace(state, cursor_row=_clamp(state.cursor_row - 1, rows)))
    if event is Event.DOWN:
        return Transition(replace(state, cursor_row=_clamp(state.cursor_row + 1, rows)))
    if event is Event.LEFT:
        return Transition(replace(state, cursor_col=_clamp(state.cursor_col - 1, cols)))
    if event is Event.RIGHT:
        return Transition(replace(state, cursor_col=_clamp(state.cursor_col + 1, cols)))
    if event is Event.TOP:
        return Transition(replace(state, cursor_row=0))
    if event is Event.BOTTOM:
        return Transition(replace(state, cursor_row=_clamp(rows - 1, rows)))

    if event is Event.TOGGLE:
        if not rows:
            return Transition(state)
        selected = state.selected_rows ^ {state.cursor_row}
        return Transition(replace(state, selected_rows=frozenset(selected)))

    if event is Event.ACTIVATE:
        if not rows:
            return Transition(state)
        indexes = sorted(state.selected_rows) or [state.cursor_row]
        actions = tuple(OpenAction(state.records[i].target) for i in indexes if i < rows)
        return Transition(state, actions)

    if event is Event.REFRESH:
        return Transition(state, (RedrawAction(),))
    if event is Event.QUIT:
        return Transition(state, (ExitAction(),))

    raise ValueError(f"Unknown event: {event}")


# Key names as prompt_toolkit understands them
KEY_EVENTS = {
    "up": Event.UP,
    "k": Event.UP,
    "down": Event.DOWN,
    "j": Event.DOWN,
    "left": Event.LEFT,
    "h": Event.LEFT,
    "right": Event.RIGHT,
    "l": Event.RIGHT,
    "g": Event.TOP,
    "G": Event.BOTTOM,
    "space": Event.TOGGLE,
    "enter": Event.ACTIVATE,
    "c-l": Event.REFRESH,
    "c-c": Event.QUIT,
    "q": Event.QUIT,
}

STYLE = Style.from_dict({
    "header": "bold underline",
    "row.alt": "bg:#080808",
    "row.selected": "bg:#2040ff",
    "row.cursor": "bg:#4080ff #000000",
    "cell.cursor": "reverse",
    "status": "reverse",
    "empty": "italic",
})


def _fit(text: str, width: int) -> str:
    if len(text) > width:
        return text[:width - 3] + "..." if width > 3 else text[:width]
    return text.ljust(width)


def column_widths(records: Sequence[Bookmark],
                  target_width: int = DEFAULT_TARGET_WIDTH) -> List[int]:
    """Widths for the Key, Target and Tags columns."""
    key_width = max([len(COLUMNS[0])] + [len(r.key) for r in records])
    target = max([len(COLUMNS[1])] + [len(r.target) for r in records])
    tags = max([len(COLUMNS[2])] + [len(r.tags_display()) for r in records])
    return [min(key_width, DEFAULT_KEY_WIDTH), min(target, target_width), tags]


def render(state: BrowserState, target_width: int = DEFAULT_TARGET_WIDTH) -> FormattedText:
    """Draw the table for a state as prompt_toolkit formatted text."""
    if not state.records:
        return FormattedText([("class:empty", "No bookmarks. Press q to quit.\n")])

    widths = column_widths(state.records, target_width)
    fragments = [("class:header", "  " + "  ".join(_fit(name, w) for name, w in zip(COLUMNS, widths)))]
    fragments.append(("", "\n"))

    for index, record in enumerate(state.records):
        if index == state.cursor_row:
            style = "class:row.cursor"
            fragments.append(("[SetCursorPosition]", ""))
        elif index in state.selected_rows:
            style = "class:row.selected"
        elif index % 2:
            style = "class:row.alt"
        else:
            style = ""

        marker = "* " if index in state.selected_rows else "  "
        fragments.append((style, marker))
        cells = (record.key, record.target, record.tags_display())
        for col, (cell, width) in enumerate(zip(cells, widths)):
            if col:
                fragments.append((style, "  "))
            cell_style = style
            if index == state.cursor_row and col == state.cursor_col:
                cell_style = f"{style} class:cell.cursor"
            fragments.append((cell_style, _fit(cell, width)))
        fragments.append(("", "\n"))

    return FormattedText(fragments)


def status_line(state: BrowserState) -> FormattedText:
    """One-line summary shown under the table."""
    position = f"{state.cursor_row + 1}/{state.row_count}" if state.records else "0/0"
    text = (f" {position}  selected: {len(state.selected_rows)}"
            "  [space] select  [enter] open  [q] quit")
    return FormattedText([("class:status", text)])


class BookmarkBrowser:
    """
    Full screen table browser over a list of bookmarks.

    The event loop blocks on key presses and resizes; the terminal is
    released when run() returns, whatever the exit reason.
    """

    def __init__(self, records: Sequence[Bookmark],
                 opener: Callable[[str], bool] = open_external,
                 target_width: int = DEFAULT_TARGET_WIDTH,
                 color: bool = True):
        self.state = BrowserState.initial(records)
        self.opener = opener
        self.target_width = target_width
        self.color = color
        self.app: Optional[Application] = None

    def dispatch(self, event: Event) -> bool:
        """
        Apply an event and run its actions.

        Returns:
            False when the loop should stop
        """
        transition = update(self.state, event)
        self.state = transition.state

        keep_running = True
        for action in transition.actions:
            if isinstance(action, OpenAction):
                try:
                    opened = self.opener(action.target)
                except Exception:
                    logger.exception(f"Opener raised for {action.target}")
                    continue
                if not opened:
                    logger.warning(f"Failed to open {action.target}")
            elif isinstance(action, RedrawAction):
                if self.app is not None:
                    self.app.renderer.clear()
            elif isinstance(action, ExitAction):
                keep_running = False
        return keep_running

    def _bind(self, kb: KeyBindings, key: str, event: Event):
        @kb.add(key)
        def _(key_event):
            if not self.dispatch(event):
                key_event.app.exit()

    def build_application(self) -> Application:
        kb = KeyBindings()
        for key, event in KEY_EVENTS.items():
            self._bind(kb, key, event)

        table = Window(
            content=FormattedTextControl(
                lambda: render(self.state, self.target_width),
                focusable=True,
                show_cursor=False,
            ),
            wrap_lines=False,
        )
        status = Window(
            content=FormattedTextControl(lambda: status_line(self.state)),
            height=1,
        )

        return Application(
            layout=Layout(HSplit([table, status])),
            key_bindings=kb,
            style=STYLE if self.color else None,
            full_screen=True,
        )

    def run(self):
        """Run the event loop until quit."""
        self.app = self.build_application()
        try:
            self.app.run()
        finally:
            self.app = None


def launch(records: Sequence[Bookmark], opener: Callable[[str], bool] = open_external,
           **kwargs):
    """Browse records interactively until the user quits."""
    BookmarkBrowser(records, opener=opener, **kwargs).run()
