from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple, TypeVar

from .errors import InvalidSelection

T = TypeVar("T")

NEXT_COMMANDS = ("n", "next")
PREV_COMMANDS = ("p", "prev", "previous")
QUIT_COMMANDS = ("q", "quit")


class Status(Enum):
    DISPLAYING = "displaying"
    SELECTED = "selected"
    CANCELLED = "cancelled"


class _Cancelled:
    def __repr__(self) -> str:
        return "CANCELLED"

    def __bool__(self) -> bool:
        return False


CANCELLED = _Cancelled()


@dataclass(frozen=True)
class MenuState:
    page: int = 0
    status: Status = Status.DISPLAYING
    index: Optional[int] = None


def page_count(item_count: int, page_size: int) -> int:
    return max(1, -(-item_count // page_size))


def page_bounds(page: int, item_count: int, page_size: int) -> Tuple[int, int]:
    start = page * page_size
    return start, min(start + page_size, item_count)


def step(
    state: MenuState, command: str, item_count: int, page_size: int
) -> Tuple[MenuState, Optional[str]]:
    """Apply one operator command. Returns the new state and a warning, if any."""
    cmd = command.strip().lower()
    last_page = page_count(item_count, page_size) - 1

    if cmd in NEXT_COMMANDS:
        if state.page >= last_page:
            return state, "Already on the last page."
        return replace(state, page=state.page + 1), None
    if cmd in PREV_COMMANDS:
        if state.page == 0:
            return state, "Already on the first page."
        return replace(state, page=state.page - 1), None
    if cmd in QUIT_COMMANDS:
        return replace(state, status=Status.CANCELLED), None

    try:
        index = _parse_index(cmd, item_count)
    except InvalidSelection as e:
        return state, str(e)
    return replace(state, status=Status.SELECTED, index=index), None


def _parse_index(cmd: str, item_count: int) -> int:
    try:
        index = int(cmd)
    except ValueError:
        raise InvalidSelection(
            f"Unrecognised input {cmd!r}: enter a number, n(ext), p(revious) or q(uit)."
        )
    if not 0 <= index < item_count:
        raise InvalidSelection(f"{index} is out of range (0-{item_count - 1}).")
    return index


class SelectionMenu:
    """Interactive pager over a list; the operator picks one entry or quits."""

    def __init__(
        self,
        page_size: int = 10,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print,
        label: Callable[[object], str] = str,
    ):
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.page_size = page_size
        self.input = input_func
        self.output = output_func
        self.label = label

    def render(self, items: Sequence[T], page: int, page_size: int) -> None:
        start, end = page_bounds(page, len(items), page_size)
        pages = page_count(len(items), page_size)
        self.output(f"\n--- Page {page + 1}/{pages} ({len(items)} items) ---")
        for i in range(start, end):
            self.output(f"[{i}] {self.label(items[i])}")

    def select(self, items: Sequence[T], page_size: Optional[int] = None):
        if page_size is None:
            page_size = self.page_size
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        if not items:
            return CANCELLED

        state = MenuState()
        while state.status is Status.DISPLAYING:
            self.render(items, state.page, page_size)
            try:
                command = self.input("Select number, n(ext), p(revious), q(uit): ")
            except EOFError:
                command = QUIT_COMMANDS[0]
            state, warning = step(state, command, len(items), page_size)
            if warning:
                self.output(f"Warning: {warning}")

        if state.status is Status.CANCELLED:
            return CANCELLED
        return items[state.index]


class AutoSelect:
    """Non-interactive stand-in for SelectionMenu: takes the first entry."""

    def select(self, items: Sequence[T], page_size: Optional[int] = None):
        if not items:
            return CANCELLED
        return items[0]
