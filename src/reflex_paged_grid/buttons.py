"""Row buttons and the drop-down menu that holds them.

Only one row menu may be open at a time across every grid sharing a
:class:`ButtonMenuRegistry`.  Opening a menu closes whichever menu the
registry currently tracks.
"""

from collections.abc import Callable
from typing import Any, Protocol


class TableButton:
    """An action shown in a row's button menu.

    Args:
        title: Button label (also its tooltip).
        on_click: Called with the row's record.
        icon: Optional icon name for the rendering surface.
    """

    def __init__(self, title: str, on_click: Callable[[Any], Any], icon: str | None = None) -> None:
        self.title = title
        self.on_click = on_click
        self.icon = icon

    def __repr__(self) -> str:
        return f"TableButton({self.title!r})"


class MenuHandle(Protocol):
    """Anything with a menu that the registry can close."""

    def close_menu(self) -> None:
        ...


class ButtonMenuRegistry:
    """Tracks the single open row menu shared by a set of grids."""

    def __init__(self) -> None:
        self._open: MenuHandle | None = None

    @property
    def current(self) -> MenuHandle | None:
        return self._open

    def open(self, handle: MenuHandle) -> None:
        """Close the open menu (if it is another one) and track *handle*."""
        if self._open is not None and self._open is not handle:
            self._open.close_menu()
        self._open = handle

    def release(self, handle: MenuHandle) -> None:
        """Stop tracking *handle* if it is the open menu."""
        if self._open is handle:
            self._open = None

    def close_all(self) -> None:
        if self._open is not None:
            handle, self._open = self._open, None
            handle.close_menu()


class ButtonsCell:
    """The button menu of one row."""

    def __init__(
        self,
        record: Any,
        buttons: list[TableButton],
        registry: ButtonMenuRegistry,
    ) -> None:
        self.record = record
        self.buttons = buttons
        self.registry = registry
        self.opened = False

    def open_menu(self) -> None:
        self.registry.open(self)
        self.opened = True

    def close_menu(self) -> None:
        self.opened = False
        self.registry.release(self)

    def button_clicked(self, button: TableButton) -> Any:
        """Close the menu, then run *button* against this row's record."""
        self.close_menu()
        return button.on_click(self.record)
