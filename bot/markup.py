"""Inline keyboard helpers.

An :class:`InlineButton` carries a *unique* token that doubles as its
registry key, so the same object both renders the button and routes its
presses::

    btn_more = InlineButton("more", "Show more", data="page=2")
    markup = ReplyMarkup().row(btn_more).inline()

    bot.handle(btn_more, on_more)          # fires for "\\fmore|page=2"
    await ctx.send("Results", reply_markup=markup)
"""

from __future__ import annotations

from typing import List, Optional

from bot.endpoints import CALLBACK_PREFIX
from sdk.models import InlineKeyboardButton, InlineKeyboardMarkup


class InlineButton:
    """A callback button identified by *unique*.

    Pressing it sends ``"\\f<unique>|<data>"`` (or ``"\\f<unique>"`` without
    data) as the callback data.  A button with a *url* opens the link instead.
    """

    __slots__ = ("unique", "text", "data", "url")

    def __init__(self, unique: str, text: str, data: str = "", url: Optional[str] = None) -> None:
        self.unique = unique
        self.text = text
        self.data = data
        self.url = url

    def __repr__(self) -> str:
        return f"InlineButton({self.unique!r}, {self.text!r})"

    def callback_unique(self) -> str:
        return CALLBACK_PREFIX + self.unique

    @property
    def callback_data(self) -> str:
        if self.data:
            return f"{self.callback_unique()}|{self.data}"
        return self.callback_unique()

    def with_data(self, data: str) -> "InlineButton":
        """Copy of this button carrying different *data* (same handler)."""
        return InlineButton(self.unique, self.text, data, self.url)

    def to_model(self) -> InlineKeyboardButton:
        if self.url:
            return InlineKeyboardButton(text=self.text, url=self.url)
        return InlineKeyboardButton(text=self.text, callback_data=self.callback_data)


class ReplyMarkup:
    """Row-by-row builder for :class:`~sdk.models.InlineKeyboardMarkup`."""

    def __init__(self) -> None:
        self._rows: List[List[InlineButton]] = []

    def row(self, *buttons: InlineButton) -> "ReplyMarkup":
        self._rows.append(list(buttons))
        return self

    def split(self, per_row: int, buttons: List[InlineButton]) -> "ReplyMarkup":
        """Lay *buttons* out *per_row* to a row."""
        if per_row < 1:
            raise ValueError("per_row must be positive")
        for start in range(0, len(buttons), per_row):
            self._rows.append(list(buttons[start:start + per_row]))
        return self

    @property
    def buttons(self) -> List[InlineButton]:
        return [button for row in self._rows for button in row]

    def inline(self) -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup(
            inline_keyboard=[[button.to_model() for button in row] for row in self._rows],
        )
