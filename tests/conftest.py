"""Shared fixtures: offline bots, update builders and an in-memory poller."""

import asyncio
import sys
import os
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from bot.lifecycle import Bot, Settings
from bot.pollers import deliver
from sdk.client import BotAPIClient
from sdk.models import Update

CHAT = {"id": -100, "type": "group", "title": "Test group"}
USER = {"id": 42, "is_bot": False, "first_name": "Ada", "username": "ada"}


def message_update(update_id: int = 1, **fields) -> Update:
    """An update carrying a group message with *fields* merged in."""
    message = {"message_id": update_id, "date": 0, "chat": CHAT, "from": USER, **fields}
    return Update.model_validate({"update_id": update_id, "message": message})


def callback_update(update_id: int = 1, data: str = "", inline_message_id: str | None = None) -> Update:
    callback = {
        "id": f"cb{update_id}",
        "from": USER,
        "chat_instance": "ci",
        "data": data,
        "message": {"message_id": 7, "date": 0, "chat": CHAT, "text": "menu"},
    }
    if inline_message_id:
        callback["inline_message_id"] = inline_message_id
    return Update.model_validate({"update_id": update_id, "callback_query": callback})


def user(user_id: int, name: str = "U") -> dict:
    return {"id": user_id, "is_bot": False, "first_name": name}


class ListPoller:
    """Delivers a fixed list of updates, then waits for stop."""

    def __init__(self, updates=()) -> None:
        self.updates = list(updates)
        self.runs = 0

    async def poll(self, bot, dest, stop) -> None:
        self.runs += 1
        while self.updates and not stop.closed:
            if not await deliver(dest, self.updates.pop(0), stop):
                return
        await stop.wait()


def make_bot(**overrides) -> Bot:
    options = dict(
        offline=True,
        username="mybot",
        synchronous=True,
        client=MagicMock(spec=BotAPIClient),
        poller=ListPoller(),
        on_error=MagicMock(),
    )
    options.update(overrides)
    return Bot(Settings(**options))


@pytest.fixture
def bot() -> Bot:
    """Offline bot running handlers inline, with a mocked client and on_error."""
    return make_bot()


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll *predicate* on the event loop until it is true."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)
