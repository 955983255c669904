"""Tests for update classification and handler dispatch."""

import asyncio
import sys
import os
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from bot.dispatcher import classify, classify_message, split_callback_data
from bot.endpoints import CallbackUnique, Endpoint
from bot.errors import (
    ForeignCommandError,
    MaliciousInputError,
    NoHandlerError,
    PartiallyHandledError,
    SubEventsFailedError,
    UnknownUpdateError,
)
from sdk.models import Update, User
from conftest import CHAT, USER, callback_update, make_bot, message_update, user


class Recorder:
    """Handler that records every context it was called with."""

    def __init__(self, fail_for=()) -> None:
        self.calls = []
        self.fail_for = set(fail_for)

    async def __call__(self, ctx) -> None:
        self.calls.append(ctx)
        if ctx.joined_user is not None and ctx.joined_user.id in self.fail_for:
            raise RuntimeError(f"cannot greet {ctx.joined_user.id}")


# ── classify ─────────────────────────────────────────────────────────────────


class TestClassify:
    """The pure classifier never looks at the registry."""

    def test_empty_update_is_unknown(self) -> None:
        assert classify(Update(update_id=1)) is None

    @pytest.mark.parametrize("field, endpoint", [
        ("edited_message", Endpoint.EDITED),
        ("channel_post", Endpoint.CHANNEL_POST),
        ("edited_channel_post", Endpoint.EDITED_CHANNEL_POST),
    ])
    def test_message_variants(self, field, endpoint) -> None:
        update = Update.model_validate({
            "update_id": 1, field: {"message_id": 1, "date": 0, "chat": CHAT, "text": "x"},
        })
        assert classify(update) is endpoint

    def test_pinned_channel_post(self) -> None:
        update = Update.model_validate({
            "update_id": 1,
            "channel_post": {
                "message_id": 2, "date": 0, "chat": CHAT,
                "pinned_message": {"message_id": 1, "date": 0, "chat": CHAT, "text": "news"},
            },
        })
        assert classify(update) is Endpoint.PINNED

    def test_callback(self) -> None:
        assert classify(callback_update(data="x")) is Endpoint.CALLBACK

    @pytest.mark.parametrize("field, payload, endpoint", [
        ("inline_query", {"id": "q", "from": USER, "query": "cats"}, Endpoint.QUERY),
        ("chosen_inline_result", {"result_id": "r", "from": USER, "query": "cats"}, Endpoint.INLINE_RESULT),
        ("poll", {"id": "p", "question": "?"}, Endpoint.POLL),
        ("poll_answer", {"poll_id": "p", "user": USER, "option_ids": [0]}, Endpoint.POLL_ANSWER),
        ("chat_join_request", {"chat": CHAT, "from": USER, "date": 0}, Endpoint.CHAT_JOIN_REQUEST),
    ])
    def test_other_update_kinds(self, field, payload, endpoint) -> None:
        assert classify(Update.model_validate({"update_id": 1, field: payload})) is endpoint

    def test_pinned_beats_text(self) -> None:
        update = message_update(text="hi", pinned_message={"message_id": 1, "date": 0, "chat": CHAT})
        assert classify(update) is Endpoint.PINNED

    def test_media_order(self) -> None:
        """A photo with a document attached still counts as a photo."""
        update = message_update(
            photo=[{"file_id": "p", "file_unique_id": "p", "width": 1, "height": 1}],
            document={"file_id": "d", "file_unique_id": "d"},
        )
        assert classify(update) is Endpoint.PHOTO

    def test_bot_added_needs_identity(self) -> None:
        me = User(id=999, is_bot=True, username="mybot")
        message = message_update(new_chat_members=[user(999)]).message
        assert classify_message(message, me) is Endpoint.ADDED_TO_GROUP
        assert classify_message(message) is Endpoint.USER_JOINED

    @pytest.mark.parametrize("fields, endpoint", [
        ({"left_chat_member": USER}, Endpoint.USER_LEFT),
        ({"new_chat_title": "New"}, Endpoint.NEW_GROUP_TITLE),
        ({"delete_chat_photo": True}, Endpoint.GROUP_PHOTO_DELETED),
        ({"channel_chat_created": True}, Endpoint.CHANNEL_CREATED),
        ({"migrate_to_chat_id": -1009}, Endpoint.MIGRATION),
        ({"video_chat_started": {}}, Endpoint.VIDEO_CHAT_STARTED),
        ({"web_app_data": {"data": "d", "button_text": "b"}}, Endpoint.WEB_APP),
        ({"message_auto_delete_timer_changed": {"message_auto_delete_time": 60}}, Endpoint.AUTO_DELETE_TIMER),
    ])
    def test_service_messages(self, fields, endpoint) -> None:
        assert classify(message_update(**fields)) is endpoint

    def test_false_flags_do_not_match(self) -> None:
        assert classify(message_update(delete_chat_photo=False)) is None


class TestSplitCallbackData:
    def test_unique_and_data(self) -> None:
        cb = callback_update(data="\fmenu|42").callback_query
        assert split_callback_data(cb) == "menu"
        assert cb.unique == "menu"
        assert cb.data == "42"

    def test_unique_without_data(self) -> None:
        cb = callback_update(data="\fmenu").callback_query
        assert split_callback_data(cb) == "menu"
        assert cb.data == ""

    def test_plain_data_is_untouched(self) -> None:
        cb = callback_update(data="menu|42").callback_query
        assert split_callback_data(cb) is None
        assert cb.data == "menu|42"
        assert cb.unique is None

    def test_trailing_newline_is_not_a_unique(self) -> None:
        cb = callback_update(data="\fmenu\n").callback_query
        assert split_callback_data(cb) is None
        assert cb.unique is None


# ── Messages ─────────────────────────────────────────────────────────────────


class TestCommands:
    @pytest.mark.asyncio
    async def test_command_routes_to_handler(self, bot) -> None:
        on_start = Recorder()
        bot.handle("/start", on_start)

        await bot.process_update(message_update(text="/start"))
        assert len(on_start.calls) == 1

    @pytest.mark.asyncio
    async def test_own_bot_suffix_is_accepted_case_insensitively(self, bot) -> None:
        on_start = Recorder()
        bot.handle("/start", on_start)

        await bot.process_update(message_update(1, text="/start@mybot"))
        await bot.process_update(message_update(2, text="/start@MyBot"))
        assert len(on_start.calls) == 2

    @pytest.mark.asyncio
    async def test_foreign_bot_suffix(self, bot) -> None:
        on_start, on_text = Recorder(), Recorder()
        bot.handle("/start", on_start)
        bot.handle(Endpoint.TEXT, on_text)

        with pytest.raises(ForeignCommandError) as exc_info:
            await bot.process_update(message_update(text="/start@otherbot"))
        assert exc_info.value.bot_name == "otherbot"
        assert on_start.calls == [] and on_text.calls == []

    @pytest.mark.asyncio
    async def test_payload_and_args(self, bot) -> None:
        on_ban = Recorder()
        bot.handle("/ban", on_ban)

        await bot.process_update(message_update(text="/ban 42 spam"))
        ctx = on_ban.calls[0]
        assert ctx.data == "42 spam"
        assert ctx.args == ["42", "spam"]

    @pytest.mark.asyncio
    async def test_unknown_command_falls_back_to_text(self, bot) -> None:
        on_text = Recorder()
        bot.handle(Endpoint.TEXT, on_text)

        await bot.process_update(message_update(text="/nope"))
        assert len(on_text.calls) == 1

    @pytest.mark.asyncio
    async def test_exact_text_routes_to_handler(self, bot) -> None:
        on_hello, on_text = Recorder(), Recorder()
        bot.handle("Hello", on_hello)
        bot.handle(Endpoint.TEXT, on_text)

        await bot.process_update(message_update(1, text="Hello"))
        await bot.process_update(message_update(2, text="Hello there"))
        assert len(on_hello.calls) == 1
        assert len(on_text.calls) == 1

    @pytest.mark.asyncio
    async def test_plain_text_does_not_trigger_command(self, bot) -> None:
        on_start, on_text = Recorder(), Recorder()
        bot.handle("/start", on_start)
        bot.handle(Endpoint.TEXT, on_text)

        await bot.process_update(message_update(text="start"))
        assert on_start.calls == []
        assert len(on_text.calls) == 1

    @pytest.mark.asyncio
    async def test_unregistered_command_matches_exact_text(self, bot) -> None:
        on_help = Recorder()
        bot.handle("/help me", on_help)

        await bot.process_update(message_update(text="/help me"))
        assert len(on_help.calls) == 1

    @pytest.mark.asyncio
    async def test_text_never_reaches_callback_handlers(self, bot) -> None:
        on_menu, on_text = Recorder(), Recorder()
        bot.handle(CallbackUnique("menu"), on_menu)
        bot.handle(Endpoint.TEXT, on_text)

        await bot.process_update(message_update(text="\fmenu"))
        assert on_menu.calls == []
        assert len(on_text.calls) == 1

    @pytest.mark.asyncio
    async def test_text_without_handler(self, bot) -> None:
        with pytest.raises(NoHandlerError) as exc_info:
            await bot.process_update(message_update(text="hello"))
        assert exc_info.value.endpoint is Endpoint.TEXT

    @pytest.mark.asyncio
    async def test_malicious_text_is_rejected(self, bot) -> None:
        on_text = Recorder()
        bot.handle(Endpoint.TEXT, on_text)

        with pytest.raises(MaliciousInputError):
            await bot.process_update(message_update(text="\atext"))
        assert on_text.calls == []


class TestMediaAndService:
    PHOTO = [{"file_id": "p", "file_unique_id": "p", "width": 1, "height": 1}]

    @pytest.mark.asyncio
    async def test_specific_media_handler(self, bot) -> None:
        on_photo, on_media = Recorder(), Recorder()
        bot.handle(Endpoint.PHOTO, on_photo)
        bot.handle(Endpoint.MEDIA, on_media)

        await bot.process_update(message_update(photo=self.PHOTO))
        assert len(on_photo.calls) == 1 and on_media.calls == []

    @pytest.mark.asyncio
    async def test_media_fallback(self, bot) -> None:
        on_media = Recorder()
        bot.handle(Endpoint.MEDIA, on_media)

        await bot.process_update(message_update(voice={"file_id": "v", "file_unique_id": "v", "duration": 1}))
        assert len(on_media.calls) == 1

    @pytest.mark.asyncio
    async def test_media_without_any_handler_names_specific_kind(self, bot) -> None:
        with pytest.raises(NoHandlerError) as exc_info:
            await bot.process_update(message_update(photo=self.PHOTO))
        assert exc_info.value.endpoint is Endpoint.PHOTO

    @pytest.mark.asyncio
    async def test_group_created_falls_back_to_added(self, bot) -> None:
        on_added = Recorder()
        bot.handle(Endpoint.ADDED_TO_GROUP, on_added)

        await bot.process_update(message_update(group_chat_created=True))
        assert len(on_added.calls) == 1

    @pytest.mark.asyncio
    async def test_message_without_content_is_unknown(self, bot) -> None:
        with pytest.raises(UnknownUpdateError):
            await bot.process_update(message_update())

    @pytest.mark.asyncio
    async def test_empty_update_is_unknown(self, bot) -> None:
        with pytest.raises(UnknownUpdateError):
            await bot.process_update(Update(update_id=9))


# ── Membership ───────────────────────────────────────────────────────────────


class TestJoins:
    @pytest.mark.asyncio
    async def test_single_join(self, bot) -> None:
        on_joined = Recorder()
        bot.handle(Endpoint.USER_JOINED, on_joined)

        await bot.process_update(message_update(new_chat_members=[user(5)]))
        assert on_joined.calls[0].user_joined.id == 5

    @pytest.mark.asyncio
    async def test_bot_added_to_group(self, bot) -> None:
        bot.me = User(id=999, is_bot=True, username="mybot")
        on_added, on_joined = Recorder(), Recorder()
        bot.handle(Endpoint.ADDED_TO_GROUP, on_added)
        bot.handle(Endpoint.USER_JOINED, on_joined)

        await bot.process_update(message_update(new_chat_members=[user(1), user(999)]))
        assert len(on_added.calls) == 1 and on_joined.calls == []

    @pytest.mark.asyncio
    async def test_multi_join_all_succeed(self, bot) -> None:
        on_joined = Recorder()
        bot.handle(Endpoint.USER_JOINED, on_joined)

        await bot.process_update(message_update(new_chat_members=[user(1), user(2), user(3)]))
        assert [ctx.joined_user.id for ctx in on_joined.calls] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_multi_join_partial_failure(self, bot) -> None:
        on_joined = Recorder(fail_for={2})
        bot.handle(Endpoint.USER_JOINED, on_joined)

        with pytest.raises(PartiallyHandledError) as exc_info:
            await bot.process_update(message_update(new_chat_members=[user(1), user(2), user(3)]))

        err = exc_info.value
        assert len(on_joined.calls) == 3
        assert (err.handled, err.total) == (2, 3)
        assert [u.id for u in err.failed_users] == [2]
        bot.settings.on_error.assert_called_once()
        assert bot.settings.on_error.call_args.args[1].joined_user.id == 2

    @pytest.mark.asyncio
    async def test_multi_join_total_failure(self, bot) -> None:
        on_joined = Recorder(fail_for={1, 2, 3})
        bot.handle(Endpoint.USER_JOINED, on_joined)

        with pytest.raises(SubEventsFailedError) as exc_info:
            await bot.process_update(message_update(new_chat_members=[user(1), user(2), user(3)]))

        err = exc_info.value
        assert not isinstance(err, PartiallyHandledError)
        assert len(on_joined.calls) == 3
        assert err.total == 3
        assert [u.id for u in err.failed_users] == [1, 2, 3]
        assert bot.settings.on_error.call_count == 3

    @pytest.mark.asyncio
    async def test_multi_join_runs_inline_in_concurrent_mode(self) -> None:
        bot = make_bot(synchronous=False)
        on_joined = Recorder()
        bot.handle(Endpoint.USER_JOINED, on_joined)

        await bot.process_update(message_update(new_chat_members=[user(1), user(2)]))
        assert len(on_joined.calls) == 2
        assert bot.in_flight == 0

    @pytest.mark.asyncio
    async def test_multi_join_without_handler(self, bot) -> None:
        with pytest.raises(NoHandlerError):
            await bot.process_update(message_update(new_chat_members=[user(1), user(2)]))


# ── Callbacks ────────────────────────────────────────────────────────────────


class TestCallbacks:
    @pytest.mark.asyncio
    async def test_unique_handler_gets_data(self, bot) -> None:
        on_menu, on_callback = Recorder(), Recorder()
        bot.handle(CallbackUnique("menu"), on_menu)
        bot.handle(Endpoint.CALLBACK, on_callback)

        await bot.process_update(callback_update(data="\fmenu|42"))
        assert on_callback.calls == []
        ctx = on_menu.calls[0]
        assert ctx.data == "42"
        assert ctx.callback.unique == "menu"

    @pytest.mark.asyncio
    async def test_unknown_unique_falls_back_to_callback(self, bot) -> None:
        on_callback = Recorder()
        bot.handle(Endpoint.CALLBACK, on_callback)

        await bot.process_update(callback_update(data="\fother|1"))
        assert on_callback.calls[0].callback.unique == "other"

    @pytest.mark.asyncio
    async def test_plain_data_goes_to_callback(self, bot) -> None:
        on_callback = Recorder()
        bot.handle(Endpoint.CALLBACK, on_callback)

        await bot.process_update(callback_update(data="approve:7"))
        assert on_callback.calls[0].data == "approve:7"

    @pytest.mark.asyncio
    async def test_no_callback_handler(self, bot) -> None:
        with pytest.raises(NoHandlerError) as exc_info:
            await bot.process_update(callback_update(data="\fmenu|1"))
        assert exc_info.value.endpoint is Endpoint.CALLBACK


# ── Invocation modes ─────────────────────────────────────────────────────────


class TestInvocation:
    @pytest.mark.asyncio
    async def test_handler_error_goes_to_on_error(self, bot) -> None:
        error = ValueError("boom")

        def failing(ctx) -> None:
            raise error

        bot.handle(Endpoint.TEXT, failing)
        await bot.process_update(message_update(text="hi"))

        bot.settings.on_error.assert_called_once()
        reported, ctx = bot.settings.on_error.call_args.args
        assert reported is error
        assert ctx.update_id == 1

    @pytest.mark.asyncio
    async def test_sync_handlers_are_supported(self, bot) -> None:
        handler = MagicMock(return_value=None)
        bot.handle(Endpoint.TEXT, handler)

        await bot.process_update(message_update(text="hi"))
        handler.assert_called_once()

    @pytest.mark.asyncio
    async def test_concurrent_mode_does_not_block(self) -> None:
        bot = make_bot(synchronous=False)
        release = asyncio.Event()
        done: list[int] = []

        async def slow(ctx) -> None:
            await release.wait()
            done.append(ctx.update_id)

        bot.handle(Endpoint.TEXT, slow)
        await bot.process_update(message_update(1, text="a"))
        await bot.process_update(message_update(2, text="b"))

        assert bot.in_flight == 2 and done == []
        release.set()
        assert await bot._dispatcher.drain(timeout=1) == 0
        assert sorted(done) == [1, 2]

    @pytest.mark.asyncio
    async def test_drain_without_timeout_does_not_wait(self) -> None:
        bot = make_bot(synchronous=False)
        never = asyncio.Event()

        async def stuck(ctx) -> None:
            await never.wait()

        bot.handle(Endpoint.TEXT, stuck)
        await bot.process_update(message_update(text="a"))
        assert await bot._dispatcher.drain(timeout=None) == 1
        never.set()
        await bot._dispatcher.drain(timeout=1)

    @pytest.mark.asyncio
    async def test_sync_mode_preserves_order(self, bot) -> None:
        seen: list[int] = []

        async def record(ctx) -> None:
            await asyncio.sleep(0)
            seen.append(ctx.update_id)

        bot.handle(Endpoint.TEXT, record)
        for i in range(1, 6):
            await bot.process_update(message_update(i, text="x"))
        assert seen == [1, 2, 3, 4, 5]
