"""Event kinds an update can be classified into.

Every endpoint value starts with the ASCII "alert" character ``\\a`` so the
endpoint namespace can never collide with a command name (``\\w+``) or a
callback unique token (stored with a ``\\f`` prefix).
"""

from __future__ import annotations

import enum

# Registry keys for callback-unique handlers are "\f" + unique.
CALLBACK_PREFIX = "\f"
# Message texts starting with this byte are rejected before classification.
ENDPOINT_PREFIX = "\a"


class Endpoint(str, enum.Enum):
    """Symbolic event kinds handlers can be registered for."""

    # Text & commands
    TEXT = "\atext"
    PINNED = "\apinned"
    EDITED = "\aedited"
    CHANNEL_POST = "\achannel_post"
    EDITED_CHANNEL_POST = "\aedited_channel_post"

    # Media
    MEDIA = "\amedia"
    PHOTO = "\aphoto"
    VOICE = "\avoice"
    AUDIO = "\aaudio"
    ANIMATION = "\aanimation"
    DOCUMENT = "\adocument"
    STICKER = "\asticker"
    VIDEO = "\avideo"
    VIDEO_NOTE = "\avideo_note"

    # Structured message content
    CONTACT = "\acontact"
    LOCATION = "\alocation"
    VENUE = "\avenue"
    GAME = "\agame"
    DICE = "\adice"
    INVOICE = "\ainvoice"
    PAYMENT = "\apayment"

    # Chat membership & service messages
    ADDED_TO_GROUP = "\aadded_to_group"
    USER_JOINED = "\auser_joined"
    USER_LEFT = "\auser_left"
    NEW_GROUP_TITLE = "\anew_chat_title"
    NEW_GROUP_PHOTO = "\anew_chat_photo"
    GROUP_PHOTO_DELETED = "\achat_photo_deleted"
    GROUP_CREATED = "\agroup_created"
    SUPERGROUP_CREATED = "\asupergroup_created"
    CHANNEL_CREATED = "\achannel_created"
    MIGRATION = "\amigration"
    VIDEO_CHAT_STARTED = "\avideo_chat_started"
    VIDEO_CHAT_ENDED = "\avideo_chat_ended"
    VIDEO_CHAT_PARTICIPANTS = "\avideo_chat_participants_invited"
    VIDEO_CHAT_SCHEDULED = "\avideo_chat_scheduled"
    WEB_APP = "\aweb_app"
    PROXIMITY_ALERT = "\aproximity_alert_triggered"
    AUTO_DELETE_TIMER = "\amessage_auto_delete_timer_changed"

    # Non-message updates
    CALLBACK = "\acallback"
    QUERY = "\aquery"
    INLINE_RESULT = "\ainline_result"
    SHIPPING = "\ashipping_query"
    CHECKOUT = "\apre_checkout_query"
    POLL = "\apoll"
    POLL_ANSWER = "\apoll_answer"
    MY_CHAT_MEMBER = "\amy_chat_member"
    CHAT_MEMBER = "\achat_member"
    CHAT_JOIN_REQUEST = "\achat_join_request"

    def __str__(self) -> str:
        return self.value

    @property
    def label(self) -> str:
        """Human-readable name without the ``\\a`` prefix (used in logs and errors)."""
        return self.value[1:]


# Fixed media precedence: the first populated field wins.
MEDIA_ENDPOINTS: tuple[tuple[str, Endpoint], ...] = (
    ("photo", Endpoint.PHOTO),
    ("voice", Endpoint.VOICE),
    ("audio", Endpoint.AUDIO),
    ("animation", Endpoint.ANIMATION),
    ("document", Endpoint.DOCUMENT),
    ("sticker", Endpoint.STICKER),
    ("video", Endpoint.VIDEO),
    ("video_note", Endpoint.VIDEO_NOTE),
)

# Non-message update payloads, in dispatch order after the callback check.
UPDATE_ENDPOINTS: tuple[tuple[str, Endpoint], ...] = (
    ("inline_query", Endpoint.QUERY),
    ("chosen_inline_result", Endpoint.INLINE_RESULT),
    ("shipping_query", Endpoint.SHIPPING),
    ("pre_checkout_query", Endpoint.CHECKOUT),
    ("poll", Endpoint.POLL),
    ("poll_answer", Endpoint.POLL_ANSWER),
    ("my_chat_member", Endpoint.MY_CHAT_MEMBER),
    ("chat_member", Endpoint.CHAT_MEMBER),
    ("chat_join_request", Endpoint.CHAT_JOIN_REQUEST),
)


class CallbackUnique:
    """Registry key for an inline button's unique token.

    Example::

        bot.handle(CallbackUnique("menu"), on_menu)   # fires for "\\fmenu|<data>"
    """

    __slots__ = ("unique",)

    def __init__(self, unique: str) -> None:
        self.unique = unique

    def callback_unique(self) -> str:
        return CALLBACK_PREFIX + self.unique

    def __repr__(self) -> str:
        return f"CallbackUnique({self.unique!r})"


# Structured content, checked after media.
CONTENT_ENDPOINTS: tuple[tuple[str, Endpoint], ...] = (
    ("contact", Endpoint.CONTACT),
    ("location", Endpoint.LOCATION),
    ("venue", Endpoint.VENUE),
    ("game", Endpoint.GAME),
    ("dice", Endpoint.DICE),
    ("invoice", Endpoint.INVOICE),
    ("successful_payment", Endpoint.PAYMENT),
)

# Service messages, checked after new_chat_members.
SERVICE_ENDPOINTS: tuple[tuple[str, Endpoint], ...] = (
    ("left_chat_member", Endpoint.USER_LEFT),
    ("new_chat_title", Endpoint.NEW_GROUP_TITLE),
    ("new_chat_photo", Endpoint.NEW_GROUP_PHOTO),
    ("delete_chat_photo", Endpoint.GROUP_PHOTO_DELETED),
    ("group_chat_created", Endpoint.GROUP_CREATED),
    ("supergroup_chat_created", Endpoint.SUPERGROUP_CREATED),
    ("channel_chat_created", Endpoint.CHANNEL_CREATED),
    ("migrate_to_chat_id", Endpoint.MIGRATION),
    ("video_chat_started", Endpoint.VIDEO_CHAT_STARTED),
    ("video_chat_ended", Endpoint.VIDEO_CHAT_ENDED),
    ("video_chat_participants_invited", Endpoint.VIDEO_CHAT_PARTICIPANTS),
    ("video_chat_scheduled", Endpoint.VIDEO_CHAT_SCHEDULED),
    ("web_app_data", Endpoint.WEB_APP),
    ("proximity_alert_triggered", Endpoint.PROXIMITY_ALERT),
    ("message_auto_delete_timer_changed", Endpoint.AUTO_DELETE_TIMER),
)

# Handler looked up when the specific endpoint has none registered.
FALLBACKS: dict[Endpoint, Endpoint] = {
    **{endpoint: Endpoint.MEDIA for _, endpoint in MEDIA_ENDPOINTS},
    Endpoint.GROUP_CREATED: Endpoint.ADDED_TO_GROUP,
    Endpoint.SUPERGROUP_CREATED: Endpoint.ADDED_TO_GROUP,
}
