"""Pydantic data models for the Telegram Bot API objects Telepulse consumes.

Every class corresponds to an object documented at
https://core.telegram.org/bots/api#available-types.  Only the objects the
dispatch layer inspects (plus the ones the outbound client returns) are
modelled; unknown fields sent by newer API versions are ignored.
"""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field


class ResponseParameters(BaseModel):
    """Describes why a request was unsuccessful."""

    migrate_to_chat_id: Optional[int] = None
    retry_after: Optional[int] = None

    model_config = {"populate_by_name": True}


class Error(BaseModel):
    """Error envelope returned by the Telegram Bot API."""

    ok: bool = False
    error_code: int
    description: str
    parameters: Optional["ResponseParameters"] = None

    model_config = {"populate_by_name": True}


class Update(BaseModel):
    """This [object](https://core.telegram.org/bots/api/#available-types) represents an incoming update. At most **one** of the optional parameters can be present in any given update."""

    update_id: int
    message: Optional["Message"] = None
    edited_message: Optional["Message"] = None
    channel_post: Optional["Message"] = None
    edited_channel_post: Optional["Message"] = None
    callback_query: Optional["CallbackQuery"] = None
    inline_query: Optional["InlineQuery"] = None
    chosen_inline_result: Optional["ChosenInlineResult"] = None
    shipping_query: Optional["ShippingQuery"] = None
    pre_checkout_query: Optional["PreCheckoutQuery"] = None
    poll: Optional["Poll"] = None
    poll_answer: Optional["PollAnswer"] = None
    my_chat_member: Optional["ChatMemberUpdated"] = None
    chat_member: Optional["ChatMemberUpdated"] = None
    chat_join_request: Optional["ChatJoinRequest"] = None

    model_config = {"populate_by_name": True}


class WebhookInfo(BaseModel):
    """Contains information about the current status of a webhook."""

    url: str
    has_custom_certificate: bool
    pending_update_count: int
    ip_address: Optional[str] = None
    last_error_date: Optional[int] = None
    last_error_message: Optional[str] = None
    max_connections: Optional[int] = None
    allowed_updates: Optional[List[str]] = None

    model_config = {"populate_by_name": True}


class User(BaseModel):
    """This object represents a Telegram user or bot."""

    id: int
    is_bot: bool = False
    first_name: str = ""
    last_name: Optional[str] = None
    username: Optional[str] = None
    language_code: Optional[str] = None
    can_join_groups: Optional[bool] = None
    can_read_all_group_messages: Optional[bool] = None
    supports_inline_queries: Optional[bool] = None

    model_config = {"populate_by_name": True}


class Chat(BaseModel):
    """This object represents a chat."""

    id: int
    type: str
    title: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    model_config = {"populate_by_name": True}


class Message(BaseModel):
    """This object represents a message."""

    message_id: int
    date: int
    chat: "Chat"
    from_field: Optional["User"] = Field(None, alias="from")
    sender_chat: Optional["Chat"] = None
    forward_from: Optional["User"] = None
    forward_from_chat: Optional["Chat"] = None
    forward_date: Optional[int] = None
    reply_to_message: Optional["Message"] = None
    via_bot: Optional["User"] = None
    edit_date: Optional[int] = None
    media_group_id: Optional[str] = None
    author_signature: Optional[str] = None
    text: Optional[str] = None
    entities: Optional[List["MessageEntity"]] = None
    animation: Optional["Animation"] = None
    audio: Optional["Audio"] = None
    document: Optional["Document"] = None
    photo: Optional[List["PhotoSize"]] = None
    sticker: Optional["Sticker"] = None
    video: Optional["Video"] = None
    video_note: Optional["VideoNote"] = None
    voice: Optional["Voice"] = None
    caption: Optional[str] = None
    caption_entities: Optional[List["MessageEntity"]] = None
    contact: Optional["Contact"] = None
    dice: Optional["Dice"] = None
    game: Optional["Game"] = None
    poll: Optional["Poll"] = None
    venue: Optional["Venue"] = None
    location: Optional["Location"] = None
    new_chat_members: Optional[List["User"]] = None
    left_chat_member: Optional["User"] = None
    new_chat_title: Optional[str] = None
    new_chat_photo: Optional[List["PhotoSize"]] = None
    delete_chat_photo: Optional[bool] = None
    group_chat_created: Optional[bool] = None
    supergroup_chat_created: Optional[bool] = None
    channel_chat_created: Optional[bool] = None
    message_auto_delete_timer_changed: Optional["MessageAutoDeleteTimerChanged"] = None
    migrate_to_chat_id: Optional[int] = None
    migrate_from_chat_id: Optional[int] = None
    pinned_message: Optional["Message"] = None
    invoice: Optional["Invoice"] = None
    successful_payment: Optional["SuccessfulPayment"] = None
    connected_website: Optional[str] = None
    proximity_alert_triggered: Optional["ProximityAlertTriggered"] = None
    video_chat_scheduled: Optional["VideoChatScheduled"] = None
    video_chat_started: Optional["VideoChatStarted"] = None
    video_chat_ended: Optional["VideoChatEnded"] = None
    video_chat_participants_invited: Optional["VideoChatParticipantsInvited"] = None
    web_app_data: Optional["WebAppData"] = None
    reply_markup: Optional["InlineKeyboardMarkup"] = None

    model_config = {"populate_by_name": True}


class MessageEntity(BaseModel):
    """This object represents one special entity in a text message. For example, hashtags, usernames, URLs, etc."""

    type: str
    offset: int
    length: int
    url: Optional[str] = None
    user: Optional["User"] = None
    language: Optional[str] = None

    model_config = {"populate_by_name": True}


class PhotoSize(BaseModel):
    """This object represents one size of a photo or a file / sticker thumbnail."""

    file_id: str
    file_unique_id: str
    width: int
    height: int
    file_size: Optional[int] = None

    model_config = {"populate_by_name": True}


class Animation(BaseModel):
    """This object represents an animation file (GIF or H.264/MPEG-4 AVC video without sound)."""

    file_id: str
    file_unique_id: str
    width: int
    height: int
    duration: int
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None

    model_config = {"populate_by_name": True}


class Audio(BaseModel):
    """This object represents an audio file to be treated as music by the Telegram clients."""

    file_id: str
    file_unique_id: str
    duration: int
    performer: Optional[str] = None
    title: Optional[str] = None
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None

    model_config = {"populate_by_name": True}


class Document(BaseModel):
    """This object represents a general file (as opposed to photos, voice messages and audio files)."""

    file_id: str
    file_unique_id: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None

    model_config = {"populate_by_name": True}


class Video(BaseModel):
    """This object represents a video file."""

    file_id: str
    file_unique_id: str
    width: int
    height: int
    duration: int
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None

    model_config = {"populate_by_name": True}


class VideoNote(BaseModel):
    """This object represents a video message."""

    file_id: str
    file_unique_id: str
    length: int
    duration: int
    file_size: Optional[int] = None

    model_config = {"populate_by_name": True}


class Voice(BaseModel):
    """This object represents a voice note."""

    file_id: str
    file_unique_id: str
    duration: int
    mime_type: Optional[str] = None
    file_size: Optional[int] = None

    model_config = {"populate_by_name": True}


class Sticker(BaseModel):
    """This object represents a sticker."""

    file_id: str
    file_unique_id: str
    width: int
    height: int
    is_animated: bool = False
    emoji: Optional[str] = None
    set_name: Optional[str] = None
    file_size: Optional[int] = None

    model_config = {"populate_by_name": True}


class Contact(BaseModel):
    """This object represents a phone contact."""

    phone_number: str
    first_name: str
    last_name: Optional[str] = None
    user_id: Optional[int] = None
    vcard: Optional[str] = None

    model_config = {"populate_by_name": True}


class Dice(BaseModel):
    """This object represents an animated emoji that displays a random value."""

    emoji: str
    value: int

    model_config = {"populate_by_name": True}


class Game(BaseModel):
    """This object represents a game."""

    title: str
    description: str
    photo: List["PhotoSize"] = Field(default_factory=list)
    text: Optional[str] = None

    model_config = {"populate_by_name": True}


class PollOption(BaseModel):
    """This object contains information about one answer option in a poll."""

    text: str
    voter_count: int

    model_config = {"populate_by_name": True}


class PollAnswer(BaseModel):
    """This object represents an answer of a user in a non-anonymous poll."""

    poll_id: str
    user: Optional["User"] = None
    option_ids: List[int] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class Poll(BaseModel):
    """This object contains information about a poll."""

    id: str
    question: str
    options: List["PollOption"] = Field(default_factory=list)
    total_voter_count: int = 0
    is_closed: bool = False
    is_anonymous: bool = True
    type: str = "regular"
    allows_multiple_answers: bool = False
    correct_option_id: Optional[int] = None

    model_config = {"populate_by_name": True}


class Location(BaseModel):
    """This object represents a point on the map."""

    longitude: float
    latitude: float
    horizontal_accuracy: Optional[float] = None
    live_period: Optional[int] = None
    heading: Optional[int] = None
    proximity_alert_radius: Optional[int] = None

    model_config = {"populate_by_name": True}


class Venue(BaseModel):
    """This object represents a venue."""

    location: "Location"
    title: str
    address: str
    foursquare_id: Optional[str] = None
    google_place_id: Optional[str] = None

    model_config = {"populate_by_name": True}


class ProximityAlertTriggered(BaseModel):
    """This object represents the content of a service message, sent whenever a user in the chat triggers a proximity alert set by another user."""

    traveler: "User"
    watcher: "User"
    distance: int

    model_config = {"populate_by_name": True}


class MessageAutoDeleteTimerChanged(BaseModel):
    """This object represents a service message about a change in auto-delete timer settings."""

    message_auto_delete_time: int

    model_config = {"populate_by_name": True}


class VideoChatScheduled(BaseModel):
    """This object represents a service message about a video chat scheduled in the chat."""

    start_date: int

    model_config = {"populate_by_name": True}


class VideoChatStarted(BaseModel):
    """This object represents a service message about a video chat started in the chat."""

    model_config = {"populate_by_name": True}


class VideoChatEnded(BaseModel):
    """This object represents a service message about a video chat ended in the chat."""

    duration: int

    model_config = {"populate_by_name": True}


class VideoChatParticipantsInvited(BaseModel):
    """This object represents a service message about new members invited to a video chat."""

    users: List["User"] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class WebAppData(BaseModel):
    """Describes data sent from a Web App to the bot."""

    data: str
    button_text: str

    model_config = {"populate_by_name": True}


class InlineKeyboardButton(BaseModel):
    """This object represents one button of an inline keyboard."""

    text: str
    url: Optional[str] = None
    callback_data: Optional[str] = None
    switch_inline_query: Optional[str] = None
    switch_inline_query_current_chat: Optional[str] = None
    pay: Optional[bool] = None

    model_config = {"populate_by_name": True}


class InlineKeyboardMarkup(BaseModel):
    """This object represents an inline keyboard that appears right next to the message it belongs to."""

    inline_keyboard: List[List["InlineKeyboardButton"]] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class KeyboardButton(BaseModel):
    """This object represents one button of the reply keyboard."""

    text: str
    request_contact: Optional[bool] = None
    request_location: Optional[bool] = None

    model_config = {"populate_by_name": True}


class ReplyKeyboardMarkup(BaseModel):
    """This object represents a custom keyboard with reply options."""

    keyboard: List[List["KeyboardButton"]] = Field(default_factory=list)
    resize_keyboard: Optional[bool] = None
    one_time_keyboard: Optional[bool] = None
    selective: Optional[bool] = None

    model_config = {"populate_by_name": True}


class ReplyKeyboardRemove(BaseModel):
    """Upon receiving a message with this object, Telegram clients will remove the current custom keyboard."""

    remove_keyboard: bool = True
    selective: Optional[bool] = None

    model_config = {"populate_by_name": True}


class ForceReply(BaseModel):
    """Upon receiving a message with this object, Telegram clients will display a reply interface to the user."""

    force_reply: bool = True
    selective: Optional[bool] = None

    model_config = {"populate_by_name": True}


ReplyMarkupType = Union["InlineKeyboardMarkup", "ReplyKeyboardMarkup", "ReplyKeyboardRemove", "ForceReply"]


class CallbackQuery(BaseModel):
    """This object represents an incoming callback query from a callback button in an inline keyboard.

    ``unique`` is not part of the wire format: the dispatcher fills it in
    when ``data`` follows the ``"\\f<unique>|<payload>"`` convention and
    rewrites ``data`` to the bare payload.
    """

    id: str
    from_field: "User" = Field(alias="from")
    message: Optional["Message"] = None
    inline_message_id: Optional[str] = None
    chat_instance: str = ""
    data: Optional[str] = None
    game_short_name: Optional[str] = None
    unique: Optional[str] = Field(None, exclude=True)

    model_config = {"populate_by_name": True}


class InlineQuery(BaseModel):
    """This object represents an incoming inline query."""

    id: str
    from_field: "User" = Field(alias="from")
    query: str = ""
    offset: str = ""
    chat_type: Optional[str] = None
    location: Optional["Location"] = None

    model_config = {"populate_by_name": True}


class ChosenInlineResult(BaseModel):
    """Represents a result of an inline query that was chosen by the user and sent to their chat partner."""

    result_id: str
    from_field: "User" = Field(alias="from")
    query: str = ""
    location: Optional["Location"] = None
    inline_message_id: Optional[str] = None

    model_config = {"populate_by_name": True}


class Invoice(BaseModel):
    """This object contains basic information about an invoice."""

    title: str
    description: str
    start_parameter: str
    currency: str
    total_amount: int

    model_config = {"populate_by_name": True}


class ShippingAddress(BaseModel):
    """This object represents a shipping address."""

    country_code: str
    state: str
    city: str
    street_line1: str
    street_line2: str
    post_code: str

    model_config = {"populate_by_name": True}


class OrderInfo(BaseModel):
    """This object represents information about an order."""

    name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    shipping_address: Optional["ShippingAddress"] = None

    model_config = {"populate_by_name": True}


class SuccessfulPayment(BaseModel):
    """This object contains basic information about a successful payment."""

    currency: str
    total_amount: int
    invoice_payload: str
    telegram_payment_charge_id: str
    provider_payment_charge_id: str
    shipping_option_id: Optional[str] = None
    order_info: Optional["OrderInfo"] = None

    model_config = {"populate_by_name": True}


class ShippingQuery(BaseModel):
    """This object contains information about an incoming shipping query."""

    id: str
    from_field: "User" = Field(alias="from")
    invoice_payload: str
    shipping_address: "ShippingAddress"

    model_config = {"populate_by_name": True}


class PreCheckoutQuery(BaseModel):
    """This object contains information about an incoming pre-checkout query."""

    id: str
    from_field: "User" = Field(alias="from")
    currency: str
    total_amount: int
    invoice_payload: str
    shipping_option_id: Optional[str] = None
    order_info: Optional["OrderInfo"] = None

    model_config = {"populate_by_name": True}


class ChatMember(BaseModel):
    """This object contains information about one member of a chat."""

    user: "User"
    status: str
    custom_title: Optional[str] = None
    is_anonymous: Optional[bool] = None
    until_date: Optional[int] = None

    model_config = {"populate_by_name": True}


class ChatInviteLink(BaseModel):
    """Represents an invite link for a chat."""

    invite_link: str
    creator: "User"
    creates_join_request: bool = False
    is_primary: bool = False
    is_revoked: bool = False
    name: Optional[str] = None

    model_config = {"populate_by_name": True}


class ChatMemberUpdated(BaseModel):
    """This object represents changes in the status of a chat member."""

    chat: "Chat"
    from_field: "User" = Field(alias="from")
    date: int
    old_chat_member: "ChatMember"
    new_chat_member: "ChatMember"
    invite_link: Optional["ChatInviteLink"] = None

    model_config = {"populate_by_name": True}


class ChatJoinRequest(BaseModel):
    """Represents a join request sent to a chat."""

    chat: "Chat"
    from_field: "User" = Field(alias="from")
    user_chat_id: Optional[int] = None
    date: int
    bio: Optional[str] = None
    invite_link: Optional["ChatInviteLink"] = None

    model_config = {"populate_by_name": True}


class BotCommand(BaseModel):
    """This object represents a bot command."""

    command: str
    description: str

    model_config = {"populate_by_name": True}

