"""
Chat platform events handled by the bot process.

A closed set of variants discriminated by `event_kind`. Each variant has
exactly one handler in wikiauth.bot.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class Ready(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_kind: Literal["ready"] = "ready"


class MemberJoined(BaseModel):
    """A user joined a community (Discord guild)."""

    model_config = ConfigDict(frozen=True)

    event_kind: Literal["member_joined"] = "member_joined"
    community_id: int
    chat_user_id: int


class AuthCommand(BaseModel):
    """A user asked to link their wiki account. The reply is a direct message."""

    model_config = ConfigDict(frozen=True)

    event_kind: Literal["auth_command"] = "auth_command"
    community_id: int
    chat_user_id: int


class UnlinkCommand(BaseModel):
    """A user asked to remove their link. Reply goes to `channel_id`."""

    model_config = ConfigDict(frozen=True)

    event_kind: Literal["unlink_command"] = "unlink_command"
    community_id: int
    chat_user_id: int
    channel_id: int


BotEvent = Annotated[
    Ready | MemberJoined | AuthCommand | UnlinkCommand,
    Field(discriminator="event_kind"),
]

_event_adapter: TypeAdapter[BotEvent] = TypeAdapter(BotEvent)


def parse_event(payload: dict) -> BotEvent:
    """
    Validate a raw event payload into its variant.

    Raises:
        pydantic.ValidationError: Unknown event_kind or missing fields
    """
    return _event_adapter.validate_python(payload)
