"""Conversation states for Telegram bot."""

from enum import IntEnum, auto


class OrganizeStates(IntEnum):
    """States for the organize conversation."""

    REVIEW = auto()
