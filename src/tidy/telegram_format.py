"""Telegram message formatting utilities."""

import telegramify_markdown

MAX_CHUNK = 4000


def split_message(text: str, limit: int = MAX_CHUNK) -> list[str]:
    """Split text into chunks under Telegram's length limit, preferring line breaks."""
    chunks = []
    current = ""
    for line in text.splitlines(keepends=True):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        if len(current) + len(line) > limit:
            chunks.append(current)
            current = ""
        current += line
    if current:
        chunks.append(current)
    return chunks


async def send_markdown(message, text: str, reply_markup=None):
    """Reply with markdown text converted to MarkdownV2.

    reply_markup, if given, is attached to the last chunk.
    """
    chunks = split_message(telegramify_markdown.markdownify(text))
    for i, chunk in enumerate(chunks):
        markup = reply_markup if i == len(chunks) - 1 else None
        await message.reply_text(chunk, parse_mode="MarkdownV2", reply_markup=markup)
