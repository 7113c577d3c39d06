"""Tests for Telegram message splitting."""

from tidy.telegram_format import split_message


class TestSplitMessage:
    def test_short_message_single_chunk(self):
        assert split_message("hello\nworld") == ["hello\nworld"]

    def test_splits_on_line_boundaries(self):
        text = "a" * 6 + "\n" + "b" * 6 + "\n"
        assert split_message(text, limit=10) == ["aaaaaa\n", "bbbbbb\n"]

    def test_hard_splits_long_lines(self):
        chunks = split_message("x" * 25, limit=10)
        assert chunks == ["x" * 10, "x" * 10, "x" * 5]

    def test_chunks_respect_limit(self):
        text = "\n".join(f"- item {i}" for i in range(500))
        chunks = split_message(text, limit=100)
        assert all(len(c) <= 100 for c in chunks)
        assert "".join(chunks) == text
