"""
Unit tests for the transcript buffers.
"""

from realtime_webrtc.models.transcript import TranscriptBuffer, TranscriptSide


def make_buffer():
    return TranscriptBuffer(side=TranscriptSide.USER)


class TestTranscriptBuffer:
    """Tests for the TranscriptBuffer class."""

    def test_live_entry_accumulates_deltas(self):
        buffer = make_buffer()
        buffer.append_delta("Good ")
        buffer.append_delta("morning")

        assert buffer.live_entry.text == "Good morning"
        assert buffer.finalized == []

    def test_at_most_one_live_entry(self):
        """Test that opening a new live entry discards the unfinished one."""
        buffer = make_buffer()
        buffer.append_delta("abandoned")
        buffer.open_live()

        assert len(buffer.entries) == 1
        assert buffer.live_entry.text == ""

    def test_finalize_keeps_deltas_without_text(self):
        buffer = make_buffer()
        buffer.append_delta("kept")

        entry = buffer.finalize()

        assert entry.text == "kept"
        assert entry.live is False
        assert buffer.live_entry is None

    def test_finalize_empty_live_entry_is_dropped(self):
        buffer = make_buffer()
        buffer.open_live()

        assert buffer.finalize("") is None
        assert buffer.entries == []

    def test_finalize_without_live_entry(self):
        """Test that a late final transcript still lands in the history."""
        buffer = make_buffer()

        entry = buffer.finalize("late text", confidence=0.9)

        assert entry.text == "late text"
        assert entry.confidence == 0.9
        assert buffer.finalize() is None

    def test_fail_keeps_history(self):
        buffer = make_buffer()
        buffer.finalize("first")
        buffer.append_delta("partial")

        sentinel = buffer.fail("Audio unclear")

        assert [entry.text for entry in buffer.entries] == ["first", "Audio unclear"]
        assert sentinel.failed is True
        assert buffer.live_entry is None

    def test_discard_live_and_clear(self):
        buffer = make_buffer()
        buffer.finalize("kept")
        buffer.append_delta("dropped")

        buffer.discard_live()
        assert [entry.text for entry in buffer.entries] == ["kept"]

        buffer.clear()
        assert buffer.entries == []
