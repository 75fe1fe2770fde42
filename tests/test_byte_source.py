"""
Byte source adapter and replay buffer: test_byte_source.py

byte_source.py:
  - read(n) keeps reading through short reads until n bytes or end of stream
  - read_until returns the line without its terminator
  - read_until finds terminators split across chunk reads (single and multi-byte)
  - read_until returns the unterminated remainder at end of stream, then None
  - unread pushes bytes back in front of the next read
  - seek offsets are relative to the stream position at wrap time
  - seek on a forward-only stream raises SeekError
  - close() closes owned streams only; close() is idempotent
  - open() on a missing path raises SourceOpenError carrying the path
  - read failures surface as SourceOpenError

replay.py:
  - FIFO order, drained flag, clear(), pop on empty raises IndexError
"""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from csvstream.configs.exceptions import SeekError, SourceOpenError
from csvstream.discovery.byte_source import StreamByteSource
from csvstream.discovery.replay import ReplayBuffer
from tests.fixtures.streams import FailingStream, ForwardOnlyStream


# ============================================================================
# byte_source.py
# ============================================================================

class TestRead:
    def test_short_reads_are_stitched(self):
        source = StreamByteSource(ForwardOnlyStream(b"abcdef", max_read=2))
        assert source.read(5) == b"abcde"

    def test_read_past_end_returns_remainder(self):
        source = StreamByteSource(io.BytesIO(b"abcdef"))
        assert source.read(4) == b"abcd"
        assert source.read(4) == b"ef"
        assert source.read(4) == b""


class TestReadUntil:
    def test_lines_without_terminator(self):
        source = StreamByteSource(io.BytesIO(b"a,b\n1,2\n"))
        assert source.read_until(b"\n") == b"a,b"
        assert source.read_until(b"\n") == b"1,2"
        assert source.read_until(b"\n") is None

    def test_crlf_split_across_chunks(self):
        source = StreamByteSource(io.BytesIO(b"ab\r\ncd\r\nef"), chunk_size=3)
        assert source.read_until(b"\r\n") == b"ab"
        assert source.read_until(b"\r\n") == b"cd"
        assert source.read_until(b"\r\n") == b"ef"
        assert source.read_until(b"\r\n") is None

    def test_utf16_terminator_one_byte_at_a_time(self):
        data = "x,y\nz\n".encode("utf-16-le")
        source = StreamByteSource(ForwardOnlyStream(data, max_read=1), chunk_size=1)
        assert source.read_until(b"\n\x00") == "x,y".encode("utf-16-le")
        assert source.read_until(b"\n\x00") == "z".encode("utf-16-le")
        assert source.read_until(b"\n\x00") is None

    def test_empty_line_is_empty_bytes_not_none(self):
        source = StreamByteSource(io.BytesIO(b"a\n\nb"))
        assert source.read_until(b"\n") == b"a"
        assert source.read_until(b"\n") == b""
        assert source.read_until(b"\n") == b"b"

    def test_empty_terminator_rejected(self):
        source = StreamByteSource(io.BytesIO(b"abc"))
        with pytest.raises(ValueError):
            source.read_until(b"")


class TestUnread:
    def test_unread_bytes_come_first(self):
        source = StreamByteSource(ForwardOnlyStream(b"abcd\nrest\n"))
        head = source.read(2)
        source.unread(head)
        assert source.read_until(b"\n") == b"abcd"
        assert source.read_until(b"\n") == b"rest"

    def test_unread_empty_is_noop(self):
        source = StreamByteSource(io.BytesIO(b"ab"))
        source.unread(b"")
        assert source.read(2) == b"ab"


class TestSeek:
    def test_seekable_flags(self):
        assert StreamByteSource(io.BytesIO(b"x")).seekable() is True
        assert StreamByteSource(ForwardOnlyStream(b"x")).seekable() is False

    def test_offsets_relative_to_wrap_position(self):
        stream = io.BytesIO(b"junkHEAD,B\n")
        stream.seek(4)
        source = StreamByteSource(stream)
        assert source.read(4) == b"HEAD"
        source.seek(0)
        assert source.read(2) == b"HE"

    def test_seek_discards_read_ahead(self):
        source = StreamByteSource(io.BytesIO(b"abc\ndef\n"))
        assert source.read_until(b"\n") == b"abc"
        source.seek(1)
        assert source.read_until(b"\n") == b"bc"

    def test_seek_after_eof_reads_again(self):
        source = StreamByteSource(io.BytesIO(b"ab"))
        assert source.read(10) == b"ab"
        source.seek(0)
        assert source.read(10) == b"ab"

    def test_forward_only_seek_raises(self):
        source = StreamByteSource(ForwardOnlyStream(b"abc"), name="<pipe>")
        with pytest.raises(SeekError) as exc_info:
            source.seek(0)
        assert exc_info.value.source == "<pipe>"


class TestOwnership:
    def test_borrowed_stream_stays_open(self):
        stream = io.BytesIO(b"abc")
        with StreamByteSource(stream):
            pass
        assert not stream.closed

    def test_owned_stream_closed(self):
        stream = io.BytesIO(b"abc")
        source = StreamByteSource(stream, owned=True)
        assert source.owned
        source.close()
        assert stream.closed

    def test_close_idempotent(self):
        source = StreamByteSource(io.BytesIO(b"abc"), owned=True)
        source.close()
        source.close()

    def test_open_path_is_owned(self, tmp_path):
        path = tmp_path / "data.csv"
        path.write_bytes(b"a,b\n")
        source = StreamByteSource.open(path)
        assert source.owned
        assert source.name == str(path)
        assert source.read_until(b"\n") == b"a,b"
        source.close()

    def test_open_missing_path(self, tmp_path):
        missing = tmp_path / "nope.csv"
        with pytest.raises(SourceOpenError) as exc_info:
            StreamByteSource.open(missing)
        assert exc_info.value.source == str(missing)
        assert "source=" in str(exc_info.value)

    def test_name_defaults_to_stream_name(self, tmp_path):
        path = tmp_path / "named.csv"
        path.write_bytes(b"x")
        with open(path, "rb") as f:
            assert StreamByteSource(f).name == str(Path(path))

    def test_read_failure_is_source_error(self):
        source = StreamByteSource(FailingStream(), name="<dev>")
        with pytest.raises(SourceOpenError, match="device not ready"):
            source.read(4)


# ============================================================================
# replay.py
# ============================================================================

class TestReplayBuffer:
    def test_fifo_order(self):
        replay = ReplayBuffer([b"one"])
        replay.extend([b"two", b"three"])
        replay.append(b"four")
        assert [replay.pop() for _ in range(4)] == [b"one", b"two", b"three", b"four"]

    def test_drained(self):
        replay = ReplayBuffer([b"x"])
        assert not replay.drained
        replay.pop()
        assert replay.drained
        assert len(replay) == 0

    def test_pop_empty_raises(self):
        with pytest.raises(IndexError):
            ReplayBuffer().pop()

    def test_clear_and_snapshot(self):
        replay = ReplayBuffer([b"a", b"b"])
        assert replay.lines() == [b"a", b"b"]
        replay.clear()
        assert replay.drained
        assert replay.lines() == []
