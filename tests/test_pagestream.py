"""Tests for the chunk reader, input opening and both output sinks."""

import io

import pytest

from errors import DestinationError, InputOpenError, SinkWriteError
from pagestream import SpoolerSink, StreamSink, open_input, open_sink, read_chunks


class BrokenStream(io.RawIOBase):
    def writable(self):
        return True

    def write(self, data):
        raise BrokenPipeError(32, "Broken pipe")


class TestReadChunks:
    def test_chunks_keep_their_delimiter(self):
        stream = io.BytesIO(b"ab\ncdef\n\n")

        assert list(read_chunks(stream, b"\n")) == [b"ab\n", b"cdef\n", b"\n"]

    def test_chunks_span_block_boundaries(self):
        stream = io.BytesIO(b"ab\ncdefgh\n\nxyz")

        chunks = list(read_chunks(stream, b"\n", block_size=3))

        assert chunks == [b"ab\n", b"cdefgh\n", b"\n"]

    def test_form_feed_delimiter(self):
        stream = io.BytesIO(b"page one\nmore\fpage two\f")

        assert list(read_chunks(stream, b"\f", block_size=4)) == [
            b"page one\nmore\f",
            b"page two\f",
        ]

    def test_empty_stream(self):
        assert list(read_chunks(io.BytesIO(b""), b"\n")) == []

    def test_undelimited_stream_yields_nothing(self):
        assert list(read_chunks(io.BytesIO(b"no newline here"), b"\n")) == []


class TestOpenInput:
    def test_standard_input_is_passed_through(self):
        stdin = io.BytesIO(b"x\n")

        with open_input(None, stdin) as source:
            assert source is stdin

        assert not stdin.closed

    def test_named_file_is_closed_afterwards(self, tmp_path):
        path = tmp_path / "in.txt"
        path.write_bytes(b"x\ny\n")

        with open_input(str(path)) as source:
            assert source.read() == b"x\ny\n"

        assert source.closed

    def test_unreadable_input(self, tmp_path):
        with pytest.raises(InputOpenError) as excinfo:
            with open_input(str(tmp_path)):
                pass

        assert excinfo.value.exit_code == 5
        assert str(tmp_path) in str(excinfo.value)


class TestStreamSink:
    def test_writes_and_leaves_stream_open(self):
        out = io.BytesIO()

        with open_sink(None, out) as sink:
            assert isinstance(sink, StreamSink)
            sink.write(b"a\n")
            sink.write(b"b\n")

        assert out.getvalue() == b"a\nb\n"
        assert not out.closed

    def test_write_failure(self):
        sink = StreamSink(BrokenStream())

        with pytest.raises(SinkWriteError) as excinfo:
            sink.write(b"a\n")

        assert excinfo.value.exit_code == 7
        assert "standard output" in str(excinfo.value)


class TestSpoolerSink:
    def test_pages_reach_destination(self, tmp_path):
        dest = tmp_path / "printer.out"

        with open_sink(str(dest)) as sink:
            assert isinstance(sink, SpoolerSink)
            sink.write(b"L1\n")
            sink.write(b"L2\n")

        assert dest.read_bytes() == b"L1\nL2\n"
        assert sink.process.returncode == 0

    def test_existing_destination_is_replaced(self, tmp_path):
        dest = tmp_path / "printer.out"
        dest.write_bytes(b"old content that is longer\n")

        with open_sink(str(dest)) as sink:
            sink.write(b"new\n")

        assert dest.read_bytes() == b"new\n"

    def test_unopenable_destination(self, tmp_path):
        dest = tmp_path / "no-such-dir" / "printer.out"

        with pytest.raises(DestinationError) as excinfo:
            SpoolerSink(str(dest))

        assert excinfo.value.exit_code == 6
        assert str(excinfo.value) == f"could not open file {dest}"

    def test_missing_spooler_command(self, tmp_path):
        dest = tmp_path / "printer.out"

        with pytest.raises(DestinationError) as excinfo:
            SpoolerSink(str(dest), command=("selpg-no-such-spooler",))

        assert excinfo.value.exit_code == 6
        assert "could not open pipe" in str(excinfo.value)

    def test_spooler_exit_status_is_not_an_error(self, tmp_path):
        dest = tmp_path / "printer.out"
        sink = SpoolerSink(str(dest), command=("sh", "-c", "cat > /dev/null; exit 3"))

        sink.write(b"L1\n")
        sink.close()

        assert sink.process.returncode == 3

    def test_spooler_that_stops_reading(self, tmp_path):
        dest = tmp_path / "printer.out"
        sink = SpoolerSink(str(dest), command=("true",))

        with pytest.raises(SinkWriteError) as excinfo:
            try:
                for _ in range(64):
                    sink.write(b"x" * 65536)
            finally:
                sink.close()

        assert excinfo.value.exit_code == 7
