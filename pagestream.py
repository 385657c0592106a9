"""Input sources and output sinks for page selection.

The input side is a single operation, `read_chunks`, which splits a byte
stream on one delimiter byte. The output side is one of two sinks with the
same `write`/`close` surface: `StreamSink` writes to an already open binary
stream (normally standard output) and `SpoolerSink` pipes the bytes into a
spooler child process whose standard output is the destination file.
"""

import os
import subprocess
import sys
from contextlib import contextmanager
from typing import BinaryIO, Iterator, Optional

from loguru import logger

from errors import DestinationError, InputOpenError, SinkWriteError

BLOCK_SIZE = 64 * 1024
SPOOLER_COMMAND = ("cat",)


def read_chunks(stream: BinaryIO, delimiter: bytes, block_size: int = BLOCK_SIZE) -> Iterator[bytes]:
    """Yield each run of bytes up to and including `delimiter`.

    Bytes after the last delimiter are never yielded.
    """
    pending = bytearray()
    scan_from = 0
    while True:
        block = stream.read(block_size)
        if not block:
            break
        pending += block
        start = 0
        while True:
            end = pending.find(delimiter, scan_from)
            if end == -1:
                break
            yield bytes(pending[start:end + 1])
            start = scan_from = end + 1
        del pending[:start]
        scan_from = len(pending)

    if pending:
        logger.debug("Dropping {} undelimited trailing bytes", len(pending))


@contextmanager
def open_input(in_filename: Optional[str], stdin: Optional[BinaryIO] = None) -> Iterator[BinaryIO]:
    """Open the named file read-only, or hand back standard input."""
    if in_filename is None:
        yield stdin if stdin is not None else sys.stdin.buffer
        return

    try:
        handle = open(in_filename, "rb")
    except OSError as e:
        raise InputOpenError(f'could not open input file "{in_filename}"') from e

    logger.debug("Reading pages from {}", in_filename)
    with handle:
        yield handle


class StreamSink:
    """Write selected pages to an open binary stream, leaving it open."""

    def __init__(self, stream: BinaryIO, name: str = "standard output"):
        self.stream = stream
        self.name = name

    def write(self, chunk: bytes) -> None:
        try:
            self.stream.write(chunk)
        except OSError as e:
            raise SinkWriteError(f"write to {self.name} failed: {e}") from e

    def close(self) -> None:
        try:
            self.stream.flush()
        except OSError as e:
            raise SinkWriteError(f"write to {self.name} failed: {e}") from e


class SpoolerSink:
    """Pipe selected pages into a spooler process that writes `dest`."""

    def __init__(self, dest: str, command=SPOOLER_COMMAND):
        self.dest = dest
        try:
            fd = os.open(dest, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o666)
        except OSError as e:
            raise DestinationError(f"could not open file {dest}") from e

        # The child keeps its own copy of the descriptor.
        try:
            self.process = subprocess.Popen(list(command), stdin=subprocess.PIPE, stdout=fd)
        except OSError as e:
            raise DestinationError(f"could not open pipe to file {dest}") from e
        finally:
            os.close(fd)

        logger.debug("Spooling to {} through {} (pid {})", dest, " ".join(command), self.process.pid)

    def write(self, chunk: bytes) -> None:
        try:
            self.process.stdin.write(chunk)
        except OSError as e:
            raise SinkWriteError(f"write to pipe for {self.dest} failed: {e}") from e

    def close(self) -> None:
        """Close the write end of the pipe and wait for the spooler to exit."""
        try:
            self.process.stdin.close()
        except OSError as e:
            raise SinkWriteError(f"write to pipe for {self.dest} failed: {e}") from e
        finally:
            returncode = self.process.wait()
            if returncode != 0:
                logger.warning("Spooler for {} exited with status {}", self.dest, returncode)
            else:
                logger.debug("Spooler for {} finished", self.dest)


@contextmanager
def open_sink(print_dest: Optional[str], stdout: Optional[BinaryIO] = None):
    """Yield the sink for `print_dest`; it is closed on every exit path."""
    if print_dest is None:
        sink = StreamSink(stdout if stdout is not None else sys.stdout.buffer)
    else:
        sink = SpoolerSink(print_dest)

    try:
        yield sink
    finally:
        sink.close()
