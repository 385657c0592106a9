from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional

from loguru import logger

from errors import ArgumentError, InputMissingError
from pagestream import read_chunks

DEFAULT_PAGE_LEN = 72
# Upper bound for page numbers and page lengths.
PAGE_LIMIT = (1 << 32) - 1


class PageType(str, Enum):
    LINES = "lines"
    FORM_FEED = "form_feed"

    @property
    def delimiter(self) -> bytes:
        return b"\n" if self is PageType.LINES else b"\f"


@dataclass(frozen=True)
class SelectionConfig:
    start_page: int
    end_page: int
    page_len: int = DEFAULT_PAGE_LEN
    page_type: PageType = PageType.LINES
    in_filename: Optional[str] = None
    print_dest: Optional[str] = None


def _page_number(value, what):
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ArgumentError(f"invalid {what} {value}", exit_code=3) from None

    if number < 1 or number > PAGE_LIMIT:
        raise ArgumentError(f"invalid {what} {value}", exit_code=3)
    return number


def build_config(start_page, end_page, page_len=DEFAULT_PAGE_LEN, form_feed=False,
                 in_filename=None, print_dest=None) -> SelectionConfig:
    """Validate raw option values and return a read-only SelectionConfig.

    Numeric values may be given as ints or as the strings typed on the
    command line. Range problems raise ArgumentError with exit code 3 and a
    missing input file raises InputMissingError.
    """
    start = _page_number(start_page, "start page")
    end = _page_number(end_page, "end page")
    if end < start:
        raise ArgumentError(f"invalid end page {end_page}", exit_code=3)

    # -f ignores the page length but it still has to be valid.
    length = _page_number(page_len, "page length")

    if in_filename is not None and not Path(in_filename).exists():
        raise InputMissingError(f'input file "{in_filename}" does not exist')

    return SelectionConfig(
        start_page=start,
        end_page=end,
        page_len=length,
        page_type=PageType.FORM_FEED if form_feed else PageType.LINES,
        in_filename=in_filename,
        print_dest=print_dest or None,
    )


class LinePager:
    """Track the page of each newline-terminated chunk for fixed-length pages."""

    def __init__(self, page_len):
        self.page_len = page_len
        self.page_ctr = 1
        self.line_ctr = 0

    def advance(self):
        self.line_ctr += 1
        if self.line_ctr > self.page_len:
            # This line opens the next page.
            self.page_ctr += 1
            self.line_ctr = 1
        return self.page_ctr

    @property
    def pages_started(self):
        return self.page_ctr if self.line_ctr else 0

    @property
    def pages_complete(self):
        if self.line_ctr == self.page_len:
            return self.page_ctr
        return self.page_ctr - 1 if self.line_ctr else 0


class FormFeedPager:
    """Every form-feed-terminated chunk is a page of its own."""

    def __init__(self):
        self.page_ctr = 1

    def advance(self):
        page = self.page_ctr
        self.page_ctr += 1
        return page

    @property
    def pages_started(self):
        return self.page_ctr - 1

    pages_complete = pages_started


@dataclass
class SelectionReport:
    start_page: int
    end_page: int
    pages_started: int = 0
    pages_complete: int = 0
    chunks_written: int = 0
    bytes_written: int = 0

    @property
    def start_overrun(self) -> bool:
        return self.pages_started < self.start_page

    @property
    def end_overrun(self) -> bool:
        return not self.start_overrun and self.pages_complete < self.end_page

    def warnings(self) -> list:
        if self.start_overrun:
            return [
                f"start_page ({self.start_page}) greater than total pages "
                f"({self.pages_started}), no output written"
            ]
        if self.end_overrun:
            return [
                f"end_page ({self.end_page}) greater than total pages "
                f"({self.pages_complete}), less output than expected"
            ]
        return []


def make_pager(config: SelectionConfig):
    if config.page_type is PageType.FORM_FEED:
        return FormFeedPager()
    return LinePager(config.page_len)


def select_pages(config: SelectionConfig, source: BinaryIO, sink) -> SelectionReport:
    pager = make_pager(config)
    report = SelectionReport(start_page=config.start_page, end_page=config.end_page)
    logger.debug(
        "Selecting pages {}-{} ({}, page_len={})",
        config.start_page, config.end_page, config.page_type.value, config.page_len,
    )

    for chunk in read_chunks(source, config.page_type.delimiter):
        page = pager.advance()
        if config.start_page <= page <= config.end_page:
            sink.write(chunk)
            report.chunks_written += 1
            report.bytes_written += len(chunk)

    report.pages_started = pager.pages_started
    report.pages_complete = pager.pages_complete
    logger.debug(
        "Read {} pages, wrote {} bytes in {} chunks",
        report.pages_started, report.bytes_written, report.chunks_written,
    )
    return report
