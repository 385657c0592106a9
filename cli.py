import argparse
import os
import sys

from loguru import logger

from errors import ArgumentError, SelectionError, SinkWriteError
from pagestream import open_input, open_sink
from selector import DEFAULT_PAGE_LEN, build_config, select_pages

USAGE = "%(prog)s -s start_page -e end_page [ -f | -l lines_per_page ] [ -d dest ] [ in_filename ]"


class SelpgArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports errors through ArgumentError instead of exiting."""

    def error(self, message):
        raise ArgumentError(message, exit_code=2)


def build_parser(prog):
    parser = SelpgArgumentParser(
        prog=prog,
        usage=USAGE,
        description='Select a range of pages from a text file or standard input.',
        allow_abbrev=False,
    )
    parser.add_argument('-s', '--start_page', metavar='start_page', help='First page to select (1-based)')
    parser.add_argument('-e', '--end_page', metavar='end_page', help='Last page to select (inclusive)')
    parser.add_argument('-l', '--page_len', metavar='lines_per_page',
                        help=f'Lines per page (default {DEFAULT_PAGE_LEN})')
    parser.add_argument('-f', '--form_feed', action='store_true',
                        help='Pages are delimited by form feeds; overrides -l')
    parser.add_argument('-d', '--print_dest', metavar='dest',
                        help='Send the selected pages to this destination through the spooler')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument('in_filename', nargs='?', help='Input file (default: standard input)')
    return parser


def _option_form(token, short, long):
    """Return 'separate' or 'attached' if token is the option, else None."""
    if token in (short, long):
        return 'separate'
    if token.startswith(long + '='):
        return 'attached'
    if token.startswith(short) and not token.startswith('--'):
        return 'attached'
    return None


def check_mandatory_order(tokens):
    """The start page option must come first and the end page option second."""
    if len(tokens) < 2:
        raise ArgumentError("not enough arguments", exit_code=1)

    start_form = _option_form(tokens[0], '-s', '--start_page')
    if start_form is None:
        raise ArgumentError("1st arg should be -s start_page", exit_code=2)

    end_index = 1 if start_form == 'attached' else 2
    if end_index >= len(tokens):
        raise ArgumentError("not enough arguments", exit_code=1)

    end_form = _option_form(tokens[end_index], '-e', '--end_page')
    if end_form is None:
        raise ArgumentError("2nd arg should be -e end_page", exit_code=2)
    if end_form == 'separate' and end_index + 1 >= len(tokens):
        raise ArgumentError("not enough arguments", exit_code=1)


def parse_config(parser, tokens):
    if not any(token in ('-h', '--help') for token in tokens):
        check_mandatory_order(tokens)

    args = parser.parse_args(tokens)
    config = build_config(
        args.start_page,
        args.end_page,
        page_len=DEFAULT_PAGE_LEN if args.page_len is None else args.page_len,
        form_feed=args.form_feed,
        in_filename=args.in_filename,
        print_dest=args.print_dest,
    )
    return config, args


def setup_logging(verbose, stream, prog):
    level = "DEBUG" if verbose else "WARNING"
    logger.remove()
    logger.add(stream, level=level, format=prog + ": {level}: {message}", colorize=False)


def run(tokens, prog, stdin=None, stdout=None, stderr=None):
    """Run one selection and return the process exit code."""
    stderr = stderr if stderr is not None else sys.stderr
    parser = build_parser(prog)

    try:
        config, args = parse_config(parser, tokens)
        setup_logging(args.verbose, stderr, prog)
        if args.form_feed and args.page_len is not None:
            logger.debug("-f given, ignoring -l {}", args.page_len)
        with open_input(config.in_filename, stdin) as source:
            with open_sink(config.print_dest, stdout) as sink:
                report = select_pages(config, source, sink)
    except SelectionError as e:
        print(f"{prog}: {e}", file=stderr)
        if e.show_usage:
            stderr.write(parser.format_usage())
        return e.exit_code

    for warning in report.warnings():
        print(f"{prog}: {warning}", file=stderr)
    return 0


def _silence_stdout():
    # Keep the interpreter's final flush from failing on a closed pipe.
    devnull = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull, sys.stdout.fileno())


def main(argv=None):
    prog = os.path.basename(sys.argv[0]) or 'selpg'
    code = run(sys.argv[1:] if argv is None else list(argv), prog)
    if code == SinkWriteError.exit_code:
        _silence_stdout()
    sys.exit(code)


if __name__ == '__main__':
    main()
