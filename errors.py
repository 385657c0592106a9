class SelectionError(Exception):
    """Base class for every condition that ends a page selection run."""

    exit_code = 1
    show_usage = False

    def __init__(self, message, exit_code=None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ArgumentError(SelectionError):
    """Bad command-line usage: too few args (1), misplaced (2), out of range (3)."""

    show_usage = True


class InputMissingError(SelectionError):
    exit_code = 4


class InputOpenError(SelectionError):
    exit_code = 5


class DestinationError(SelectionError):
    exit_code = 6


class SinkWriteError(SelectionError):
    exit_code = 7
