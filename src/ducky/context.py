# ducky: Console I/O wrapper used by the session and the CLI.

import sys


class Context:
    """
    Thin wrapper around console I/O and logging.

    Replies go to stdout; log lines and errors go to stderr so piping the
    output of ducky captures only the model's answer.
    """

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose

    def send_to_user(self, message: str) -> None:
        print(message)

    def log(self, message: str) -> None:
        """Emit a [LOG] line on stderr when verbose."""
        if self.verbose:
            print(f"[LOG] {message}", file=sys.stderr)

    def error_message(self, message: str) -> None:
        print(f"Error: {message}", file=sys.stderr)
