from __future__ import annotations

import logging
import sys


def configure_logging(*, verbose: bool, quiet: bool) -> None:
    """
    Configure process-wide logging defaults for CLI usage.

    - Default: INFO
    - --verbose: DEBUG
    - --quiet: WARNING

    Logging is written to stderr so it does not corrupt diffs or JSON written
    to stdout.
    """

    if verbose and quiet:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    fmt = "phpautofix: %(message)s"
    if verbose:
        fmt = "phpautofix [%(levelname)s] %(name)s: %(message)s"

    logging.basicConfig(level=level, format=fmt, stream=sys.stderr, force=True)


class Trace:
    """
    Opt-in trace of per-node fixing decisions.

    Enabled explicitly (see `FixerConfig.debug`) rather than by reading the
    environment at call time, so callers decide what gets emitted.
    """

    __slots__ = ("enabled", "_logger")

    def __init__(self, enabled: bool, logger: logging.Logger | None = None) -> None:
        self.enabled = enabled
        self._logger = logger or logging.getLogger("phpautofix.trace")

    def __call__(self, msg: str, *args: object) -> None:
        if self.enabled:
            self._logger.debug(msg, *args)


NULL_TRACE = Trace(False)
