from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_log = logging.getLogger("pingpy")
_log.addHandler(logging.NullHandler())


def get_logger() -> logging.Logger:
    return _log


def configure_logging(verbose: bool = False) -> None:
    """Attach a rich handler on stderr. DEBUG with -v, otherwise WARNING."""
    for old in [h for h in _log.handlers if isinstance(h, RichHandler)]:
        _log.removeHandler(old)
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("{name}: {message}", style="{"))
    _log.addHandler(handler)
    _log.setLevel(logging.DEBUG if verbose else logging.WARNING)
