"""CLI utilities: table printing and muting the console log handler."""

import logging
from contextlib import contextmanager
from typing import Iterator, Sequence

from cashflow_kernel.logging_config import ROOT_LOGGER_NAME

W = 80


def print_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
    """Left-aligned columns sized to their widest cell."""
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    line = "  ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    print(line)
    print("-" * min(len(line), W))
    for row in rows:
        print("  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)))


@contextmanager
def quiet_logging(enabled: bool = True) -> Iterator[None]:
    """
    Silence the kernel's console handlers inside the block.

    File handlers keep logging.  Handler levels are restored on exit.
    """
    if not enabled:
        yield
        return

    handlers = [
        h
        for h in logging.getLogger(ROOT_LOGGER_NAME).handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]
    saved = [h.level for h in handlers]
    for h in handlers:
        h.setLevel(logging.CRITICAL + 1)
    try:
        yield
    finally:
        for h, level in zip(handlers, saved):
            h.setLevel(level)
