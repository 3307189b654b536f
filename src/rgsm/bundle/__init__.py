"""Everything that turns the tree into engine-facing files.

- `load_order`: `load_order.txt` read/write
- `loader`: the Ruby loader entry injected into the bundle
- `table`: bundle entries as a pandas table

This package must not import workspace/cli.
"""

from __future__ import annotations

from .load_order import (
    LoadOrderLine,
    LoadOrderResult,
    LoadOrderStatus,
    parse_load_order_text,
    read_load_order,
    write_load_order,
)
from .loader import LoaderConfig, loader_entry, render_loader_code

__all__ = [
    "LoadOrderLine",
    "LoadOrderResult",
    "LoadOrderStatus",
    "LoaderConfig",
    "loader_entry",
    "parse_load_order_text",
    "read_load_order",
    "render_loader_code",
    "write_load_order",
]
