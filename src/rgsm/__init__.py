"""rgsm: RGSS Script Manager.

Keeps an RPG Maker scripts bundle (`Scripts.rxdata` / `.rvdata` / `.rvdata2`),
an editable folder of `.rb` files and the `load_order.txt` manifest in sync.
"""

from __future__ import annotations

from rgsm.codecs.rgss_bundle import BundleEntry, decode, encode
from rgsm.core.section import Section, SectionType

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "BundleEntry",
    "Section",
    "SectionType",
    "decode",
    "encode",
]
