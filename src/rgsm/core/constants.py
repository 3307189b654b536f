"""Fixed values shared by the codec, the section tree and the loader script.

These are part of the on-disk contract with projects that were already
extracted; changing any of them breaks existing bundles and load orders.
"""

from __future__ import annotations

# Section id reserved for the loader entry inside the bundle.
LOADER_SECTION_ID = 133_769_420

# Generated section ids are drawn from [0, SECTION_ID_MAX).
SECTION_ID_MAX = 133_769_419

LOADER_SCRIPT_NAME = "RGSS Script Editor Loader"

LOAD_ORDER_FILE_NAME = "load_order.txt"

# Marks a disabled entry in the load order. Must stay blacklisted in names.
SKIP_CHARACTER = "#"

# Name given to separator sections. Contains blacklisted characters on purpose.
SEPARATOR_NAME = "*separator*"

# Code stored for folder sections inside a bundle.
FOLDER_SENTINEL = "# RGSS Script Editor folder (PLEASE DO NOT MODIFY THIS SCRIPT AT ALL)"

SCRIPT_EXTENSION = ".rb"

ENCODING_COMMENT = "# encoding: utf-8"

DEFAULT_FOLDER_NAME = "Untitled Folder"
DEFAULT_SCRIPT_NAME = "Untitled Script"

# Bundle file locations relative to a project folder, newest engine last.
BUNDLE_CANDIDATES = (
    "Data/Scripts.rxdata",
    "Data/Scripts.rvdata",
    "Data/Scripts.rvdata2",
)
