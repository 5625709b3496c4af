# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""File-backed document database."""

from dotportion.db.store import DocumentStore, Collection, DuplicateKeyError
from dotportion.db.collections import get_collection

__all__ = [
    "DocumentStore",
    "Collection",
    "DuplicateKeyError",
    "get_collection",
]
