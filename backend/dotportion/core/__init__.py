# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Core utilities and shared modules for DotPortion backend.

This package contains:
- config: Configuration management
- dependencies: Dependency injection
- errors: Custom exceptions
- logging: Structured logging
- security: Token issuing and verification
"""

from dotportion.core.config import get_config, Config
from dotportion.core.errors import DotPortionError, NotFoundError, ValidationError
from dotportion.core.logging import get_logger

__all__ = [
    "get_config",
    "Config",
    "DotPortionError",
    "NotFoundError",
    "ValidationError",
    "get_logger",
]
