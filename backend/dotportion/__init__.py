# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""DotPortion backend: request handlers and workflow orchestration."""

__version__ = "1.0.0"
