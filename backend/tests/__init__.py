# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Test Suite for DotPortion Backend

Structure:
- unit/: services, storage and helpers
- workflow/: workflow engine components
- api/: HTTP and WebSocket routes through TestClient
"""
