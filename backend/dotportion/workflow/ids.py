# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

import re
import time
import uuid

EXECUTION_ID_PATTERN = r"^exec_\d+_[0-9a-f]{8}$"


def generate_execution_id() -> str:
    """
    New execution id: exec_<epoch ms>_<8 hex chars>.

    The random suffix keeps ids unique within one millisecond; the
    timestamp prefix keeps them time-ordered.
    """
    return f"exec_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def is_execution_id(value) -> bool:
    return isinstance(value, str) and re.fullmatch(EXECUTION_ID_PATTERN, value) is not None
