"""
Request ID Utilities
Generate unique request IDs for tracing.
"""
import uuid
from datetime import datetime


def generate_request_id(prefix: str = "color") -> str:
    """
    Generate a unique request ID for tracking.

    Args:
        prefix: Short tag naming the input mode

    Returns:
        Unique request ID string, e.g. ``url-20250101120000-1a2b3c4d``
    """
    timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
    short_uuid = str(uuid.uuid4())[:8]
    return f"{prefix}-{timestamp}-{short_uuid}"