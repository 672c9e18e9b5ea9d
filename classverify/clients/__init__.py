"""classverify clients package.

External service clients only — no business logic in this layer.
Each client handles connection management and response parsing.
"""

from classverify.clients.vision_client import VisionClient, parse_analysis_response

__all__ = [
    "VisionClient",
    "parse_analysis_response",
]
