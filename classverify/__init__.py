"""classverify — trust verification for submitted class logs.

Fuses device GPS, vision analysis of the class photos and the photo capture
time into one auditable verdict per class log.

Public API surface:
    - VerificationConfig: Runtime configuration
    - VerificationRequest: Inbound payload
    - verify_class_log: Run the pipeline and return the verdict
"""

__version__ = "1.0.0"

from config.settings import VerificationConfig
from classverify.models.pipeline import VerificationRequest
from classverify.pipeline import run, verify_class_log

__all__ = [
    "__version__",
    "VerificationConfig",
    "VerificationRequest",
    "run",
    "verify_class_log",
]
