#!/usr/bin/env python3
"""
One-off cleanup of expired refresh and password reset tokens.
Run with: python -m scripts.cleanup_tokens

Same job the scheduler runs in-process; useful from cron when
TOKEN_CLEANUP_ENABLED is off.
"""

import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.config import settings
from app.core.log_sanitizer import configure_logging
from app.core.scheduler import cleanup_expired_tokens


if __name__ == "__main__":
    configure_logging(settings.LOG_LEVEL)
    counts = cleanup_expired_tokens()
    print(
        f"Deleted {counts['refresh_tokens']} refresh tokens and "
        f"{counts['password_reset_tokens']} password reset tokens"
    )
