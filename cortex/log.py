"""
Cortex — Logging

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

Library modules log through logging.getLogger(__name__) and never install
handlers themselves. Entry points call setup_logging() once.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_configured = False


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach one stderr handler to the 'cortex' logger. Repeated calls only change the level."""
    global _configured
    root = logging.getLogger("cortex")
    root.setLevel(level.upper() if isinstance(level, str) else level)
    if not _configured:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        root.propagate = False
        _configured = True
    return root
