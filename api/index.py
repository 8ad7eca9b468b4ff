"""Serverless handler module: hosting platforms import `app` from here."""

import sys
from pathlib import Path

_SRC_DIR = Path(__file__).resolve().parent.parent / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.append(str(_SRC_DIR))

from recipe_snap.api.asgi import app  # noqa: E402

__all__ = ["app"]
