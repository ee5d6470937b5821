"""
Engine Configuration

Reads BLUEPRINT_* settings from the environment (and a local .env file)
once at import time. Values are process-wide constants; nothing here is
re-read per call.
"""

import os

from dotenv import load_dotenv

load_dotenv()

CATALOG_PATH = os.environ.get(
    "BLUEPRINT_CATALOG_PATH",
    os.path.join(os.path.dirname(__file__), "module_catalog.json"),
)

LOG_LEVEL = os.environ.get("BLUEPRINT_LOG_LEVEL", "info").lower()

# Validator heuristics
LINEAR_CHAIN_THRESHOLD = int(os.environ.get("BLUEPRINT_LINEAR_CHAIN_THRESHOLD", "5"))
MIN_NODE_SPACING = int(os.environ.get("BLUEPRINT_MIN_NODE_SPACING", "100"))

# Upload guard for raw JSON documents
MAX_DOCUMENT_BYTES = int(os.environ.get("BLUEPRINT_MAX_DOCUMENT_BYTES", str(5 * 1024 * 1024)))
MAX_DOCUMENT_DEPTH = int(os.environ.get("BLUEPRINT_MAX_DOCUMENT_DEPTH", "64"))
