"""Configuration constants for StockCoach."""
from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.environ.get("STOCKCOACH_DATABASE_URL", "sqlite:///stockcoach.db")
_LOG_PATH = os.environ.get("STOCKCOACH_LOG_PATH", "")
LOG_PATH: Optional[Path] = Path(_LOG_PATH) if _LOG_PATH else None

# Paper trading
INITIAL_CASH = Decimal(os.environ.get("STOCKCOACH_INITIAL_CASH", "100000"))
MAX_RESETS = int(os.environ.get("STOCKCOACH_MAX_RESETS", "3"))
MAX_TRADES = 1000
MAX_RESET_REQUESTS = 10

# Glossary
MAX_WORDS = 500

PORTFOLIO_SNAPSHOT_KEY = "trading"
GLOSSARY_SNAPSHOT_KEY = "glossary"

__all__ = [
    "DATABASE_URL",
    "LOG_PATH",
    "INITIAL_CASH",
    "MAX_RESETS",
    "MAX_TRADES",
    "MAX_RESET_REQUESTS",
    "MAX_WORDS",
    "PORTFOLIO_SNAPSHOT_KEY",
    "GLOSSARY_SNAPSHOT_KEY",
]
