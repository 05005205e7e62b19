"""
Utility functions for Mizan Memory Engine
Copyright 2025 Jurden Bruce
"""

import logging
import re
import sys
import time
from datetime import datetime, timezone
from typing import List, Optional, Union

logger = logging.getLogger("mizan-memory.utils")

MS_PER_DAY = 1000 * 60 * 60 * 24

_DURATION_UNITS_MS = {
    "s": 1000,
    "m": 1000 * 60,
    "h": 1000 * 60 * 60,
    "d": MS_PER_DAY,
}


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds"""
    return int(time.time() * 1000)


def parse_duration_ms(value: Optional[str]) -> Optional[int]:
    """Parse a relative duration like '7d' or '12h' into milliseconds

    Unparsable input yields None so callers can treat it as "no filter".
    """
    if not value:
        return None
    match = re.fullmatch(r"(\d+)([smhd])", value.strip())
    if not match:
        logger.warning(f"Ignoring unparsable duration: {value}")
        return None
    return int(match.group(1)) * _DURATION_UNITS_MS[match.group(2)]


def parse_date_ms(value: Union[str, int, float, None]) -> Optional[int]:
    """Parse an ISO date/datetime or a numeric epoch-ms value"""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return int(value)
    text = str(value).strip()
    if re.fullmatch(r"-?\d+(\.\d+)?", text):
        return int(float(text))
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)
    except ValueError:
        logger.warning(f"Ignoring unparsable date: {value}")
        return None


def parse_tags(tags_str: Optional[str]) -> List[str]:
    """Parse comma-separated tags"""
    if not tags_str:
        return []
    return [tag.strip() for tag in tags_str.split(",") if tag.strip()]


def setup_logging(level: str = "INFO"):
    """Configure stderr logging for the CLI and web server entry points"""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s [%(levelname)s] [%(name)s] %(message)s",
    )
    for logger_name in ["sentence_transformers", "urllib3", "httpx", "httpcore"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
