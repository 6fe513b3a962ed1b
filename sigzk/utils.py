import logging
import os
from typing import Optional

LOG_ENV = "ZKVM_LOG"


def setup_logger(level: Optional[str] = None) -> None:
    level = (level or os.environ.get(LOG_ENV) or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
