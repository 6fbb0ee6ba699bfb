"""只运行定时抓取: python -m lares.scheduler."""

import asyncio
import logging

from lares.config import get_settings
from lares.scheduler.tasks import runloop

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

asyncio.run(runloop(get_settings()))
