"""核心业务逻辑."""

from lares.core.crawler import Crawler
from lares.core.importer import OPMLImporter
from lares.core.resolver import Resolver
from lares.core.store import Store
from lares.core.subscriptions import SubscriptionService

__all__ = [
    "Crawler",
    "OPMLImporter",
    "Resolver",
    "Store",
    "SubscriptionService",
]
