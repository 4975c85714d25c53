"""
Service bundle handed to the route builders.

build_services() picks the SQL stores when DATABASE_URL is configured and
the in-memory stores otherwise. Tests construct Services directly.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from services.auth_tokens import TokenService
from services.scheduler import InMemoryScheduler, PublicationScheduler
from services.search import InMemorySearchIndex, SearchIndex
from services.stores import InMemoryPostStore, InMemoryUserStore, PostStore, UserStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    tokens: TokenService
    users: UserStore = field(default_factory=InMemoryUserStore)
    posts: PostStore = field(default_factory=InMemoryPostStore)
    search: SearchIndex = field(default_factory=InMemorySearchIndex)
    scheduler: PublicationScheduler = field(default_factory=InMemoryScheduler)
    session_cookie_name: str = "session"
    session_cookie_secure: bool = False


def build_services(config, database_url: Optional[str] = None) -> Services:
    """
    Build the service bundle from a config object (Config class or flask config mapping).
    """
    get = config.get if hasattr(config, "get") else (lambda key, default=None: getattr(config, key, default))

    tokens = TokenService(
        secret=get("JWT_SECRET") or get("SECRET_KEY"),
        algorithm=get("JWT_ALGORITHM", "HS256"),
        expiration_hours=int(get("JWT_EXPIRATION_HOURS", 24)),
    )
    services = Services(
        tokens=tokens,
        session_cookie_name=get("SESSION_COOKIE_NAME", "session"),
        session_cookie_secure=bool(get("SESSION_COOKIE_SECURE", False)),
    )

    database_url = database_url or get("DATABASE_URL")
    if database_url:
        from db.engine import get_engine
        from services.sql_store import SqlPostStore, SqlUserStore, create_schema

        engine = get_engine(database_url)
        create_schema(engine)
        services.users = SqlUserStore(engine)
        services.posts = SqlPostStore(engine)
        logger.info(f"services_built storage=sql dialect={engine.dialect.name}")
    else:
        logger.info("services_built storage=memory")

    return services
