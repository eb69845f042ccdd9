"""Redis connection for session-scoped assistant state.

Conversation context and pending clarifications can live in Redis so that
several worker processes share them. Every caller accepts None and keeps
state in memory instead, so Redis stays optional.
"""

import logging
import os

import redis

logger = logging.getLogger(__name__)


def is_redis_enabled() -> bool:
    """Check the REDIS_ENABLED flag (on unless set to false/0/no)."""
    return os.environ.get("REDIS_ENABLED", "true").lower() not in ("false", "0", "no")


def get_redis_client(
    host: str | None = None,
    port: int | None = None,
    db: int | None = None,
) -> redis.Redis | None:
    """Connect to the Redis server holding session state.

    REDIS_URL, when set, takes precedence over the host/port/db settings
    (REDIS_HOST, REDIS_PORT, REDIS_DB).

    Returns:
        A connected client, or None when Redis is disabled or unreachable
    """
    if not is_redis_enabled():
        logger.info("Redis disabled, session state stays in process memory")
        return None

    url = os.environ.get("REDIS_URL")
    if url and host is None and port is None:
        target = url
    else:
        host = host or os.environ.get("REDIS_HOST", "localhost")
        port = port or int(os.environ.get("REDIS_PORT", "6379"))
        db = db if db is not None else int(os.environ.get("REDIS_DB", "0"))
        target = f"{host}:{port}/{db}"

    try:
        if target == url:
            client = redis.Redis.from_url(url, socket_connect_timeout=2, socket_timeout=2)
        else:
            client = redis.Redis(
                host=host, port=port, db=db, socket_connect_timeout=2, socket_timeout=2
            )
        client.ping()
    except redis.ConnectionError as e:
        logger.warning("Redis unreachable at %s, using in-memory session state: %s", target, e)
        return None
    except redis.RedisError as e:
        logger.error("Redis error while connecting: %s", e)
        return None

    logger.info("Session state stored in Redis at %s", target)
    return client
