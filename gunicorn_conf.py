import os

wsgi_app = "app.main:app"
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.getenv("WEB_CONCURRENCY", 2))
worker_class = "uvicorn.workers.UvicornWorker"
timeout = int(os.getenv("GUNICORN_TIMEOUT", 30))
graceful_timeout = int(os.getenv("GUNICORN_GRACEFUL_TIMEOUT", 30))
keepalive = int(os.getenv("GUNICORN_KEEPALIVE", 5))
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# The app lifespan routes gunicorn.* loggers through Loguru in each worker
accesslog = "-"
errorlog = "-"


def post_fork(server, worker):
    """
    Reset the sliding-window store cache in each worker.

    The in-memory rate limit store is process-local; workers must not share
    a copy inherited from the master.
    """
    from app.core.rate_limit import get_rate_limit_store

    get_rate_limit_store.cache_clear()
