"""
Gunicorn configuration for the Narrata leaderboard API.

Run with:  gunicorn -c gunicorn.conf.py narrata.main:app

Env vars that override defaults:
  PORT     — TCP port to bind
  WORKERS  — number of worker processes (default: 2)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Sync endpoints run in Uvicorn's threadpool; each worker holds its own
# SQLAlchemy connection pool.
workers = int(os.environ.get("WORKERS", "2"))
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# The ranking refresh endpoint touches every active entry; leave it room.
timeout = 120

loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
