"""
Gunicorn configuration for the momentum engine.

Single-instance container defaults. Env vars that override them:
  PORT     TCP port to bind
  WORKERS  number of worker processes (default: 2)

The per-user submission lock is process-local; with several workers the
(user_id, date) unique constraint is what rejects a concurrent duplicate
check-in.

Run with:  gunicorn -c gunicorn.conf.py momentum_engine.main:app
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

workers = int(os.environ.get("WORKERS", "2"))

# Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# Kill a worker that hasn't responded in 120 s.
timeout = 120

# stdout only; the platform collects it.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
