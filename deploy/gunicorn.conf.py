"""Gunicorn configuration for the course lifecycle service.

Usage:
    gunicorn main:app -c deploy/gunicorn.conf.py

Requests are I/O-bound: MongoDB and Chroma round-trips, embedding calls
during uploads (several seconds for large files) and label extraction.
"""

import multiprocessing
import os

# ─── Server socket ──────────────────────────────────────────────

bind = os.getenv("BIND", "0.0.0.0:8020")
backlog = 2048

# ─── Worker processes ───────────────────────────────────────────
#
# Async ASGI workers: one per core.  Each worker holds its own Motor
# client, Chroma client and collection-name cache.

workers = int(os.getenv("WORKERS", min(multiprocessing.cpu_count(), 4)))
worker_class = "uvicorn.workers.UvicornWorker"

# ─── Timeouts ───────────────────────────────────────────────────
#
# A 10MB PDF upload embeds a few hundred chunks; allow for slow
# embedding endpoints.

timeout = 180
graceful_timeout = 60
keepalive = 30

# ─── Worker recycling ──────────────────────────────────────────

max_requests = 3000
max_requests_jitter = 500

# ─── Logging ────────────────────────────────────────────────────

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info")

proc_name = "course-lifecycle"


def on_starting(server):
    server.log.info(
        "Starting course lifecycle service — workers=%d, timeout=%ds, bind=%s",
        workers, timeout, bind,
    )


def worker_exit(server, worker):
    server.log.info("Worker exit (pid: %s)", worker.pid)
