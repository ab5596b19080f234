"""
Gunicorn settings for Statsor
Usage: gunicorn -c gunicorn.conf.py wsgi:app
"""

import os

bind = f"0.0.0.0:{int(os.environ.get('PORT', 8080))}"

# Collections are JSON files replaced whole on every write; concurrent
# workers sharing one data directory are last-write-wins.
workers = int(os.environ.get('STATSOR_WORKERS', 1))
threads = 1
worker_class = 'sync'
timeout = int(os.environ.get('STATSOR_TIMEOUT', 30))

# create_app runs in the master, so config errors stop the boot
max_requests = 1000
max_requests_jitter = 50
preload_app = True

accesslog = os.environ.get('STATSOR_ACCESS_LOG', '-')
errorlog = os.environ.get('STATSOR_ERROR_LOG', '-')
loglevel = os.environ.get('LOG_LEVEL', 'info').lower()

proc_name = 'statsor'


def when_ready(server):
    if workers > 1:
        server.log.warning("Running %s workers against a shared JSON data directory; writes are last-write-wins", workers)
    server.log.info("Statsor ready on %s", bind)
