import multiprocessing
import os

# Billing station server settings.
# Draft bills ride in the signed cookie and the ledger lives in the
# database, so requests need no worker affinity.
bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"
workers = int(os.environ.get('WEB_CONCURRENCY', multiprocessing.cpu_count() + 1))
worker_class = 'gthread'
threads = int(os.environ.get('GUNICORN_THREADS', 4))

# Item extraction waits on the Groq API.
timeout = 60
graceful_timeout = 20
keepalive = 5
max_requests = 500
max_requests_jitter = 50

accesslog = '-'
errorlog = '-'
loglevel = os.environ.get('LOG_LEVEL', 'info').lower()
