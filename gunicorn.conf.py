"""Gunicorn configuration for production."""

# Server socket
bind = '0.0.0.0:8080'

# Worker processes; each worker runs its own rate refresh threads
workers = 2
worker_class = 'sync'
timeout = 30
keepalive = 2

# Logging
accesslog = '-'
errorlog = '-'
loglevel = 'info'

# Process naming
proc_name = 'jewellery-pricing'

# Server mechanics
daemon = False
pidfile = None
umask = 0
user = None
group = None
tmp_upload_dir = None


def worker_exit(server, worker):
    """Stop the rate refresh threads before the worker goes away."""
    from app.services.background_sync import stop_background_sync
    stop_background_sync()
