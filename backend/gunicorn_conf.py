# backend/gunicorn_conf.py

# Gunicorn config file
# Run with: gunicorn -c gunicorn_conf.py helpdesk_bot.main:app
# Worker count comes from WORKERS. Settings validation refuses WORKERS > 1
# unless SESSION_BACKEND=redis, which also locks each conversation across
# workers.

from helpdesk_bot.config.settings import settings

# Basic configuration
bind = "0.0.0.0:8000"
workers = settings.workers
worker_class = "uvicorn.workers.UvicornWorker"

# Settings for running behind a reverse proxy like Nginx
forwarded_allow_ips = "*"

# --- Logging ---
accesslog = "-"
errorlog = "-"
loglevel = "info"
