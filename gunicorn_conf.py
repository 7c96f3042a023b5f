# Gunicorn config; run with: gunicorn -c gunicorn_conf.py edusocial.main:app
bind = "0.0.0.0:8000"
# The WebSocket connection registry lives in process memory
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"
loglevel = "info"
accesslog = "/var/log/gunicorn/access.log"
errorlog = "/var/log/gunicorn/error.log"
