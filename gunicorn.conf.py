"""
Gunicorn configuration for the sales ops dashboard.
"""
import os

# Worker configuration
# Cada worker mantiene su propio cliente de Sheets
workers = int(os.getenv("GUNICORN_WORKERS", "2"))

# Worker class: UvicornWorker para ASGI
worker_class = "uvicorn.workers.UvicornWorker"

# Bind address (la plataforma asigna PORT)
port = os.getenv("PORT", "8000")
bind = f"0.0.0.0:{port}"

# Timeouts
# Las llamadas a Sheets tienen su propio timeout (SHEETS_TIMEOUT_SECONDS)
timeout = 60
keepalive = 5

# Graceful shutdown
graceful_timeout = 30

# Worker lifecycle
max_requests = 1000
max_requests_jitter = 50

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info")

access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# El cliente httpx se crea en el startup de cada worker, no antes del fork
preload_app = False

backlog = 100

worker_tmp_dir = "/tmp"

def on_starting(server):
    import logging
    logger = logging.getLogger("gunicorn.error")
    logger.info(f"[GUNICORN] Iniciando Gunicorn con {workers} workers")

def post_worker_init(worker):
    import logging
    logger = logging.getLogger("gunicorn.error")
    logger.info(f"[GUNICORN] Worker {worker.pid} inicializado correctamente")
