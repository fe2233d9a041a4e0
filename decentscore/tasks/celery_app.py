# decentscore/tasks/celery_app.py
import os
import logging
from celery import Celery
from celery.signals import worker_ready

logger = logging.getLogger(__name__)


def make_celery() -> Celery:
    """
    Instancia base de Celery (JSON, UTC) con el schedule de beat:
      - queue.drain cada QUEUE_DRAIN_INTERVAL_SECONDS (60s)
      - locks.sweep cada hora
    """
    celery_app = Celery("decentscore")

    broker_url = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/0")
    result_backend = os.getenv("CELERY_RESULT_BACKEND", broker_url)
    drain_every = int(os.getenv("QUEUE_DRAIN_INTERVAL_SECONDS", "60"))

    celery_app.conf.update(
        broker_url=broker_url,
        result_backend=result_backend,
        task_ignore_result=False,
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone=os.getenv("TZ", "UTC"),
        enable_utc=True,
        beat_schedule={
            "drain-refresh-queue": {"task": "queue.drain", "schedule": float(drain_every)},
            "sweep-refresh-locks": {"task": "locks.sweep", "schedule": 3600.0},
        },
    )
    return celery_app


celery = make_celery()


@worker_ready.connect
def _check_broker(sender=None, **kwargs):
    """Diagnóstico de conexión al arrancar el worker."""
    try:
        conn = celery.connection()
        conn.ensure_connection(max_retries=1)
        logger.info(f"✅ Celery conectado correctamente a broker: {celery.conf.broker_url}")
    except Exception as e:
        logger.error(f"❌ Error conectando a Celery broker ({celery.conf.broker_url}): {e}")


def init_celery(flask_app) -> Celery:
    """Toma broker/backend de la config Flask y ejecuta cada task dentro del app context."""
    broker = flask_app.config.get("CELERY_BROKER_URL")
    backend = flask_app.config.get("CELERY_RESULT_BACKEND") or broker
    if broker:
        celery.conf.broker_url = broker
    if backend:
        celery.conf.result_backend = backend

    TaskBase = celery.Task

    class ContextTask(TaskBase):
        def __call__(self, *args, **kwargs):
            with flask_app.app_context():
                return TaskBase.__call__(self, *args, **kwargs)

    celery.Task = ContextTask
    celery.set_default()

    # registra las tasks
    from decentscore.tasks import queue_tasks  # noqa: F401

    return celery


def _init_celery_with_flask():
    from decentscore import create_app
    config_name = os.getenv("FLASK_ENV", "development")
    flask_app = create_app(config_name)
    init_celery(flask_app)
    return flask_app


# El worker/beat arrancan con `-A decentscore.tasks.celery_app.celery`
if os.getenv("FLASK_ENV") != "testing":
    _flask_app = _init_celery_with_flask()
