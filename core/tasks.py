import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger("BackgroundTasks")

async def run_periodically(
    job: Callable[[], Awaitable[object]],
    interval_seconds: float,
    run_immediately: bool = False,
    name: str = "periodic-job",
):
    """
    Ejecuta `job` cada `interval_seconds` hasta que la tarea sea cancelada.

    Args:
        job: Corrutina sin argumentos (ej. BoardStateController.refresh).
        interval_seconds: Espera entre ejecuciones.
        run_immediately: Si True, ejecuta una vez antes de la primera espera.
        name: Nombre para los logs.

    A failing run is logged and the loop keeps going; cancellation stops it.
    """
    if not run_immediately:
        await asyncio.sleep(interval_seconds)

    while True:
        try:
            await job()
        except Exception as e:
            logger.error(f"Error en tarea {name}: {e}")

        # Esperar para la siguiente ejecución
        await asyncio.sleep(interval_seconds)
