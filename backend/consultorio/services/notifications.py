"""E-mail notification delivery and the background dispatcher.

`send_notification` hands one record to an `EmailSender` and stores the
outcome on the row. The dispatcher is a plain asyncio sleep loop started
from the FastAPI lifespan; every `notification_dispatch_interval_seconds`
it sends up to `notification_dispatch_batch_size` pending notifications,
oldest first.

Configuration (via .env):
    NOTIFICATION_DISPATCH_INTERVAL_SECONDS=60   (0 disables the loop)
    NOTIFICATION_DISPATCH_BATCH_SIZE=50
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Protocol

from fastapi import FastAPI
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from consultorio.config import settings
from consultorio.database import async_session, engine
from consultorio.models.notificacion import EstadoNotificacion, Notificacion
from consultorio.utils.redis import close_redis

logger = logging.getLogger("consultorio.notifications")


class EmailSender(Protocol):
    async def send(self, to: str, subject: str, body: str) -> None:
        """Deliver one message; raise on failure."""
        ...


class LoggingEmailSender:
    """Default sender: records the message in the log and nothing else."""

    def __init__(self, from_address: str = settings.email_from):
        self.from_address = from_address

    async def send(self, to: str, subject: str, body: str) -> None:
        logger.info(
            "E-mail to %s: %s",
            to,
            subject,
            extra={"from": self.from_address, "length": len(body)},
        )


_sender: EmailSender = LoggingEmailSender()


def get_email_sender() -> EmailSender:
    """FastAPI dependency."""
    return _sender


async def send_notification(
    db: AsyncSession,
    notificacion: Notificacion,
    sender: EmailSender,
) -> bool:
    """Send `notificacion` and persist the result. Returns True on success."""
    try:
        await sender.send(
            notificacion.destinatario_email,
            notificacion.asunto,
            notificacion.contenido,
        )
    except Exception as exc:
        logger.warning(
            "Notification %s failed: %s", notificacion.id, exc, exc_info=True
        )
        notificacion.estado = EstadoNotificacion.FALLIDO.value
        notificacion.error_mensaje = str(exc) or exc.__class__.__name__
        await db.flush()
        return False

    notificacion.estado = EstadoNotificacion.ENVIADO.value
    notificacion.fecha_envio = datetime.now(timezone.utc)
    notificacion.error_mensaje = None
    await db.flush()
    return True


async def dispatch_pending(sender: EmailSender, batch_size: int) -> int:
    """Send one batch of pending notifications. Returns how many were sent."""
    sent = 0
    async with async_session() as db:
        result = await db.execute(
            select(Notificacion)
            .where(Notificacion.estado == EstadoNotificacion.PENDIENTE.value)
            .order_by(Notificacion.fecha_creacion)
            .limit(batch_size)
        )
        for notificacion in result.scalars().all():
            if await send_notification(db, notificacion, sender):
                sent += 1
        await db.commit()
    return sent


async def _dispatcher_loop(interval: int, batch_size: int) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            sent = await dispatch_pending(get_email_sender(), batch_size)
            if sent:
                logger.info("Dispatched %d pending notifications", sent)
        except Exception:
            logger.exception("Unhandled error in notification dispatcher")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan: start the dispatcher, release pools on shutdown."""
    task = None
    interval = settings.notification_dispatch_interval_seconds
    if interval > 0:
        task = asyncio.create_task(
            _dispatcher_loop(interval, settings.notification_dispatch_batch_size)
        )
        logger.info("Notification dispatcher started (every %ds)", interval)
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info("Notification dispatcher stopped")
        await close_redis()
        await engine.dispose()
