"""Logging and observability using Pydantic Logfire.

Modules log through the standard library (``logging.getLogger(__name__)``);
``configure_logfire()`` forwards those records to Logfire. Service operations
are wrapped in ``span()`` so remote calls and their failures show up as one
trace per operation.

Task events carry the same structured fields everywhere:
    log_task_event(logger, "info", "Task completed", task_id="42", user_id="user-1")
"""

import logging

import logfire

from src.core.config import settings


SERVICE_NAME = "tankkeeper"


def configure_logfire(*, level: int = logging.INFO) -> None:
    """Configure Logfire and route standard logging records to it.

    Without a token, spans and logs stay local.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name=SERVICE_NAME,
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )
    logging.basicConfig(handlers=[logfire.LogfireLoggingHandler()], level=level)
    logging.getLogger(__name__).info("Logfire configured for %s", settings.environment)


def span(name: str, **attributes: object) -> logfire.LogfireSpan:
    """Open a Logfire span around a service operation.

    Usage:
        with span("task_service.complete_task", task_id=task_id):
            ...
    """
    return logfire.span(name, **attributes)


def log_task_event(
    logger: logging.Logger,
    level: str,
    message: str,
    *,
    task_id: str,
    user_id: str | None = None,
    aquarium_id: str | None = None,
    **extra: object,
) -> None:
    """Log a task event with its identifying fields.

    Args:
        logger: Logger instance to use
        level: Log level name ("debug", "info", "warning", "error")
        message: Log message
        task_id: Task the event is about
        user_id: Acting user, if known
        aquarium_id: Aquarium the task belongs to, if known
        **extra: Additional context fields (successor_id, error, ...)
    """
    context: dict[str, object] = {"task_id": task_id, **extra}
    if user_id is not None:
        context["user_id"] = user_id
    if aquarium_id is not None:
        context["aquarium_id"] = aquarium_id
    getattr(logger, level.lower())(message, extra=context)
