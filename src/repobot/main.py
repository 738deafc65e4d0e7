"""FastAPI application entry point for the repository bot.

This module provides the HTTP service receiving GitHub webhooks for the
request repository. Deliveries are acknowledged right away and processed in
the background, one event at a time.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional, Set

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse

from repobot.config import BotSettings, get_settings
from repobot.github.client import GitHubClient
from repobot.logging_setup import configure_logging
from repobot.metrics import BotMetrics
from repobot.orchestrator import EventProcessor, build_orchestrator
from repobot.webhook.handler import WebhookHandler
from repobot.webhook.models import EventName

logger = logging.getLogger(__name__)

# Global instances, initialized during lifespan startup
settings: Optional[BotSettings] = None
webhook_handler: Optional[WebhookHandler] = None
github_client: Optional[GitHubClient] = None
processor: Optional[EventProcessor] = None
metrics = BotMetrics()

# Keeps references to in-flight background tasks
_background_tasks: Set[asyncio.Task] = set()


def _redact_secret(value: Optional[str], visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters."""
    if not value:
        return "<unset>"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(cfg: BotSettings) -> None:
    """Log configuration values with secrets redacted."""
    logger.info(
        "Repository bot configuration",
        extra={
            "github_base_url": cfg.github_base_url,
            "github_token": _redact_secret(cfg.github_token),
            "webhook_secret": _redact_secret(cfg.webhook_secret),
            "org_admins": cfg.org_admins,
            "command_prefix": cfg.command_prefix,
            "host": cfg.host,
            "port": cfg.port,
        },
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load settings, wire dependencies, and close the client on shutdown."""
    global settings, webhook_handler, github_client, processor

    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    logger.info("Repository bot starting up...")
    _log_configuration(settings)

    webhook_handler = WebhookHandler(secret=settings.webhook_secret)
    github_client = GitHubClient(
        token=settings.github_token,
        base_url=settings.github_base_url,
    )
    processor = EventProcessor(
        build_orchestrator(settings, github_client, metrics),
        metrics=metrics,
    )

    logger.info("Repository bot started successfully")

    yield

    logger.info("Repository bot shutting down...")

    if _background_tasks:
        await asyncio.gather(*_background_tasks, return_exceptions=True)

    if github_client is not None:
        await github_client.close()

    logger.info("Repository bot shutdown complete")


app = FastAPI(
    title="Repository Bot",
    description="Self-service repository provisioning from GitHub issues",
    version="1.0.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health():
    """Liveness check endpoint."""
    return {"status": "healthy"}


@app.get("/metrics", response_class=PlainTextResponse)
async def metrics_endpoint():
    """Prometheus metrics endpoint."""
    return PlainTextResponse(metrics.render().decode("utf-8"))


@app.post("/webhooks/github")
async def github_webhook(request: Request):
    """GitHub webhook receiver endpoint.

    Verifies the delivery signature when a secret is configured, parses the
    event and schedules its processing.

    Returns:
        dict: Acknowledgment of webhook receipt.
    """
    if webhook_handler is None or processor is None:
        logger.error("Repository bot not initialized")
        raise HTTPException(status_code=503, detail="Repository bot not initialized")

    body = await request.body()
    if not webhook_handler.verify_signature(
        body, request.headers.get("X-Hub-Signature-256")
    ):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    event_name = request.headers.get("X-GitHub-Event", "")
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Payload is not valid JSON")

    event = webhook_handler.parse(event_name, payload)
    if event is None:
        known = event_name in {name.value for name in EventName}
        metrics.events_total.labels(
            event=event_name if known else "other", result="ignored"
        ).inc()
        return {"status": "ignored", "message": "Unsupported or invalid event"}

    task = asyncio.create_task(processor.process(event_name, event))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    return {"status": "accepted", "issue_id": event.issue_id}


if __name__ == "__main__":
    import uvicorn

    dev_settings = get_settings()
    uvicorn.run(
        "repobot.main:app",
        host=dev_settings.host,
        port=dev_settings.port,
    )
