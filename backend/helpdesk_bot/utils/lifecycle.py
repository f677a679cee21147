# /helpdesk_bot/utils/lifecycle.py

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from helpdesk_bot.utils.logging import setup_logging
from helpdesk_bot.utils.alerting import alerting_service
from helpdesk_bot.services.card_service import card_service
from helpdesk_bot.services.intent_service import intent_service
from helpdesk_bot.services.search_service import search_service
from helpdesk_bot.services.ticket_service import ticket_service
from helpdesk_bot.services.session_store import session_store
from helpdesk_bot.workflows.definitions import FLOWS
from helpdesk_bot.config.settings import settings

# This file manages the application's lifespan: startup checks and service
# warm-up, then closing HTTP clients and connections on shutdown.

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    setup_logging()

    logger.info("Application starting up...")

    card_service.load_template()
    logger.info(f"Registered flows: {', '.join(FLOWS)}")
    logger.info(f"Dialog sessions backend: {settings.session_backend}")

    logger.info("Application startup complete. Ready to accept requests.")

    yield  # Application is now running

    logger.info("Application shutting down...")

    await intent_service.cleanup()
    await search_service.cleanup()
    await ticket_service.cleanup()
    await alerting_service.cleanup()
    await session_store.close()
