import pytest
from pathlib import Path
from fastapi.testclient import TestClient
from dotenv import load_dotenv
from unittest.mock import AsyncMock, MagicMock

# Load the test environment FIRST, before any application imports, so the
# module-level Settings() can find its required variables.
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env.test")

from helpdesk_bot.config.settings import settings  # noqa: E402
from helpdesk_bot.models.domain import SearchResult  # noqa: E402
from helpdesk_bot.services.card_service import CardService  # noqa: E402
from helpdesk_bot.services.session_store import InMemorySessionStore  # noqa: E402
from helpdesk_bot.workflows.engine import DialogEngine  # noqa: E402


@pytest.fixture
def classifier():
    mock = MagicMock()
    mock.classify = AsyncMock()
    return mock


@pytest.fixture
def search_client():
    mock = MagicMock()
    mock.query = AsyncMock(return_value=SearchResult())
    return mock


@pytest.fixture
def ticket_client():
    mock = MagicMock()
    mock.submit = AsyncMock(return_value=42)
    return mock


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def cards():
    return CardService(settings.card_template_path)


@pytest.fixture
def engine(classifier, search_client, ticket_client, cards, session_store):
    """A dialog engine wired to mocked collaborators and an in-memory store."""
    return DialogEngine(
        classifier=classifier,
        search=search_client,
        tickets=ticket_client,
        cards=cards,
        store=session_store,
        confidence_threshold=0.3,
    )


@pytest.fixture(scope="function")
def test_client(mocker, engine):
    """
    Provides a TestClient for API integration tests. The global dialog engine
    is swapped for the mocked one and shutdown does not close real clients.
    """
    from helpdesk_bot.main import app

    mocker.patch("helpdesk_bot.routes.messages.dialog_engine", engine)
    for target in (
        "helpdesk_bot.utils.lifecycle.intent_service.cleanup",
        "helpdesk_bot.utils.lifecycle.search_service.cleanup",
        "helpdesk_bot.utils.lifecycle.ticket_service.cleanup",
        "helpdesk_bot.utils.lifecycle.alerting_service.cleanup",
        "helpdesk_bot.utils.lifecycle.session_store.close",
    ):
        mocker.patch(target, new_callable=AsyncMock)

    with TestClient(app) as client:
        yield client
