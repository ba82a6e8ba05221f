"""Shared fixtures for automation tests."""

from unittest.mock import AsyncMock, patch

import pytest

from crm_outreach.clients.supabase import Company
from tests.factories import make_response


@pytest.fixture
def company():
    return Company(
        id="co-1",
        name="Acme",
        industry="Software",
        size="51-200",
        website="https://acme.com",
        linkedin_url="https://linkedin.com/company/acme",
        lead_score="82",
        score_reason="Hiring engineers",
    )


@pytest.fixture
def http_client():
    """Patch httpx.AsyncClient in the dispatcher; post returns 200 by default."""
    with patch("crm_outreach.automation.dispatcher.httpx.AsyncClient") as mock_client_class:
        mock_client = AsyncMock()
        mock_client.post = AsyncMock(return_value=make_response(200))
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=None)
        mock_client_class.return_value = mock_client
        yield mock_client
