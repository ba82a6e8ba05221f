"""Builders for test records."""

from unittest.mock import MagicMock

from crm_outreach.clients.supabase import Lead


def make_lead(lead_id: str, **overrides) -> Lead:
    fields = {
        "id": lead_id,
        "name": f"Person {lead_id}",
        "company": "Acme",
        "company_role": "Engineer",
        "email": f"{lead_id}@acme.com",
        "linkedin_url": f"https://linkedin.com/in/{lead_id}",
        "stage": "new",
        "created_at": "2024-01-01T00:00:00Z",
    }
    fields.update(overrides)
    return Lead(**fields)


def make_response(status_code: int) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    return response
