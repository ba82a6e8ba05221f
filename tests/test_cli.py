import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from crm_outreach.automation.results import OperationResult
from crm_outreach.core.cli import cli
from tests.factories import make_lead, make_response


def mock_store(*leads):
    store = MagicMock()
    store.get_leads.return_value = list(leads)
    store.get_company.return_value = None
    return store


def test_cli_preview_prints_messages_without_writing():
    store = mock_store(make_lead("a", name="Ana Diaz", linkedin_url=None))
    with tempfile.TemporaryDirectory() as tmpdir, \
            patch("crm_outreach.core.cli.SupabaseStore", return_value=store):
        runner = CliRunner()
        result = runner.invoke(cli, ["preview", "a", "--job-title", "SRE", "--config", tmpdir])

    assert result.exit_code == 0
    assert "Hi Ana," in result.output
    assert "SRE role" in result.output
    assert "No LinkedIn" in result.output
    assert "[follow_up]" in result.output
    store.update_lead_outreach.assert_not_called()


def test_cli_automate_applies_edits_and_reports_summary(http_client):
    store = mock_store(make_lead("a"), make_lead("b"))
    with tempfile.TemporaryDirectory() as tmpdir, \
            patch.dict("os.environ", {}, clear=True), \
            patch("crm_outreach.core.cli.SupabaseStore", return_value=store):
        message_file = Path(tmpdir) / "edits.yaml"
        message_file.write_text("a:\n  request: Custom hello\n")

        runner = CliRunner()
        result = runner.invoke(cli, [
            "automate", "a", "b",
            "--message-file", str(message_file),
            "--config", tmpdir,
        ])

    assert result.exit_code == 0, result.output
    assert "Applied 1 message edit(s)" in result.output
    assert "Succeeded:            2" in result.output
    assert store.update_lead_outreach.call_count == 2
    requests = {c.args[0]: c.kwargs["request"] for c in store.update_lead_outreach.call_args_list}
    assert requests["a"] == "Custom hello"
    sent = {c.kwargs["json"]["lead"]["id"]: c.kwargs["json"]["lead"]["linkedinMessage"]
            for c in http_client.post.call_args_list}
    assert sent == requests


def test_cli_automate_exits_nonzero_on_partial_failure(http_client):
    http_client.post.return_value = make_response(429)
    store = mock_store(make_lead("a"))
    with tempfile.TemporaryDirectory() as tmpdir, \
            patch.dict("os.environ", {}, clear=True), \
            patch("crm_outreach.core.cli.SupabaseStore", return_value=store):
        runner = CliRunner()
        result = runner.invoke(cli, ["automate", "a", "--config", tmpdir])

    assert result.exit_code == 1
    assert "webhook rejected (HTTP 429)" in result.output


def run_automate_with_edits(edits_yaml: str):
    store = mock_store(make_lead("a"))
    with tempfile.TemporaryDirectory() as tmpdir, \
            patch.dict("os.environ", {}, clear=True), \
            patch("crm_outreach.core.cli.SupabaseStore", return_value=store):
        message_file = Path(tmpdir) / "edits.yaml"
        message_file.write_text(edits_yaml)

        runner = CliRunner()
        result = runner.invoke(cli, [
            "automate", "a",
            "--message-file", str(message_file),
            "--config", tmpdir,
        ])
    return result, store


def test_cli_automate_rejects_unknown_slot_in_edit_file(http_client):
    result, store = run_automate_with_edits("a:\n  followUp: hi\n")

    assert result.exit_code == 1
    assert not isinstance(result.exception, ValueError)
    assert "Unknown message slot 'followUp' for lead a" in result.output
    store.update_lead_outreach.assert_not_called()
    http_client.post.assert_not_called()


def test_cli_automate_rejects_non_string_message_in_edit_file(http_client):
    result, store = run_automate_with_edits("a:\n  request: 12345\n")

    assert result.exit_code == 1
    assert not isinstance(result.exception, TypeError)
    assert "lead a slot 'request' must be non-empty text" in result.output
    store.update_lead_outreach.assert_not_called()


def test_cli_automate_rejects_empty_message_in_edit_file(http_client):
    result, store = run_automate_with_edits("a:\n  request:\n")

    assert result.exit_code == 1
    assert "lead a slot 'request' must be non-empty text" in result.output
    store.update_lead_outreach.assert_not_called()


def test_cli_automate_with_no_matching_leads_fails():
    store = mock_store()
    with tempfile.TemporaryDirectory() as tmpdir, \
            patch("crm_outreach.core.cli.SupabaseStore", return_value=store):
        runner = CliRunner()
        result = runner.invoke(cli, ["automate", "missing", "--config", tmpdir])

    assert result.exit_code != 0
    assert "Select at least one lead" in result.output


def test_cli_favorite_refreshes_entity():
    store = MagicMock()
    store.toggle_favorite.return_value = OperationResult.success()
    store.refresh_lead.return_value = make_lead("a", name="Ana Diaz")
    with patch("crm_outreach.core.cli.SupabaseStore", return_value=store):
        runner = CliRunner()
        result = runner.invoke(cli, ["favorite", "lead", "a"])

    assert result.exit_code == 0
    assert "Ana Diaz added to favorites" in result.output
    store.toggle_favorite.assert_called_once_with("lead", "a", True)
    store.refresh_lead.assert_called_once_with("a")


def test_cli_favorite_reports_failure():
    store = MagicMock()
    store.toggle_favorite.return_value = OperationResult.failure("denied")
    with patch("crm_outreach.core.cli.SupabaseStore", return_value=store):
        runner = CliRunner()
        result = runner.invoke(cli, ["favorite", "company", "co-1", "--off"])

    assert result.exit_code != 0
    assert "denied" in result.output


def test_cli_uses_configured_table_names():
    store = mock_store(make_lead("a"))
    with tempfile.TemporaryDirectory() as tmpdir, \
            patch("crm_outreach.core.cli.SupabaseStore", return_value=store) as store_class:
        (Path(tmpdir) / "settings.yaml").write_text("tables:\n  people: crm_people\n")

        runner = CliRunner()
        result = runner.invoke(cli, ["preview", "a", "--config", tmpdir])

    assert result.exit_code == 0
    assert store_class.call_args.kwargs["tables"].people == "crm_people"
