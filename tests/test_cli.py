from __future__ import annotations

from unittest.mock import patch

from conftest import FakeFetch
from research_engine import cli
from research_engine.agents.lead_researcher import LeadResearcher
from research_engine.config import ConfigurationError


def test_cli_exits_when_credentials_missing(capsys):
    with patch("research_engine.cli.settings") as mock_settings:
        mock_settings.require_search_credentials.side_effect = ConfigurationError("Missing GOOGLE_API_KEY")
        code = cli.main(["tidal energy"])

    assert code == 2
    assert "Missing GOOGLE_API_KEY" in capsys.readouterr().err


def test_cli_writes_report(tmp_path, capsys, gov_search):
    output = tmp_path / "report.md"
    researcher = LeadResearcher(search=gov_search, fetch=FakeFetch("Agency text line. " * 20), inter_batch_delay_ms=0)

    with (
        patch("research_engine.cli.settings"),
        patch("research_engine.cli.LeadResearcher", return_value=researcher),
    ):
        code = cli.main(["tidal energy", "--depth", "basic", "--output", str(output)])

    assert code == 0
    assert output.read_text(encoding="utf-8").startswith("# Deep Research Report: tidal energy")
    printed = capsys.readouterr().out
    assert "[*] Research Plan (2 aspects):" in printed
    assert "[*] Research Complete!" in printed
