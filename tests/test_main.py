import logging

import pytest
import requests

from app_assignments import main as cli
from app_assignments.errors import AuthenticationError, FetchFailed
from app_assignments.menu import CANCELLED

from conftest import CRM_SP_ID, FakeGraphClient, contoso_directory, page


class ScriptedSelector:
    def __init__(self, choice):
        self.choice = choice
        self.offered = None

    def select(self, items, page_size=None):
        self.offered = list(items)
        return CANCELLED if self.choice is None else items[self.choice]


def args_for(tmp_path, *extra):
    return cli.parse_args(["--output-dir", str(tmp_path), "--token", "t", *extra])


def test_select_mode_exports_assignments(tmp_path, capsys):
    selector = ScriptedSelector(0)

    assert cli.run(args_for(tmp_path), client=contoso_directory(), selector=selector) == 0

    assert selector.offered[0].id == CRM_SP_ID
    [out] = list(tmp_path.glob("assignments-Contoso_CRM-*.csv"))
    assert len(out.read_text(encoding="utf-8").splitlines()) == 4
    assert "1 of 3 principals could not be resolved" in capsys.readouterr().out


def test_cancelled_selection_writes_nothing(tmp_path):
    selector = ScriptedSelector(None)

    assert cli.run(args_for(tmp_path), client=contoso_directory(), selector=selector) == 0
    assert list(tmp_path.iterdir()) == []


def test_first_match_is_non_interactive(tmp_path):
    args = args_for(tmp_path, "--name", "Contoso", "--first-match", "--output", "crm")

    assert cli.run(args, client=contoso_directory()) == 0
    assert len(list(tmp_path.glob("crm-*.csv"))) == 1


def test_all_mode_with_empty_tenant(tmp_path):
    assert cli.run(args_for(tmp_path, "--all"), client=FakeGraphClient()) == 0
    [out] = list(tmp_path.glob("service-principals-*.csv"))
    assert out.read_text(encoding="utf-8").startswith("DisplayName,AppId,ObjectId")


def test_main_maps_errors_to_exit_codes(tmp_path, monkeypatch):
    run = cli.run

    def not_found(args, client=None, selector=None):
        return run(args, client=FakeGraphClient())

    monkeypatch.setattr(cli, "run", not_found)
    # a --name filter that matches nothing is a NotFound
    assert cli.main(["--output-dir", str(tmp_path), "--name", "Nope", "--first-match"]) == 2

    def failing(args, client=None, selector=None):
        raise FetchFailed("servicePrincipals", 42)

    monkeypatch.setattr(cli, "run", failing)
    assert cli.main(["--output-dir", str(tmp_path), "--all"]) == 1
    assert list(tmp_path.iterdir()) == []


def test_page_size_validation():
    with pytest.raises(SystemExit):
        cli.parse_args(["--page-size", "0"])


def test_connection_drop_on_selected_app_exits_cleanly(tmp_path, fake_get):
    crm = contoso_directory().objects["servicePrincipals"][CRM_SP_ID]
    fake_get(page([crm]), requests.ConnectionError("connection reset"))

    rc = cli.main(["--output-dir", str(tmp_path), "--token", "t", "--first-match"])

    assert rc == 1
    assert list(tmp_path.iterdir()) == []


def test_token_acquisition_failure_exits_cleanly(tmp_path, monkeypatch):
    def no_token(self):
        raise AuthenticationError("Token request to login.microsoftonline.com failed: timed out")

    monkeypatch.setattr(cli.GraphClient, "_get_token", no_token)
    monkeypatch.setattr(cli.config, "GRAPH_TOKEN", None)

    assert cli.main(["--output-dir", str(tmp_path), "--all"]) == 1


def test_token_defaults_to_config(monkeypatch):
    monkeypatch.setattr(cli.config, "GRAPH_TOKEN", "from-env")
    assert cli.parse_args([]).token == "from-env"


def test_resolver_stats_are_logged(tmp_path, caplog):
    caplog.set_level(logging.INFO)

    cli.run(args_for(tmp_path), client=contoso_directory(), selector=ScriptedSelector(0))

    assert "2 resolved, 1 unknown (0 undetermined after 0 failed lookup(s))" in caplog.text
