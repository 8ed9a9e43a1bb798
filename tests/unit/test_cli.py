"""
Unit tests for scripts/boond_sync_cron.py

Runs main() with the services mocked and checks the JSON printed on
stdout and the exit status.
"""

import importlib.util
import json
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from boondsync.common.circuit_breaker import get_boondmanager_breaker
from boondsync.common.rate_limiter import get_rate_limiter

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "boond_sync_cron.py"


@pytest.fixture
def cli():
    spec = importlib.util.spec_from_file_location("boond_sync_cron", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    # setup_logging would replace pytest's capture handlers on the root logger
    with patch.object(module, "setup_logging"):
        yield module


def output(capsys):
    return json.loads(capsys.readouterr().out)


class TestArguments:
    def test_command_required(self, cli):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([])

        assert exc_info.value.code == 2

    def test_version(self, cli, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--version"])

        assert exc_info.value.code == 0
        assert "0.1.0" in capsys.readouterr().out

    def test_unknown_environment(self, cli):
        with pytest.raises(SystemExit):
            cli.main(["quality", "--env", "staging"])

    def test_import_defaults(self, cli):
        args = cli.build_parser().parse_args(["import"])

        assert args.env == "production"
        assert args.entities == ["resources", "candidates", "opportunities"]
        assert not args.dry_run


class TestWorkflowCommands:
    def test_status(self, cli, capsys):
        with patch.object(cli, "WorkflowService") as service_cls:
            service_cls.return_value.get_status.return_value = {
                "mongodb": {"candidates": 3},
                "lastSync": None,
            }

            assert cli.main(["status"]) == 0

        assert output(capsys)["mongodb"] == {"candidates": 3}

    def test_failed_workflow_exit_status(self, cli, capsys):
        with patch.object(cli, "WorkflowService") as service_cls:
            service_cls.return_value.run.return_value = {"allSuccessful": False, "results": []}

            code = cli.main(["workflow", "--steps", "import", "--user-email", "admin@ebmc.eu"])

        assert code == 1
        service_cls.return_value.run.assert_called_once_with(steps=["import"], user_email="admin@ebmc.eu")

    def test_exception_reported_as_json(self, cli, capsys):
        with patch.object(cli, "WorkflowService") as service_cls:
            service_cls.return_value.get_status.side_effect = ValueError(
                "MONGODB_URI environment variable is required"
            )

            code = cli.main(["-v", "status"])

        assert code == 1
        assert output(capsys) == {
            "success": False,
            "command": "status",
            "error": "MONGODB_URI environment variable is required",
        }


class TestConfigurationCheck:
    def test_missing_mongodb_uri_stops_status(self, cli, capsys, monkeypatch):
        monkeypatch.setattr(cli.Config, "MONGODB_URI", "")

        with patch.object(cli, "WorkflowService") as service_cls:
            code = cli.main(["status"])

        assert code == 1
        assert "MONGODB_URI" in output(capsys)["error"]
        service_cls.assert_not_called()

    def test_only_the_command_environment_is_required(self, cli, capsys, monkeypatch):
        monkeypatch.setattr(cli.Config, "BOOND_PRODUCTION_PASSWORD", "")
        dictionary = MagicMock()
        dictionary.get_all_states.return_value = {}
        dictionary.cached_environments.return_value = []

        with patch.object(cli, "get_dictionary_service", return_value=dictionary):
            assert cli.main(["dictionary", "--env", "sandbox"]) == 0
            assert cli.main(["dictionary", "--env", "production"]) == 1

    @pytest.mark.parametrize("command, expected", [
        (["status"], ["MONGODB_URI"]),
        (["export-sandbox"], ["MONGODB_URI", "BOOND_SANDBOX_USERNAME", "BOOND_SANDBOX_PASSWORD"]),
        (["import", "--env", "sandbox"], ["MONGODB_URI", "BOOND_SANDBOX_USERNAME", "BOOND_SANDBOX_PASSWORD"]),
        (["sync"], [
            "BOOND_PRODUCTION_USERNAME", "BOOND_PRODUCTION_PASSWORD",
            "BOOND_SANDBOX_USERNAME", "BOOND_SANDBOX_PASSWORD",
        ]),
    ])
    def test_required_settings(self, cli, command, expected):
        args = cli.build_parser().parse_args(command)

        assert cli.required_settings(args) == expected

    def test_verbose_logs_summary(self, cli, caplog):
        with patch.object(cli, "WorkflowService") as service_cls, \
                caplog.at_level(logging.DEBUG, logger="boond_sync"):
            service_cls.return_value.get_status.return_value = {}
            cli.main(["-v", "status"])

        assert "Configuration Summary:" in caplog.text


class TestImportCommand:
    def test_record_errors_fail_the_run(self, cli, capsys):
        report = {"success": True, "result": {"totalErrors": 2}}
        with patch.object(cli, "create_boond_client") as create_client, \
                patch.object(cli, "run_import", return_value=report) as run_import, \
                patch.object(cli, "BoondImportService"):
            code = cli.main(["import", "--entities", "candidates", "--clean", "--no-recruitment-stage"])

        assert code == 1
        create_client.assert_called_once_with("production")
        kwargs = run_import.call_args.kwargs
        assert kwargs["entities"] == ["candidates"]
        assert kwargs["clean_before_import"] is True
        assert kwargs["infer_recruitment_stage"] is False
        assert kwargs["create_users_from_resources"] is True

    def test_dry_run_previews(self, cli, capsys):
        with patch.object(cli, "create_boond_client"), \
                patch.object(cli, "preview_from_client", return_value={"totals": {}}) as preview, \
                patch.object(cli, "run_import") as run_import:
            assert cli.main(["import", "--dry-run"]) == 0

        preview.assert_called_once()
        run_import.assert_not_called()


class TestExportData:
    def test_csv_requires_entity(self, cli):
        with patch.object(cli, "BoondSyncService"):
            assert cli.main(["export-data", "--format", "csv"]) == 2

    def test_csv_to_file(self, cli, tmp_path):
        target = tmp_path / "candidates.csv"
        with patch.object(cli, "BoondSyncService") as service_cls:
            service = service_cls.return_value
            service.fetch_all_data.return_value.entities = {"candidates": [{"id": 1}]}
            service.clean_data.return_value = service.fetch_all_data.return_value
            service.export_to_csv.return_value = "id,firstName\n1,Alice"

            code = cli.main([
                "export-data", "--env", "sandbox", "--format", "csv",
                "--entity", "candidates", "--clean", "-o", str(target),
            ])

        assert code == 0
        assert target.read_text(encoding="utf-8") == "id,firstName\n1,Alice"
        service.fetch_all_data.assert_called_once_with("sandbox")
        service.clean_data.assert_called_once()
        assert service.export_to_csv.call_args.args[1] == cli.CSV_EXPORT_FIELDS["candidates"]


def test_sync_exit_status(cli, capsys):
    with patch.object(cli, "BoondSyncService") as service_cls:
        result = MagicMock(failed_records=0)
        result.to_dict.return_value = {"totalRecords": 4}
        service_cls.return_value.sync_prod_to_sandbox.return_value = result

        assert cli.main(["sync"]) == 0

    assert output(capsys) == {
        "totalRecords": 4,
        "resilience": {"rateLimits": {}, "circuitBreakers": {}},
    }


def test_workflow_reports_limiter_and_breaker_state(cli, capsys):
    get_rate_limiter("boondmanager_sandbox").acquire()
    breaker = get_boondmanager_breaker("production")
    breaker.record_failure(ConnectionError("down"))

    with patch.object(cli, "WorkflowService") as service_cls:
        service_cls.return_value.run.return_value = {"allSuccessful": True, "results": []}
        assert cli.main(["workflow"]) == 0

    resilience = output(capsys)["resilience"]
    sandbox = resilience["rateLimits"]["boondmanager_sandbox"]
    assert sandbox["stats"]["total_requests"] == 1
    assert sandbox["remaining_daily"] is None
    production = resilience["circuitBreakers"]["boondmanager_production"]
    assert production["state"] == "closed"
    assert production["consecutive_failures"] == 1
    assert production["last_failure_reason"] == "down"


def test_dictionary_command(cli, capsys):
    dictionary = MagicMock()
    dictionary.get_all_states.return_value = {"candidateStates": {0: "A traiter"}}
    dictionary.cached_environments.return_value = ["sandbox"]

    with patch.object(cli, "get_dictionary_service", return_value=dictionary):
        assert cli.main(["dictionary", "--env", "sandbox", "--refresh"]) == 0

    dictionary.fetch_dictionary.assert_called_once_with("sandbox", force_refresh=True)
    assert output(capsys) == {
        "environment": "sandbox",
        "cached": True,
        "states": {"candidateStates": {"0": "A traiter"}},
    }
