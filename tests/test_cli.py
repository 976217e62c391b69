import io
import json
from contextlib import contextmanager
from unittest.mock import MagicMock, patch

import pytest

from scripts.inventory import cli
from scripts.inventory.alerter import Alert
from scripts.inventory.errors import ScanCancelled, ScanError
from scripts.inventory.resources import IamUser
from scripts.inventory.scanner import SUPPLIER_REGISTRY, ScanResult


@pytest.fixture(autouse=True)
def no_log_setup():
    with patch.object(cli, "configure_logging"):
        yield


@pytest.fixture
def result():
    return ScanResult(
        resources={"aws_iam_user": [IamUser(id="a"), IamUser(id="b")], "aws_s3_bucket": []},
        alerts={
            "aws_s3_bucket": [Alert("bucket x skipped"), Alert("bucket y skipped")],
            "aws_route53_zone": [Alert("Ignoring aws_route53_zone from drift calculation", True)],
        },
    )


def test_parser_scan_options():
    args = cli.build_parser().parse_args(
        ["scan", "-t", "aws_iam_user", "--type", "aws_s3_bucket", "-j", "3", "-o", "out.json"],
    )
    assert args.type == ["aws_iam_user", "aws_s3_bucket"]
    assert args.parallelism == 3
    assert args.output == "out.json"
    assert args.func is cli.cmd_scan


def test_parser_rejects_unknown_types():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["scan", "--type", "aws_vpc"])


def test_types_command(capsys):
    cli.main(["types"])
    assert capsys.readouterr().out.split() == sorted(SUPPLIER_REGISTRY)


def test_print_summary(result):
    out = io.StringIO()
    cli.print_summary(result, out)
    text = out.getvalue()

    assert "aws_iam_user" in text
    assert "TOTAL" in text
    assert text.count("WARNING: Ignoring aws_route53_zone") == 1
    assert "2 resource(s) could not be read" in text


def test_with_parallelism(inventory_config):
    assert cli._with_parallelism(inventory_config, None) is inventory_config
    assert cli._with_parallelism(inventory_config, 7).scan.parallelism == 7
    with pytest.raises(ValueError):
        cli._with_parallelism(inventory_config, 0)


def fake_open_scanner(scanner):
    @contextmanager
    def opener(config, resource_types=None):
        opener.resource_types = resource_types
        yield scanner, None
    return opener


def test_scan_command_writes_output(tmp_path, inventory_config, result, capsys):
    scanner = MagicMock()
    scanner.scan_with_tracking.return_value = result
    opener = fake_open_scanner(scanner)
    output = tmp_path / "inventory.json"

    with patch.object(cli, "load_config", return_value=inventory_config), \
            patch.object(cli, "open_scanner", opener):
        cli.main(["scan", "-t", "aws_iam_user", "-o", str(output)])

    assert opener.resource_types == ["aws_iam_user"]
    scanner.scan_with_tracking.assert_called_once_with(None)
    assert json.loads(output.read_text())["resources"]["aws_iam_user"][0]["id"] == "a"
    assert "TOTAL" in capsys.readouterr().out


def test_scan_command_exits_on_failure(inventory_config):
    scanner = MagicMock()
    scanner.scan_with_tracking.side_effect = ScanError("aws_iam_user", RuntimeError("x"))

    with patch.object(cli, "load_config", return_value=inventory_config), \
            patch.object(cli, "open_scanner", fake_open_scanner(scanner)):
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["scan"])
    assert excinfo.value.code == 1


def test_scan_command_exits_130_when_cancelled(inventory_config):
    scanner = MagicMock()
    scanner.scan_with_tracking.side_effect = ScanCancelled("scan interrupted")

    with patch.object(cli, "load_config", return_value=inventory_config), \
            patch.object(cli, "open_scanner", fake_open_scanner(scanner)):
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["scan"])
    assert excinfo.value.code == 130


def test_status_without_database(inventory_config, capsys):
    with patch.object(cli, "load_config", return_value=inventory_config):
        cli.main(["status"])
    assert "No database configured" in capsys.readouterr().out


def test_open_scanner_closes_reader(inventory_config):
    with patch.object(cli, "HttpStateReader") as reader_cls, \
            patch.object(cli, "AwsClientFactory"):
        with cli.open_scanner(inventory_config, ["aws_iam_user"]) as (scanner, db):
            assert db is None
            assert scanner.resource_types == ["aws_iam_user"]
    reader_cls.return_value.close.assert_called_once()
