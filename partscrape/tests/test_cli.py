"""Tests for the command-line entry point."""
from unittest.mock import patch

import pytest

from partscrape.cli import main, parse_args
from partscrape.config import MAX_TOTAL_PRODUCTS
from partscrape.errors import BatchWriteError, BrandModelsError
from partscrape.models import RunContext


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("partscrape.cli.setup_logging"):
        yield


class TestParseArgs:

    def test_defaults(self):
        args = parse_args([])

        assert args.mode == "catalog"
        assert args.per_leaf is None
        assert not hasattr(args, "budget")

    def test_unlimited_budget(self):
        assert parse_args(["grouped", "--budget", "none"]).budget is None
        assert parse_args(["grouped", "--budget", "-1"]).budget is None
        assert parse_args(["grouped", "--budget", "40"]).budget == 40

    def test_max_pages_must_be_positive(self):
        with pytest.raises(SystemExit):
            parse_args(["--max-pages", "0"])


class TestMain:

    def test_catalog_run(self):
        with patch("partscrape.cli.run_catalog", return_value=RunContext(rows_written=3)) as run:
            assert main(["catalog", "--no-delay"]) == 0

        assert run.call_args.kwargs["budget"] is None

    def test_grouped_budget_default(self):
        with patch("partscrape.cli.run_grouped", return_value=RunContext()) as run:
            assert main(["grouped", "--brands", "BMW", "AD"]) == 0

        assert run.call_args.kwargs["budget"] == MAX_TOTAL_PRODUCTS
        assert run.call_args.kwargs["brands"] == ["BMW", "AD"]

    def test_missing_brand_models_exits_non_zero(self):
        with patch("partscrape.cli.run_grouped", side_effect=BrandModelsError("no data")):
            assert main(["grouped"]) == 1

    def test_write_failure_exits_non_zero(self):
        with patch("partscrape.cli.run_catalog", side_effect=BatchWriteError("out.csv", "disk full")):
            assert main(["catalog"]) == 1
