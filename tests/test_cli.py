"""Tests for CLI commands."""

import httpx
import pytest
from click.testing import CliRunner

from bifrost import __version__
from bifrost.cli import cli


@pytest.fixture
def runner(tmp_path, monkeypatch):
    """CLI runner isolated from any bifrost.toml in the working directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    return CliRunner()


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_generate_writes_files(runner, config_file, shop_data, tmp_path):
    path = config_file(shop_data)
    out = tmp_path / "out"

    result = runner.invoke(cli, ["--log-level", "ERROR", "generate", str(path), "-o", str(out)])

    assert result.exit_code == 0, result.output
    for name in ("main.tf", "variables.tf", "terraform.tfvars", "README.md"):
        assert (out / name).exists()
    assert 'resource "google_compute_network" "shop-network"' in (out / "main.tf").read_text()
    assert "shop" in result.output


def test_generate_default_output_dir(runner, config_file, shop_data, tmp_path):
    path = config_file(shop_data)
    result = runner.invoke(cli, ["--log-level", "ERROR", "generate", str(path)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "terraform" / "main.tf").exists()


def test_generate_dry_run(runner, config_file, shop_data, tmp_path):
    path = config_file(shop_data)
    result = runner.invoke(cli, ["--log-level", "ERROR", "generate", str(path), "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "# Generated Terraform for shop distributed application" in result.output
    assert not (tmp_path / "terraform").exists()


def test_generate_yaml_file(runner, tmp_path):
    path = tmp_path / "app.yaml"
    path.write_text(
        "applicationName: shop\n"
        "network:\n"
        "  primaryRegion: us-central1\n"
        "  primarySubnetCidr: 10.0.1.0/24\n"
    )
    result = runner.invoke(cli, ["--log-level", "ERROR", "generate", str(path), "--dry-run"])
    assert result.exit_code == 0, result.output
    assert "shop-subnet-us-central1" in result.output


def test_generate_reports_errors(runner, config_file, shop_data):
    shop_data["workloads"][0]["region"] = "europe-west9"
    path = config_file(shop_data)

    result = runner.invoke(cli, ["--log-level", "ERROR", "generate", str(path)])

    assert result.exit_code == 1
    assert "Topology error" in result.output
    assert "europe-west9" in result.output


def test_validate_ok(runner, config_file, full_data):
    result = runner.invoke(cli, ["--log-level", "ERROR", "validate", str(config_file(full_data))])
    assert result.exit_code == 0, result.output
    assert "atlas is valid" in result.output
    assert "Workloads: 3" in result.output


def test_validate_bad_kind(runner, config_file, shop_data):
    shop_data["workloads"][0]["kind"] = "mainframe"
    result = runner.invoke(cli, ["--log-level", "ERROR", "validate", str(config_file(shop_data))])
    assert result.exit_code == 1
    assert "Unsupported workload kind" in result.output


def test_validate_not_a_mapping(runner, tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    result = runner.invoke(cli, ["--log-level", "ERROR", "validate", str(path)])
    assert result.exit_code == 1
    assert "mapping" in result.output


def test_cost_local(runner, config_file, shop_data):
    result = runner.invoke(cli, ["--log-level", "ERROR", "cost", str(config_file(shop_data))])
    assert result.exit_code == 0, result.output
    assert "Infrastructure" in result.output
    assert "250.00" in result.output
    assert "local pricing" in result.output


def test_cost_with_unreachable_endpoint(runner, config_file, shop_data, mocker):
    mocker.patch("bifrost.pricing.httpx.Client.post", side_effect=httpx.ConnectError("refused"))
    result = runner.invoke(
        cli,
        [
            "--log-level", "ERROR",
            "cost", str(config_file(shop_data)),
            "--pricing-url", "http://127.0.0.1:9/estimate",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "250.00" in result.output


def test_settings_file(runner, config_file, shop_data, tmp_path):
    settings = tmp_path / "bifrost.toml"
    settings.write_text('log_level = "ERROR"\n[template]\nterraform_version = ">= 1.6"\n')
    result = runner.invoke(cli, ["generate", str(config_file(shop_data)), "--dry-run"])
    assert result.exit_code == 0, result.output
    assert 'required_version = ">= 1.6"' in result.output
