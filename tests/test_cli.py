"""End-to-end tests for the ``gua`` command tree using Click's CliRunner.

Each test writes a config file pointing at a MockGraphServer, so the full
path (config -> token -> Graph calls -> output) is exercised.
"""

import json

import pytest
import requests
from click.testing import CliRunner
from graph_user_admin import __version__
from graph_user_admin.cli import cli
from tests.mock_graph_server import MockGraphServer


@pytest.fixture
def server():
    with MockGraphServer(page_size=2) as s:
        s.add_sku("SKU_A", "PACK_A", enabled=5)
        s.add_sku("SKU_B", "PACK_B", enabled=5)
        s.alice = s.add_user("alice@example.com", display_name="Alice Adams")
        s.bob = s.add_user("bob@example.com", display_name="Bob Brown", usage_location=None)
        s.add_user("carol@example.com", display_name="Carol Chen")
        s.sales = s.add_group("Sales", "Sales team")
        yield s


@pytest.fixture
def config_path(server, tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(server.config_dict()))
    return str(path)


@pytest.fixture
def gua(config_path):
    runner = CliRunner()

    def run(*args, input=None):
        return runner.invoke(cli, ["--config", config_path, *args], input=input)

    return run


def _token_requests(server):
    return [r for r in server.requests if r["path"].endswith("/oauth2/v2.0/token")]


class TestLicenseScenario:

    def test_add_user_two_skus(self, gua, server):
        result = gua("licenses", "add-user", "alice@example.com", "SKU_A", "SKU_B")
        assert result.exit_code == 0, result.output
        assert "Successfully added 2 license(s) to alice@example.com" in result.output

        posts = [r for r in server.graph_requests("POST") if r["path"].endswith("/assignLicense")]
        assert len(posts) == 1
        assert posts[0]["path"] == "/v1.0/users/alice@example.com/assignLicense"
        body = json.loads(posts[0]["body"])
        assert [e["skuId"] for e in body["addLicenses"]] == ["SKU_A", "SKU_B"]
        assert body["removeLicenses"] == []

    def test_remove_user(self, gua, server):
        gua("licenses", "add-user", "alice@example.com", "SKU_A")
        result = gua("licenses", "remove-user", "alice@example.com", "SKU_A")
        assert result.exit_code == 0, result.output
        assert "Successfully removed 1 license(s) from alice@example.com" in result.output

    def test_usage_location_error_exits_nonzero_with_guidance(self, gua):
        result = gua("licenses", "add-user", "bob@example.com", "SKU_A")
        assert result.exit_code == 1
        assert "❌ license assignment failed (status 400)" in result.output
        assert "gua users update <UPN> usageLocation <country-code>" in result.output

    def test_requires_at_least_one_sku(self, gua, server):
        result = gua("licenses", "add-user", "alice@example.com")
        assert result.exit_code == 2
        assert server.requests == []

    def test_list_skus_table(self, gua):
        gua("licenses", "add-user", "alice@example.com", "SKU_B")
        result = gua("licenses", "list-skus")
        assert result.exit_code == 0, result.output
        lines = result.stdout.splitlines()
        assert lines[0].split() == ["SKU", "Part", "Number", "SKU", "ID", "Consumed", "Units",
                                    "Enabled", "Units", "Available"]
        assert lines[1].startswith("---------------")
        assert lines[2].split() == ["PACK_A", "SKU_A", "0", "5", "5"]
        assert lines[3].split() == ["PACK_B", "SKU_B", "1", "5", "4"]

    def test_get_user_licenses(self, gua):
        assert "No licenses assigned to this user." in gua("licenses", "get", "alice@example.com").stdout
        gua("licenses", "add-user", "alice@example.com", "SKU_A")
        result = gua("licenses", "get", "alice@example.com")
        assert "PACK_A" in result.stdout
        assert "SKU_A" in result.stdout

    def test_group_licenses(self, gua, server):
        group_id = server.sales["id"]
        assert "No licenses assigned to this group." in gua("licenses", "get-group", group_id).stdout

        result = gua("licenses", "add-group", group_id, "SKU_A", "SKU_B")
        assert result.exit_code == 0, result.output
        assert f"Successfully added 2 license(s) to group {group_id}" in result.output

        result = gua("licenses", "get-group", group_id)
        assert "PACK_A" in result.stdout
        assert "PACK_B" in result.stdout

        result = gua("licenses", "remove-group", group_id, "SKU_B")
        assert f"Successfully removed 1 license(s) from group {group_id}" in result.output


class TestUsersCommands:

    def test_list(self, gua):
        result = gua("users", "list")
        assert result.exit_code == 0, result.output
        lines = result.stdout.splitlines()
        assert lines[0].startswith("Display Name")
        assert any("Carol Chen" in line and "carol@example.com" in line for line in lines)
        assert len(lines) == 2 + 3

    def test_list_json(self, gua):
        result = gua("--json", "users", "list")
        data = json.loads(result.stdout)
        assert [u["userPrincipalName"] for u in data] == [
            "alice@example.com", "bob@example.com", "carol@example.com",
        ]

    def test_get(self, gua):
        result = gua("users", "get", "alice@example.com")
        assert result.exit_code == 0, result.output
        assert "Display Name:        Alice Adams" in result.stdout
        assert "Account Enabled:     true" in result.stdout

    def test_get_missing_user(self, gua):
        result = gua("users", "get", "ghost@example.com")
        assert result.exit_code == 1
        assert "failed to get user (status 404)" in result.output

    def test_create(self, gua, server):
        result = gua("users", "create", "dave@example.com", "Dave Diaz", "dave", "P@ssw0rd!")
        assert result.exit_code == 0, result.output
        assert "Successfully created user!" in result.output
        assert "dave@example.com" in result.stdout
        body = json.loads(server.graph_requests("POST")[0]["body"])
        assert body["passwordProfile"]["forceChangePasswordNextSignIn"] is True

    def test_update_parses_json_values(self, gua, server):
        result = gua("users", "update", "alice@example.com", "accountEnabled", "false")
        assert result.exit_code == 0, result.output
        assert "Successfully updated accountEnabled for alice@example.com" in result.output
        assert json.loads(server.graph_requests("PATCH")[0]["body"]) == {"accountEnabled": False}

    def test_update_falls_back_to_string(self, gua, server):
        gua("users", "update", "alice@example.com", "usageLocation", "GB")
        assert json.loads(server.graph_requests("PATCH")[0]["body"]) == {"usageLocation": "GB"}

    def test_delete_requires_yes(self, gua, server):
        result = gua("users", "delete", "carol@example.com", input="no\n")
        assert result.exit_code == 0
        assert "Cancelled." in result.output
        assert server.graph_requests("DELETE") == []

    def test_delete_confirmed(self, gua, server):
        result = gua("users", "delete", "carol@example.com", input="yes\n")
        assert result.exit_code == 0, result.output
        assert "Successfully deleted user carol@example.com" in result.output
        assert len(server.graph_requests("DELETE")) == 1

    def test_delete_with_flag(self, gua, server):
        result = gua("users", "delete", "--yes", "carol@example.com")
        assert result.exit_code == 0, result.output
        assert len(server.graph_requests("DELETE")) == 1


class TestGroupsCommands:

    def test_add_and_remove_user(self, gua, server):
        group_id = server.sales["id"]
        result = gua("groups", "add-user", group_id, "alice@example.com")
        assert result.exit_code == 0, result.output
        assert f"Successfully added user alice@example.com to group {group_id}" in result.output
        assert len(_token_requests(server)) == 1

        result = gua("groups", "get", "alice@example.com")
        assert "Sales" in result.stdout

        result = gua("groups", "remove-user", group_id, "alice@example.com")
        assert result.exit_code == 0, result.output
        assert "User is not a member of any groups." in gua("groups", "get", "alice@example.com").stdout

    def test_list(self, gua):
        result = gua("groups", "list")
        assert result.exit_code == 0, result.output
        assert "Sales team" in result.stdout


class TestRootCommand:

    def test_help_needs_no_config(self, server):
        result = CliRunner().invoke(cli, ["--config", "does-not-exist.json", "users", "--help"])
        assert result.exit_code == 0
        assert "Manage Microsoft 365 users" in result.output
        assert server.requests == []

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_missing_config(self, tmp_path):
        result = CliRunner().invoke(cli, ["--config", str(tmp_path / "missing.json"), "users", "list"])
        assert result.exit_code == 1
        assert "config file not found" in result.output

    def test_incomplete_config_names_missing_field(self, server, tmp_path):
        cfg = server.config_dict()
        del cfg["clientSecret"]
        path = tmp_path / "config.json"
        path.write_text(json.dumps(cfg))
        result = CliRunner().invoke(cli, ["--config", str(path), "users", "list"])
        assert result.exit_code == 1
        assert "missing required fields: clientSecret" in result.output
        assert server.requests == []

    def test_bad_credentials(self, server, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(server.config_dict(clientSecret="wrong")))
        result = CliRunner().invoke(cli, ["--config", str(path), "users", "list"])
        assert result.exit_code == 1
        assert "token request failed (status 401)" in result.output
        assert server.graph_requests() == []

    def test_verbose_shows_auth_details(self, gua, server):
        result = gua("--verbose", "users", "get", "alice@example.com")
        assert result.exit_code == 0, result.output
        assert "Tenant ID: contoso-tenant" in result.output
        assert "Token length:" in result.output
        assert server.token not in result.output

    def test_one_token_per_invocation(self, gua, server):
        gua("users", "list")
        assert len(_token_requests(server)) == 1

    def test_ca_bundle_applies_to_every_request(self, server, tmp_path, monkeypatch):
        bundle = tmp_path / "corp-ca.pem"
        bundle.write_text("")
        path = tmp_path / "config.json"
        path.write_text(json.dumps(server.config_dict(caBundle=str(bundle))))

        seen = []
        original = requests.Session.request

        def recording_request(self, method, url, **kwargs):
            seen.append(kwargs.get("verify"))
            return original(self, method, url, **kwargs)

        monkeypatch.setattr(requests.Session, "request", recording_request)
        result = CliRunner().invoke(cli, ["--config", str(path), "users", "list"])

        assert result.exit_code == 0, result.output
        # one token request plus two pages of users
        assert seen == [str(bundle)] * 3
