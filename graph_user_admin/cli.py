"""CLI interface for graph-user-admin (``gua``) using Click.

Config loading and authentication are deferred until a command first needs
the Graph client, so ``--help`` and ``--version`` work without a config file.
Any ``GraphAdminError`` raised by a command is printed as a single error line
and the process exits with status 1.
"""

import logging
import sys
from typing import List, Optional

import click

from . import __version__
from .auth import get_access_token
from .config import DEFAULT_CONFIG_PATH, Config, load_config
from .errors import GraphAdminError
from .groups import add_member, get_user_groups, list_groups, remove_member
from .http_client import GraphClient
from .licenses import (
    assign_group_licenses,
    assign_user_licenses,
    get_group_licenses,
    get_user_licenses,
    list_subscribed_skus,
    resolve_part_numbers,
)
from .output import (
    print_error,
    print_fields,
    print_json,
    print_status,
    print_success,
    print_table,
    print_warning,
)
from .users import (
    create_user,
    delete_user,
    get_user,
    list_users,
    parse_property_value,
    update_user,
)

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


class Session:
    """Per-invocation state: options from the root command plus the lazily built client."""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH, verbose: bool = False, json_output: bool = False):
        self.config_path = config_path
        self.verbose = verbose
        self.json_output = json_output
        self.config: Optional[Config] = None
        self._client: Optional[GraphClient] = None

    @property
    def client(self) -> GraphClient:
        if self._client is None:
            self._client = self._connect()
        return self._client

    def _connect(self) -> GraphClient:
        self.config = load_config(self.config_path)
        cfg = self.config

        print_status("Authenticating with Microsoft Graph...")
        if self.verbose:
            print_status(f"Tenant ID: {cfg.tenant_id}")
            print_status(f"Client ID: {cfg.client_id}")

        token = get_access_token(
            cfg.tenant_id,
            cfg.client_id,
            cfg.client_secret,
            authority_host=cfg.authority_host,
            timeout=cfg.timeout,
            tls_no_verify=cfg.tls_no_verify,
            proxy=cfg.proxy,
            ca_bundle=cfg.ca_bundle,
        )

        print_status("✓ Authentication successful!")
        if self.verbose:
            print_status(f"Token length: {len(token)} characters")
        print_status("")

        return GraphClient(
            token,
            base_url=cfg.graph_endpoint,
            tls_no_verify=cfg.tls_no_verify,
            timeout=cfg.timeout,
            proxy=cfg.proxy,
            ca_bundle=cfg.ca_bundle,
        )


def _configure_logging(verbose: bool):
    """Send package debug logging to stderr when ``--verbose`` is set.

    Handlers are rebuilt on every invocation so they bind to the current
    ``sys.stderr``.
    """
    logger = logging.getLogger("graph_user_admin")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    if not verbose:
        logger.setLevel(logging.WARNING)
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)


class _GuaGroup(click.Group):
    """Root group that turns expected failures into one error line and exit code 1."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except GraphAdminError as e:
            print_error(str(e))
            ctx.exit(1)


pass_session = click.make_pass_decorator(Session)


@click.group(cls=_GuaGroup)
@click.option("-c", "--config", "config_path", default=DEFAULT_CONFIG_PATH, show_default=True,
              help="Path to configuration file")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output for debugging")
@click.option("--json", "json_output", is_flag=True, help="Print results as JSON")
@click.version_option(version=__version__, prog_name="gua")
@click.pass_context
def cli(ctx, config_path: str, verbose: bool, json_output: bool):
    """GraphUserAdmin - Microsoft 365 user, license, and group management.

    Uses the Microsoft Graph REST API with client credentials authentication.
    Credentials are read from a JSON config file (tenantId, clientId,
    clientSecret).
    """
    _configure_logging(verbose)
    ctx.obj = Session(config_path=config_path, verbose=verbose, json_output=json_output)


# -- users -------------------------------------------------------------------


@cli.group()
def users():
    """Manage Microsoft 365 users."""


@users.command("list")
@click.option("--filter", "odata_filter", default=None, help="OData $filter expression")
@pass_session
def users_list(session: Session, odata_filter: Optional[str]):
    """List all users in the tenant."""
    user_list = list_users(session.client, odata_filter)
    if session.json_output:
        print_json([u.to_dict() for u in user_list])
        return
    print_table(
        ["Display Name", "User Principal Name", "Mail"],
        [(u.display_name, u.user_principal_name, u.mail) for u in user_list],
    )


@users.command("get")
@click.argument("upn")
@pass_session
def users_get(session: Session, upn: str):
    """Get details for a specific user."""
    user = get_user(session.client, upn)
    if session.json_output:
        print_json(user.to_dict())
        return
    print_fields([
        ("ID", user.id),
        ("Display Name", user.display_name),
        ("User Principal Name", user.user_principal_name),
        ("Mail", user.mail),
        ("Mail Nickname", user.mail_nickname),
        ("Account Enabled", user.account_enabled),
        ("Usage Location", user.usage_location),
    ])


@users.command("create")
@click.argument("upn")
@click.argument("display_name")
@click.argument("mail_nickname")
@click.argument("password")
@click.option("--no-force-change", is_flag=True,
              help="Do not require a password change at next sign-in")
@pass_session
def users_create(session: Session, upn: str, display_name: str, mail_nickname: str,
                 password: str, no_force_change: bool):
    """Create a new, enabled user.

    By default the user must change the password on first sign-in.
    """
    user = create_user(session.client, upn, display_name, mail_nickname, password,
                       force_change_password=not no_force_change)
    if session.json_output:
        print_json(user.to_dict())
        return
    print_success("Successfully created user!")
    print_fields([
        ("ID", user.id),
        ("Display Name", user.display_name),
        ("User Principal Name", user.user_principal_name),
        ("Mail Nickname", user.mail_nickname),
    ])


@users.command("update")
@click.argument("upn")
@click.argument("property_name", metavar="PROPERTY")
@click.argument("value")
@pass_session
def users_update(session: Session, upn: str, property_name: str, value: str):
    """Update a single user property.

    VALUE is parsed as JSON when possible (true, 42, ["+1 555 0100"]) and
    sent as a plain string otherwise.  Common properties: displayName,
    jobTitle, department, officeLocation, mobilePhone, businessPhones
    (JSON array), usageLocation (two-letter country code, e.g. US).
    """
    update_user(session.client, upn, {property_name: parse_property_value(value)})
    print_success(f"Successfully updated {property_name} for {upn}")


@users.command("delete")
@click.argument("upn")
@click.option("-y", "--yes", is_flag=True, help="Skip the confirmation prompt")
@pass_session
def users_delete(session: Session, upn: str, yes: bool):
    """Delete a user.

    Deleted users can be restored from the recycle bin within 30 days.
    """
    if not yes:
        print_warning(f"Warning: This will delete user {upn}")
        answer = click.prompt("Continue? (yes/no)", default="no", show_default=False)
        if answer.strip().lower() != "yes":
            print("Cancelled.")
            return
    delete_user(session.client, upn)
    print_success(f"Successfully deleted user {upn}")


# -- licenses ----------------------------------------------------------------


@cli.group()
def licenses():
    """Manage Microsoft 365 licenses."""


def _print_license_details(session: Session, details, empty_message: str):
    if session.json_output:
        print_json([d.to_dict() for d in details])
        return
    if not details:
        print(empty_message)
        return
    print_table(
        ["SKU Part Number", "SKU ID"],
        [(d.sku_part_number, d.sku_id) for d in details],
    )


@licenses.command("list-skus")
@pass_session
def licenses_list_skus(session: Session):
    """List all subscribed SKUs in the tenant."""
    skus = list_subscribed_skus(session.client)
    if session.json_output:
        print_json([s.to_dict() for s in skus])
        return
    print_table(
        ["SKU Part Number", "SKU ID", "Consumed Units", "Enabled Units", "Available"],
        [(s.sku_part_number, s.sku_id, s.consumed_units, s.prepaid_units.enabled, s.available_units)
         for s in skus],
    )


@licenses.command("get")
@click.argument("upn")
@pass_session
def licenses_get(session: Session, upn: str):
    """Show license details for a specific user."""
    details = get_user_licenses(session.client, upn)
    _print_license_details(session, details, "No licenses assigned to this user.")


@licenses.command("add-user")
@click.argument("upn")
@click.argument("sku_ids", metavar="SKU_ID...", nargs=-1, required=True)
@pass_session
def licenses_add_user(session: Session, upn: str, sku_ids: List[str]):
    """Add one or more licenses to a user by SKU ID.

    Use 'licenses list-skus' to see available SKU IDs.
    """
    assign_user_licenses(session.client, upn, list(sku_ids), [])
    print_success(f"Successfully added {len(sku_ids)} license(s) to {upn}")


@licenses.command("remove-user")
@click.argument("upn")
@click.argument("sku_ids", metavar="SKU_ID...", nargs=-1, required=True)
@pass_session
def licenses_remove_user(session: Session, upn: str, sku_ids: List[str]):
    """Remove one or more licenses from a user by SKU ID.

    Use 'licenses get UPN' to see the user's current licenses.
    """
    assign_user_licenses(session.client, upn, [], list(sku_ids))
    print_success(f"Successfully removed {len(sku_ids)} license(s) from {upn}")


@licenses.command("get-group")
@click.argument("group_id")
@pass_session
def licenses_get_group(session: Session, group_id: str):
    """Show licenses assigned to a specific group."""
    details = get_group_licenses(session.client, group_id)
    if details:
        resolve_part_numbers(details, list_subscribed_skus(session.client))
    _print_license_details(session, details, "No licenses assigned to this group.")


@licenses.command("add-group")
@click.argument("group_id")
@click.argument("sku_ids", metavar="SKU_ID...", nargs=-1, required=True)
@pass_session
def licenses_add_group(session: Session, group_id: str, sku_ids: List[str]):
    """Add one or more licenses to a group by SKU ID.

    Group-based licensing assigns the licenses to all members.
    """
    assign_group_licenses(session.client, group_id, list(sku_ids), [])
    print_success(f"Successfully added {len(sku_ids)} license(s) to group {group_id}")


@licenses.command("remove-group")
@click.argument("group_id")
@click.argument("sku_ids", metavar="SKU_ID...", nargs=-1, required=True)
@pass_session
def licenses_remove_group(session: Session, group_id: str, sku_ids: List[str]):
    """Remove one or more licenses from a group by SKU ID."""
    assign_group_licenses(session.client, group_id, [], list(sku_ids))
    print_success(f"Successfully removed {len(sku_ids)} license(s) from group {group_id}")


# -- groups ------------------------------------------------------------------


@cli.group()
def groups():
    """Manage Microsoft 365 groups."""


@groups.command("list")
@pass_session
def groups_list(session: Session):
    """List all groups in the tenant."""
    group_list = list_groups(session.client)
    if session.json_output:
        print_json([g.to_dict() for g in group_list])
        return
    print_table(
        ["Display Name", "ID", "Description"],
        [(g.display_name, g.id, g.description) for g in group_list],
    )


@groups.command("get")
@click.argument("upn")
@pass_session
def groups_get(session: Session, upn: str):
    """Show group memberships for a specific user."""
    group_list = get_user_groups(session.client, upn)
    if session.json_output:
        print_json([g.to_dict() for g in group_list])
        return
    if not group_list:
        print("User is not a member of any groups.")
        return
    print_table(["Display Name", "ID"], [(g.display_name, g.id) for g in group_list])


@groups.command("add-user")
@click.argument("group_id")
@click.argument("upn")
@pass_session
def groups_add_user(session: Session, group_id: str, upn: str):
    """Add a user (by principal name) to a group."""
    user = get_user(session.client, upn)
    add_member(session.client, group_id, user.id)
    print_success(f"Successfully added user {upn} to group {group_id}")


@groups.command("remove-user")
@click.argument("group_id")
@click.argument("upn")
@pass_session
def groups_remove_user(session: Session, group_id: str, upn: str):
    """Remove a user (by principal name) from a group."""
    user = get_user(session.client, upn)
    remove_member(session.client, group_id, user.id)
    print_success(f"Successfully removed user {upn} from group {group_id}")


def main():
    cli(prog_name="gua")


if __name__ == "__main__":
    main()
