"""Passage CLI application using Typer.

Operator utilities for the identity database: schema management and
basic user/role administration.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from passage.data import ApplicationUser, create_application_db_context
from passage.logging_config import configure_logging
from passage_identity import IdentityError, RoleModel, RoleStore, UserStore

app = typer.Typer(
    name="passage",
    help="Passage - user account storage CLI",
    no_args_is_help=True,
)
console = Console()

db_app = typer.Typer(name="db", help="Database schema management", no_args_is_help=True)
users_app = typer.Typer(name="users", help="User administration", no_args_is_help=True)
roles_app = typer.Typer(name="roles", help="Role administration", no_args_is_help=True)
app.add_typer(db_app)
app.add_typer(users_app)
app.add_typer(roles_app)


@app.callback()
def main() -> None:
    """Passage - user account storage CLI."""
    configure_logging()


def _run(operation: Callable[[], Awaitable[None]]) -> None:
    """Run an async command, reporting identity errors as exit code 1."""
    try:
        asyncio.run(operation())
    except IdentityError as e:
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        raise typer.Exit(code=1) from e


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(code=1)


# -----------------------------------------------------------------------------
# Database
# -----------------------------------------------------------------------------


@db_app.command("init")
def db_init() -> None:
    """Create all missing tables (idempotent)."""

    async def _init() -> None:
        async with create_application_db_context() as ctx:
            console.print(f"Database: [cyan]{ctx.database}[/cyan]")
            created = await ctx.ensure_created()
        if created:
            console.print("[green]Identity schema created.[/green]")
        else:
            console.print("Identity schema already up to date.")

    _run(_init)


@db_app.command("drop")
def db_drop(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
) -> None:
    """Drop all identity tables."""

    async def _drop() -> None:
        async with create_application_db_context() as ctx:
            console.print(f"Database: [cyan]{ctx.database}[/cyan]")
            if not force:
                typer.confirm(
                    "This will DELETE ALL DATA in the database. Continue?",
                    abort=True,
                )
            dropped = await ctx.ensure_deleted()
        if dropped:
            console.print("[green]Identity schema dropped.[/green]")
        else:
            console.print("Nothing to drop.")

    _run(_drop)


@db_app.command("reset")
def db_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
) -> None:
    """Drop and recreate all identity tables."""

    async def _reset() -> None:
        async with create_application_db_context() as ctx:
            console.print(f"Database: [cyan]{ctx.database}[/cyan]")
            if not force:
                typer.confirm(
                    "This will DELETE ALL DATA in the database. Continue?",
                    abort=True,
                )
            await ctx.ensure_deleted()
            await ctx.ensure_created()
        console.print("[green]Identity schema recreated.[/green]")

    _run(_reset)


@db_app.command("check")
def db_check() -> None:
    """Check that the database is reachable."""

    async def _check() -> None:
        async with create_application_db_context() as ctx:
            reachable = await ctx.can_connect()
            database = ctx.database
        if not reachable:
            _fail(f"Cannot connect to {database}")
        console.print(f"[green]Connected to {database}[/green]")

    _run(_check)


# -----------------------------------------------------------------------------
# Users
# -----------------------------------------------------------------------------


@users_app.command("list")
def users_list() -> None:
    """List all users with their roles."""

    async def _list() -> None:
        async with create_application_db_context() as ctx:
            store = UserStore(ctx)
            users = await store.list_all()
            rows = [(user, await store.get_roles(user)) for user in users]

        table = Table(title=f"Users ({len(rows)})")
        table.add_column("User name", style="cyan")
        table.add_column("Email")
        table.add_column("Roles")
        table.add_column("Locked")
        table.add_column("Created")
        for user, roles in rows:
            table.add_row(
                user.user_name or "",
                user.email or "",
                ", ".join(roles),
                "yes" if user.is_locked_out() else "",
                user.created_at.strftime("%Y-%m-%d %H:%M"),
            )
        console.print(table)

    _run(_list)


@users_app.command("create")
def users_create(
    user_name: str = typer.Argument(..., help="User name"),
    email: Optional[str] = typer.Option(None, "--email", "-e", help="Email address"),
) -> None:
    """Create a user account without credentials."""

    async def _create() -> None:
        async with create_application_db_context() as ctx:
            user = await UserStore(ctx).create(
                ApplicationUser(user_name=user_name, email=email),
            )
            await ctx.save_changes()
        console.print(f"[green]Created user {user.user_name} ({user.id})[/green]")

    _run(_create)


@users_app.command("delete")
def users_delete(user_name: str = typer.Argument(..., help="User name")) -> None:
    """Delete a user and all associated identity data."""

    async def _delete() -> None:
        async with create_application_db_context() as ctx:
            store = UserStore(ctx)
            user = await store.find_by_name(user_name)
            if user is None:
                _fail(f"User not found: {user_name}")
            await store.delete(user)
            await ctx.save_changes()
        console.print(f"[green]Deleted user {user_name}[/green]")

    _run(_delete)


@users_app.command("add-role")
def users_add_role(
    user_name: str = typer.Argument(..., help="User name"),
    role: str = typer.Argument(..., help="Role name"),
) -> None:
    """Add a user to a role."""

    async def _add_role() -> None:
        async with create_application_db_context() as ctx:
            store = UserStore(ctx)
            user = await store.find_by_name(user_name)
            if user is None:
                _fail(f"User not found: {user_name}")
            await store.add_to_role(user, role)
            await ctx.save_changes()
        console.print(f"[green]Added {user_name} to {role}[/green]")

    _run(_add_role)


@users_app.command("roles")
def users_roles(user_name: str = typer.Argument(..., help="User name")) -> None:
    """Show the roles of a user."""

    async def _roles() -> None:
        async with create_application_db_context() as ctx:
            store = UserStore(ctx)
            user = await store.find_by_name(user_name)
            if user is None:
                _fail(f"User not found: {user_name}")
            roles = await store.get_roles(user)
        if not roles:
            console.print(f"{user_name} has no roles.")
            return
        for role in roles:
            console.print(f"- {role}")

    _run(_roles)


# -----------------------------------------------------------------------------
# Roles
# -----------------------------------------------------------------------------


@roles_app.command("list")
def roles_list() -> None:
    """List all roles."""

    async def _list() -> None:
        async with create_application_db_context() as ctx:
            roles = await RoleStore(ctx).list_all()
        table = Table(title=f"Roles ({len(roles)})")
        table.add_column("Name", style="cyan")
        table.add_column("Id")
        for role in roles:
            table.add_row(role.name or "", str(role.id))
        console.print(table)

    _run(_list)


@roles_app.command("create")
def roles_create(name: str = typer.Argument(..., help="Role name")) -> None:
    """Create a role."""

    async def _create() -> None:
        async with create_application_db_context() as ctx:
            await RoleStore(ctx).create(RoleModel(name=name))
            await ctx.save_changes()
        console.print(f"[green]Created role {name}[/green]")

    _run(_create)


@roles_app.command("delete")
def roles_delete(name: str = typer.Argument(..., help="Role name")) -> None:
    """Delete a role and its memberships."""

    async def _delete() -> None:
        async with create_application_db_context() as ctx:
            store = RoleStore(ctx)
            role = await store.find_by_name(name)
            if role is None:
                _fail(f"Role not found: {name}")
            await store.delete(role)
            await ctx.save_changes()
        console.print(f"[green]Deleted role {name}[/green]")

    _run(_delete)


if __name__ == "__main__":
    app()
