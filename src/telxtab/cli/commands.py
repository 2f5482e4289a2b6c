"""CLI commands for Telxtab.

Commands:
- init-db: Create the database schema
- create-user: Create an account (optionally an admin)
- set-admin: Grant or revoke admin rights
- rank: Show the rank for an XP total
- serve: Run the Web API with uvicorn
"""

import typer
from rich.console import Console
from rich.table import Table

from telxtab.config.app_config import load_app_config
from telxtab.core.auth import AuthError, signup
from telxtab.core.ranks import RANKS, get_next_rank, get_rank_by_xp, get_xp_progress
from telxtab.db import profiles_repository
from telxtab.db.database import init_db
from telxtab.db.profiles_repository import DuplicateProfileError

app = typer.Typer(
    name="telx",
    help="Telxtab language-learning platform backend.",
    no_args_is_help=True,
)

console = Console()


def _open_db() -> None:
    init_db(load_app_config().db_path)


@app.command(name="init-db")
def init_db_command() -> None:
    """Create the database schema if it doesn't exist."""
    config = load_app_config()
    init_db(config.db_path)
    console.print("[green]✓ Database ready[/green]")
    console.print(f"  [dim]path:[/dim] {config.db_path.absolute()}")


@app.command(name="create-user")
def create_user(
    email: str = typer.Argument(..., help="Account email"),
    username: str = typer.Argument(..., help="Unique username"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, help="Account password"
    ),
    full_name: str = typer.Option("", "--full-name", "-n", help="Display name"),
    admin: bool = typer.Option(False, "--admin", help="Grant admin rights"),
) -> None:
    """Create an account."""
    _open_db()
    try:
        profile = signup(email, password, username, full_name)
    except DuplicateProfileError as e:
        console.print(f"[yellow]⚠ {e}[/yellow]")
        raise typer.Exit(code=1)
    except AuthError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    if admin:
        profiles_repository.set_flag(profile.id, "is_admin", True)

    console.print("[green]✓ User created[/green]")
    console.print(f"  [dim]id:[/dim]       {profile.id}")
    console.print(f"  [dim]username:[/dim] {profile.username}")
    console.print(f"  [dim]admin:[/dim]    {'yes' if admin else 'no'}")


@app.command(name="set-admin")
def set_admin(
    username: str = typer.Argument(..., help="Username to change"),
    revoke: bool = typer.Option(False, "--revoke", help="Revoke admin rights instead"),
) -> None:
    """Grant or revoke admin rights."""
    _open_db()
    profile = profiles_repository.get_profile_by_username(username)
    if profile is None:
        console.print(f"[red]✗ User not found: {username}[/red]")
        raise typer.Exit(code=1)

    profiles_repository.set_flag(profile.id, "is_admin", not revoke)
    verb = "revoked from" if revoke else "granted to"
    console.print(f"[green]✓ Admin rights {verb} {profile.username}[/green]")


@app.command()
def rank(xp: int = typer.Argument(..., help="XP total")) -> None:
    """Show the rank for an XP total and the distance to the next one."""
    current = get_rank_by_xp(xp)
    progress = get_xp_progress(xp)
    next_rank = get_next_rank(xp)

    console.print(f"{current.icon} [bold]{current.name}[/bold] ({xp} XP)")
    if next_rank is None:
        console.print("  [dim]Top rank reached[/dim]")
    else:
        remaining = next_rank.min_xp - xp
        console.print(
            f"  [dim]next:[/dim] {next_rank.name} in {remaining} XP "
            f"({progress['percentage']}% of this rank)"
        )

    table = Table(title="Rank ladder")
    table.add_column("Rank")
    table.add_column("Min XP", justify="right")
    for r in RANKS:
        style = "bold green" if r == current else None
        table.add_row(f"{r.icon} {r.name}", str(r.min_xp), style=style)
    console.print(table)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the Web API."""
    import uvicorn

    console.print(f"[blue]Starting Telxtab API on http://{host}:{port}[/blue]")
    uvicorn.run("telxtab.web.api:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
