"""
CRUD Admin CLI.

Command-line interface for common operations:

    python cli.py init-db
    python cli.py seed --admin-email admin@example.com
    python cli.py serve --reload
"""

import sys
import time

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="crud-admin",
    help="CRUD Admin API command-line tools",
    add_completion=False,
)
console = Console()


# =============================================================================
# Database Commands
# =============================================================================

@app.command()
def init_db():
    """Create every table declared by the models."""
    from shared.infrastructure.db import engine
    from rest_api.models import Base

    Base.metadata.create_all(bind=engine)
    console.print(f"[green]✓ Created {len(Base.metadata.tables)} tables[/green]")


@app.command()
def drop_db(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Drop every table declared by the models."""
    from shared.config.settings import settings
    from shared.infrastructure.db import engine
    from rest_api.models import Base

    if settings.environment == "production":
        console.print("[red]Refusing to drop tables in production[/red]")
        raise typer.Exit(1)
    if not yes:
        typer.confirm("Drop all tables?", abort=True)

    Base.metadata.drop_all(bind=engine)
    console.print("[green]✓ Tables dropped[/green]")


@app.command()
def seed(
    admin_email: str = typer.Option(None, help="Create or update an admin user with this email"),
    admin_name: str = typer.Option("Admin", help="Name of the admin user"),
    admin_password: str = typer.Option(
        None, help="Password of the admin user", prompt=False, hide_input=True
    ),
):
    """Seed the default roles and, optionally, an admin user."""
    from shared.infrastructure.db import get_db_context
    from shared.utils.exceptions import AppException
    from rest_api.services.domain import RoleService, UserService

    with get_db_context() as db:
        try:
            roles = RoleService(db).ensure_default_roles()
        except AppException as e:
            console.print(f"[red]✗ Seeding roles failed: {e.detail}[/red]")
            raise typer.Exit(1)

        table = Table(title="Roles")
        table.add_column("ID", style="cyan")
        table.add_column("Name", style="green")
        table.add_column("Description")
        for role in roles:
            table.add_row(str(role.id), role.name, role.description or "")
        console.print(table)

        if not admin_email:
            return

        if not admin_password:
            admin_password = typer.prompt("Admin password", hide_input=True)
        admin_role = next(role for role in roles if role.name == "Admin")
        try:
            user = UserService(db).ensure_user(
                admin_email,
                {
                    "name": admin_name,
                    "password": admin_password,
                    "role_ids": [admin_role.id],
                },
            )
        except AppException as e:
            console.print(f"[red]✗ Seeding admin user failed: {e.detail}[/red]")
            raise typer.Exit(1)
        console.print(f"[green]✓ Admin user ready: {user.email} (id {user.id})[/green]")


# =============================================================================
# Server Commands
# =============================================================================

@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(None, help="Port (defaults to REST_API_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the REST API with uvicorn."""
    import uvicorn
    from shared.config.settings import settings

    uvicorn.run(
        "rest_api.main:app",
        host=host,
        port=port or settings.rest_api_port,
        reload=reload,
    )


@app.command()
def routes():
    """List the API routes."""
    from fastapi.routing import APIRoute
    from rest_api.main import app as api

    table = Table(title="API Routes")
    table.add_column("Methods", style="cyan")
    table.add_column("Path", style="green")
    table.add_column("Name")

    for route in api.routes:
        if isinstance(route, APIRoute):
            table.add_row(", ".join(sorted(route.methods)), route.path, route.name)

    console.print(table)


# =============================================================================
# Health Commands
# =============================================================================

@app.command()
def health(
    url: str = typer.Option("http://localhost:8000", help="Base URL of the running API"),
):
    """Check the health of a running API."""
    import httpx

    table = Table(title="Service Health")
    table.add_column("Check", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Response Time", style="yellow")

    with httpx.Client(base_url=url, timeout=5.0) as client:
        for name, path in (("REST API", "/api/health"), ("Database", "/api/health/detailed")):
            try:
                start = time.time()
                response = client.get(path)
                elapsed = (time.time() - start) * 1000
            except httpx.HTTPError as e:
                table.add_row(name, f"✗ {type(e).__name__}", "-")
                continue
            if response.status_code == 200:
                table.add_row(name, "✓ Healthy", f"{elapsed:.0f}ms")
            else:
                table.add_row(name, f"✗ Status {response.status_code}", f"{elapsed:.0f}ms")

    console.print(table)


@app.command()
def version():
    """Show version information."""
    from shared.config.settings import settings

    table = Table(title=f"{settings.app_name} Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("API", settings.app_version)
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


if __name__ == "__main__":
    app()
