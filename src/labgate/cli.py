"""Typer CLI for Labgate."""

import asyncio

import typer
from rich.console import Console

app = typer.Typer(name="labgate", help="Labgate: access control and audit for the laboratory backend")
console = Console()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8080, help="Bind port"),
):
    """Start the Labgate API server."""
    import uvicorn
    from labgate.app import create_app

    console.print(f"[bold green]Starting Labgate on {host}:{port}[/bold green]")
    uvicorn.run(create_app(), host=host, port=port)


async def _create_admin(email: str, name: str, password: str) -> str:
    from labgate.deps import get_audit_service, get_db, get_user_service

    db = get_db()
    await db.init()
    await db.create_all()
    try:
        async with db.get_session() as session:
            user = await get_user_service().create_user(
                session, email, name, "administrator", password,
            )
        # System action: no acting user
        await get_audit_service().record_best_effort(
            db, None, "CREATE", "users", record_id=user.id, after=user.snapshot(),
        )
        return user.id
    finally:
        await db.close()


@app.command("create-admin")
def create_admin(
    email: str = typer.Argument(..., help="Administrator email"),
    name: str = typer.Option("Administrator", help="Display name"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True,
        help="Initial password",
    ),
):
    """Bootstrap an administrator account."""
    from labgate.common.exceptions import LabgateError

    try:
        user_id = asyncio.run(_create_admin(email, name, password))
    except LabgateError as e:
        console.print(f"[bold red]{e.code}[/bold red] — {e.message}")
        raise typer.Exit(1)
    console.print(f"[bold green]Administrator created[/bold green] — {user_id}")


async def _verify_audit() -> dict:
    from labgate.deps import get_audit_service, get_db

    db = get_db()
    await db.init()
    try:
        async with db.get_session() as session:
            return await get_audit_service().verify_log(session)
    finally:
        await db.close()


@app.command("verify-audit")
def verify_audit():
    """Recompute hashes and signatures of every audit entry."""
    result = asyncio.run(_verify_audit())
    if result["valid"]:
        console.print(
            f"[bold green]VALID[/bold green] — {result['entries_checked']} entries checked"
        )
    else:
        console.print(
            f"[bold red]TAMPERED[/bold red] — entry {result['break_at']} "
            f"after {result['entries_checked']} good entries"
        )
        raise typer.Exit(1)


@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Check Labgate server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] — v{data['version']}")
    except (httpx.HTTPError, ValueError, KeyError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
