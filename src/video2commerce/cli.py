"""Command-line entry points for the review dashboard and the product API."""

import logging
from typing import List, Optional, Tuple

import typer
from rich import print as rprint
from rich.table import Table

from .client import ProductStoreClient
from .config import get_settings
from .context import AppContext
from .controller import ReconciliationController
from .errors import DashboardError
from .models import Decision, StoreProfile
from .projection import format_timestamp, review_bucket

app = typer.Typer(help="Review products extracted from shopping videos.")


def _open_context() -> AppContext:
    return AppContext.load(get_settings().resolved_state_path)


def _build_client(context: AppContext) -> ProductStoreClient:
    settings = get_settings()
    return ProductStoreClient(
        settings.api_base_url, context.token, timeout=settings.request_timeout
    )


def _session() -> Tuple[AppContext, ProductStoreClient]:
    context = _open_context()
    if not context.is_authenticated:
        rprint("[red]Not signed in. Run `video2commerce login` first.[/red]")
        raise typer.Exit(code=1)
    return context, _build_client(context)


def _fail(exc: DashboardError) -> None:
    rprint(f"[red]{exc}[/red]")
    raise typer.Exit(code=1)


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(None, help="Bind address (default from settings)."),
    port: Optional[int] = typer.Option(None, help="Port (default from settings)."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
) -> None:
    """Run the review dashboard."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "video2commerce.server:create_app",
        factory=True,
        host=host or settings.dashboard_host,
        port=port or settings.dashboard_port,
        reload=reload or settings.dashboard_reload,
    )


@app.command("login")
def login_command(
    username: str = typer.Argument(..., help="Username or email."),
    password: str = typer.Option(..., prompt=True, hide_input=True),
) -> None:
    """Sign in and remember the token for later commands."""
    context = _open_context()
    with _build_client(context) as client:
        try:
            result = client.login(username, password)
        except DashboardError as exc:
            _fail(exc)
    context.sign_in(result.token, result.user)
    rprint(f"[green]Signed in as {username}.[/green]")


@app.command("signup")
def signup_command(
    email: str = typer.Argument(..., help="Account email."),
    site_title: str = typer.Option(..., "--site-title", help="Store name."),
    site_url: str = typer.Option(..., "--site-url", help="Store URL."),
    username: Optional[str] = typer.Option(None, help="Optional username."),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True
    ),
) -> None:
    """Create an account with its store, then sign in."""
    context = _open_context()
    with _build_client(context) as client:
        try:
            result = client.signup(
                email=email,
                password=password,
                site_title=site_title,
                site_url=site_url,
                username=username,
            )
        except DashboardError as exc:
            _fail(exc)
    context.sign_in(result.token, result.user)
    context.select_store(
        StoreProfile(store_url=site_url, store_title=site_title, owner_email=email)
    )
    rprint(f"[green]Account created for {email}; using store {site_title}.[/green]")


@app.command("logout")
def logout_command() -> None:
    """Revoke the token and forget it locally."""
    context = _open_context()
    if not context.is_authenticated:
        rprint("[cyan]Already signed out.[/cyan]")
        return
    with _build_client(context) as client:
        client.logout()
    context.sign_out()
    rprint("[green]Signed out.[/green]")


@app.command("process")
def process_command(
    youtube_url: str = typer.Argument(..., help="YouTube video to extract products from."),
    store_url: str = typer.Option(..., "--store-url", help="Storefront to publish to."),
    auto_approve: bool = typer.Option(
        False, "--auto-approve", help="Approve high-confidence products automatically."
    ),
) -> None:
    """Submit a video for product extraction."""
    _, client = _session()
    with client:
        try:
            result = client.process_video(
                youtube_url, store_url, auto_approve=auto_approve
            )
        except DashboardError as exc:
            _fail(exc)
    rprint(
        f"[green]Submitted: {result.total_products} product(s) found "
        f"(collection {result.collection_id or 'pending'}).[/green]"
    )
    if result.collection_url:
        rprint(f"[cyan]{result.collection_url}[/cyan]")


@app.command("summary")
def summary_command(
    youtube_url: str = typer.Argument(...),
    store_url: str = typer.Option(..., "--store-url"),
) -> None:
    """Show the products for a video and how far review has got."""
    _, client = _session()
    with client:
        session = ReconciliationController(client, youtube_url, store_url)
        try:
            products = session.view()
        except DashboardError as exc:
            _fail(exc)
    counts = session.counts()

    table = Table(title=f"Products for {youtube_url}")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Price", justify="right")
    table.add_column("Status")
    table.add_column("Confidence", justify="right")
    table.add_column("Segment")
    for product in products:
        table.add_row(
            product.id,
            product.name,
            f"{product.price:.2f}" if product.price is not None else "-",
            review_bucket(product.status),
            f"{product.confidence_score:.0%}",
            f"{format_timestamp(product.timestamp_start)}-"
            f"{format_timestamp(product.timestamp_end)}",
        )
    rprint(table)
    rprint(
        f"{counts.pending} pending, {counts.approved} approved, "
        f"{counts.rejected} rejected ({counts.progress}% reviewed)"
    )


@app.command("review")
def review_command(
    youtube_url: str = typer.Argument(...),
    product_ids: Optional[List[str]] = typer.Argument(None, help="Product ids to review."),
    store_url: str = typer.Option(..., "--store-url"),
    approve: bool = typer.Option(True, "--approve/--reject"),
    review_all: bool = typer.Option(False, "--all", help="Review every product."),
) -> None:
    """Approve or reject products immediately."""
    decision = Decision.APPROVE if approve else Decision.REJECT
    _, client = _session()
    with client:
        session = ReconciliationController(client, youtube_url, store_url)
        try:
            ack = session.review_now(
                product_ids or [], decision, review_all=review_all
            )
        except DashboardError as exc:
            _fail(exc)
    rprint(f"[green]{decision.status.value.capitalize()}: {ack or 'ok'}[/green]")


def main():
    app()


if __name__ == "__main__":
    main()
