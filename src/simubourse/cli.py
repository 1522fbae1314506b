"""Operator CLI for SimuBourse."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import click

from .config import BaseConfig, DevConfig
from .context import AppContext, create_app_context
from .errors import SimulationError
from .logging_config import setup_logging
from .principal import Principal
from .services import actions, auth, mining, portfolio, prediction_markets
from .services.actions import ActionResult
from .services.assets import list_assets, seed_assets
from .services.companies import list_company_overviews
from .services.content import RISK_BANDS, get_or_generate_asset_news, reset_news
from .services.pricing import tick_market


def _ctx(click_ctx: click.Context) -> AppContext:
    return click_ctx.obj


def _principal(app: AppContext, email: str) -> Principal:
    user = auth.get_user_by_email(email, app.session_factory)
    if user is None:
        raise click.ClickException(f"No account for {email}")
    return auth.principal_for(user)


def _report(result: ActionResult) -> None:
    if result.error is not None:
        raise click.ClickException(result.error)
    click.echo(result.success)


email_option = click.option("--email", required=True, help="Email of the acting player.")


@click.group()
@click.option("--dev/--no-dev", default=None, help="Override SIMUBOURSE_DEV_MODE.")
@click.pass_context
def cli(click_ctx: click.Context, dev: bool | None) -> None:
    """Market simulation ledger: trades, companies and prediction markets."""

    if click_ctx.obj is not None:
        return
    config: BaseConfig = DevConfig()
    if dev is not None:
        config.DEV_MODE = dev
    setup_logging(config)
    app = create_app_context(config)
    click_ctx.obj = app
    click_ctx.call_on_close(app.close)


@cli.command("init-db")
@click.pass_context
def init_db(click_ctx: click.Context) -> None:
    """Create the database schema."""

    click.echo(f"Database ready at {_ctx(click_ctx).config.DATABASE_URL}")


@cli.command()
@click.option("--markets/--no-markets", default=True, help="Also create generated markets.")
@click.pass_context
def seed(click_ctx: click.Context, markets: bool) -> None:
    """Insert the default assets and generated prediction markets."""

    app = _ctx(click_ctx)
    added = seed_assets(app.session_factory)
    click.echo(f"Seeded {added} assets.")
    if markets:
        created = prediction_markets.ensure_ai_markets(
            app.session_factory, app.content, target=app.config.AI_MARKET_COUNT
        )
        click.echo(f"Created {created} markets.")


@cli.command()
@click.option("--display-name", required=True)
@click.option("--email", required=True)
@click.password_option()
@click.pass_context
def signup(click_ctx: click.Context, display_name: str, email: str, password: str) -> None:
    """Create a player account."""

    app = _ctx(click_ctx)
    try:
        user = auth.signup(
            display_name=display_name,
            email=email,
            password=password,
            session_factory=app.session_factory,
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Account created for {user.display_name} with ${user.cash:,.2f}.")


@cli.command()
@email_option
@click.argument("ticker")
@click.argument("quantity")
@click.option("--company", "company_id", type=int, help="Trade for a company you run.")
@click.pass_context
def buy(click_ctx: click.Context, email: str, ticker: str, quantity: str, company_id: int | None) -> None:
    """Buy QUANTITY units of TICKER."""

    app = _ctx(click_ctx)
    principal = _principal(app, email)
    if company_id is None:
        result = actions.buy(app.session_factory, principal, ticker, quantity, dispatcher=app.dispatcher)
    else:
        result = actions.company_buy(
            app.session_factory, principal, company_id, ticker, quantity, dispatcher=app.dispatcher
        )
    _report(result)


@cli.command()
@email_option
@click.argument("ticker")
@click.argument("quantity")
@click.option("--company", "company_id", type=int, help="Trade for a company you run.")
@click.pass_context
def sell(click_ctx: click.Context, email: str, ticker: str, quantity: str, company_id: int | None) -> None:
    """Sell QUANTITY units of TICKER."""

    app = _ctx(click_ctx)
    principal = _principal(app, email)
    if company_id is None:
        result = actions.sell(app.session_factory, principal, ticker, quantity, dispatcher=app.dispatcher)
    else:
        result = actions.company_sell(
            app.session_factory, principal, company_id, ticker, quantity, dispatcher=app.dispatcher
        )
    _report(result)


@cli.command("create-company")
@email_option
@click.option("--name", required=True)
@click.option("--industry", required=True)
@click.option("--description", required=True)
@click.pass_context
def create_company(
    click_ctx: click.Context, email: str, name: str, industry: str, description: str
) -> None:
    """Found a company and become its CEO."""

    app = _ctx(click_ctx)
    _report(
        actions.create_company(
            app.session_factory,
            _principal(app, email),
            name=name,
            industry=industry,
            description=description,
        )
    )


@cli.command()
@click.pass_context
def companies(click_ctx: click.Context) -> None:
    """List companies with their live share price."""

    for company in list_company_overviews(_ctx(click_ctx).session_factory):
        click.echo(
            f"{company.id:>4}  {company.name:<30} value ${company.company_value:,.2f}  "
            f"share ${company.share_price:,.4f}"
        )


@cli.command()
@email_option
@click.argument("company_id", type=int)
@click.argument("amount")
@click.pass_context
def invest(click_ctx: click.Context, email: str, company_id: int, amount: str) -> None:
    """Invest AMOUNT of cash in COMPANY_ID."""

    app = _ctx(click_ctx)
    _report(actions.invest(app.session_factory, _principal(app, email), company_id, amount))


@cli.command()
@email_option
@click.argument("market_id", type=int)
@click.argument("outcome_id", type=int)
@click.argument("amount")
@click.pass_context
def bet(click_ctx: click.Context, email: str, market_id: int, outcome_id: int, amount: str) -> None:
    """Bet AMOUNT on OUTCOME_ID of MARKET_ID."""

    app = _ctx(click_ctx)
    _report(actions.bet(app.session_factory, _principal(app, email), market_id, outcome_id, amount))


@cli.command("create-market")
@email_option
@click.option("--title", required=True)
@click.option("--category", required=True)
@click.option("--outcome", "outcomes", multiple=True, required=True, help="Repeat per outcome.")
@click.option("--days", type=int, default=7, show_default=True, help="Days until closing.")
@click.pass_context
def create_market(
    click_ctx: click.Context,
    email: str,
    title: str,
    category: str,
    outcomes: tuple[str, ...],
    days: int,
) -> None:
    """Open a prediction market."""

    app = _ctx(click_ctx)
    closing_at = datetime.now(timezone.utc) + timedelta(days=days)
    _report(
        actions.create_market(
            app.session_factory,
            _principal(app, email),
            title=title,
            category=category,
            outcomes=list(outcomes),
            closing_at=closing_at,
        )
    )


@cli.command()
@click.pass_context
def markets(click_ctx: click.Context) -> None:
    """List open prediction markets with their odds."""

    for market in prediction_markets.list_open_markets(_ctx(click_ctx).session_factory):
        click.echo(f"[{market.id}] {market.title} ({market.category}) pool ${market.total_pool:,.2f}")
        for outcome in market.outcomes:
            click.echo(f"    {outcome.id:>4}  {outcome.name:<30} {outcome.odds:>3}%")


@cli.command("buy-rig")
@email_option
@click.argument("rig_id")
@click.pass_context
def buy_rig(click_ctx: click.Context, email: str, rig_id: str) -> None:
    """Buy a mining rig."""

    app = _ctx(click_ctx)
    _report(actions.buy_rig(app.session_factory, _principal(app, email), rig_id))


@cli.command()
@email_option
@click.pass_context
def claim(click_ctx: click.Context, email: str) -> None:
    """Claim accrued mining rewards."""

    app = _ctx(click_ctx)
    _report(actions.claim_rewards(app.session_factory, _principal(app, email)))


@cli.command()
@click.option("--count", type=int, default=1, show_default=True)
@click.pass_context
def tick(click_ctx: click.Context, count: int) -> None:
    """Advance market prices COUNT steps."""

    app = _ctx(click_ctx)
    prices = {}
    for _ in range(count):
        prices = tick_market(app.session_factory)
    for ticker, price in prices.items():
        click.echo(f"{ticker:<8} {price:,.4f}")


@cli.command()
@click.pass_context
def assets(click_ctx: click.Context) -> None:
    """List tradable assets."""

    for quote in list_assets(_ctx(click_ctx).session_factory):
        click.echo(f"{quote.ticker:<8} {quote.name:<24} ${quote.price:,.4f}  {quote.change_24h}")


@cli.command("portfolio")
@email_option
@click.pass_context
def portfolio_command(click_ctx: click.Context, email: str) -> None:
    """Show a player's portfolio valued at current prices."""

    app = _ctx(click_ctx)
    summary = portfolio.portfolio_summary(app.session_factory, _principal(app, email))
    click.echo(f"Cash: ${summary.cash:,.2f}")
    for position in summary.positions:
        click.echo(
            f"{position.ticker:<8} {position.quantity.normalize():f} @ ${position.avg_cost:,.2f}"
            f"  value ${position.market_value:,.2f}  P&L ${position.unrealized_pnl:,.2f}"
        )
    for stake in summary.equity:
        click.echo(f"{stake.company_name:<20} {stake.shares.normalize():f} shares  ${stake.value:,.2f}")
    cost_basis = app.holding_repo.get_total_cost_basis(user_id=summary.user_id)
    click.echo(f"Invested: ${cost_basis:,.2f}  realized P&L ${summary.realized_pnl:,.2f}")
    click.echo(f"Total: ${summary.total_value:,.2f} (P&L ${summary.total_pnl:,.2f})")


@cli.command()
@email_option
@click.option("--company", "company_id", type=int, help="Show a company's treasury trades instead.")
@click.option("--limit", type=int, default=20, show_default=True)
@click.pass_context
def history(click_ctx: click.Context, email: str, company_id: int | None, limit: int) -> None:
    """List recent trades, newest first."""

    app = _ctx(click_ctx)
    principal = _principal(app, email)
    if company_id is None:
        trades = app.transaction_repo.list_all(user_id=principal.user_id, limit=limit)
    else:
        company = app.company_repo.get_by_id(company_id)
        if company is None:
            raise click.ClickException(f"No company with id {company_id}")
        if app.company_repo.get_member_role(company_id, principal.user_id) is None:
            raise click.ClickException(f"You are not a member of {company.name}")
        trades = app.transaction_repo.list_for_company(company_id, limit=limit)
    if not trades:
        click.echo("No trades yet.")
    for tx in trades:
        click.echo(
            f"{tx.created_at:%Y-%m-%d %H:%M}  {tx.type:<4} {tx.quantity.normalize():f} {tx.ticker}"
            f" @ ${tx.price:,.2f}  ${tx.value:,.2f}"
        )


@cli.command()
@email_option
@click.pass_context
def bets(click_ctx: click.Context, email: str) -> None:
    """List a player's bets, newest first."""

    app = _ctx(click_ctx)
    placed = app.market_repo.list_bets(user_id=_principal(app, email).user_id)
    if not placed:
        click.echo("No bets yet.")
    for wager in placed:
        click.echo(f"{wager.created_at:%Y-%m-%d %H:%M}  outcome {wager.outcome_id:>4}  ${wager.amount:,.2f}")


@cli.command()
@click.argument("user_id", type=int)
@click.option("--limit", type=int, default=10, show_default=True)
@click.pass_context
def profile(click_ctx: click.Context, user_id: int, limit: int) -> None:
    """Show the public profile of USER_ID."""

    try:
        public = portfolio.public_profile(_ctx(click_ctx).session_factory, user_id, limit=limit)
    except SimulationError as exc:
        raise click.ClickException(exc.message) from exc
    click.echo(f"{public.display_name}: ${public.total_value:,.2f} (P&L ${public.total_pnl:,.2f})")
    for tx in public.recent_transactions:
        click.echo(f"  {tx.type:<4} {tx.quantity.normalize():f} {tx.ticker} for ${tx.value:,.2f}")


@cli.command("mining")
@email_option
@click.pass_context
def mining_command(click_ctx: click.Context, email: str) -> None:
    """Show mining rigs and unclaimed rewards."""

    app = _ctx(click_ctx)
    status = mining.mining_status(app.session_factory, _principal(app, email))
    for rig_id, count in sorted(status.rigs.items()):
        click.echo(f"{mining.MINING_RIGS[rig_id].name:<24} x{count}")
    click.echo(f"Hash rate: {status.total_hash_rate_mhs:,} MH/s ({status.btc_per_day.normalize():f} BTC/day)")
    click.echo(f"Unclaimed: {status.unclaimed_btc.normalize():f} BTC")


@cli.command()
@click.argument("ticker")
@click.pass_context
def news(click_ctx: click.Context, ticker: str) -> None:
    """Show recent news for TICKER, generating it when the cache is stale."""

    app = _ctx(click_ctx)
    asset = app.asset_repo.get(ticker.strip().upper())
    if asset is None:
        raise click.ClickException(f"Unknown asset {ticker.upper()}")
    items, source = get_or_generate_asset_news(app.session_factory, app.content, asset.ticker, asset.name)
    click.echo(f"{asset.name} ({asset.ticker}) news [{source}]")
    for item in items:
        click.echo(f"- [{item.sentiment}] {item.headline}")
        click.echo(f"  {item.article}")


@cli.command()
@email_option
@click.option("--risk", type=click.Choice(sorted(RISK_BANDS)), default="medium", show_default=True)
@click.option(
    "--article", "article_file", type=click.File("r"), required=True,
    help="File holding the news article to analyse, '-' for stdin.",
)
@click.pass_context
def advise(click_ctx: click.Context, email: str, risk: str, article_file) -> None:
    """Suggest investments from a news article and the player's portfolio."""

    app = _ctx(click_ctx)
    _report(
        actions.advise(
            app.session_factory,
            app.content,
            _principal(app, email),
            news_article=article_file.read(),
            risk_preference=risk,
        )
    )


@cli.command("reset-news")
@click.confirmation_option(prompt="Delete every cached news item?")
@click.pass_context
def reset_news_command(click_ctx: click.Context) -> None:
    """Clear the generated news cache."""

    removed = reset_news(_ctx(click_ctx).session_factory)
    click.echo(f"Removed {removed} news items.")


if __name__ == "__main__":  # pragma: no cover
    cli()
