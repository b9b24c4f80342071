"""CLI for the ``expense_tracker`` package.

A Typer app over :class:`~expense_tracker.tracker.ExpenseTracker`. The root
callback loads a local ``.env`` with ``python-dotenv`` (without overriding the
environment) and configures logging; commands then open a store from
``--database-url`` or ``DATABASE_URL``. Results are rendered with ``rich``.

Failures (bad input, a missing database URL, store errors) are reported as a
single ``Error: ...`` line on stderr with exit status 1.
"""

from __future__ import annotations

import enum
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from .catalog import all_categories, categories_for
from .constants import APP_NAME, CURRENCY_SYMBOL
from .dates import end_of_day, format_date, month_year_label
from .errors import ExpenseTrackerError
from .filters import DateFilterMode
from .logging_setup import configure_logging
from .models import Transaction, TransactionType
from .store import TransactionStore
from .tracker import ExpenseTracker

console = Console()
err_console = Console(stderr=True)

_DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"]


class Period(enum.StrEnum):
    ALL = "all"
    WEEK = "week"
    MONTH = "month"
    CUSTOM = "custom"


_PERIOD_MODES = {
    Period.ALL: DateFilterMode.ALL,
    Period.WEEK: DateFilterMode.THIS_WEEK,
    Period.MONTH: DateFilterMode.THIS_MONTH,
    Period.CUSTOM: DateFilterMode.CUSTOM,
}


# ---- Small module-level helpers used by CLI commands -------------------------


def _fail(message: str) -> typer.Exit:
    err_console.print(f"[red]Error:[/red] {message}", highlight=False)
    return typer.Exit(1)


def _money(amount: Decimal) -> str:
    return f"{CURRENCY_SYMBOL} {amount:,.2f}"


def _validation_message(err: ValidationError) -> str:
    parts = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e.get("loc", ())) or "input"
        parts.append(f"{loc}: {e.get('msg', 'invalid value')}")
    return "; ".join(parts)


@contextmanager
def _open_tracker(
    ctx: typer.Context, *, create_schema: bool = False
) -> Iterator[ExpenseTracker]:
    """Yield a tracker for the configured database, translating known failures.

    ``typer.Exit`` raised inside the block passes through untouched.
    """

    database_url = (ctx.obj or {}).get("database_url")
    tracker: ExpenseTracker | None = None
    try:
        store = TransactionStore.from_url(database_url, create_schema=create_schema)
        tracker = ExpenseTracker(store)
        yield tracker
    except typer.Exit:
        raise
    except ValidationError as e:
        raise _fail(_validation_message(e)) from e
    except ExpenseTrackerError as e:
        raise _fail(str(e)) from e
    except SQLAlchemyError as e:
        raise _fail(f"database error: {e.__class__.__name__}: {e}") from e
    except (RuntimeError, ValueError) as e:
        raise _fail(str(e)) from e
    finally:
        if tracker is not None:
            tracker.close()


def _transactions_table(rows: list[Transaction], *, title: str) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("ID", justify="right")
    table.add_column("Date")
    table.add_column("Type")
    table.add_column("Category")
    table.add_column("Description")
    table.add_column("Amount", justify="right")
    for t in rows:
        sign = "+" if t.is_income else "-"
        style = "green" if t.is_income else "red"
        table.add_row(
            str(t.id),
            format_date(t.date),
            t.type.value,
            t.category,
            t.description,
            f"[{style}]{sign}{_money(t.amount)}[/{style}]",
        )
    return table


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        f"{APP_NAME}: record income and expenses, list and filter them, and "
        "summarize spending against a monthly budget. Loads DATABASE_URL from "
        "a local .env before running."
    ),
)


@app.command("init-db")
def init_db_cmd(ctx: typer.Context) -> None:
    """Create the transactions table if it does not exist."""

    with _open_tracker(ctx, create_schema=True) as tracker:
        count = tracker.queries.queries.count()
    console.print(f"Database ready ({count} transactions).")


@app.command("add")
def add_cmd(
    ctx: typer.Context,
    amount: Annotated[str, typer.Option(help="Positive amount, e.g. 1250.50")],
    category: Annotated[str, typer.Option(help="Category name, e.g. 'Food & Dining'")],
    type_: Annotated[
        TransactionType,
        typer.Option("--type", case_sensitive=False, help="INCOME or EXPENSE"),
    ] = TransactionType.EXPENSE,
    date: Annotated[
        datetime | None,
        typer.Option(formats=_DATE_FORMATS, help="Transaction date (default: now)"),
    ] = None,
    description: Annotated[str, typer.Option(help="Free-text note")] = "",
) -> None:
    """Record a new income or expense."""

    with _open_tracker(ctx) as tracker:
        tx = tracker.add_transaction(
            amount=amount,
            category=category,
            type=type_,
            date=date or tracker.clock(),
            description=description,
        )
    console.print(
        f"Added {tx.type.value.lower()} #{tx.id}: {tx.category} {_money(tx.amount)}",
        highlight=False,
    )


@app.command("list")
def list_cmd(
    ctx: typer.Context,
    type_: Annotated[
        TransactionType | None,
        typer.Option("--type", case_sensitive=False, help="Only INCOME or EXPENSE"),
    ] = None,
    category: Annotated[str | None, typer.Option(help="Exact category name")] = None,
    search: Annotated[str, typer.Option(help="Match description or category")] = "",
    period: Annotated[Period, typer.Option(case_sensitive=False)] = Period.ALL,
    start: Annotated[
        datetime | None, typer.Option(formats=_DATE_FORMATS, help="Custom period start")
    ] = None,
    end: Annotated[
        datetime | None, typer.Option(formats=_DATE_FORMATS, help="Custom period end")
    ] = None,
) -> None:
    """List transactions, newest first."""

    if period == Period.CUSTOM and (start is None or end is None):
        raise _fail("--period custom requires both --start and --end")
    if end is not None and end.time() == time.min:
        # A bare date includes the whole day.
        end = end_of_day(end)

    with _open_tracker(ctx) as tracker:
        view = tracker.open_transactions_view()
        with tracker.graph.batch():
            view.set_type_filter(type_)
            view.set_category_filter(category)
            view.set_search_query(search)
            view.set_date_filter(_PERIOD_MODES[period], start, end)
        rows = view.transactions.value

    if not rows:
        console.print("No transactions found.")
        return
    console.print(_transactions_table(rows, title=f"Transactions ({len(rows)})"))


@app.command("delete")
def delete_cmd(
    ctx: typer.Context,
    transaction_id: Annotated[int, typer.Argument(help="ID of the transaction to delete")],
) -> None:
    """Delete a transaction by id."""

    with _open_tracker(ctx) as tracker:
        removed = tracker.delete_transaction(transaction_id)
    if not removed:
        raise _fail(f"transaction not found: id={transaction_id}")
    console.print(f"Deleted transaction #{transaction_id}.")


@app.command("categories")
def categories_cmd(
    type_: Annotated[
        TransactionType | None,
        typer.Option("--type", case_sensitive=False, help="Only INCOME or EXPENSE"),
    ] = None,
) -> None:
    """List the built-in categories."""

    entries = all_categories() if type_ is None else categories_for(type_)
    table = Table(title="Categories")
    table.add_column("Name")
    table.add_column("Type")
    for c in entries:
        table.add_row(c.name, c.type.value)
    console.print(table)


@app.command("summary")
def summary_cmd(
    ctx: typer.Context,
    budget_limit: Annotated[
        str | None,
        typer.Option(help="Monthly budget limit (default: EXPENSE_TRACKER_BUDGET_LIMIT)"),
    ] = None,
) -> None:
    """Show this month's totals, balance and budget status."""

    with _open_tracker(ctx) as tracker:
        if budget_limit is not None:
            tracker.set_budget_limit(budget_limit)
        home = tracker.open_home_view()
        budget = tracker.budget
        highest = home.highest_expense.value
        rows = [
            ("Income", _money(home.monthly_income.value)),
            ("Expenses", _money(home.monthly_expense.value)),
            ("Balance", _money(home.balance.value)),
            (
                "Highest expense",
                f"{highest.category} {_money(highest.amount)}" if highest else "-",
            ),
            ("Most used category", home.most_used_category.value or "-"),
            ("Budget limit", _money(budget.budget_limit.value)),
            ("Remaining budget", _money(budget.remaining_budget.value)),
            ("Budget used", f"{budget.budget_progress.value * 100:.0f}%"),
        ]
        if budget.is_over_budget.value:
            status = "[red]over budget[/red]"
        elif budget.is_approaching_budget.value:
            status = "[yellow]approaching limit[/yellow]"
        else:
            status = "[green]on track[/green]"
        month_label = month_year_label(home.month[0])

    table = Table(title=f"Summary for {month_label}", show_header=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    for label, value in rows:
        table.add_row(label, value)
    table.add_row("Status", status)
    console.print(table)


@app.command("stats")
def stats_cmd(
    ctx: typer.Context,
    period: Annotated[
        Period, typer.Option(case_sensitive=False, help="week or month")
    ] = Period.MONTH,
    type_: Annotated[
        TransactionType,
        typer.Option("--type", case_sensitive=False, help="Breakdown for INCOME or EXPENSE"),
    ] = TransactionType.EXPENSE,
) -> None:
    """Show the category breakdown for this week or month."""

    if period not in (Period.WEEK, Period.MONTH):
        raise _fail("--period must be week or month")

    with _open_tracker(ctx) as tracker:
        view = tracker.open_statistics_view(_PERIOD_MODES[period])
        if type_ == TransactionType.INCOME:
            total, breakdown = view.total_income.value, view.income_breakdown.value
        else:
            total, breakdown = view.total_expense.value, view.expense_breakdown.value
        start, end = view.date_range.value

    title = f"{type_.value.title()} by category, {format_date(start)} - {format_date(end)}"
    if not breakdown:
        console.print(f"{title}: nothing recorded.")
        return
    table = Table(title=title)
    table.add_column("Category")
    table.add_column("Amount", justify="right")
    table.add_column("Share", justify="right")
    for row in breakdown:
        table.add_row(row.category, _money(row.amount), f"{row.percentage:.1f}%")
    table.add_row("[bold]Total[/bold]", f"[bold]{_money(total)}[/bold]", "")
    console.print(table)


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    *,
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    log_level: str | None = typer.Option(
        None, help="Log level (falls back to EXPENSE_TRACKER_LOG_LEVEL, then INFO)."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    # Load environment from .env in CWD (override=False to keep existing env)
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging(log_level)

    ctx.obj = {"database_url": database_url}

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    app()
