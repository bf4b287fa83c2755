"""Command-line interface for the lease calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users can convert tenures, generate installment schedules, inspect
ownership at any point of a schedule, check stored schedules against their
terms, fold daily schedules into monthly ones and quote early settlements.
Schedules can be printed to the terminal or exported to JSON/CSV files.
The ``applications`` group works on the record store: it imports
applications, generates their schedules once and records payments.
"""

from __future__ import annotations

import csv
import json
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from .aggregation import aggregate_daily_to_monthly, looks_daily
from .config import LeaseCalcConfig
from .data_models import CalculationMethod, LoanTerms, PaymentMethod, ProofDocument, Schedule, ScheduleInterval
from .engine import generate_schedule, summarize_schedule, validate_schedule
from .exceptions import ConfigurationError, FormatError, LeaseCalcError
from .formatter import print_ownership, print_quote, print_schedule, print_summary, print_timeline
from .logging import setup_logging
from .ownership import ownership_at, ownership_schedule, ownership_timeline
from .serialization import schedule_from_records, schedule_to_records
from .settlement import FlatDiscountPolicy, load_policy, quote_settlement
from .store import ApplicationStore, create_store_from_config
from .tenure import format_months_to_tenure, parse_tenure_to_months
from .utils import decimal_from_str, parse_iso_date, parse_year_month


def parse_amount(value: str) -> Decimal:
    """Parse a money string with optional suffixes.

    Accepts plain numbers ("100000", "1,250.50") and shorthand with ``k``/``m``
    suffixes (e.g. "100k" meaning 100_000).
    """
    value = value.strip().lower().replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        return decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_percent(value: str) -> Decimal:
    """Parse a percentage string (e.g. "12", "12%" or "0.12") into a fraction."""
    value = value.strip()
    if value.endswith("%"):
        value = value[:-1]
    try:
        p = Decimal(value)
    except InvalidOperation:
        raise click.BadParameter(f"Invalid percentage: {value}")
    # If the user enters a number like 12, treat it as 12%
    if p > 1:
        p = p / 100
    return p


def parse_date_option(value: Optional[str]) -> Optional[date]:
    """Parse YYYY-MM-DD, or YYYY-MM meaning the first of that month."""
    if not value:
        return None
    try:
        if len(value.strip()) == 7:
            return parse_year_month(value)
        return parse_iso_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def build_terms_from_options(
    price: str,
    down_payment: Optional[str],
    tenure: str,
    rate: Optional[Decimal] = None,
    method: str = CalculationMethod.AMORTIZED_FIXED.value,
) -> LoanTerms:
    try:
        tenure_months = parse_tenure_to_months(tenure)
    except FormatError as exc:
        raise click.BadParameter(str(exc), param_hint="--tenure")
    return LoanTerms(
        vehicle_price=parse_amount(price),
        down_payment=parse_amount(down_payment) if down_payment else Decimal("0"),
        tenure_months=tenure_months,
        annual_rent_rate=rate if rate is not None else Decimal("0"),
        calculation_method=CalculationMethod(method),
    )


def read_schedule_file(path: Path) -> Schedule:
    """Read a schedule JSON file.

    Accepts a list of rows, an export (``{"schedule": [...]}``) or an
    application record carrying ``installmentPlan.schedule``.
    """
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        plan = data.get("installmentPlan") or {}
        records = data["schedule"] if "schedule" in data else plan.get("schedule", [])
    else:
        records = data
    try:
        return schedule_from_records(records)
    except (KeyError, ValueError) as exc:
        raise click.BadParameter(f"Invalid schedule file {path}: {exc}")


def _json_ready(summary: Dict[str, Any]) -> Dict[str, Any]:
    return {k: (str(v) if isinstance(v, Decimal) else v) for k, v in summary.items()}


def export_to_json(path: Path, schedule: Schedule, summary: Optional[Dict[str, Any]] = None) -> None:
    """Export schedule (and optional summary) to a JSON file."""
    data: Dict[str, Any] = {"schedule": schedule_to_records(schedule)}
    if summary is not None:
        data["summary"] = _json_ready(summary)
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: Schedule, terms: Optional[LoanTerms] = None) -> None:
    """Export schedule to a CSV file, with ownership columns when terms are known."""
    header = ["No", "Due_Date", "Amount", "Status", "Paid_Date"]
    splits: List = []
    if terms is not None:
        header += ["Customer_Share", "Financier_Share", "Ownership_Percent"]
        splits = ownership_schedule(terms, len(schedule))
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for i, row in enumerate(schedule):
            line = [
                i + 1,
                row.due_date.isoformat(),
                str(row.amount),
                row.status.value,
                row.paid_date.isoformat() if row.paid_date else "",
            ]
            if splits:
                split = splits[i]
                line += [str(split.customer_share), str(split.financier_share), str(split.ownership_percentage)]
            writer.writerow(line)


@click.group()
@click.option("--log-level", "log_level", default=None, help="Log level (defaults to LOG_LEVEL or INFO)")
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str]) -> None:
    """Lease-to-own installment schedule and ownership calculator."""
    try:
        config = LeaseCalcConfig.from_env()
    except ConfigurationError as exc:
        raise click.UsageError(str(exc))
    setup_logging(log_level or config.log_level, config.log_format)
    ctx.obj = config


@cli.command()
@click.argument("value")
def tenure(value: str) -> None:
    """Convert a tenure string to months, or a month count to a tenure string."""
    if value.strip().isdigit():
        try:
            click.echo(format_months_to_tenure(int(value)))
        except FormatError as exc:
            raise click.BadParameter(str(exc))
        return
    try:
        click.echo(str(parse_tenure_to_months(value)))
    except FormatError as exc:
        raise click.BadParameter(str(exc))


_terms_options = [
    click.option("--price", "-p", "price", required=True, help="Vehicle price"),
    click.option("--down-payment", "-d", "down_payment", help="Down payment amount"),
    click.option("--tenure", "-t", "tenure", default="12 Months", show_default=True, help="Tenure, e.g. '2 Years'"),
]


def terms_options(func):
    for option in reversed(_terms_options):
        func = option(func)
    return func


@cli.command()
@terms_options
@click.option("--rate", "-r", "rate", help="Annual rental rate in percent (default: DEFAULT_ANNUAL_RENT_RATE)")
@click.option(
    "--method",
    "method",
    type=click.Choice([m.value for m in CalculationMethod]),
    default=CalculationMethod.AMORTIZED_FIXED.value,
    help="Calculation method",
)
@click.option(
    "--interval",
    "interval",
    type=click.Choice([i.value for i in ScheduleInterval]),
    default=ScheduleInterval.MONTHLY.value,
    help="Installment interval",
)
@click.option("--start-date", "-s", "start_date", help="First due date (YYYY-MM-DD or YYYY-MM)")
@click.option("--today", "today", help="Reference date for statuses (YYYY-MM-DD)")
@click.option("--ownership/--no-ownership", "show_ownership", default=True, help="Show ownership columns")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@click.pass_obj
def schedule(
    config: LeaseCalcConfig,
    price: str,
    down_payment: Optional[str],
    tenure: str,
    rate: Optional[str],
    method: str,
    interval: str,
    start_date: Optional[str],
    today: Optional[str],
    show_ownership: bool,
    output: Optional[str],
) -> None:
    """Generate and print the installment schedule."""
    rate_value = parse_percent(rate) if rate else config.default_annual_rent_rate
    terms = build_terms_from_options(price, down_payment, tenure, rate_value, method)
    entries = generate_schedule(
        terms,
        start_date=parse_date_option(start_date),
        today=parse_date_option(today),
        interval=ScheduleInterval(interval),
    )
    if not entries:
        raise click.BadParameter("These terms cannot be scheduled (check price, down payment and tenure)")
    summary = summarize_schedule(terms, entries)
    monthly = ScheduleInterval(interval) == ScheduleInterval.MONTHLY
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, entries, summary)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, entries, terms if monthly else None)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return
    print_summary(summary)
    splits = ownership_schedule(terms, len(entries)) if show_ownership and monthly else None
    print_schedule(entries, splits)


@cli.command()
@terms_options
@click.option("--index", "-i", "index", type=int, help="Zero-based payment index (default: every payment)")
@click.option(
    "--schedule",
    "schedule_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Schedule JSON; prints the ownership timeline of its payments",
)
@click.option("--today", "today", help="Reference date for missed payments (YYYY-MM-DD)")
def ownership(
    price: str,
    down_payment: Optional[str],
    tenure: str,
    index: Optional[int],
    schedule_path: Optional[Path],
    today: Optional[str],
) -> None:
    """Show how the vehicle's value is split between customer and financier."""
    terms = build_terms_from_options(price, down_payment, tenure)
    if schedule_path is not None:
        timeline = ownership_timeline(terms, read_schedule_file(schedule_path), parse_date_option(today))
        print_timeline(timeline)
    elif index is not None:
        split = ownership_at(terms.vehicle_price, terms.down_payment, terms.tenure_months, index)
        print_ownership([split], start_index=index)
    else:
        print_ownership(ownership_schedule(terms))


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", "output", type=click.Path(dir_okay=False, path_type=Path), help="Output JSON path")
@click.option("--interval", "interval", help="Stored interval field (Daily/Monthly); overrides detection")
@click.option("--tenure", "-t", "tenure", help="Stated tenure, used by daily detection")
@click.pass_obj
def aggregate(
    config: LeaseCalcConfig, input_path: Path, output: Optional[Path], interval: Optional[str], tenure: Optional[str]
) -> None:
    """Fold a daily schedule JSON into one installment per month."""
    entries = read_schedule_file(input_path)
    tenure_months = None
    if tenure:
        try:
            tenure_months = parse_tenure_to_months(tenure)
        except FormatError as exc:
            raise click.BadParameter(str(exc), param_hint="--tenure")
    if not looks_daily(entries, tenure_months=tenure_months, interval=interval, gap_days=config.daily_gap_days):
        click.echo("Schedule is already monthly; nothing to do.")
        result = entries
    else:
        result = aggregate_daily_to_monthly(entries)
        click.echo(f"Aggregated {len(entries)} rows into {len(result)} monthly rows.")
    if output:
        export_to_json(output, result)
        click.echo(f"Schedule exported to {output}")
    else:
        print_schedule(result)


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@terms_options
@click.option("--rate", "-r", "rate", help="Annual rental rate in percent (default: DEFAULT_ANNUAL_RENT_RATE)")
@click.option(
    "--interval",
    "interval",
    type=click.Choice([i.value for i in ScheduleInterval]),
    default=ScheduleInterval.MONTHLY.value,
    help="Installment interval of the file",
)
@click.pass_obj
def validate(
    config: LeaseCalcConfig,
    input_path: Path,
    price: str,
    down_payment: Optional[str],
    tenure: str,
    rate: Optional[str],
    interval: str,
) -> None:
    """Check a schedule JSON against the terms it was generated from."""
    rate_value = parse_percent(rate) if rate else config.default_annual_rent_rate
    terms = build_terms_from_options(price, down_payment, tenure, rate_value)
    problems = validate_schedule(read_schedule_file(input_path), terms, ScheduleInterval(interval))
    if not problems:
        click.echo("Schedule is valid.")
        return
    for problem in problems:
        click.echo(f"- {problem}")
    raise click.ClickException(f"{len(problems)} problem(s) found")


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@terms_options
@click.option("--policy", "policy_path", type=click.Path(dir_okay=False, path_type=Path), help="Settlement policy JSON")
@click.option("--percent", "percent", help="Flat discount percentage instead of a policy file")
@click.option("--as-of", "as_of", help="Settlement date (YYYY-MM-DD, default today)")
@click.pass_obj
def settle(
    config: LeaseCalcConfig,
    input_path: Path,
    price: str,
    down_payment: Optional[str],
    tenure: str,
    policy_path: Optional[Path],
    percent: Optional[str],
    as_of: Optional[str],
) -> None:
    """Quote an early settlement of the unpaid installments in a schedule JSON."""
    terms = build_terms_from_options(price, down_payment, tenure)
    entries = read_schedule_file(input_path)
    policy = None
    if percent:
        policy = FlatDiscountPolicy(parse_percent(percent))
    else:
        policy_path = policy_path or config.settlement_policy_file
        if policy_path:
            try:
                policy = load_policy(policy_path)
            except ConfigurationError as exc:
                raise click.BadParameter(str(exc), param_hint="--policy")
    quote = quote_settlement(terms, entries, policy, parse_date_option(as_of))
    print_quote(quote)


@contextmanager
def store_errors():
    """Report store failures as command errors."""
    try:
        yield
    except (LeaseCalcError, IndexError) as exc:
        raise click.ClickException(str(exc))


@cli.group()
@click.option("--database-url", "database_url", help="Record store URL (default: LEASE_CALC_DATABASE_URL)")
@click.pass_context
def applications(ctx: click.Context, database_url: Optional[str]) -> None:
    """Manage stored applications and their schedules."""
    config = ctx.obj
    if database_url:
        config = replace(config, database_url=database_url)
    ctx.obj = create_store_from_config(config)


@applications.command("add")
@terms_options
@click.option("--rate", "-r", "rate", help="Annual rental rate in percent (default: DEFAULT_ANNUAL_RENT_RATE)")
@click.option(
    "--interval",
    "interval",
    type=click.Choice([i.value for i in ScheduleInterval]),
    default=ScheduleInterval.MONTHLY.value,
    help="Installment interval",
)
@click.option("--id", "application_id", help="Application id (default: generated)")
@click.pass_context
def add_application(
    ctx: click.Context,
    price: str,
    down_payment: Optional[str],
    tenure: str,
    rate: Optional[str],
    interval: str,
    application_id: Optional[str],
) -> None:
    """Store a new application from the given terms."""
    store: ApplicationStore = ctx.obj
    config: LeaseCalcConfig = ctx.find_root().obj
    rate_value = parse_percent(rate) if rate else config.default_annual_rent_rate
    terms = build_terms_from_options(price, down_payment, tenure, rate_value)
    with store_errors():
        app_id = store.add_application(
            terms, tenure=tenure, interval=interval.capitalize(), application_id=application_id
        )
    click.echo(app_id)


@applications.command("import")
@click.argument("record_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def import_application(store: ApplicationStore, record_path: Path) -> None:
    """Store an application record JSON exported from the intake system."""
    with record_path.open("r", encoding="utf-8") as f:
        record = json.load(f)
    if not isinstance(record, dict):
        raise click.BadParameter(f"{record_path} must hold a JSON object", param_hint="RECORD_PATH")
    with store_errors():
        app_id = store.import_application(record)
    click.echo(app_id)


@applications.command("ensure-schedule")
@click.argument("application_id")
@click.option("--start-date", "-s", "start_date", help="First due date (YYYY-MM-DD or YYYY-MM)")
@click.option("--today", "today", help="Reference date for statuses (YYYY-MM-DD)")
@click.pass_obj
def ensure_schedule(
    store: ApplicationStore, application_id: str, start_date: Optional[str], today: Optional[str]
) -> None:
    """Generate and store the schedule of an application that has none."""
    with store_errors():
        entries = store.ensure_schedule(
            application_id, today=parse_date_option(today), start_date=parse_date_option(start_date)
        )
    if not entries:
        raise click.ClickException(f"Application {application_id} cannot be scheduled yet")
    click.echo(f"Application {application_id} has {len(entries)} installments.")


@applications.command("pay")
@click.argument("application_id")
@click.argument("number", type=click.IntRange(min=1))
@click.option("--paid-date", "paid_date", help="Payment date (YYYY-MM-DD, default today)")
@click.option("--method", "method", type=click.Choice([m.value for m in PaymentMethod]), help="Payment method")
@click.option("--proof-url", "proof_url", help="URL of the uploaded proof of payment")
@click.option("--proof-name", "proof_name", help="File name of the proof (default: last part of the URL)")
@click.pass_obj
def pay(
    store: ApplicationStore,
    application_id: str,
    number: int,
    paid_date: Optional[str],
    method: Optional[str],
    proof_url: Optional[str],
    proof_name: Optional[str],
) -> None:
    """Mark installment NUMBER (as printed, starting at 1) paid."""
    proof = None
    if proof_url:
        proof = ProofDocument(name=proof_name or proof_url.rstrip("/").rsplit("/", 1)[-1], url=proof_url)
    with store_errors():
        store.record_payment(
            application_id,
            number - 1,
            parse_date_option(paid_date) or date.today(),
            PaymentMethod(method) if method else None,
            proof,
        )
    click.echo(f"Installment {number} of application {application_id} marked paid.")


@applications.command("to-monthly")
@click.argument("application_id")
@click.pass_obj
def to_monthly(store: ApplicationStore, application_id: str) -> None:
    """Fold a stored daily schedule into one installment per month."""
    with store_errors():
        before, _ = store.get_schedule(application_id)
        after = store.convert_to_monthly(application_id)
    if len(after) == len(before):
        click.echo("Schedule is already monthly; nothing to do.")
    else:
        click.echo(f"Aggregated {len(before)} rows into {len(after)} monthly rows.")


@applications.command("show")
@click.argument("application_id")
@click.pass_obj
def show(store: ApplicationStore, application_id: str) -> None:
    """Print the stored schedule of an application."""
    with store_errors():
        terms = store.get_terms(application_id)
        entries, version = store.get_schedule(application_id)
    if not entries:
        click.echo(f"Application {application_id} has no schedule yet.")
        return
    print_summary(summarize_schedule(terms, entries))
    print_schedule(entries)
    click.echo(f"Version {version}")


if __name__ == "__main__":
    cli()
