import click
from flask.cli import with_appcontext

from app.services.ledger_service import audit_all, verify_ledger


@click.command("ledger-audit")
@click.option("--user", "user_id", default=None, help="Only audit this profile id.")
@with_appcontext
def ledger_audit(user_id):
    """Recompute balances from the ledger and report any drift."""
    results = [verify_ledger(user_id)] if user_id else audit_all()

    bad = 0
    for r in results:
        status = "OK " if r["consistent"] else "BAD"
        click.echo(
            f"{status} {r['user_id']} | balance={r['balance']} "
            f"ledger={r['ledger_sum']} entries={r['entries']}"
        )
        if r["broken_entries"]:
            click.echo(f"    broken: {', '.join(r['broken_entries'])}")
        if not r["consistent"]:
            bad += 1

    click.echo(f"\n{len(results)} profiles checked, {bad} inconsistent")
    if bad:
        raise SystemExit(1)
