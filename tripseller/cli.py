import click

from tripseller.services import CommissionLedger


def register_cli(app):
    @app.cli.command("backfill-commissions")
    def backfill_commissions():
        """Create missing commission payment rows for bookings with a seller."""
        result = CommissionLedger.backfill_missing()
        click.echo(f"Created commission payments for {result['created']} booking(s).")
        for error in result["errors"]:
            click.echo(f"  booking {error['booking_id']}: {error['error']}", err=True)
