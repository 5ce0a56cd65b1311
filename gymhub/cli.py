"""
Flask CLI commands.

    flask init-db          Create tables for a fresh database
    flask seed-members     Add demo members
    flask send-reminders   Send expiry reminders (run daily via cron)
"""

import click

from gymhub import db


def register_commands(app):
    @app.cli.command('init-db')
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo('Database tables created.')

    @app.cli.command('seed-members')
    def seed_members_command():
        """Add demo members if they don't exist."""
        from gymhub.seed_members import seed_members
        result = seed_members()
        click.echo(f"Seeded members: {result['added']} added, {result['skipped']} skipped, {result['total']} total")

    @app.cli.command('send-reminders')
    @click.option('--dry-run', is_flag=True, help='Log messages instead of sending them.')
    def send_reminders(dry_run):
        """Send renewal reminders and expiry notices."""
        from gymhub.services.reminder_jobs import send_membership_reminders
        if dry_run:
            app.config['NOTIFICATIONS_DRY_RUN'] = True
        result = send_membership_reminders()
        click.echo(f"Reminders: {result['sent']} sent, {result['skipped']} skipped, {result['failed']} failed")
        for error in result['errors']:
            click.echo(f"  member {error['member_id']}: {error['error']}", err=True)
