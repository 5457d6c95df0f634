"""
Flask CLI commands.

Commands:
- flask init-db: Create the database tables
- flask create-admin: Create an ADMIN user
"""

import click

from garage.database import create_all, get_session
from garage.exceptions import ValidationError
from garage.models import UserRole
from garage.services.auth_service import create_user


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables."""
        create_all()
        click.echo(click.style('Tables créées.', fg='green'))

    @app.cli.command('create-admin')
    @click.option('--email', prompt=True, help='Admin email address')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Admin password')
    @click.option('--name', default=None, help='Full name')
    def create_admin(email, password, name):
        """Create an administrator account."""
        try:
            admin = create_user(get_session(), email, password, full_name=name, role=UserRole.ADMIN.value)
        except ValidationError as e:
            click.echo(click.style(f'Erreur : {e.message}', fg='red'))
            raise SystemExit(1)

        click.echo(click.style('Administrateur créé.', fg='green', bold=True))
        click.echo(f'   Email: {admin.email}')
        click.echo(f'   ID: {admin.id}')
