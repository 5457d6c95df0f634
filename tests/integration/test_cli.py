"""
Integration tests for the Flask CLI commands.
"""

from sqlalchemy import inspect

from garage import database
from garage.database import drop_all
from garage.models import AppUser
from garage.services.auth_service import authenticate


class TestInitDb:

    def test_creates_tables(self, app, db):
        drop_all()
        assert 'invoice' not in inspect(database.engine).get_table_names()

        result = app.test_cli_runner().invoke(args=['init-db'])

        assert result.exit_code == 0, result.output
        assert 'Tables créées.' in result.output
        tables = set(inspect(database.engine).get_table_names())
        assert {'app_user', 'user_group', 'customer', 'vehicle', 'part',
                'invoice', 'invoice_item', 'invoice_sequence'} <= tables

    def test_is_idempotent(self, app, session, owner):
        result = app.test_cli_runner().invoke(args=['init-db'])

        assert result.exit_code == 0, result.output
        assert session.query(AppUser).filter_by(email=owner.email).count() == 1


class TestCreateAdmin:

    def test_create_admin(self, app, session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            'create-admin', '--email', 'chef@garage.test', '--password', 'atelier42', '--name', 'Chef'
        ])
        assert result.exit_code == 0, result.output
        assert 'Administrateur créé.' in result.output

        admin = authenticate(session, 'chef@garage.test', 'atelier42')
        assert admin.is_admin
        assert admin.full_name == 'Chef'

    def test_prompts_for_missing_options(self, app, session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['create-admin'], input='chef@garage.test\natelier42\natelier42\n')

        assert result.exit_code == 0, result.output
        assert authenticate(session, 'chef@garage.test', 'atelier42').is_admin

    def test_rejects_short_password(self, app, session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['create-admin', '--email', 'chef@garage.test', '--password', '123'])
        assert result.exit_code == 1
        assert 'mot de passe' in result.output
        assert session.query(AppUser).count() == 0

    def test_rejects_existing_email(self, app, session, admin):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['create-admin', '--email', admin.email, '--password', 'atelier42'])
        assert result.exit_code == 1
        assert 'Erreur' in result.output
