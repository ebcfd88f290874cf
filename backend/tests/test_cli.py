# Overview: Pytest coverage for the flask CLI command groups.

from stockbook.extensions import db
from stockbook.models import Product, User

from conftest import PASSWORD


class TestUsersCommands:

    def test_create_and_list(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            'users', 'create',
            '--username', 'cli-owner',
            '--email', 'cli@example.com',
            '--password', PASSWORD,
        ])
        assert result.exit_code == 0
        assert "PASS Created user: cli-owner" in result.output
        assert db.session.query(User).filter_by(username='cli-owner').count() == 1

        listed = runner.invoke(args=['users', 'list'])
        assert "cli@example.com" in listed.output

    def test_weak_password_reported(self, app):
        result = app.test_cli_runner().invoke(args=[
            'users', 'create', '--username', 'weak', '--email', 'weak@example.com', '--password', 'short',
        ])
        assert "FAIL Password validation failed" in result.output
        assert db.session.query(User).filter_by(username='weak').count() == 0


class TestInventoryCommands:

    def test_low_stock(self, app, owner, widget, gadget):
        db.session.get(Product, gadget.id).quantity = 2
        db.session.commit()

        result = app.test_cli_runner().invoke(args=['inventory', 'low-stock', '--username', 'owner'])
        assert result.exit_code == 0
        assert "G-001" in result.output
        assert "W-001" not in result.output

    def test_unknown_user(self, app):
        result = app.test_cli_runner().invoke(args=['inventory', 'low-stock', '--username', 'ghost'])
        assert "FAIL User 'ghost' not found" in result.output
