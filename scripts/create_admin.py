"""Create an administrator account.

    python -m scripts.create_admin "<Name>" "<email@example.com>" "<password>"
"""
import logging
import sys

import typer

from app import create_app
from auth import hash_password
from errors import ConflictError, StoreError
from store import normalize_email

cli = typer.Typer(help='Record Tracker administrator bootstrap')


@cli.command()
def create_admin(
    name: str = typer.Argument(..., help='Display name'),
    email: str = typer.Argument(..., help='Login email'),
    password: str = typer.Argument(..., help='Initial password'),
):
    """Insert a user with admin privileges."""
    app = create_app({'SEED_DEFAULT_ADMIN': False})
    store = app.extensions['record_store']
    with app.app_context():
        try:
            store.insert_user(name, email, hash_password(password), is_admin=True)
        except (ConflictError, StoreError) as e:
            typer.echo(f'Failed to create admin: {e.message}', err=True)
            raise typer.Exit(1)
        finally:
            store.shutdown()
    typer.echo(f'Admin created: {normalize_email(email)}')


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s',
                        handlers=[logging.StreamHandler(sys.stdout)])
    cli()
