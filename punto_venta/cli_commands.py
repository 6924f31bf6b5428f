"""
Flask CLI commands.

Commands:
- flask init-db: Create all tables
- flask create-user: Register a user coming from the identity provider
- flask set-role: Change a user's role (admin/user)
"""

import click
import re
from sqlalchemy.exc import SQLAlchemyError

from punto_venta.database import db_session, create_all
from punto_venta.models import User, UserRole

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
ROLE_CHOICES = click.Choice([r.value for r in UserRole])


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create the database tables."""
        create_all()
        click.echo(click.style('✅ Tablas creadas', fg='green'))

    @app.cli.command('create-user')
    @click.option('--email', prompt=True, help='User email address')
    @click.option('--full-name', default='', help='Display name (cashier)')
    @click.option('--role', type=ROLE_CHOICES, default=UserRole.USER.value, show_default=True)
    def create_user(email, full_name, role):
        """Create a user record."""
        if not re.match(EMAIL_PATTERN, email):
            click.echo(click.style('❌ Email inválido. Use formato: user@example.com', fg='red'))
            return

        if db_session.query(User).filter_by(email=email).first():
            click.echo(click.style(f'❌ Ya existe un usuario con el email: {email}', fg='red'))
            return

        try:
            user = User(email=email, full_name=full_name or None, role=role, active=True)
            db_session.add(user)
            db_session.commit()
        except SQLAlchemyError as e:
            db_session.rollback()
            click.echo(click.style(f'❌ Error al crear usuario: {str(e)}', fg='red'))
            return

        click.echo(click.style('✅ Usuario creado', fg='green', bold=True))
        click.echo(f'   Email: {email}')
        click.echo(f'   ID: {user.id}')
        click.echo(f'   Rol: {role}')

    @app.cli.command('set-role')
    @click.argument('email')
    @click.argument('role', type=ROLE_CHOICES)
    def set_role(email, role):
        """Change the role of an existing user."""
        user = db_session.query(User).filter_by(email=email).first()
        if not user:
            click.echo(click.style(f'❌ No existe un usuario con el email: {email}', fg='red'))
            return

        try:
            user.role = role
            db_session.commit()
        except SQLAlchemyError as e:
            db_session.rollback()
            click.echo(click.style(f'❌ Error al actualizar rol: {str(e)}', fg='red'))
            return

        click.echo(click.style(f'✅ {email} ahora tiene rol {role}', fg='green'))
