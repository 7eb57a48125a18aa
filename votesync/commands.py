# votesync/commands.py

# Operator commands, run through `flask --app votesync <command>`.

import click

from votesync import app, db
from votesync.authentication.rbac import ADMIN_ROLES
from votesync.database.models import AdminUser
from votesync.encryption.password_hashing import PasswordHashingService
from votesync.voting.errors import StorageError
from votesync.voting.reconcile import reconcile_voted_flags
from votesync.voting.voter_token import VoterTokenHasher


@app.cli.command('create-admin')
@click.argument('username')
@click.option('--role', type=click.Choice(ADMIN_ROLES), default='administrator', show_default=True)
@click.password_option()
def create_admin(username, role, password):
    """Create an admin account that can read recapitulation reports."""
    if db.session.query(AdminUser).filter_by(username=username).first() is not None:
        raise click.ClickException(f"Admin user '{username}' already exists")
    try:
        hashed = PasswordHashingService().hash_password(password)
    except ValueError as e:
        raise click.ClickException(str(e))
    db.session.add(AdminUser(username=username, password_hash=hashed, role=role))
    db.session.commit()
    click.echo(f"Admin user '{username}' created with role {role}.")


@app.cli.command('reconcile-votes')
@click.option('--election-id', default=None, help='Only reconcile flags for this election.')
def reconcile_votes(election_id):
    """Rebuild voters' has_voted flags from the ballot table."""
    try:
        repaired = reconcile_voted_flags(VoterTokenHasher.from_config(app.config), election_id=election_id)
    except StorageError as e:
        raise click.ClickException(f"Reconciliation failed: {e}")
    click.echo(f"Reconciled has_voted flags; {repaired} voter(s) repaired.")
