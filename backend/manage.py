from pmitools import create_app
from pmitools.seed import seed_data
from flask.cli import with_appcontext
from flask_migrate import upgrade, migrate, init

app = create_app()

@app.cli.command("db-init")
@with_appcontext
def db_init():
    """Initializes migrations directory"""
    init()

@app.cli.command("db-migrate")
@with_appcontext
def db_migrate():
    """Creates a new migration"""
    migrate()

@app.cli.command("db-upgrade")
@with_appcontext
def db_upgrade():
    """Applies migrations"""
    upgrade()

@app.cli.command("seed")
@with_appcontext
def seed():
    """Loads demo users, a cohort with lab days, sites and an internship"""
    seed_data()
    print("Seed data loaded.")
