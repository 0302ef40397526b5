"""
Archivo de conveniencia para usar el CLI de Flask:
    python manage.py run
    python manage.py seed-demo
    python manage.py db init / migrate / upgrade
"""

import click
from flask.cli import FlaskGroup

from seed_demo import cargar_demo
from wsgi import app


@click.group(cls=FlaskGroup, create_app=lambda: app)
def cli():
    """Comandos de gestión del backend de incidencias."""


@cli.command("seed-demo")
def seed_demo():
    """Crea los usuarios demo (admin, supervisor, juan.vecino) y sus incidencias."""
    resultado = cargar_demo()
    click.echo(f"Usuarios: {resultado['usuarios']} · incidencias nuevas: {resultado['incidencias']}")


if __name__ == "__main__":
    cli()
