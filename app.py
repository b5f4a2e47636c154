import os
import click
from flask import Flask

import ledger
from auth_utils import optional_auth, current_principal
from config import Config, ensure_secrets, configure_logging
from errors import register_error_handlers
from responses import respond
from routes.auth import auth_bp
from routes.vault import vault_bp
from routes.categories import categories_bp


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)
    ensure_secrets(app)

    config_class.init_db(app)

    register_error_handlers(app)
    app.register_blueprint(auth_bp)
    app.register_blueprint(vault_bp)
    app.register_blueprint(categories_bp)

    @app.route('/health')
    @optional_auth
    def health():
        return respond({'status': 'ok', 'authenticated': current_principal() is not None})

    @app.cli.command('purge-sessions')
    def purge_sessions():
        """Delete refresh tokens that are past their expiry."""
        removed = ledger.purge_expired()
        click.echo(f"Removed {removed} expired session(s)")

    return app


if __name__ == '__main__':
    create_app().run(
        host='0.0.0.0',
        port=int(os.environ.get('PORT', 5000)),
        debug=os.environ.get('FLASK_DEBUG', '0') == '1',
    )
