import os
import logging
from urllib.parse import quote_plus
from dotenv import load_dotenv

load_dotenv()


def _database_uri():
    url = os.getenv('DATABASE_URL')
    if url:
        return url
    return "mysql+mysqlconnector://{user}:{password}@{host}/{database}".format(
        user=os.getenv('MYSQL_USER', 'root'),
        password=quote_plus(os.getenv('MYSQL_PASSWORD', '')),
        host=os.getenv('MYSQL_HOST', 'localhost'),
        database=os.getenv('MYSQL_DATABASE', 'productivity_db'),
    )


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_size': 5, 'pool_recycle': 3600}

    # Access and refresh tokens are signed with separate secrets.
    JWT_ACCESS_SECRET = os.getenv('JWT_ACCESS_SECRET')
    JWT_REFRESH_SECRET = os.getenv('JWT_REFRESH_SECRET')
    JWT_ACCESS_EXPIRES = os.getenv('JWT_ACCESS_EXPIRES', '15m')
    JWT_REFRESH_EXPIRES = os.getenv('JWT_REFRESH_EXPIRES', '7d')
    JWT_ALGORITHM = 'HS256'

    VAULT_ENCRYPTION_KEY = os.getenv('VAULT_ENCRYPTION_KEY')
    PASSWORD_HASH_METHOD = os.getenv('PASSWORD_HASH_METHOD', 'pbkdf2:sha256:600000')

    MAX_CONTENT_LENGTH = 10 * 1024

    @staticmethod
    def init_db(app):
        from models import db

        db.init_app(app)
        with app.app_context():
            db.create_all()


GENERATED_SECRETS = ('SECRET_KEY', 'JWT_ACCESS_SECRET', 'JWT_REFRESH_SECRET')


def ensure_secrets(app):
    """Fill in any missing secret with a per-process random value.

    The vault key is never generated outside testing: data encrypted under a
    throwaway key cannot be read after a restart.
    """
    import secrets

    for key in GENERATED_SECRETS:
        if not app.config.get(key):
            app.config[key] = secrets.token_hex(32)
            app.logger.warning("%s is not set; generated a throwaway value for this process", key)
    if not app.config.get('VAULT_ENCRYPTION_KEY'):
        if not app.config.get('TESTING'):
            raise RuntimeError("VAULT_ENCRYPTION_KEY must be set")
        app.config['VAULT_ENCRYPTION_KEY'] = secrets.token_hex(32)
        app.logger.warning("VAULT_ENCRYPTION_KEY is not set; generated a throwaway value for testing")
    if app.config['JWT_ACCESS_SECRET'] == app.config['JWT_REFRESH_SECRET']:
        raise RuntimeError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    app.logger.setLevel(level)
