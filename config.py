import os
from dotenv import load_dotenv

load_dotenv()

REQUIRED_ENV_VARS = (
    'SPOTIFY_CLIENT_ID',
    'SPOTIFY_CLIENT_SECRET',
    'SPOTIFY_REDIRECT_URI',
)


def validate_required_env_vars():
    """Raise ValueError listing any missing Spotify OAuth variables."""
    missing = [name for name in REQUIRED_ENV_VARS if not os.getenv(name)]
    if missing:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing)}"
        )


class Config:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', os.urandom(24))
    SPOTIFY_CLIENT_ID = os.getenv('SPOTIFY_CLIENT_ID')
    SPOTIFY_CLIENT_SECRET = os.getenv('SPOTIFY_CLIENT_SECRET')
    SPOTIFY_REDIRECT_URI = os.getenv('SPOTIFY_REDIRECT_URI')

    # Session cookie (holds only the OAuth state parameter)
    SESSION_COOKIE_NAME = 'fete_session'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # Credential persistence; unset keeps credentials in memory only
    CREDENTIAL_STORE_PATH = os.getenv('CREDENTIAL_STORE_PATH')

    # Feed
    FEED_PAGE_SIZE = int(os.getenv('FEED_PAGE_SIZE', 10))
    FEED_TIME_RANGE = os.getenv('FEED_TIME_RANGE', 'medium_term')
    HTTP_TIMEOUT = float(os.getenv('HTTP_TIMEOUT', 30))

    # Web player friend activity (undocumented, may break at any time)
    WEB_PLAYER_TOKEN_URL = os.getenv('WEB_PLAYER_TOKEN_URL')
    WEB_PLAYER_BUDDYLIST_URL = os.getenv('WEB_PLAYER_BUDDYLIST_URL')
    WEB_PLAYER_TOTP_SECRET = os.getenv('WEB_PLAYER_TOTP_SECRET')
    WEB_PLAYER_TOTP_VERSION = int(os.getenv('WEB_PLAYER_TOTP_VERSION', 5))

    # Application settings
    DEBUG = False
    TESTING = False
    PORT = int(os.getenv('PORT', 8000))
    HOST = os.getenv('HOST', '127.0.0.1')


class ProductionConfig(Config):
    """Production configuration."""
    SESSION_COOKIE_SECURE = True


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False
    PORT = 8000
    HOST = 'localhost'


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    DEBUG = True
    PORT = 8000
    HOST = 'localhost'
    CREDENTIAL_STORE_PATH = None


# Dictionary for easy config selection
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
