import os
import secrets
import warnings

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


def _csv_ints(value):
    """Parse '13, 17' into (13, 17), ignoring blanks and junk"""
    weeks = []
    for part in (value or "").split(","):
        part = part.strip()
        if part.isdigit():
            weeks.append(int(part))
    return tuple(weeks)


class Config:
    _secret_key = os.environ.get("SECRET_KEY")

    if not _secret_key:
        _secret_key = secrets.token_urlsafe(32)
        warnings.warn(
            "🔐 SECRET_KEY not set! Using auto-generated key. "
            "Issued bearer tokens will stop working on app restart.",
            UserWarning,
        )

    SECRET_KEY = _secret_key

    # Database configuration - built from environment at initialization
    def __init__(self):
        """Initialize configuration with dynamic database URI"""
        self.SQLALCHEMY_DATABASE_URI = self._build_database_uri()

    def _build_database_uri(self):
        """Build database URI from environment variables"""
        database_url = os.environ.get("DATABASE_URL")

        if database_url:
            # Hosted Postgres providers still hand out the legacy scheme
            if database_url.startswith("postgres://"):
                database_url = "postgresql+psycopg://" + database_url[len("postgres://"):]
            elif database_url.startswith("postgresql://"):
                database_url = "postgresql+psycopg://" + database_url[len("postgresql://"):]
            return database_url

        db_type = os.environ.get("DB_TYPE", "sqlite")

        if db_type.lower() == "postgresql":
            db_host = os.environ.get("DB_HOST") or "localhost"
            db_port = os.environ.get("DB_PORT") or "5432"
            db_name = os.environ.get("DB_NAME") or "nfl_frenzy"
            db_user = os.environ.get("DB_USER") or "frenzy"
            db_password = os.environ.get("DB_PASSWORD") or "frenzy"

            return f"postgresql+psycopg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
        else:
            # Default to SQLite for development
            return "sqlite:///" + os.path.join(basedir, "frenzy.db")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Auth tokens
    TOKEN_TTL_HOURS = int(os.environ.get("TOKEN_TTL_HOURS") or 12)
    RESET_TOKEN_HOURS = int(os.environ.get("RESET_TOKEN_HOURS") or 2)
    APP_ORIGIN = os.environ.get("APP_ORIGIN", "http://localhost:5173")

    # CORS: comma separated, supports "*" and "*.example.com"
    CORS_ORIGIN = os.environ.get(
        "CORS_ORIGIN", "http://localhost:5173,http://localhost:4173"
    )

    # Email configuration
    EMAIL_MODE = os.environ.get("EMAIL_MODE", "smtp").lower()
    MAIL_SERVER = os.environ.get("MAIL_SERVER")
    MAIL_PORT = int(os.environ.get("MAIL_PORT") or 587)
    MAIL_USE_TLS = os.environ.get("MAIL_USE_TLS", "true").lower() in ["true", "on", "1"]
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    FROM_EMAIL = os.environ.get("FROM_EMAIL") or os.environ.get("MAIL_USERNAME")
    FROM_NAME = os.environ.get("FROM_NAME", "NFL Frenzy")

    # Scoring
    DOUBLE_WEEKS = _csv_ints(os.environ.get("DOUBLE_WEEKS", "13,17"))

    # Provider configuration
    ODDS_API_KEY = os.environ.get("ODDS_API_KEY")
    ODDS_API_BASE_URL = os.environ.get(
        "ODDS_API_BASE_URL", "https://api.the-odds-api.com/v4/sports/americanfootball_nfl"
    )
    ODDS_BOOKMAKERS = os.environ.get("ODDS_BOOKMAKERS", "caesars,williamhill_us,draftkings")
    ODDS_MIN_WEEK = int(os.environ.get("ODDS_MIN_WEEK") or 1)
    SPORTSDATA_API_KEY = os.environ.get("SPORTSDATA_API_KEY")
    SPORTSDATA_BASE_URL = os.environ.get(
        "SPORTSDATA_BASE_URL", "https://api.sportsdata.io/v3/nfl/scores/json"
    )
    SPORTSDATA_SEASON = os.environ.get("SPORTSDATA_SEASON", "2025REG")
    ESPN_API_BASE_URL = (
        os.environ.get("ESPN_API_BASE_URL")
        or "https://site.api.espn.com/apis/site/v2/sports/football/nfl"
    )
    SEASON_YEAR = int(os.environ.get("SEASON_YEAR") or 2025)
    SCORES_PROVIDER = os.environ.get("SCORES_PROVIDER", "espn").lower()
    SCORES_ADMIN_KEY = os.environ.get("SCORES_ADMIN_KEY")
    PROVIDER_TIMEOUT = float(os.environ.get("PROVIDER_TIMEOUT") or 15)

    # Kickoff reconciliation
    KICKOFF_MIN_WEEK = int(os.environ.get("KICKOFF_MIN_WEEK") or 1)
    KICKOFF_DRIFT_MINUTES = float(os.environ.get("KICKOFF_DRIFT_MINUTES") or 1)
    # Scheduled runs only; the CLI and admin endpoint apply only when asked
    KICKOFF_APPLY = os.environ.get("KICKOFF_APPLY", "False").lower() == "true"
    KICKOFF_SOURCE_ORDER = os.environ.get(
        "KICKOFF_SOURCE_ORDER", "odds,sportsdata_utc,sportsdata_local,espn"
    )

    # Application settings
    TIMEZONE = os.environ.get("TIMEZONE", "America/New_York")

    # Rate limiting
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")

    # Scheduler configuration
    SCHEDULER_ENABLED = os.environ.get("SCHEDULER_ENABLED", "False").lower() == "true"

    # Logging configuration
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = os.environ.get("LOG_TO_CONSOLE", "True").lower() == "true"
    LOG_TO_FILE = os.environ.get("LOG_TO_FILE", "True").lower() == "true"
    LOG_DIR = os.environ.get("LOG_DIR", "logs")

    # Environment detection
    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = FLASK_ENV == "development"
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration with helpful defaults"""

    DEBUG = True
    SQLALCHEMY_ECHO = os.environ.get("SQLALCHEMY_ECHO", "False").lower() == "true"
    EMAIL_MODE = os.environ.get("EMAIL_MODE", "console").lower()


class ProductionConfig(Config):
    """Production configuration with security focus"""

    DEBUG = False

    def __init__(self):
        super().__init__()

        if not os.environ.get("SECRET_KEY"):
            warnings.warn(
                "🚨 PRODUCTION WARNING: SECRET_KEY not explicitly set! "
                "Using auto-generated key is not recommended for production.",
                UserWarning,
            )
        if "*" in [o.strip() for o in self.CORS_ORIGIN.split(",")]:
            warnings.warn(
                "🚨 PRODUCTION WARNING: CORS_ORIGIN allows every origin.",
                UserWarning,
            )


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True
    DEBUG = False
    SECRET_KEY = "testing-secret-key"
    RATELIMIT_ENABLED = False
    SCHEDULER_ENABLED = False
    LOG_TO_FILE = False
    LOG_TO_CONSOLE = False
    EMAIL_MODE = "console"
    DOUBLE_WEEKS = (13, 17)
    KICKOFF_MIN_WEEK = 1
    KICKOFF_DRIFT_MINUTES = 1
    KICKOFF_APPLY = False
    SCORES_ADMIN_KEY = "test-scores-key"
    ODDS_API_KEY = "test-odds-key"
    SPORTSDATA_API_KEY = "test-sportsdata-key"

    def __init__(self):
        super().__init__()
        self.SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"


# Configuration mapping
config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
