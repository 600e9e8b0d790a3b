from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List, Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="noobwriter/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "NoobWriter Wallet API"
    PROJECT_NAME: str = "NoobWriter Wallet API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = ["*"]

    # Database
    POSTGRES_HOST: str = ""
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = ""
    POSTGRES_SCHEMA: str = "public"

    # Takes precedence over POSTGRES_* when set (e.g. sqlite:///./noobwriter.db)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Security
    SECRET_KEY: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Payment gateway (Razorpay)
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    RAZORPAY_API_BASE_URL: str = "https://api.razorpay.com"
    RAZORPAY_TIMEOUT_SECONDS: float = 10.0
    PAYMENT_CURRENCY: str = "INR"

    # Coin packages: package_id -> coins credited (bonus included) and price in rupees
    COIN_PACKAGES: Dict[str, Dict[str, int]] = {
        "starter": {"coins": 100, "price": 99},
        "basic": {"coins": 550, "price": 449},
        "popular": {"coins": 1150, "price": 849},
        "premium": {"coins": 2400, "price": 1599},
        "ultimate": {"coins": 6200, "price": 3799},
    }

    # Wallet bootstrap
    SIGNUP_BONUS_COINS: int = 100

    # Tipping
    MIN_TIP_AMOUNT: int = 10
    MAX_TIP_AMOUNT: int = 10000
    MAX_TIPS_PER_MINUTE: int = 10
    TIP_RATE_LIMIT_WINDOW_SECONDS: int = 60

    # Share of a tip / chapter price credited to the author (percent)
    AUTHOR_REVENUE_SHARE_PERCENT: int = 100

    # Payout: 300 coins = ₹100, minimum 3000 coins
    PAYOUT_MINIMUM_COINS: int = 3000
    PAYOUT_EXCHANGE_RATE: int = 300
    PAYOUT_RUPEES_PER_UNIT: int = 100

    # Coin exchange: 2000 coins = ₹100, minimum 20000 coins
    EXCHANGE_MINIMUM_COINS: int = 20000
    EXCHANGE_RATE: int = 2000
    EXCHANGE_RUPEES_PER_UNIT: int = 100
    EXCHANGE_HISTORY_LIMIT: int = 20


settings = Settings()
