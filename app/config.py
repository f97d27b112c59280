import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///ledger.db")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    ACCESS_EXPIRES = int(os.getenv("ACCESS_EXPIRES", 86400))
    REFRESH_EXPIRES = int(os.getenv("REFRESH_EXPIRES", 86400))

    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # ledger / workflow policy
    CURRENCY = os.getenv("CURRENCY", "GEL")
    MIN_WITHDRAWAL_AMOUNT = Decimal(os.getenv("MIN_WITHDRAWAL_AMOUNT", "20.00"))
    BANK_ACCOUNT_MIN_LENGTH = int(os.getenv("BANK_ACCOUNT_MIN_LENGTH", 10))
    ENROLLMENT_DURATION_DAYS = int(os.getenv("ENROLLMENT_DURATION_DAYS", 30))
    REFERRAL_CODE_MAX_LENGTH = 20
    REFERRAL_COMMISSION_POLICY = os.getenv("REFERRAL_COMMISSION_POLICY", "course_percentage")
    REFERRAL_FIXED_COMMISSION = Decimal(os.getenv("REFERRAL_FIXED_COMMISSION", "0.00"))
    CREDIT_LECTURER_EARNINGS = os.getenv("CREDIT_LECTURER_EARNINGS", "true").lower() == "true"
    WITHDRAWAL_AUTO_COMPLETE = os.getenv("WITHDRAWAL_AUTO_COMPLETE", "true").lower() == "true"
    PROJECT_SUBSCRIPTION_PRICE = Decimal(os.getenv("PROJECT_SUBSCRIPTION_PRICE", "10.00"))
    PROJECT_SUBSCRIPTION_DAYS = int(os.getenv("PROJECT_SUBSCRIPTION_DAYS", 30))

    # outbound mail
    MAIL_ENABLED = os.getenv("MAIL_ENABLED", "false").lower() == "true"
    EMAIL_ASYNC = True
    EMAIL_FROM_NAME = os.getenv("EMAIL_FROM_NAME", "Course Hub")
    EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "no-reply@example.com")
    SMTP_HOST = os.getenv("SMTP_HOST", "smtp.example.com")
    SMTP_PORT = int(os.getenv("SMTP_PORT", 465))
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")

class DevelopmentConfig(Config):
    DEBUG = True

class ProductionConfig(Config):
    DEBUG = False
    MAIL_ENABLED = True

class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    MAIL_ENABLED = False
    EMAIL_ASYNC = False
    LOG_LEVEL = "DEBUG"


CONFIGS = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
