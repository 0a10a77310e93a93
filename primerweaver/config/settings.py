import os


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "default_secret_key")
    DEBUG = True
    TESTING = False
    CONFIG_MODULE = "primerweaver.config.default_config"
    CONFIG_ENV = os.getenv("PRIMERWEAVER_ENV", "development")
    CORS_ORIGINS = ["http://localhost:3000"]


class TestConfig(Config):
    DEBUG = False
    TESTING = True
    CONFIG_ENV = "testing"
