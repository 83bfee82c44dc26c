# backend/conftest.py
# Configure the environment before any barberbook module is imported:
# models read DB_DIALECT at import time and settings read DATABASE_URL.
import os

os.environ.setdefault("DB_DIALECT", "sqlite")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("DEFAULT_SHOP_TIMEZONE", "UTC")
