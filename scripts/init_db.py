"""
Database initialization script.
Creates all tables on the configured database.
"""
from sqlalchemy import inspect

from config.settings import get_settings
from growguard.models.base import build_engine, init_db
from growguard.utils.logging import configure_logging

def init_database():
    """
    Initialize database with all tables.
    Steps:
    1. Create all tables from SQLAlchemy models
    2. Verify
    """
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    engine = build_engine(settings.DATABASE_URL)

    print("📈 长盈智投 - Database Initialization")
    print("=" * 50)

    print("\n1. Creating all tables...")
    init_db(engine)
    print("  ✓ All tables created")

    print("\n2. Verifying tables...")
    tables = inspect(engine).get_table_names()
    print(f"  ✓ Found {len(tables)} tables:")
    for table in tables:
        print(f"    - {table}")

    print("\n" + "=" * 50)
    print("✅ Database initialization complete!")
    print("\nNext steps:")
    print(f"1. Access API: {settings.API_URL}")
    print("2. Access Dashboard: http://localhost:8501")

if __name__ == "__main__":
    init_database()
