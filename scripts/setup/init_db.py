# scripts/setup/init_db.py
"""
Initialize database — creates all tables and, optionally, the first admin user.
Run once before first launch, or after adding new models.
Usage: python scripts/setup/init_db.py --admin-email admin@example.com --admin-name "Site Admin"
"""

import argparse
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from datetime import datetime
from app.database import create_tables, engine, SessionLocal, transaction
from app.config import settings
from app.models.user import User, ROLE_ADMIN
from sqlalchemy import inspect, text


def seed_admin(name: str, email: str):
    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == email.lower()).first()
        if existing:
            print(f"ℹ️  Admin already present: id={existing.id} ({existing.email})")
            return
        admin = User(name=name, email=email.lower(), role=ROLE_ADMIN, is_active=True,
                     created_at=datetime.utcnow())
        with transaction(db):
            db.add(admin)
        print(f"✅ Admin created: id={admin.id} ({admin.email}); send X-User-Id: {admin.id}")
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Create tables and seed the first admin")
    parser.add_argument("--admin-email", default=None)
    parser.add_argument("--admin-name", default="Administrator")
    args = parser.parse_args()

    print("🗄️  GatePass DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    # Test connection
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        print("\nMake sure PostgreSQL is running:")
        print("  sudo systemctl start postgresql")
        sys.exit(1)

    print("\n📋 Creating tables...")
    create_tables()

    tables = sorted(inspect(engine).get_table_names())
    print(f"\n📊 Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    if args.admin_email:
        print()
        seed_admin(args.admin_name, args.admin_email)

    print("\n🎉 Database ready! You can now start the backend:")
    print(f"   uvicorn app.main:app --host {settings.BACKEND_IP} --port {settings.BACKEND_PORT} --reload")


if __name__ == "__main__":
    main()
