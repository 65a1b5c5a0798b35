#!/usr/bin/env python3
"""Create any missing database tables"""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from salonbook import create_app
from salonbook.extensions import db

def init_database():
    app = create_app()
    with app.app_context():
        db.create_all()
        tables = sorted(db.metadata.tables)
        print(f"✅ Initialized {len(tables)} tables: {', '.join(tables)}")

if __name__ == "__main__":
    init_database()
