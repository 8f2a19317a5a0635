#!/usr/bin/env python3
"""
Initialize the code judge database tables
"""
from judge_api.config import configure_logging
from judge_api.database import get_database

if __name__ == "__main__":
    configure_logging()
    print("Initializing code judge database tables...")
    database = get_database()
    database.connect()
    database.create_tables()
    print("Database initialization completed successfully!")
