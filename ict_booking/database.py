# database.py
from databases import Database
from sqlalchemy import create_engine, MetaData


def create_database(database_url: str) -> Database:
    return Database(database_url)


metadata = MetaData()


def create_tables(database_url: str):
    # databases has no DDL support; tables are created through a sync engine
    engine = create_engine(database_url)
    try:
        metadata.create_all(bind=engine)
    finally:
        engine.dispose()
