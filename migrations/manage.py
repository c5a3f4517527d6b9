import os
import sys

path = os.path.join(os.path.dirname(__file__), "../")
sys.path.append(path)

from sqlalchemy import MetaData, Table, inspect

from app.database import engine, get_db_schema


def reset():
    """Drop the alembic version table so the schema can be re-stamped"""
    schema = get_db_schema()
    if not inspect(engine).has_table("alembic_version", schema=schema):
        return
    table = Table("alembic_version", MetaData(), schema=schema)
    table.drop(engine)


argv = sys.argv

if len(argv) > 1:
    if argv[1] == "reset":
        reset()
