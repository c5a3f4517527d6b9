import re
import sys
from logging.config import fileConfig

from alembic import context
from alembic.autogenerate import render
from sqlalchemy import engine_from_config, pool

from app.database import engine, get_db_schema
from app.model.db import Base
from app.model.db.base import Uint256
from config import DATABASE_URL

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

schema = get_db_schema()


def _include_name(name, type_, parent_names):
    if type_ == "schema":
        return name in [None, schema]
    else:
        return True


def _render_item(type_, obj, autogen_context):
    # Migrations target PostgreSQL, where Uint256 is a plain NUMERIC(78, 0)
    if type_ == "type" and isinstance(obj, Uint256):
        return f"sa.Numeric(precision={Uint256.DIGITS}, scale=0)"
    return False


def run_migrations_offline():
    """Run migrations in 'offline' mode.

    Calls to context.execute() here emit the given string to the
    script output.
    """
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        version_table_schema=schema,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    """Run migrations in 'online' mode."""
    config_ini = config.get_section(config.config_ini_section) or {}
    config_ini["sqlalchemy.url"] = DATABASE_URL
    connectable = engine_from_config(
        config_ini,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        include_schemas = False
        include_name = None
        if schema is not None:
            include_schemas = True
            include_name = _include_name
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            version_table_schema=schema,
            include_schemas=include_schemas,
            include_name=include_name,
            render_as_batch=connection.dialect.name == "sqlite",
            render_item=_render_item,
        )

        with context.begin_transaction():
            context.run_migrations()


argv = sys.argv
if "--autogenerate" in argv:
    _render_op_org = getattr(render, "render_op")

    def render_op_wrapper(autogen_context, op):
        lines = _render_op_org(autogen_context, op)
        new_lines = []
        for line in lines:
            new_line = line
            if "get_db_schema())" not in new_line:
                # Generated operations always target the runtime schema
                if "schema=" not in new_line:
                    new_line = re.sub(r"\)$", ", schema=get_db_schema())", line)
                else:
                    new_line = re.sub(
                        r"schema=(.|\s)*\)$", "schema=get_db_schema())", line
                    )
            new_lines.append(new_line)
        return new_lines

    setattr(render, "render_op", render_op_wrapper)

if "--sql" in argv:
    if schema is not None and engine.name == "postgresql":
        print(f"SET SEARCH_PATH TO {schema};")

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
