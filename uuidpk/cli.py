# uuidpk/cli.py
import logging
from pathlib import Path
from typing import Optional

import typer

from adapters.sqla.catalog import SQLAlchemyCatalog
from generate.install import install as install_files
from generate.opt_outs import add_opt_outs as scan_opt_outs
from uuidpk.config import UuidPolicy, get_settings
from uuidpk.db import build_engine
from uuidpk.ids import new_identifier_str
from uuidpk.loader import InvalidMetaError, MetaMigration, load_meta
from uuidpk.runner import MigrationRunner
from uuidpk.schema_dump import dump_schema

app = typer.Typer(help="UUIDv7 primary keys and UUID-aware foreign keys for SQLAlchemy schemas")

# ---------------------------
# Core utilities
# ---------------------------
@app.callback()
def main(log_level: Optional[str] = typer.Option(None, help="Override LOG_LEVEL")):
    level = (log_level or get_settings().LOG_LEVEL).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO))

# ---------------------------
# Commands
# ---------------------------
@app.command(help="Create the tables described by a meta JSON file (reference types inferred).")
def migrate(
    meta_path: Path = typer.Argument(..., help="Path to schema.meta.json"),
    database_url: Optional[str] = typer.Option(None, help="Defaults to DATABASE_URL"),
    down: bool = typer.Option(False, "--down", help="Drop the tables instead"),
    primary_key_type: Optional[str] = typer.Option(None, help="uuid | integer (defaults to PRIMARY_KEY_TYPE)"),
):
    try:
        meta = load_meta(meta_path)
    except InvalidMetaError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(code=1)

    settings = get_settings()
    try:
        policy = UuidPolicy(
            primary_key_type=(primary_key_type or settings.PRIMARY_KEY_TYPE).lower(),
            infer_polymorphic_from_observed=settings.POLYMORPHIC_INFER,
        )
    except ValueError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(code=2)

    engine = build_engine(database_url)
    try:
        runner = MigrationRunner(engine, policy)
        result = runner.run([MetaMigration(meta, name=meta_path.stem)], direction="down" if down else "up")
    finally:
        engine.dispose()
    for sql in result.statements:
        typer.echo(" ".join(sql.split()))
    typer.echo(f"✅ {len(result.statements)} statement(s) executed ({result.direction}).")

@app.command(name="inspect", help="Show every table with its primary key kind and columns.")
def inspect_schema(database_url: Optional[str] = typer.Option(None, help="Defaults to DATABASE_URL")):
    engine = build_engine(database_url)
    try:
        with engine.connect() as conn:
            report = dump_schema(SQLAlchemyCatalog(conn))
    finally:
        engine.dispose()
    typer.echo(report.format_plan())

@app.command(help="Add the UUIDv7 primary key mixin to an application.")
def install(
    root: Path = typer.Option(Path("."), help="Application root"),
    models_dir: str = typer.Option("models", help="Models package, relative to root"),
    force: bool = typer.Option(False, help="Overwrite an existing mixin module"),
):
    written = install_files(root, models_dir=models_dir, force=force)
    for path in written:
        typer.echo(f"create {path}")
    typer.echo("✅ uuidpk installed. New tables now default to UUIDv7 primary keys.")

@app.command(name="add-opt-outs", help="Mark models whose table has an integer primary key.")
def add_opt_outs(
    root: Path = typer.Option(Path("."), help="Application root"),
    models_dir: str = typer.Option("models", help="Models package, relative to root"),
    dry_run: bool = typer.Option(False, help="Show what would change without writing files"),
    database_url: Optional[str] = typer.Option(None, help="Defaults to DATABASE_URL"),
):
    engine = build_engine(database_url)
    try:
        with engine.connect() as conn:
            results = scan_opt_outs(root, SQLAlchemyCatalog(conn), dry_run=dry_run, models_dir=models_dir)
    finally:
        engine.dispose()
    for r in results:
        typer.echo(f"{r.status:>9}  {r.class_name} (table: {r.table_name}, pk: {r.primary_key_kind.value})")
    modified = sum(1 for r in results if r.modified)
    typer.echo(f"✅ Analyzed {len(results)} models, modified {modified} files")

@app.command(name="new-id", help="Print freshly generated UUIDv7 values.")
def new_id(count: int = typer.Option(1, min=1, help="How many to print")):
    for _ in range(count):
        typer.echo(new_identifier_str())

if __name__ == "__main__":
    app()
