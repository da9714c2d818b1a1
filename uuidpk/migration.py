# uuidpk/migration.py
#
# Small schema-statement DSL on top of SQLAlchemy Core:
#
#   with schema.create_table("posts") as t:
#       t.string("title")
#       t.references("user", null=False)
#   schema.add_reference("posts", "category")
#
# It knows nothing about UUID inference; see uuidpk.references for the wrappers.

from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Tuple, Union

from sqlalchemy import (
    BigInteger, Column, ForeignKeyConstraint, Index, Integer, MetaData, Table, func, inspect, text,
)
from sqlalchemy.engine import Connection
from sqlalchemy.schema import CreateColumn, CreateIndex, CreateTable, DropTable

from uuidpk.inflection import pluralize
from uuidpk.type_mapping import DEFAULT_REFERENCE_TYPE, sqlalchemy_type, uuid_type

logger = logging.getLogger(__name__)

PrimaryKeyOption = Union[str, bool, None]


def _server_default(value: Any):
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return text("1" if value else "0")
    return text(str(value))


class TableDefinition:
    """
    Columns, indexes and foreign keys collected for one table.

    Used both for new tables (create_table) and for columns added to an
    existing one (change_table / add_reference), where `id` is False.
    """

    def __init__(self, name: str, dialect: str = "generic", *, id: PrimaryKeyOption = "uuid",
                 primary_key: str = "id") -> None:
        self.name = name
        self.dialect = dialect
        self.columns: List[Column] = []
        self.indexes: List[Tuple[str, List[str], bool]] = []
        self.foreign_keys: List[Tuple[str, str]] = []  # (column, referenced table)
        if id:
            self.columns.append(self._primary_key_column(primary_key, id))

    def _primary_key_column(self, name: str, kind: Union[str, bool]) -> Column:
        tag = str(kind).lower()
        if tag == "uuid":
            return Column(name, uuid_type(self.dialect), primary_key=True)
        if tag == "integer":
            return Column(name, Integer(), primary_key=True, autoincrement=True)
        if tag == "bigint":
            # sqlite only autoincrements INTEGER PRIMARY KEY
            return Column(name, BigInteger().with_variant(Integer(), "sqlite"), primary_key=True,
                          autoincrement=True)
        raise ValueError(f"Unsupported primary key type: {kind!r}")

    # ---- plain columns -------------------------------------------------------

    def column(self, name: str, type_tag: Any, *, null: bool = True, default: Any = None,
               unique: bool = False, index: bool = False, limit: Optional[int] = None,
               precision: Optional[int] = None, scale: Optional[int] = None) -> Column:
        sa_type = sqlalchemy_type(type_tag, length=limit, precision=precision, scale=scale,
                                  dialect=self.dialect)
        col = Column(name, sa_type, nullable=null, unique=unique,
                     server_default=_server_default(default))
        self.columns.append(col)
        if index:
            self.indexes.append((f"ix_{self.name}_{name}", [name], False))
        return col

    def string(self, name: str, **options: Any) -> Column:
        return self.column(name, "string", **options)

    def text(self, name: str, **options: Any) -> Column:
        return self.column(name, "text", **options)

    def integer(self, name: str, **options: Any) -> Column:
        return self.column(name, "integer", **options)

    def bigint(self, name: str, **options: Any) -> Column:
        return self.column(name, "bigint", **options)

    def boolean(self, name: str, **options: Any) -> Column:
        return self.column(name, "boolean", **options)

    def datetime(self, name: str, **options: Any) -> Column:
        return self.column(name, "datetime", **options)

    def timestamps(self, null: bool = False) -> None:
        for name in ("created_at", "updated_at"):
            self.columns.append(Column(name, sqlalchemy_type("datetime"), nullable=null,
                                       server_default=func.now()))

    # ---- references ----------------------------------------------------------

    def references(self, name: str, *, type: Any = None, polymorphic: bool = False,
                   to_table: Optional[str] = None, null: bool = True, index: bool = True,
                   foreign_key: bool = False, unique: bool = False) -> Column:
        if polymorphic and foreign_key:
            raise ValueError(f"Polymorphic reference {name!r} cannot carry a foreign key constraint")

        column_name = f"{name}_id"
        col = self.column(column_name, type or DEFAULT_REFERENCE_TYPE, null=null)
        if polymorphic:
            self.column(f"{name}_type", "string", null=null)
            if index:
                self.indexes.append((f"ix_{self.name}_{name}", [f"{name}_type", column_name], False))
        elif index:
            self.indexes.append((f"ix_{self.name}_{column_name}", [column_name], unique))

        if foreign_key:
            self.foreign_keys.append((column_name, to_table or pluralize(name)))
        return col

    belongs_to = references


class SchemaStatements:
    """Executes table definitions against one connection and records the DDL."""

    def __init__(self, connection: Connection, default_primary_key: str = "uuid") -> None:
        self.connection = connection
        self.default_primary_key = default_primary_key
        self.executed: List[str] = []

    @property
    def dialect(self) -> str:
        return self.connection.dialect.name

    def _execute(self, ddl) -> None:
        sql = str(ddl.compile(dialect=self.connection.dialect)).strip()
        logger.info("DDL: %s", " ".join(sql.split()))
        self.connection.execute(ddl)
        self.executed.append(sql)

    def _referenced_pk(self, metadata: MetaData, table_name: str) -> str:
        ref = Table(table_name, metadata, autoload_with=self.connection)
        pk_cols = list(ref.primary_key.columns)
        return pk_cols[0].name if pk_cols else "id"

    # ---- create / drop -------------------------------------------------------

    @contextmanager
    def create_table(self, name: str, *, id: PrimaryKeyOption = True,
                     primary_key: str = "id") -> Iterator[TableDefinition]:
        pk_kind = self.default_primary_key if id is True or id is None else id
        t = TableDefinition(name, self.dialect, id=pk_kind, primary_key=primary_key)
        yield t

        metadata = MetaData()
        constraints = []
        for column_name, ref_table in t.foreign_keys:
            ref_col = primary_key if ref_table == name else self._referenced_pk(metadata, ref_table)
            constraints.append(ForeignKeyConstraint([column_name], [f"{ref_table}.{ref_col}"]))

        table = Table(name, metadata, *t.columns, *constraints)
        for index_name, cols, unique in t.indexes:
            Index(index_name, *[table.c[c] for c in cols], unique=unique)

        self._execute(CreateTable(table))
        for idx in sorted(table.indexes, key=lambda i: i.name):
            self._execute(CreateIndex(idx))

    def drop_table(self, name: str, *, if_exists: bool = False) -> None:
        if if_exists and not inspect(self.connection).has_table(name):
            return
        self._execute(DropTable(Table(name, MetaData())))

    # ---- alter ---------------------------------------------------------------

    @contextmanager
    def change_table(self, name: str) -> Iterator[TableDefinition]:
        t = TableDefinition(name, self.dialect, id=False)
        yield t
        self._add_columns(t)

    def add_column(self, table_name: str, column_name: str, type_tag: Any, **options: Any) -> None:
        with self.change_table(table_name) as t:
            t.column(column_name, type_tag, **options)

    def add_reference(self, table_name: str, ref_name: str, **options: Any) -> None:
        with self.change_table(table_name) as t:
            t.references(ref_name, **options)

    add_belongs_to = add_reference

    def _add_columns(self, t: TableDefinition) -> None:
        conn = self.connection
        preparer = conn.dialect.identifier_preparer
        table = Table(t.name, MetaData(), *t.columns)
        for col in t.columns:
            col_ddl = str(CreateColumn(col).compile(dialect=conn.dialect))
            sql = f"ALTER TABLE {preparer.quote(t.name)} ADD COLUMN {col_ddl}"
            logger.info("ADD COLUMN %s.%s %s", t.name, col.name, col.type)
            conn.exec_driver_sql(sql)
            self.executed.append(sql)

        for index_name, cols, unique in t.indexes:
            self._execute(CreateIndex(Index(index_name, *[table.c[c] for c in cols], unique=unique)))

        if not t.foreign_keys:
            return
        if self.dialect == "sqlite":
            for column_name, ref_table in t.foreign_keys:
                logger.warning(
                    "SQLite cannot ALTER TABLE to add FK post-hoc. Skipping FK %s.%s -> %s",
                    t.name, column_name, ref_table,
                )
            return
        for column_name, ref_table in t.foreign_keys:
            ref_col = self._referenced_pk(MetaData(), ref_table)
            cname = f"fk_{t.name}_{column_name}_{ref_table}_{ref_col}"
            sql = (
                f"ALTER TABLE {preparer.quote(t.name)} "
                f"ADD CONSTRAINT {preparer.quote(cname)} FOREIGN KEY ({preparer.quote(column_name)}) "
                f"REFERENCES {preparer.quote(ref_table)}({preparer.quote(ref_col)})"
            )
            logger.info("ADD FK %s.%s -> %s.%s", t.name, column_name, ref_table, ref_col)
            conn.exec_driver_sql(sql)
            self.executed.append(sql)

    def remove_column(self, table_name: str, column_name: str) -> None:
        conn = self.connection
        preparer = conn.dialect.identifier_preparer
        # sqlite refuses to drop an indexed column
        for idx in inspect(conn).get_indexes(table_name):
            if column_name in (idx.get("column_names") or []):
                sql = f"DROP INDEX {preparer.quote(idx['name'])}"
                conn.exec_driver_sql(sql)
                self.executed.append(sql)
        sql = f"ALTER TABLE {preparer.quote(table_name)} DROP COLUMN {preparer.quote(column_name)}"
        logger.info("DROP COLUMN %s.%s", table_name, column_name)
        conn.exec_driver_sql(sql)
        self.executed.append(sql)

    def remove_reference(self, table_name: str, ref_name: str, *, polymorphic: bool = False) -> None:
        if polymorphic:
            self.remove_column(table_name, f"{ref_name}_type")
        self.remove_column(table_name, f"{ref_name}_id")

    remove_belongs_to = remove_reference
