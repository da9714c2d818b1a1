# generate/opt_outs.py
#
# Finds declarative models whose table still has an integer primary key and
# marks them with `__use_integer_primary_key__ = True`, so the UUID mixin
# leaves their ids alone.

from __future__ import annotations
import ast
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from core.ports import SchemaCatalog
from uuidpk.schema_cache import SchemaTypeCache
from uuidpk.type_mapping import PrimaryKeyKind

logger = logging.getLogger(__name__)

OPT_OUT_ATTR = "__use_integer_primary_key__"


@dataclass
class ModelScan:
    file_path: Path
    class_name: str
    table_name: str
    primary_key_kind: PrimaryKeyKind
    already_has_opt_out: bool
    modified: bool = False

    @property
    def needs_opt_out(self) -> bool:
        return self.primary_key_kind is PrimaryKeyKind.INTEGER and not self.already_has_opt_out

    @property
    def status(self) -> str:
        if self.modified:
            return "modified"
        if self.needs_opt_out:
            return "pending"
        return "skipped"


def find_model_files(root: Path, models_dir: str = "models") -> List[Path]:
    return sorted(p for p in (Path(root) / models_dir).glob("**/*.py") if p.is_file())


def _assigned_names(stmt: ast.stmt) -> List[str]:
    if isinstance(stmt, ast.Assign):
        return [t.id for t in stmt.targets if isinstance(t, ast.Name)]
    if isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
        return [stmt.target.id]
    return []


def _table_name(node: ast.ClassDef) -> Optional[str]:
    for stmt in node.body:
        if "__tablename__" in _assigned_names(stmt):
            value = stmt.value
            if isinstance(value, ast.Constant) and isinstance(value.value, str):
                return value.value
    return None


def _has_opt_out(node: ast.ClassDef) -> bool:
    return any(OPT_OUT_ATTR in _assigned_names(stmt) for stmt in node.body)


def model_classes(source: str) -> List[Tuple[ast.ClassDef, str]]:
    """(class node, table name) for every class that declares a literal __tablename__."""
    found = []
    for node in ast.walk(ast.parse(source)):
        if isinstance(node, ast.ClassDef):
            table = _table_name(node)
            if table:
                found.append((node, table))
    return found


def insert_opt_out(source: str, node: ast.ClassDef) -> Optional[str]:
    """Source with the opt-out line added as the first statement after any docstring."""
    first = node.body[0]
    if first.lineno == node.lineno:
        # one-line class body, leave it to a human
        return None

    lines = source.splitlines(keepends=True)
    indent_line = lines[first.lineno - 1]
    indent = indent_line[: len(indent_line) - len(indent_line.lstrip())]

    is_docstring = (
        isinstance(first, ast.Expr)
        and isinstance(first.value, ast.Constant)
        and isinstance(first.value.value, str)
    )
    if is_docstring:
        at = first.end_lineno
    else:
        # decorators sit above the def line
        at = min([first.lineno] + [d.lineno for d in getattr(first, "decorator_list", [])]) - 1
    lines.insert(at, f"{indent}{OPT_OUT_ATTR} = True\n")
    return "".join(lines)


def add_opt_outs(root: Path, catalog: SchemaCatalog, *, dry_run: bool = False,
                 models_dir: str = "models") -> List[ModelScan]:
    cache = SchemaTypeCache()
    results: List[ModelScan] = []

    for path in find_model_files(root, models_dir):
        source = path.read_text(encoding="utf-8")
        try:
            classes = model_classes(source)
        except SyntaxError as e:
            logger.error("Skipping %s, cannot parse: %s", path, e)
            continue

        scans: List[Tuple[ModelScan, ast.ClassDef]] = []
        for node, table in classes:
            kind = cache.lookup_or_compute(table, catalog)
            if kind is PrimaryKeyKind.UNKNOWN:
                # missing table, unreadable schema or no single primary key
                continue
            scan = ModelScan(
                file_path=path,
                class_name=node.name,
                table_name=table,
                primary_key_kind=kind,
                already_has_opt_out=_has_opt_out(node),
            )
            scans.append((scan, node))

        # bottom-up so earlier line numbers stay valid
        new_source = source
        for scan, node in sorted(scans, key=lambda s: s[1].lineno, reverse=True):
            if not scan.needs_opt_out or dry_run:
                continue
            edited = insert_opt_out(new_source, node)
            if edited is None:
                logger.warning("Could not add opt-out to %s in %s", scan.class_name, path)
                continue
            new_source = edited
            scan.modified = True

        if new_source != source:
            path.write_text(new_source, encoding="utf-8")

        for scan, _ in scans:
            logger.info("%s %s (table: %s, pk: %s)", scan.status, scan.class_name,
                        scan.table_name, scan.primary_key_kind.value)
            results.append(scan)

    return results
