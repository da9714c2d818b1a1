import json
import uuid

from typer.testing import CliRunner

from uuidpk.cli import app

runner = CliRunner()

META = {
    "version": "20260115",
    "tables": [
        {"tableName": "users", "primaryKeyType": "uuid",
         "columns": [{"columnName": "email", "dataType": "VARCHAR", "length": 120, "isNullable": False}]},
        {"tableName": "legacy_items", "primaryKeyType": "integer",
         "columns": [{"columnName": "sku", "dataType": "VARCHAR"}]},
        {"tableName": "orders",
         "references": [{"name": "user"}, {"name": "legacy_item"}, {"name": "buyer", "toTable": "users"}],
         "timestamps": True},
        {"tableName": "comments",
         "references": [{"name": "commentable", "polymorphic": True}, {"name": "user", "dataType": "TEXT"}]},
    ],
}


def _meta_file(tmp_path):
    path = tmp_path / "schema.meta.json"
    path.write_text(json.dumps(META), encoding="utf-8")
    return path


def test_migrate_then_inspect(tmp_path):
    url = f"sqlite:///{tmp_path / 'app.db'}"
    result = runner.invoke(app, ["migrate", str(_meta_file(tmp_path)), "--database-url", url,
                                 "--primary-key-type", "uuid"])
    assert result.exit_code == 0, result.output
    assert "CREATE TABLE orders" in result.output

    result = runner.invoke(app, ["inspect", "--database-url", url])
    assert result.exit_code == 0, result.output
    out = result.output
    assert "users (primary key: id, uuid)" in out
    assert "legacy_items (primary key: id, integer)" in out
    assert "  - user_id : uuid" in out
    assert "  - buyer_id : uuid" in out
    assert "  - legacy_item_id : BIGINT" in out
    assert "  - commentable_id : uuid" in out
    assert "  - user_id : TEXT" in out


def test_migrate_down(tmp_path):
    url = f"sqlite:///{tmp_path / 'app.db'}"
    meta = _meta_file(tmp_path)
    assert runner.invoke(app, ["migrate", str(meta), "--database-url", url]).exit_code == 0
    result = runner.invoke(app, ["migrate", str(meta), "--database-url", url, "--down"])
    assert result.exit_code == 0, result.output
    assert "No tables found." in runner.invoke(app, ["inspect", "--database-url", url]).output


def test_migrate_rejects_invalid_meta(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"tables": [{"tableName": "x", "columns": [{"columnName": "y"}]}]}), encoding="utf-8")
    result = runner.invoke(app, ["migrate", str(bad), "--database-url", f"sqlite:///{tmp_path / 'a.db'}"])
    assert result.exit_code == 1
    assert "validation failed" in result.output


def test_migrate_missing_meta(tmp_path):
    result = runner.invoke(app, ["migrate", str(tmp_path / "nope.json")])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_migrate_rejects_unknown_primary_key_type(tmp_path):
    result = runner.invoke(app, ["migrate", str(_meta_file(tmp_path)), "--primary-key-type", "string",
                                 "--database-url", f"sqlite:///{tmp_path / 'a.db'}"])
    assert result.exit_code == 2


def test_new_id():
    result = runner.invoke(app, ["new-id", "--count", "3"])
    assert result.exit_code == 0
    ids = [uuid.UUID(line) for line in result.output.split()]
    assert len(ids) == 3 and all(u.version == 7 for u in ids)


def test_install_and_add_opt_outs(tmp_path):
    url = f"sqlite:///{tmp_path / 'app.db'}"
    result = runner.invoke(app, ["install", "--root", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "models" / "uuid_primary_key.py").exists()

    result = runner.invoke(app, ["add-opt-outs", "--root", str(tmp_path), "--database-url", url, "--dry-run"])
    assert result.exit_code == 0, result.output
    assert "Analyzed 0 models" in result.output


def test_commands_dispose_their_engine(tmp_path, monkeypatch):
    from sqlalchemy.engine import Engine

    disposed = []
    original = Engine.dispose

    def tracking_dispose(self, *args, **kwargs):
        disposed.append(str(self.url))
        return original(self, *args, **kwargs)

    monkeypatch.setattr(Engine, "dispose", tracking_dispose)
    url = f"sqlite:///{tmp_path / 'app.db'}"
    assert runner.invoke(app, ["migrate", str(_meta_file(tmp_path)), "--database-url", url]).exit_code == 0
    assert runner.invoke(app, ["inspect", "--database-url", url]).exit_code == 0
    assert runner.invoke(app, ["add-opt-outs", "--root", str(tmp_path), "--database-url", url]).exit_code == 0
    assert disposed == [url, url, url]
