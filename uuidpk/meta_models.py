from __future__ import annotations
from enum import Enum
from typing import List, Optional, Any
from pydantic import BaseModel, Field, model_validator

class DataType(str, Enum):
    UUID = "UUID"
    VARCHAR = "VARCHAR"
    TEXT = "TEXT"
    INTEGER = "INTEGER"
    BIGINT = "BIGINT"
    DECIMAL = "DECIMAL"
    FLOAT = "FLOAT"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    TIMESTAMP = "TIMESTAMP"
    JSON = "JSON"
    BLOB = "BLOB"

class PrimaryKeyType(str, Enum):
    UUID = "uuid"
    INTEGER = "integer"
    BIGINT = "bigint"

class Column(BaseModel):
    columnName: str
    dataType: DataType
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    isNullable: Optional[bool] = None
    isUnique: Optional[bool] = None
    defaultValue: Optional[Any] = None

class Reference(BaseModel):
    name: str
    toTable: Optional[str] = None
    polymorphic: bool = False
    # left empty, the reference type is inferred from the target's primary key
    dataType: Optional[DataType] = None
    isNullable: Optional[bool] = None
    index: bool = True
    foreignKey: bool = False

    @model_validator(mode="after")
    def _no_fk_on_polymorphic(self) -> "Reference":
        if self.polymorphic and self.foreignKey:
            raise ValueError(f"reference {self.name!r}: polymorphic references cannot have a foreign key")
        return self

class Table(BaseModel):
    tableName: str
    primaryKeyType: Optional[PrimaryKeyType] = None
    columns: List[Column] = Field(default_factory=list)
    references: List[Reference] = Field(default_factory=list)
    timestamps: bool = False

class ModelMeta(BaseModel):
    version: str = ""
    tables: List[Table]
