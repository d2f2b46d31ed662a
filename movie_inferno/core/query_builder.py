"""
链式查询构造器。

调用方式与托管后端客户端一致：``db.table("movies").select("id, title").eq("id", 5).limit(1).execute()``。
谓词方法只累积参数化子句，终结操作（execute/insert/upsert/update/delete/count）才生成并执行一条 SQL。

- 只有值会被绑定为参数；表名、列名都必须在 Base.metadata 中声明过，否则抛出 InvalidIdentifierError。
- 参数占位符按累积顺序命名为 :p1, :p2 ...；update 的 SET 值使用独立的 :v1, :v2 ...
- 构造器是一次性的：终结操作执行后再调用任何方法都会抛出 QueryConsumedError。
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

from sqlalchemy import Column, Date, DateTime, Table, bindparam, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from movie_inferno.logger import logger
from movie_inferno.utils.exceptions import (
    DatabaseException,
    InvalidIdentifierError,
    QueryBuilderError,
    QueryConsumedError,
    ValidationException,
)

NOT_OPERATORS = frozenset({"=", "!=", "<>", "<", "<=", ">", ">=", "LIKE", "ILIKE"})

Record = Dict[str, Any]


def coerce_value(column: Column, value: Any) -> Any:
    """JSON 传入的 ISO 日期字符串按列类型转换成 date / datetime，格式错误视为请求参数错误。"""
    if not isinstance(value, str):
        return value
    try:
        if isinstance(column.type, DateTime):
            if value.endswith("Z"):
                value = value[:-1] + "+00:00"
            return datetime.fromisoformat(value)
        if isinstance(column.type, Date):
            return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationException(
            f"Invalid date for {column.table.name}.{column.name}: {value!r}", column.name
        ) from exc
    return value


class Bound(NamedTuple):
    name: str
    column: Column
    value: Any


class Clause(NamedTuple):
    sql: str
    params: Tuple[Bound, ...]


class OrderBy(NamedTuple):
    column: Column
    ascending: bool
    nulls_first: bool


@dataclass
class QueryResult:
    data: Any = None
    count: int = 0


class QueryBuilder:
    def __init__(self, engine: Engine, table: Table):
        self._engine = engine
        self._table = table
        self._quote = engine.dialect.identifier_preparer.quote
        self._is_postgres = engine.dialect.name == "postgresql"
        self._columns: Tuple[Column, ...] = tuple(table.columns)
        self._clauses: Tuple[Clause, ...] = ()
        self._orders: Tuple[OrderBy, ...] = ()
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None
        self._single = False
        self._param_count = 0
        self._consumed = False

    @property
    def table_name(self) -> str:
        return self._table.name

    @property
    def consumed(self) -> bool:
        return self._consumed

    # ------------------------------------------------------------------
    # 标识符白名单
    # ------------------------------------------------------------------
    def _column(self, name: str) -> Column:
        name = (name or "").strip()
        if name not in self._table.c:
            raise InvalidIdentifierError("column", f"{self._table.name}.{name}")
        return self._table.c[name]

    def _columns_from(self, names: Union[str, Iterable[str]]) -> Tuple[Column, ...]:
        if isinstance(names, str):
            names = [n for n in names.replace("\n", " ").split(",")]
        cols = tuple(self._column(n) for n in names if n.strip())
        if not cols:
            raise QueryBuilderError("At least one column is required")
        return cols

    def _ident(self, column: Column) -> str:
        return self._quote(column.name)

    def _check_open(self) -> None:
        if self._consumed:
            raise QueryConsumedError(self._table.name)

    def _next_param(self) -> str:
        self._param_count += 1
        return f"p{self._param_count}"

    def _where(self, column: str, operator: str, value: Any) -> "QueryBuilder":
        self._check_open()
        col = self._column(column)
        name = self._next_param()
        self._clauses += (Clause(f"{self._ident(col)} {operator} :{name}", (Bound(name, col, value),)),)
        return self

    # ------------------------------------------------------------------
    # 选择与谓词
    # ------------------------------------------------------------------
    def select(self, fields: Union[str, Sequence[str]] = "*") -> "QueryBuilder":
        self._check_open()
        if isinstance(fields, str) and fields.strip() == "*":
            self._columns = tuple(self._table.columns)
        else:
            self._columns = self._columns_from(fields)
        return self

    def eq(self, column: str, value: Any) -> "QueryBuilder":
        return self._where(column, "=", value)

    def neq(self, column: str, value: Any) -> "QueryBuilder":
        return self._where(column, "!=", value)

    def gt(self, column: str, value: Any) -> "QueryBuilder":
        return self._where(column, ">", value)

    def gte(self, column: str, value: Any) -> "QueryBuilder":
        return self._where(column, ">=", value)

    def lt(self, column: str, value: Any) -> "QueryBuilder":
        return self._where(column, "<", value)

    def lte(self, column: str, value: Any) -> "QueryBuilder":
        return self._where(column, "<=", value)

    def like(self, column: str, pattern: str) -> "QueryBuilder":
        return self._where(column, "LIKE", pattern)

    def ilike(self, column: str, pattern: str) -> "QueryBuilder":
        self._check_open()
        col = self._column(column)
        name = self._next_param()
        if self._is_postgres:
            sql = f"{self._ident(col)} ILIKE :{name}"
        else:
            sql = f"LOWER({self._ident(col)}) LIKE LOWER(:{name})"
        self._clauses += (Clause(sql, (Bound(name, col, pattern),)),)
        return self

    def in_(self, column: str, values: Iterable[Any]) -> "QueryBuilder":
        self._check_open()
        col = self._column(column)
        values = list(values)
        if not values:
            # 空列表不匹配任何行
            self._clauses += (Clause("1 = 0", ()),)
            return self
        bounds = tuple(Bound(self._next_param(), col, v) for v in values)
        placeholders = ", ".join(f":{b.name}" for b in bounds)
        self._clauses += (Clause(f"{self._ident(col)} IN ({placeholders})", bounds),)
        return self

    def is_(self, column: str, value: Optional[bool]) -> "QueryBuilder":
        self._check_open()
        col = self._column(column)
        if value is None:
            sql = f"{self._ident(col)} IS NULL"
        elif value is True:
            sql = f"{self._ident(col)} IS TRUE"
        elif value is False:
            sql = f"{self._ident(col)} IS FALSE"
        else:
            raise QueryBuilderError("is_() accepts only None, True or False")
        self._clauses += (Clause(sql, ()),)
        return self

    def not_(self, column: str, operator: str, value: Any) -> "QueryBuilder":
        self._check_open()
        op = (operator or "").strip().upper()
        if op not in NOT_OPERATORS:
            raise QueryBuilderError(f"Unsupported operator for not_(): {operator}")
        col = self._column(column)
        name = self._next_param()
        if op == "ILIKE" and not self._is_postgres:
            sql = f"NOT (LOWER({self._ident(col)}) LIKE LOWER(:{name}))"
        else:
            sql = f"NOT ({self._ident(col)} {op} :{name})"
        self._clauses += (Clause(sql, (Bound(name, col, value),)),)
        return self

    # ------------------------------------------------------------------
    # 排序与分页
    # ------------------------------------------------------------------
    def order(self, column: str, ascending: bool = True, nulls_first: bool = False) -> "QueryBuilder":
        self._check_open()
        self._orders += (OrderBy(self._column(column), ascending, nulls_first),)
        return self

    def limit(self, count: int) -> "QueryBuilder":
        self._check_open()
        count = int(count)
        if count < 0:
            raise QueryBuilderError("limit must be >= 0")
        self._limit = count
        return self

    def range(self, start: int, end: int) -> "QueryBuilder":
        """按 [start, end] 闭区间分页。"""
        self._check_open()
        start, end = int(start), int(end)
        if start < 0 or end < start:
            raise QueryBuilderError(f"Invalid range: {start}-{end}")
        self._limit = end - start + 1
        self._offset = start
        return self

    def single(self) -> "QueryBuilder":
        self._check_open()
        self._single = True
        self._limit = 1
        return self

    # ------------------------------------------------------------------
    # SQL 片段
    # ------------------------------------------------------------------
    def _where_sql(self) -> str:
        if not self._clauses:
            return ""
        return " WHERE " + " AND ".join(c.sql for c in self._clauses)

    def _where_params(self) -> List[Bound]:
        return [b for c in self._clauses for b in c.params]

    def _order_sql(self) -> str:
        if not self._orders:
            return ""
        parts = []
        for o in self._orders:
            direction = "ASC" if o.ascending else "DESC"
            nulls = "NULLS FIRST" if o.nulls_first else "NULLS LAST"
            parts.append(f"{self._ident(o.column)} {direction} {nulls}")
        return " ORDER BY " + ", ".join(parts)

    def _page_sql(self) -> str:
        sql = ""
        if self._limit is not None:
            sql += f" LIMIT {self._limit}"
        if self._offset is not None:
            if self._limit is None:
                # SQLite 要求 OFFSET 前必须有 LIMIT
                sql += " LIMIT -1" if not self._is_postgres else ""
            sql += f" OFFSET {self._offset}"
        return sql

    def _column_list(self, columns: Sequence[Column]) -> str:
        return ", ".join(self._ident(c) for c in columns)

    def _records(self, data: Union[Record, Sequence[Record]]) -> Tuple[List[Record], List[Column]]:
        records = [data] if isinstance(data, dict) else list(data)
        names: List[str] = []
        for record in records:
            for key in record:
                if key not in names:
                    names.append(key)
        return records, [self._column(n) for n in names]

    def _values_sql(self, records: List[Record], columns: List[Column]) -> Tuple[str, List[Bound]]:
        binds: List[Bound] = []
        rows = []
        for r_index, record in enumerate(records):
            names = []
            for c_index, col in enumerate(columns):
                name = f"r{r_index}c{c_index}"
                binds.append(Bound(name, col, record.get(col.name)))
                names.append(f":{name}")
            rows.append(f"({', '.join(names)})")
        return ", ".join(rows), binds

    def _consume(self) -> None:
        self._check_open()
        self._consumed = True

    def _run(
        self,
        sql: str,
        binds: Sequence[Bound],
        result_columns: Optional[Sequence[Column]] = None,
    ) -> List[Record]:
        stmt = text(sql)
        if binds:
            stmt = stmt.bindparams(
                *[bindparam(b.name, coerce_value(b.column, b.value), type_=b.column.type) for b in binds]
            )
        if result_columns is not None:
            stmt = stmt.columns(*result_columns)
        logger.debug(f"SQL: {sql} | params={[(b.name, b.value) for b in binds]}")
        try:
            with self._engine.begin() as conn:
                result = conn.execute(stmt)
                if not result.returns_rows:
                    return []
                return [dict(row) for row in result.mappings()]
        except SQLAlchemyError as exc:
            detail = getattr(exc, "orig", None) or exc
            raise DatabaseException(f"{self._table.name}: {detail}") from exc

    # ------------------------------------------------------------------
    # 终结操作
    # ------------------------------------------------------------------
    def execute(self) -> QueryResult:
        self._consume()
        rows = self._run(self.to_sql(), self._where_params(), self._columns)
        if self._single:
            return QueryResult(data=rows[0] if rows else None, count=len(rows))
        return QueryResult(data=rows, count=len(rows))

    def count(self) -> QueryResult:
        self._consume()
        sql = f"SELECT COUNT(*) AS count FROM {self._quote(self._table.name)}{self._where_sql()}"
        rows = self._run(sql, self._where_params())
        return QueryResult(data=None, count=int(rows[0]["count"]) if rows else 0)

    def insert(self, data: Union[Record, Sequence[Record]]) -> QueryResult:
        self._consume()
        records, columns = self._records(data)
        if not records:
            return QueryResult(data=[], count=0)
        values, binds = self._values_sql(records, columns)
        returning = self._column_list(self._table.columns)
        sql = (
            f"INSERT INTO {self._quote(self._table.name)} ({self._column_list(columns)}) "
            f"VALUES {values} RETURNING {returning}"
        )
        rows = self._run(sql, binds, tuple(self._table.columns))
        if isinstance(data, dict):
            return QueryResult(data=rows[0] if rows else None, count=len(rows))
        return QueryResult(data=rows, count=len(rows))

    def upsert(
        self,
        data: Union[Record, Sequence[Record]],
        on_conflict: Union[str, Sequence[str]] = "id",
    ) -> QueryResult:
        """INSERT ... ON CONFLICT (on_conflict) DO UPDATE，按冲突键幂等写入。"""
        self._consume()
        targets = self._columns_from(on_conflict)
        records, columns = self._records(data)
        if not records:
            return QueryResult(data=[], count=0)
        column_names = {c.name for c in columns}
        target_names = {t.name for t in targets}
        missing = [t.name for t in targets if t.name not in column_names]
        if missing:
            raise QueryBuilderError(f"Upsert records must contain conflict columns: {missing}")

        # 同一条语句里冲突键重复会被数据库拒绝，后出现的记录覆盖先出现的
        unique: Dict[Tuple[Any, ...], Record] = {}
        for record in records:
            unique[tuple(record.get(t.name) for t in targets)] = record
        records = list(unique.values())

        values, binds = self._values_sql(records, columns)
        target_sql = self._column_list(targets)
        updates = [c for c in columns if c.name not in target_names]
        if updates:
            set_sql = ", ".join(f"{self._ident(c)} = excluded.{self._ident(c)}" for c in updates)
            conflict_sql = f"ON CONFLICT ({target_sql}) DO UPDATE SET {set_sql}"
        else:
            conflict_sql = f"ON CONFLICT ({target_sql}) DO NOTHING"
        sql = (
            f"INSERT INTO {self._quote(self._table.name)} ({self._column_list(columns)}) "
            f"VALUES {values} {conflict_sql} RETURNING {self._column_list(self._table.columns)}"
        )
        rows = self._run(sql, binds, tuple(self._table.columns))
        if isinstance(data, dict):
            return QueryResult(data=rows[0] if rows else None, count=len(rows))
        return QueryResult(data=rows, count=len(rows))

    def update(self, data: Record) -> QueryResult:
        self._consume()
        if not data:
            raise QueryBuilderError("update() requires at least one column")
        binds: List[Bound] = []
        assignments = []
        for index, (name, value) in enumerate(data.items(), start=1):
            col = self._column(name)
            bind_name = f"v{index}"
            binds.append(Bound(bind_name, col, value))
            assignments.append(f"{self._ident(col)} = :{bind_name}")
        sql = (
            f"UPDATE {self._quote(self._table.name)} SET {', '.join(assignments)}"
            f"{self._where_sql()} RETURNING {self._column_list(self._table.columns)}"
        )
        rows = self._run(sql, binds + self._where_params(), tuple(self._table.columns))
        return QueryResult(data=rows, count=len(rows))

    def delete(self) -> QueryResult:
        self._consume()
        sql = (
            f"DELETE FROM {self._quote(self._table.name)}{self._where_sql()} "
            f"RETURNING {self._column_list(self._table.columns)}"
        )
        rows = self._run(sql, self._where_params(), tuple(self._table.columns))
        return QueryResult(data=rows, count=len(rows))

    def to_sql(self) -> str:
        """返回 execute() 将要执行的 SELECT 语句（不消耗构造器），用于调试与测试。"""
        return (
            f"SELECT {self._column_list(self._columns)} FROM {self._quote(self._table.name)}"
            f"{self._where_sql()}{self._order_sql()}{self._page_sql()}"
        )

    def params(self) -> Dict[str, Any]:
        return {b.name: b.value for b in self._where_params()}
