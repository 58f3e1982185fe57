"""
Bikepark Reports - SQL Literal Helpers

Escaping and placeholder interpolation for statements that cannot be sent as a
single natively-parameterized query, such as report queries assembled from one
UNION ALL block per selected bikepark.

Every value that ends up inside generated SQL text passes through
escape_literal(). If you change quoting rules, change them HERE.
"""

from datetime import date, datetime
from typing import Iterable, Sequence, Union

SQLValue = Union[str, date, datetime, None]

# MySQL string literal escapes (see mysql_real_escape_string)
_ESCAPES = {
    '\\': '\\\\',
    "'": "''",
    '\0': '\\0',
    '\n': '\\n',
    '\r': '\\r',
    '\x1a': '\\Z',
}

DATETIME_FORMAT = '%Y-%m-%d %H:%M:%S'


class SQLInterpolationError(ValueError):
    """Raised when placeholders and supplied values do not line up."""
    pass


def _to_sql_string(value: SQLValue) -> str:
    if value is None:
        return ''
    if isinstance(value, datetime):
        return value.strftime(DATETIME_FORMAT)
    if isinstance(value, date):
        return value.strftime('%Y-%m-%d')
    if isinstance(value, str):
        return value
    raise TypeError(f"Unsupported SQL literal type: {type(value).__name__}")


def escape_literal(value: SQLValue) -> str:
    """
    Render a value as a single-quoted MySQL string literal.

    Args:
        value: String, date/datetime (formatted YYYY-MM-DD[ HH:MM:SS]) or None

    Returns:
        Quoted literal, e.g. "'O''Brien'"
    """
    text = _to_sql_string(value)
    return "'" + ''.join(_ESCAPES.get(ch, ch) for ch in text) + "'"


def escape_literal_list(values: Iterable[SQLValue]) -> str:
    """Comma-joined literals for an IN (...) list."""
    return ', '.join(escape_literal(v) for v in values)


def find_placeholders(sql: str) -> list:
    """
    Return the offsets of '?' placeholders outside quoted literals.

    Single-quoted, double-quoted and backtick-quoted sections are skipped,
    honouring backslash escapes and doubled quote characters.
    """
    positions = []
    quote = None
    i = 0
    length = len(sql)
    while i < length:
        ch = sql[i]
        if quote:
            if ch == '\\' and quote != '`':
                i += 2
                continue
            if ch == quote:
                if i + 1 < length and sql[i + 1] == quote:
                    i += 2
                    continue
                quote = None
        elif ch in ("'", '"', '`'):
            quote = ch
        elif ch == '?':
            positions.append(i)
        i += 1
    return positions


def interpolate_sql(sql: str, params: Sequence[SQLValue]) -> str:
    """
    Replace ordered '?' placeholders with escaped, quoted literals.

    Args:
        sql: SQL template with positional '?' placeholders
        params: One value per placeholder, in order

    Returns:
        SQL string ready for execution

    Raises:
        SQLInterpolationError: If the number of placeholders differs from len(params)

    Example:
        >>> interpolate_sql("SELECT * FROM t WHERE d BETWEEN ? AND ?", ["2024-01-01", "2024-01-02"])
        "SELECT * FROM t WHERE d BETWEEN '2024-01-01' AND '2024-01-02'"
    """
    positions = find_placeholders(sql)
    if len(positions) != len(params):
        raise SQLInterpolationError(
            f"SQL has {len(positions)} placeholders but {len(params)} values were supplied"
        )

    parts = []
    last = 0
    for position, value in zip(positions, params):
        parts.append(sql[last:position])
        parts.append(escape_literal(value))
        last = position + 1
    parts.append(sql[last:])
    return ''.join(parts)
