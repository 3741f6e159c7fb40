"""Operator and keyword enumerations used by the node model.

Enum values are either the SQL keyword itself (where the spelling is the
same in every dialect) or a stable identifier that the renderer maps to a
dialect-specific spelling.
"""
from __future__ import annotations

from enum import Enum


class ComparisonOp(str, Enum):
    """Binary comparison operators.

    The SQL spelling lives in the renderer because REGEX and the
    case-sensitivity variants differ between dialects.
    """

    EQ = "eq"
    NOT_EQ = "not_eq"
    GT = "gt"
    GT_EQ = "gt_eq"
    LT = "lt"
    LT_EQ = "lt_eq"
    LIKE = "like"
    NOT_LIKE = "not_like"
    REGEXP = "regexp"
    NOT_REGEXP = "not_regexp"
    DISTINCT_FROM = "distinct_from"
    NOT_DISTINCT_FROM = "not_distinct_from"
    CASE_SENSITIVE_EQ = "case_sensitive_eq"
    CASE_INSENSITIVE_EQ = "case_insensitive_eq"
    CONTAINS = "contains"
    OVERLAPS = "overlaps"


class InfixOp(str, Enum):
    """Arithmetic, bitwise and concatenation operators."""

    PLUS = "+"
    MINUS = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    BITWISE_AND = "&"
    BITWISE_OR = "|"
    BITWISE_XOR = "^"
    SHIFT_LEFT = "<<"
    SHIFT_RIGHT = ">>"
    CONCAT = "||"


class UnaryOp(str, Enum):
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"


class Direction(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class NullsOrder(str, Enum):
    DEFAULT = ""
    FIRST = "NULLS FIRST"
    LAST = "NULLS LAST"


class JoinType(str, Enum):
    """Join kinds.  ``STRING`` marks an opaque, caller-supplied join fragment."""

    INNER = "INNER JOIN"
    LEFT_OUTER = "LEFT OUTER JOIN"
    RIGHT_OUTER = "RIGHT OUTER JOIN"
    FULL_OUTER = "FULL OUTER JOIN"
    CROSS = "CROSS JOIN"
    STRING = ""


class LockMode(str, Enum):
    FOR_UPDATE = "FOR UPDATE"
    FOR_SHARE = "FOR SHARE"
    FOR_NO_KEY_UPDATE = "FOR NO KEY UPDATE"
    FOR_KEY_SHARE = "FOR KEY SHARE"


class SetOpType(str, Enum):
    UNION = "UNION"
    UNION_ALL = "UNION ALL"
    INTERSECT = "INTERSECT"
    INTERSECT_ALL = "INTERSECT ALL"
    EXCEPT = "EXCEPT"
    EXCEPT_ALL = "EXCEPT ALL"


class AggregateFunc(str, Enum):
    COUNT = "COUNT"
    SUM = "SUM"
    AVG = "AVG"
    MIN = "MIN"
    MAX = "MAX"


class WindowFunc(str, Enum):
    ROW_NUMBER = "ROW_NUMBER"
    RANK = "RANK"
    DENSE_RANK = "DENSE_RANK"
    CUME_DIST = "CUME_DIST"
    PERCENT_RANK = "PERCENT_RANK"
    NTILE = "NTILE"
    LAG = "LAG"
    LEAD = "LEAD"
    FIRST_VALUE = "FIRST_VALUE"
    LAST_VALUE = "LAST_VALUE"
    NTH_VALUE = "NTH_VALUE"


class ExtractField(str, Enum):
    YEAR = "YEAR"
    MONTH = "MONTH"
    DAY = "DAY"
    HOUR = "HOUR"
    MINUTE = "MINUTE"
    SECOND = "SECOND"
    DOW = "DOW"
    DOY = "DOY"
    EPOCH = "EPOCH"
    QUARTER = "QUARTER"
    WEEK = "WEEK"


class FrameType(str, Enum):
    ROWS = "ROWS"
    RANGE = "RANGE"


class BoundType(str, Enum):
    UNBOUNDED_PRECEDING = "UNBOUNDED PRECEDING"
    PRECEDING = "PRECEDING"
    CURRENT_ROW = "CURRENT ROW"
    FOLLOWING = "FOLLOWING"
    UNBOUNDED_FOLLOWING = "UNBOUNDED FOLLOWING"


class GroupingSetType(str, Enum):
    CUBE = "CUBE"
    ROLLUP = "ROLLUP"
    GROUPING_SETS = "GROUPING SETS"


class ConflictAction(str, Enum):
    DO_NOTHING = "DO NOTHING"
    DO_UPDATE = "DO UPDATE"
