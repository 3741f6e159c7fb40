"""The treeql node model."""

from treeql.nodes.base import Node
from treeql.nodes.expressions import (
    Alias,
    And,
    Between,
    BindParam,
    Case,
    Combinable,
    Comparison,
    Exists,
    Expression,
    Grouping,
    In,
    Infix,
    Literal,
    Not,
    Or,
    Ordering,
    SqlLiteral,
    Unary,
    UnaryMath,
    case,
    exists,
    not_exists,
    to_node,
)
from treeql.nodes.functions import (
    Aggregate,
    Cast,
    Extract,
    FrameBound,
    GroupingSet,
    NamedFunction,
    Over,
    WindowDefinition,
    WindowFrame,
    WindowFunction,
    avg,
    cast,
    casted,
    coalesce,
    count,
    count_distinct,
    cube,
    cume_dist,
    current_row,
    dense_rank,
    extract,
    first_value,
    following,
    function,
    grouping_sets,
    lag,
    last_value,
    lead,
    lower,
    max_,
    min_,
    nth_value,
    ntile,
    percent_rank,
    preceding,
    rank,
    rollup,
    row_number,
    substring,
    sum_,
    unbounded_following,
    unbounded_preceding,
    upper,
    window,
)
from treeql.nodes.operators import (
    AggregateFunc,
    BoundType,
    ComparisonOp,
    ConflictAction,
    Direction,
    ExtractField,
    FrameType,
    GroupingSetType,
    InfixOp,
    JoinType,
    LockMode,
    NullsOrder,
    SetOpType,
    UnaryOp,
    WindowFunc,
)
from treeql.nodes.relations import (
    Attribute,
    Star,
    Table,
    TableAlias,
    relation_name,
    table_source_name,
)
from treeql.nodes.statements import (
    Assignment,
    Cte,
    DeleteStatement,
    InsertStatement,
    Join,
    OnConflict,
    SelectCore,
    SetOperation,
    TableRef,
    UpdateStatement,
    collect_tables,
)

__all__ = [
    # Base
    "Node",
    "Expression",
    "Combinable",
    "to_node",
    # Relations
    "Table",
    "TableAlias",
    "Attribute",
    "Star",
    "relation_name",
    "table_source_name",
    # Values and predicates
    "Literal",
    "BindParam",
    "SqlLiteral",
    "Comparison",
    "Unary",
    "And",
    "Or",
    "Not",
    "Grouping",
    "In",
    "Between",
    "Exists",
    "exists",
    "not_exists",
    "Infix",
    "UnaryMath",
    "Case",
    "case",
    "Alias",
    "Ordering",
    # Functions
    "Aggregate",
    "NamedFunction",
    "WindowFunction",
    "Over",
    "WindowDefinition",
    "WindowFrame",
    "FrameBound",
    "Extract",
    "Cast",
    "GroupingSet",
    "count",
    "count_distinct",
    "sum_",
    "avg",
    "min_",
    "max_",
    "function",
    "coalesce",
    "lower",
    "upper",
    "substring",
    "cast",
    "casted",
    "extract",
    "row_number",
    "rank",
    "dense_rank",
    "cume_dist",
    "percent_rank",
    "ntile",
    "lag",
    "lead",
    "first_value",
    "last_value",
    "nth_value",
    "window",
    "unbounded_preceding",
    "preceding",
    "current_row",
    "following",
    "unbounded_following",
    "cube",
    "rollup",
    "grouping_sets",
    # Statements
    "SelectCore",
    "Join",
    "Cte",
    "SetOperation",
    "Assignment",
    "OnConflict",
    "InsertStatement",
    "UpdateStatement",
    "DeleteStatement",
    "TableRef",
    "collect_tables",
    # Operators
    "AggregateFunc",
    "BoundType",
    "ComparisonOp",
    "ConflictAction",
    "Direction",
    "ExtractField",
    "FrameType",
    "GroupingSetType",
    "InfixOp",
    "JoinType",
    "LockMode",
    "NullsOrder",
    "SetOpType",
    "UnaryOp",
    "WindowFunc",
]
