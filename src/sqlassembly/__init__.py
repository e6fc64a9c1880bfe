from pydantic import __version__ as _pydantic_version

# Settings rely on the Pydantic v2 API (ConfigDict, field_validator).
if not _pydantic_version.startswith("2"):
    raise ImportError(
        "sqlassembly requires pydantic>=2.0; detected version %s" % _pydantic_version
    )

from .builder import QueryBuilder, RenderResult, RenderState, StatementKind
from .errors import AliasError, NonUniqueAliasError, QueryError, UnknownAliasError
from .expression import CompositeExpression, ExpressionBuilder
from .joins import FromEntry, JoinEntry, JoinType
from .parameters import Parameter, ParameterStore, ParameterType
from .parts import OrderByItem, QueryPartName, UpdateSet
from .settings import BuilderSettings, load_settings

__all__ = [
    # builder
    "QueryBuilder",
    "RenderResult",
    "RenderState",
    "StatementKind",
    # expressions
    "CompositeExpression",
    "ExpressionBuilder",
    # joins
    "FromEntry",
    "JoinEntry",
    "JoinType",
    # parameters
    "Parameter",
    "ParameterStore",
    "ParameterType",
    # parts
    "OrderByItem",
    "QueryPartName",
    "UpdateSet",
    # errors
    "QueryError",
    "AliasError",
    "UnknownAliasError",
    "NonUniqueAliasError",
    # settings
    "BuilderSettings",
    "load_settings",
]
