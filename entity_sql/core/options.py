"""Command and query options."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from entity_sql.core.enums import CommandType


class CommandOptions(BaseModel):
    """Options of a SQL command.

    Attributes:
        timeout: Seconds to wait before the driver abandons the command, where
            the driver supports a per-call timeout.
        transaction: Caller-owned transaction handle, a connection with an
            open transaction. When set, statements run on it and are never
            committed.
        command_type: How the command text is interpreted.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    timeout: int = Field(default=30, ge=0)
    transaction: Any = None
    command_type: CommandType = CommandType.TEXT


class QueryOptions(CommandOptions):
    """Options of a SQL query.

    Attributes:
        buffered: Materialize all rows into a list before returning. When
            False, a lazy single-pass iterator is returned and the cursor stays
            open until it is drained or closed.
    """

    buffered: bool = True
