import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_LIMIT = 10
MAX_LIMIT = 20


def clamp_limit(value: Any, default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> int:
    """Normalize a caller-supplied limit to an integer in [1, maximum].

    Missing, non-numeric, non-finite and non-positive values fall back to
    `default`; fractions are floored.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    n = math.floor(number)
    if n <= 0:
        return default
    return min(n, maximum)


class ToolParams(BaseModel):
    model_config = ConfigDict(extra="forbid")


class PingParams(ToolParams):
    message: Optional[str] = Field(default=None, description="Optional text echoed back")


class IdParams(ToolParams):
    id: str = Field(min_length=1, description="Primary key")


class SearchParams(ToolParams):
    query: str = Field(min_length=1, description="Case-insensitive partial match")
    limit: Optional[float] = Field(default=None, description="Max results (1-20, default 10)")


class ProfileLookupParams(ToolParams):
    id: Optional[str] = Field(default=None, description="Profile ID (provide this or username)")
    username: Optional[str] = Field(default=None, description="Username, case-insensitive (provide this or id)")

    @model_validator(mode="after")
    def _exactly_one(self):
        if (self.id is None) == (self.username is None):
            raise ValueError("exactly one of 'id' or 'username' is required")
        return self


class LimitParams(ToolParams):
    limit: Optional[float] = Field(default=None, description="Max results (1-20, default 10)")


class PlacePostsParams(LimitParams):
    place_id: str = Field(min_length=1, description="Place ID")


class UserParams(LimitParams):
    user_id: str = Field(min_length=1, description="Profile ID")
