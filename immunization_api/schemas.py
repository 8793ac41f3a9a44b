from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel


class ActionModel(BaseModel):
    type: Literal[
        "set_search",
        "set_region",
        "set_year",
        "sort_by",
        "add_selection",
        "remove_selection",
        "clear_selection",
        "resize",
    ]
    value: Optional[Union[int, str]] = None
    target: Literal["table", "visual"] = "table"
    sort_key: Optional[Literal["country_name", "region", "rate", "year"]] = None


class MetaListResponse(BaseModel):
    values: List[str]


class MetaYearsResponse(BaseModel):
    years: List[int]
