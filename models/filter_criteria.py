"""Filter and sort criteria applied to the folder hierarchy."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

TypeFilter = Literal["all", "leaf", "fruit"]
DateRange = Literal["all", "week", "month", "year"]
SortKey = Literal["disease", "count", "date"]


class FilterCriteria(BaseModel):
    """Transient view criteria; the defaults describe the unfiltered view."""

    image_type: TypeFilter = "all"
    search: str = ""
    date_range: DateRange = "all"
    sort_by: SortKey = "disease"

    def is_active(self) -> bool:
        """Return True when any filter (not the sort key) narrows the view."""
        return self.image_type != "all" or self.search.strip() != "" or self.date_range != "all"
