"""
Pagination and sort state parsed from list query strings.
"""
import math
from dataclasses import dataclass, field

from filmvault.core.validator import Validator, permitted_value

MAX_PAGE = 10_000_000
MAX_PAGE_SIZE = 100


class UnsafeSortError(RuntimeError):
    """Raised when a sort value outside the safelist reaches query construction."""


@dataclass
class Filters:
    page: int = 1
    page_size: int = 20
    sort: str = "id"
    sort_safelist: tuple[str, ...] = field(default_factory=tuple)

    def sort_column(self) -> str:
        """
        Column name for ORDER BY, with any leading hyphen stripped.

        Validation rejects unknown sort values before a query is built, so a
        miss here means a caller skipped validation; refuse to go further.
        """
        if self.sort in self.sort_safelist:
            return self.sort.lstrip("-")
        raise UnsafeSortError(f"unsafe sort parameter: {self.sort}")

    def sort_descending(self) -> bool:
        return self.sort.startswith("-")

    def limit(self) -> int:
        return self.page_size

    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def validate_filters(v: Validator, f: Filters) -> None:
    v.check(f.page > 0, "page", "must be greater than zero")
    v.check(f.page <= MAX_PAGE, "page", "must be a maximum of 10 million")
    v.check(f.page_size > 0, "page_size", "must be greater than zero")
    v.check(f.page_size <= MAX_PAGE_SIZE, "page_size", "must be a maximum of 100")
    v.check(permitted_value(f.sort, *f.sort_safelist), "sort", "invalid sort value")


@dataclass
class Metadata:
    """Pagination metadata. All zero when nothing matched."""

    current_page: int = 0
    page_size: int = 0
    first_page: int = 0
    last_page: int = 0
    total_records: int = 0


def calculate_metadata(total_records: int, page: int, page_size: int) -> Metadata:
    if total_records == 0:
        return Metadata()

    return Metadata(
        current_page=page,
        page_size=page_size,
        first_page=1,
        last_page=math.ceil(total_records / page_size),
        total_records=total_records,
    )
